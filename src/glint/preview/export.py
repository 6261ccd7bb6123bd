"""PNG export for rendered images.

Snapshots are written as 8-bit RGB PNGs through Pillow, row 0 at the top.
Without tone mapping a saved snapshot holds exactly the bytes of
``Snapshot.to_uint8()``.

Example:
    >>> from glint.core.config import RenderConfig
    >>> from glint.core.progressive import ProgressiveRenderer
    >>> from glint.preview.export import save_png
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(samples_per_pixel=16))
    >>> snapshot = renderer.render()
    >>> save_png(snapshot, "three_body.png")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from glint.core.accumulator import Snapshot
from glint.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from glint.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit display values.

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: Tone mapping method.
        gamma: Display gamma.
        exposure: Exposure for the "exposure" tone mapping.

    Returns:
        uint8 array of shape (H, W, 3).
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return (processed * 255).astype(np.uint8)


def _write_png(image_uint8: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    PILImage.fromarray(image_uint8).save(filepath)
    logger.info("Saved %dx%d image to %s", image_uint8.shape[1], image_uint8.shape[0], filepath)


def save_png(
    source: Snapshot | ProgressiveRenderer,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float | None = None,
    exposure: float = 1.0,
) -> None:
    """Save a render as a PNG file.

    Args:
        source: A snapshot, or a renderer to take one from.
        filepath: Output path.
        tone_map: Tone mapping method.
        gamma: Display gamma. None uses the snapshot's gamma.
        exposure: Exposure for the "exposure" tone mapping.
    """
    snapshot = source if isinstance(source, Snapshot) else source.snapshot()

    if tone_map == "none" and (gamma is None or gamma == snapshot.gamma):
        image_uint8 = snapshot.to_uint8()
    else:
        image_uint8 = image_to_uint8(
            snapshot.mean,
            tone_map=tone_map,
            gamma=snapshot.gamma if gamma is None else gamma,
            exposure=exposure,
        )
    _write_png(image_uint8, filepath)


def save_png_from_array(
    image: npt.NDArray[np.floating],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear (H, W, 3) array as a PNG file."""
    _write_png(
        image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure),
        filepath,
    )


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If the shapes differ.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
