"""Matplotlib preview of accumulated renders.

Shows a snapshot of a render session, or a side-by-side comparison of two
renders, in a Matplotlib figure. Images come in linear (the snapshot's
``mean``) and go through an optional tone mapping step before display gamma.

Example:
    >>> from glint.core.config import RenderConfig
    >>> from glint.core.progressive import ProgressiveRenderer
    >>> from glint.preview.display import show_preview
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(samples_per_pixel=16))
    >>> renderer.render()
    >>> show_preview(renderer, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

from glint.core.accumulator import Snapshot, apply_gamma

if TYPE_CHECKING:
    from glint.core.progressive import ProgressiveRenderer


ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(image: npt.NDArray[np.floating]) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L)."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.floating],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear image of shape (H, W, 3).
        exposure: Higher values brighten the image.
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.floating],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, clamp and gamma correct a linear image.

    Args:
        image: Linear image of shape (H, W, 3).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Display gamma.
        exposure: Exposure for the "exposure" tone mapping.

    Returns:
        Display image with values in [0, 1].

    Raises:
        ValueError: On an unknown tone mapping method.
    """
    if tone_map == "reinhard":
        image = tone_map_reinhard(image)
    elif tone_map == "exposure":
        image = tone_map_exposure(image, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return apply_gamma(image, gamma)


def _as_snapshot(source: Snapshot | ProgressiveRenderer) -> Snapshot:
    if isinstance(source, Snapshot):
        return source
    return source.snapshot()


def show_preview(
    source: Snapshot | ProgressiveRenderer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float | None = None,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 4.5),
    block: bool = True,
) -> None:
    """Display a render in a Matplotlib figure.

    Args:
        source: A snapshot, or a renderer to take one from.
        tone_map: Tone mapping method.
        gamma: Display gamma. None uses the snapshot's gamma.
        exposure: Exposure for the "exposure" tone mapping.
        title: Figure title. None shows the sample count.
        figsize: Figure size in inches.
        block: Whether to block until the figure is closed.
    """
    import matplotlib.pyplot as plt

    snapshot = _as_snapshot(source)
    display_image = process_image_for_display(
        snapshot.mean,
        tone_map=tone_map,
        gamma=snapshot.gamma if gamma is None else gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {snapshot.min_count} SPP"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
    *,
    labels: tuple[str, str] = ("A", "B"),
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 4.5),
    block: bool = True,
) -> float:
    """Show two linear images and their amplified difference.

    Returns:
        RMSE between the two display images.
    """
    import matplotlib.pyplot as plt

    from glint.preview.export import compute_rmse

    display_a = process_image_for_display(image_a, tone_map=tone_map, gamma=gamma)
    display_b = process_image_for_display(image_b, tone_map=tone_map, gamma=gamma)
    rmse = compute_rmse(display_a, display_b)

    diff = np.abs(display_a.astype(np.float64) - display_b.astype(np.float64))
    diff_amplified = np.clip(diff * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)
    panels = [
        (display_a, labels[0]),
        (display_b, labels[1]),
        (diff_amplified, f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}"),
    ]
    for ax, (image, label) in zip(axes, panels):
        ax.imshow(image)
        ax.set_title(label)
        ax.axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
