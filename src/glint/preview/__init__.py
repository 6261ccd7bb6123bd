"""Viewers and output for render sessions.

Components:
    publisher: Snapshot publishing to any number of viewers
    display: Matplotlib preview and tone mapping
    export: PNG export via Pillow
    interactive: Taichi GGUI window following a live render

Viewers never block the render loop. They pull snapshots when they are
ready, or subscribe to latest-value channels that drop stale snapshots.

Example:
    >>> from glint.core.config import RenderConfig
    >>> from glint.core.progressive import ProgressiveRenderer
    >>> from glint.preview import save_png, show_preview
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(samples_per_pixel=32))
    >>> snapshot = renderer.render()
    >>> show_preview(snapshot)
    >>> save_png(snapshot, "output.png")
"""

from glint.preview.display import (
    ToneMapMethod,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from glint.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)
from glint.preview.interactive import InteractivePreview
from glint.preview.publisher import ProgressPublisher, SnapshotChannel

__all__ = [
    # Publishing
    "ProgressPublisher",
    "SnapshotChannel",
    # Interactive preview
    "InteractivePreview",
    # Display functions
    "show_preview",
    "show_comparison",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
