"""GGUI window that follows a progressive render.

The window drives the render itself: every frame it advances the session by
one batch and draws the newest snapshot the session published. Rendering and
drawing share the window thread, since the Taichi runtime cannot be used from
two threads at once.

Example:
    >>> from glint.core.config import RenderConfig
    >>> from glint.core.progressive import ProgressiveRenderer
    >>> from glint.preview.interactive import InteractivePreview
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(width=640, height=360))
    >>> InteractivePreview(renderer.width, renderer.height).run(renderer)
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from glint.core.accumulator import Snapshot

if TYPE_CHECKING:
    import numpy.typing as npt

    from glint.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


class InteractivePreview:
    """A window showing snapshots of one render session.

    The native window is only created when something is first shown, so an
    InteractivePreview can be built and fed images without a display.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        display_image: Field handed to the canvas, indexed (x, y) with y up.
    """

    def __init__(self, width: int, height: int, *, title: str = "glint") -> None:
        self.width = width
        self.height = height
        self.title = title
        self.display_image = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
        self._window: ti.ui.Window | None = None
        self._snapshot: Snapshot | None = None

    def _ensure_window(self) -> ti.ui.Window:
        if self._window is None:
            self._window = ti.ui.Window(
                name=self.title, res=(self.width, self.height), vsync=True
            )
        return self._window

    @property
    def sample_count(self) -> int:
        """Samples per pixel of the snapshot on screen (0 before the first)."""
        return 0 if self._snapshot is None else self._snapshot.min_count

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Stage an image for display.

        Args:
            image: Values in [0, 1], shape (height, width, 3), row 0 on top.

        Raises:
            ValueError: If the shape does not match the window.
        """
        if image.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Image shape {image.shape} doesn't match window {self.width}x{self.height}"
            )
        # Flip so the top row lands at the largest y, then swap to (x, y)
        columns_first = np.flipud(image).transpose(1, 0, 2)
        self.display_image.from_numpy(np.ascontiguousarray(columns_first, dtype=np.float32))

    def update_snapshot(self, snapshot: Snapshot) -> None:
        self.update_image(snapshot.image)
        self._snapshot = snapshot

    def is_running(self) -> bool:
        return self._ensure_window().running

    def show_frame(self) -> None:
        window = self._ensure_window()
        window.get_canvas().set_image(self.display_image)
        window.show()

    def frames(self, renderer: ProgressiveRenderer) -> Iterator[tuple[int, int]]:
        """Advance a session one batch per frame and stage its newest snapshot.

        The render passes and the display field upload both run on the
        calling thread, so the Taichi runtime is never entered from two
        threads. An IDLE session is started here and a finished one is simply
        shown. The generator never ends on its own: after the session finishes
        it keeps yielding so the window stays open. Closing it cancels a
        render that is still accumulating.

        Yields:
            The session's (completed, target) progress once per frame.

        Raises:
            RuntimeError: If the session is already rendering elsewhere.
        """
        from glint.core.progressive import RenderState

        if renderer.state is RenderState.ACCUMULATING:
            raise RuntimeError("Session is already rendering; hand the window an idle session")

        channel = renderer.publisher.subscribe("gui")
        passes = None
        if renderer.state is RenderState.IDLE:
            passes = renderer.render_progressive()
        else:
            self.update_snapshot(renderer.snapshot())

        try:
            while True:
                if passes is not None and next(passes, None) is None:
                    passes = None
                latest = channel.poll()
                if latest is not None:
                    self.update_snapshot(latest)
                yield renderer.progress
        finally:
            if passes is not None:
                passes.close()
            renderer.publisher.unsubscribe(channel)
            logger.debug(
                "Viewer stopped: %d snapshots drawn, %d skipped",
                channel.received - channel.dropped,
                channel.dropped,
            )

    def run(self, renderer: ProgressiveRenderer | None = None) -> None:
        """Run the event loop until the window closes.

        Args:
            renderer: Session to follow; see frames(). One still accumulating
                when the window closes is cancelled. None just shows the
                staged image.
        """
        if renderer is None:
            while self.is_running():
                self.show_frame()
            return

        frames = self.frames(renderer)
        try:
            for _ in frames:
                if not self.is_running():
                    break
                self._draw_controls(renderer)
                self.show_frame()
        finally:
            frames.close()

    def _draw_controls(self, renderer: ProgressiveRenderer) -> None:
        done, target = renderer.progress
        with self._ensure_window().GUI.sub_window("Render", 0.02, 0.02, 0.28, 0.18) as panel:
            panel.text(f"{renderer.state.value}: {done}/{target} spp")
            if panel.button("Cancel"):
                renderer.cancel()
            if panel.button("Export PNG"):
                self._export_png()

    def _export_png(self) -> None:
        from glint.preview.export import save_png

        if self._snapshot is None:
            logger.warning("No snapshot on screen to export")
            return

        path = f"glint_{datetime.now():%Y%m%d_%H%M%S}.png"
        save_png(self._snapshot, path)
        print(f"Exported: {path} ({self.sample_count} SPP)")

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Best guess at whether a native window can be opened."""
        if sys.platform == "win32":
            return True
        has_x11 = bool(os.environ.get("DISPLAY"))
        if sys.platform == "darwin":
            # Plain SSH into a Mac has no window server access
            return has_x11 or not os.environ.get("SSH_CONNECTION")
        return has_x11 or bool(os.environ.get("WAYLAND_DISPLAY"))
