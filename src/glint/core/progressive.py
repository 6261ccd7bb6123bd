"""Progressive renderer driving passes into the accumulator.

A ProgressiveRenderer owns one render session. It validates the
configuration up front, then on each run builds the preset scene, sets up
the camera and repeatedly traces one sample per pixel, merging every pass
into its Accumulator. Viewers follow along through the session's
ProgressPublisher. Periodic snapshots are only taken while a viewer is
subscribed; the final one is always published.

Session states::

    IDLE --render()/start()--> ACCUMULATING --all samples--> COMPLETE
                                     |
                                     +------cancel()------> CANCELLED

reset() returns a finished session to IDLE with an empty accumulator.
Cancellation is checked between passes, and a cancelled image is still a
valid (noisier) image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.core.config import RenderConfig
    >>> from glint.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(width=160, height=90, samples_per_pixel=8))
    >>> snapshot = renderer.render(callback=lambda done, target: print(f"{done}/{target}"))
    >>> renderer.state
    <RenderState.COMPLETE: 'complete'>
    >>> snapshot.min_count
    8
"""

import logging
import threading
import time
from collections.abc import Callable, Generator
from enum import Enum
from pathlib import Path

from glint.camera.thin_lens import ThinLensCamera, setup_camera, validate_camera
from glint.core.accumulator import Accumulator, Snapshot
from glint.core.config import RenderConfig
from glint.core.integrator import get_pass_numpy, render_pass, set_render_params
from glint.preview.publisher import ProgressPublisher
from glint.scene.presets import build_scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (completed_samples, target_samples)
ProgressCallback = Callable[[int, int], None]


class RenderState(Enum):
    """Lifecycle of a render session."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class _RenderPasses:
    """Iterator over the batches of a claimed session.

    Closing it, or dropping it, ends the session as cancelled even when no
    batch was ever requested.
    """

    def __init__(self, renderer: "ProgressiveRenderer") -> None:
        self._renderer = renderer
        self._batches = renderer._accumulate()
        self._started = False
        self._closed = False

    def __iter__(self) -> "_RenderPasses":
        return self

    def __next__(self) -> tuple[int, int]:
        if self._closed:
            raise StopIteration
        self._started = True
        return next(self._batches)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._started:
            self._batches.close()
        else:
            # The generator body never ran, so its cleanup would not either
            self._renderer._finish(False)

    def __del__(self) -> None:
        self.close()


class ProgressiveRenderer:
    """A render session that accumulates samples pass by pass.

    Attributes:
        config: The validated render configuration.
        accumulator: Per-pixel running sums and counts.
        publisher: Snapshot publisher attached to the accumulator.
    """

    def __init__(self, config: RenderConfig | None = None) -> None:
        """Create a session for a configuration.

        Args:
            config: Render settings. None uses the defaults.

        Raises:
            ConfigurationError: If the configuration or its camera is invalid.
        """
        self.config = config if config is not None else RenderConfig()
        self.config.validate()

        self._camera: ThinLensCamera = self.config.resolve_camera().to_camera(
            self.config.aspect_ratio
        )
        validate_camera(self._camera)

        self.accumulator = Accumulator(self.config.width, self.config.height)
        self.publisher = ProgressPublisher(self.accumulator, gamma=self.config.gamma)

        self._state = RenderState.IDLE
        self._state_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None
        self._completed = 0

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> RenderState:
        with self._state_lock:
            return self._state

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def camera(self) -> ThinLensCamera:
        return self._camera

    @property
    def sample_count(self) -> int:
        """Samples every pixel has received so far."""
        return self.accumulator.sample_count

    @property
    def progress(self) -> tuple[int, int]:
        """(completed passes, target samples per pixel)."""
        return self._completed, self.config.samples_per_pixel

    def _claim(self) -> None:
        with self._state_lock:
            if self._state is not RenderState.IDLE:
                raise RuntimeError(
                    f"Cannot start a render in state '{self._state.value}'; call reset() first"
                )
            self._state = RenderState.ACCUMULATING
        self._cancel_event.clear()
        self._error = None

    def _finish(self, complete: bool) -> None:
        with self._state_lock:
            self._state = RenderState.COMPLETE if complete else RenderState.CANCELLED
        self.publisher.publish()
        logger.info(
            "Render %s after %d/%d samples per pixel",
            "complete" if complete else "cancelled",
            self._completed,
            self.config.samples_per_pixel,
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def _prepare(self) -> None:
        """Load this session's scene, camera and integrator parameters."""
        config = self.config
        build_scene(config.scene)
        setup_camera(self._camera)
        set_render_params(
            mode=config.mode,
            max_depth=config.max_depth,
            depth_max_t=config.depth_max_t,
            block_color=config.block_color,
        )

    def _accumulate(self) -> Generator[tuple[int, int], None, None]:
        config = self.config
        target = config.samples_per_pixel
        complete = False
        start_time = time.perf_counter()

        try:
            self._prepare()
            logger.info(
                "Rendering '%s' at %dx%d, %d spp, max depth %d, mode %s",
                config.scene,
                config.width,
                config.height,
                target,
                config.max_depth,
                config.mode.name.lower(),
            )

            while self._completed < target and not self._cancel_event.is_set():
                batch = min(config.batch_size, target - self._completed)
                for _ in range(batch):
                    if self._cancel_event.is_set():
                        break
                    render_pass(config.width, config.height)
                    self.accumulator.add_pass(get_pass_numpy(config.width, config.height))
                    self._completed += 1
                    if (
                        self._completed % config.publish_every == 0
                        and self.publisher.subscriber_count > 0
                    ):
                        self.publisher.publish()

                logger.debug("Accumulated %d/%d samples per pixel", self._completed, target)
                yield (self._completed, target)

            complete = self._completed >= target
        finally:
            logger.debug("Render loop ran for %.2fs", time.perf_counter() - start_time)
            self._finish(complete)

    def render_progressive(self) -> _RenderPasses:
        """Render, yielding progress after each batch.

        The session is claimed immediately. Closing the returned iterator
        before it is exhausted cancels the render, whether or not any batch
        was requested.

        Yields:
            Tuple of (completed_samples, target_samples).

        Raises:
            RuntimeError: If the session is not IDLE.
        """
        self._claim()
        return _RenderPasses(self)

    def render(self, callback: ProgressCallback | None = None) -> Snapshot:
        """Render in the calling thread until complete or cancelled.

        Args:
            callback: Called after each batch with (completed, target).

        Returns:
            The final snapshot.

        Raises:
            RuntimeError: If the session is not IDLE.
        """
        passes = self.render_progressive()
        try:
            for completed, target in passes:
                if callback is not None:
                    callback(completed, target)
        finally:
            # Ends the session even if the callback raised
            passes.close()
        return self.snapshot()

    def start(self) -> None:
        """Render on a background thread.

        The Taichi runtime is not thread-safe. Until wait() reports the render
        finished, other threads may read snapshots and channels but must not
        launch kernels or touch fields.

        Raises:
            RuntimeError: If the session is not IDLE.
        """
        passes = self.render_progressive()

        def run() -> None:
            try:
                for _ in passes:
                    pass
            except BaseException as e:  # re-raised from wait()
                logger.exception("Render thread failed")
                self._error = e

        self._thread = threading.Thread(target=run, name="glint-render", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Ask the running render to stop after the current pass."""
        self._cancel_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for a background render started with start().

        Returns:
            True if the render has finished, False on timeout.

        Raises:
            Exception: Whatever the render thread raised.
        """
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                return False
        if self._error is not None:
            raise self._error
        return self.state is not RenderState.ACCUMULATING

    def reset(self) -> None:
        """Discard all samples and return to IDLE.

        Raises:
            RuntimeError: If a render is in progress.
        """
        with self._state_lock:
            if self._state is RenderState.ACCUMULATING:
                raise RuntimeError("Cannot reset while rendering; cancel() and wait() first")
            self._state = RenderState.IDLE
        self.accumulator.clear()
        self._cancel_event.clear()
        self._thread = None
        self._error = None
        self._completed = 0

    # =========================================================================
    # Output
    # =========================================================================

    def snapshot(self) -> Snapshot:
        """A consistent snapshot of the accumulated image."""
        return self.publisher.snapshot()

    def save_image(self, filepath: str | Path) -> None:
        """Save the current image as a PNG."""
        from glint.preview.export import save_png

        save_png(self.snapshot(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"state={self.state.value}, samples={self.sample_count})"
        )
