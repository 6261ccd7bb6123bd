"""Tests for the progressive renderer.

This module tests the ProgressiveRenderer class including:
- Configuration checks at construction
- Sample accumulation up to the target
- Session states, cancellation and reset
- Background rendering with start() and wait()
- Snapshot publication and PNG output

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

import numpy as np
import pytest


def _config(**overrides):
    from glint.core.config import RenderConfig

    params = {
        "width": 16,
        "height": 9,
        "samples_per_pixel": 4,
        "max_depth": 8,
        "scene": "three_body",
    }
    params.update(overrides)
    return RenderConfig(**params)


def _sky_pixel_means(width, height, subdivisions=32):
    """Sky gradient averaged over each pixel of the last camera set up.

    Integrates with a dense midpoint grid over the pixel footprint, the same
    (s, t) mapping the kernel jitters over, with row 0 at the top.
    """
    from glint.camera.thin_lens import get_camera_info
    from glint.core.integrator import SKY_HORIZON_COLOR, SKY_ZENITH_COLOR

    info = get_camera_info()
    offsets = (np.arange(subdivisions) + 0.5) / subdivisions
    s = (np.arange(width)[:, None] + offsets).reshape(1, 1, width, subdivisions, 1) / width
    t = ((height - 1 - np.arange(height))[:, None] + offsets).reshape(
        height, subdivisions, 1, 1, 1
    ) / height

    corner = np.subtract(info["lower_left"], info["origin"])
    directions = corner + s * np.asarray(info["horizontal"]) + t * np.asarray(info["vertical"])
    up = directions[..., 1:2] / np.linalg.norm(directions, axis=-1, keepdims=True)
    blend = 0.5 * (up + 1.0)
    colors = (1.0 - blend) * np.asarray(SKY_HORIZON_COLOR) + blend * np.asarray(SKY_ZENITH_COLOR)
    return colors.mean(axis=(1, 3))


class TestProgressiveRendererInit:
    """Test ProgressiveRenderer construction."""

    def test_init_is_idle_and_empty(self):
        """Test a new session is IDLE with no samples."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(width=32, height=18))

        assert renderer.state is RenderState.IDLE
        assert renderer.width == 32
        assert renderer.height == 18
        assert renderer.sample_count == 0
        assert renderer.progress == (0, 4)
        assert "idle" in repr(renderer)

    def test_camera_uses_image_aspect(self):
        """Test the preset camera is built for the configured aspect ratio."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(width=32, height=16))
        assert renderer.camera.aspect_ratio == pytest.approx(2.0)

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"width": 0}, "width"),
            ({"height": 4096}, "exceed maximum"),
            ({"samples_per_pixel": 0}, "samples_per_pixel"),
            ({"max_depth": -1}, "max_depth"),
            ({"scene": "nope"}, "Unknown scene"),
            ({"mode": "wireframe"}, "Unknown render mode"),
        ],
    )
    def test_invalid_config_rejected(self, overrides, message):
        """Test invalid settings fail before any rendering."""
        from glint.core.config import ConfigurationError
        from glint.core.progressive import ProgressiveRenderer

        with pytest.raises(ConfigurationError, match=message):
            ProgressiveRenderer(_config(**overrides))

    def test_degenerate_camera_rejected(self):
        """Test a camera looking at its own position is rejected."""
        from glint.core.config import CameraSettings, ConfigurationError
        from glint.core.progressive import ProgressiveRenderer

        camera = CameraSettings(lookfrom=(1.0, 1.0, 1.0), lookat=(1.0, 1.0, 1.0))
        with pytest.raises(ConfigurationError):
            ProgressiveRenderer(_config(camera=camera))


class TestProgressiveRender:
    """Test rendering in the calling thread."""

    def test_render_reaches_target(self):
        """Test every pixel receives exactly samples_per_pixel samples."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=5))
        snapshot = renderer.render()

        assert renderer.state is RenderState.COMPLETE
        assert snapshot.min_count == 5
        assert snapshot.max_count == 5
        assert snapshot.image.shape == (9, 16, 3)
        assert np.all(np.isfinite(snapshot.image))
        assert snapshot.image.min() >= 0.0 and snapshot.image.max() <= 1.0

    def test_callback_receives_progress(self):
        """Test the callback sees every batch boundary."""
        from glint.core.progressive import ProgressiveRenderer

        progress = []
        renderer = ProgressiveRenderer(_config(samples_per_pixel=7, batch_size=3))
        renderer.render(callback=lambda done, target: progress.append((done, target)))

        assert progress == [(3, 7), (6, 7), (7, 7)]

    def test_render_progressive_yields_progress(self):
        """Test the generator yields after each pass."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(samples_per_pixel=3))
        assert list(renderer.render_progressive()) == [(1, 3), (2, 3), (3, 3)]

    def test_block_color_mode_converges_exactly(self):
        """Test a frame-filling sphere in block color mode is the block color everywhere."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(
            _config(scene="single_sphere", mode="block_color", block_color=(1.0, 0.0, 0.0))
        )
        snapshot = renderer.render()

        np.testing.assert_allclose(snapshot.mean, np.broadcast_to([1.0, 0.0, 0.0], (9, 16, 3)))
        assert np.all(snapshot.to_uint8() == np.array([255, 0, 0], dtype=np.uint8))

    def test_zero_depth_renders_black(self):
        """Test max_depth=0 gives a black image that still counts samples."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(max_depth=0))
        snapshot = renderer.render()

        assert snapshot.min_count == 4
        np.testing.assert_array_equal(snapshot.image, 0.0)

    def test_empty_scene_top_row_bluer(self):
        """Test the sky-only scene puts the zenith at the top of the image."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(scene="empty", samples_per_pixel=2))
        image = renderer.render().mean

        assert image[0, :, 0].mean() < image[-1, :, 0].mean()

    def test_sky_converges_with_samples(self):
        """Test the error against the exact pixel-averaged sky shrinks as N grows."""
        from glint.core.progressive import ProgressiveRenderer

        def render_mean(spp):
            renderer = ProgressiveRenderer(_config(scene="empty", samples_per_pixel=spp))
            return renderer.render().mean

        estimates = {n: render_mean(n) for n in (1, 4, 64)}
        expected = _sky_pixel_means(16, 9)
        errors = [float(np.sqrt(np.mean((estimates[n] - expected) ** 2))) for n in (1, 4, 64)]

        assert errors[0] > errors[1] > errors[2]
        # 64x the samples should cut the error about 8x
        assert errors[2] < errors[0] / 4.0
        assert errors[2] < 5e-3


class TestRenderLifecycle:
    """Test session states, cancellation and reset."""

    def test_second_render_requires_reset(self):
        """Test a finished session refuses to render again until reset."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=2))
        renderer.render()

        with pytest.raises(RuntimeError, match="reset"):
            renderer.render()
        with pytest.raises(RuntimeError, match="reset"):
            renderer.start()

        renderer.reset()
        assert renderer.state is RenderState.IDLE
        assert renderer.sample_count == 0
        assert renderer.progress == (0, 2)

        renderer.render()
        assert renderer.sample_count == 2

    def test_cancel_from_callback(self):
        """Test cancelling mid-render stops early with a valid partial image."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=50))

        def callback(done, target):
            if done >= 2:
                renderer.cancel()

        snapshot = renderer.render(callback=callback)

        assert renderer.state is RenderState.CANCELLED
        assert snapshot.min_count == snapshot.max_count == 2
        assert np.all(np.isfinite(snapshot.image))

    def test_closing_generator_cancels(self):
        """Test abandoning the progress generator ends the session as cancelled."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=10))
        passes = renderer.render_progressive()
        assert renderer.state is RenderState.ACCUMULATING

        next(passes)
        passes.close()

        assert renderer.state is RenderState.CANCELLED
        assert renderer.sample_count == 1

    def test_closing_unstarted_generator_cancels(self):
        """Test closing the generator before the first batch still ends the session."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=3))
        passes = renderer.render_progressive()
        passes.close()

        assert renderer.state is RenderState.CANCELLED
        assert renderer.sample_count == 0
        assert list(passes) == []

        renderer.reset()
        assert renderer.render().min_count == 3

    def test_dropping_unstarted_generator_cancels(self):
        """Test an unstarted generator that is garbage collected frees the session."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=3))
        passes = renderer.render_progressive()
        del passes

        assert renderer.state is RenderState.CANCELLED
        renderer.reset()
        assert renderer.state is RenderState.IDLE

    def test_reset_while_rendering_rejected(self):
        """Test reset refuses to discard an active render."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(samples_per_pixel=3))
        passes = renderer.render_progressive()
        next(passes)

        with pytest.raises(RuntimeError, match="rendering"):
            renderer.reset()
        passes.close()
        renderer.reset()

    def test_background_render(self):
        """Test start() renders on another thread and wait() reports completion."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=3))
        renderer.start()

        assert renderer.wait(timeout=120.0)
        assert renderer.state is RenderState.COMPLETE
        assert renderer.sample_count == 3

    def test_snapshot_consumer_alongside_background_render(self):
        """Test pushed snapshots can be converted on this thread while start() renders."""
        from glint.core.progressive import ProgressiveRenderer, RenderState
        from glint.preview.export import image_to_uint8

        renderer = ProgressiveRenderer(_config(samples_per_pixel=12))
        channel = renderer.publisher.subscribe("viewer")
        renderer.start()

        # Only NumPy work on this thread while the render thread owns Taichi
        counts = []
        while not counts or counts[-1] < 12:
            snapshot = channel.get(timeout=120.0)
            assert snapshot is not None
            assert image_to_uint8(snapshot.mean).shape == (9, 16, 3)
            counts.append(snapshot.min_count)

        assert renderer.wait(timeout=120.0)
        assert renderer.state is RenderState.COMPLETE
        assert counts == sorted(counts)

    def test_cancel_background_render(self):
        """Test a background render stops between passes when cancelled."""
        from glint.core.progressive import ProgressiveRenderer, RenderState

        renderer = ProgressiveRenderer(_config(samples_per_pixel=100000))
        renderer.start()
        renderer.cancel()

        assert renderer.wait(timeout=120.0)
        assert renderer.state is RenderState.CANCELLED
        assert renderer.sample_count < 100000
        snapshot = renderer.snapshot()
        assert snapshot.min_count == snapshot.max_count


class TestRenderOutput:
    """Test snapshot publication and export."""

    def test_subscriber_receives_final_snapshot(self):
        """Test a subscribed channel ends with the completed image."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(samples_per_pixel=4, publish_every=2))
        channel = renderer.publisher.subscribe("test")
        renderer.render()

        # Two periodic publications plus the final one
        assert renderer.publisher.publish_count == 3
        assert channel.received == 3
        latest = channel.poll()
        assert latest is not None
        assert latest.min_count == 4

    def test_no_periodic_snapshots_without_subscribers(self):
        """Test an unwatched render only publishes its final snapshot."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(samples_per_pixel=4))
        renderer.render()

        assert renderer.publisher.publish_count == 1

    def test_snapshot_gamma_from_config(self):
        """Test snapshots use the configured gamma."""
        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(gamma=1.0, samples_per_pixel=1))
        snapshot = renderer.render()
        assert snapshot.gamma == 1.0
        np.testing.assert_allclose(snapshot.image, np.clip(snapshot.mean, 0.0, 1.0), atol=1e-6)

    def test_save_image(self, tmp_path):
        """Test save_image writes a PNG of the rendered size."""
        from PIL import Image

        from glint.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_config(samples_per_pixel=2))
        snapshot = renderer.render()

        path = tmp_path / "render.png"
        renderer.save_image(path)

        with Image.open(path) as img:
            assert img.size == (16, 9)
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.asarray(img), snapshot.to_uint8())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
