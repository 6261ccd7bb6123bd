"""Unit tests for the per-pixel sample accumulator.

Tests cover:
- Sum / count bookkeeping for single samples and whole passes
- Sanitizing non-finite and negative samples
- Snapshot consistency, immutability and gamma
- Convergence of the mean as samples accumulate
- Concurrent writers and readers
"""

import threading

import numpy as np
import pytest


class TestAccumulatorBasics:
    """Tests for adding samples and reading the mean."""

    def test_empty_is_black(self):
        """Test pixels without samples display black."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=3, height=2)
        snap = acc.snapshot()
        assert acc.sample_count == 0
        assert snap.min_count == 0 and snap.max_count == 0
        np.testing.assert_array_equal(snap.image, 0.0)
        np.testing.assert_array_equal(acc.mean(), 0.0)

    def test_mean_is_sum_over_count(self):
        """Test each pixel shows the average of its own samples."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=2)
        acc.add_sample(0, 0, (1.0, 0.0, 0.5))
        acc.add_sample(0, 0, (0.0, 1.0, 0.5))
        acc.add_sample(1, 1, (0.2, 0.4, 0.6))

        mean = acc.mean()
        np.testing.assert_allclose(mean[0, 0], (0.5, 0.5, 0.5))
        np.testing.assert_allclose(mean[1, 1], (0.2, 0.4, 0.6))
        np.testing.assert_array_equal(mean[0, 1], 0.0)

        snap = acc.snapshot(gamma=1.0)
        assert snap.counts[0, 0] == 2
        assert snap.counts[1, 1] == 1
        assert snap.min_count == 0
        assert snap.max_count == 2
        assert snap.total_samples == 3

    def test_add_pass(self):
        """Test a pass adds exactly one sample to every pixel."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=4, height=3)
        acc.add_pass(np.full((3, 4, 3), 0.2, dtype=np.float32))
        acc.add_pass(np.full((3, 4, 3), 0.6, dtype=np.float32))

        assert acc.sample_count == 2
        np.testing.assert_allclose(acc.mean(), 0.4, atol=1e-6)

    def test_sample_count_is_minimum(self):
        """Test sample_count reports the least-sampled pixel."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=1)
        acc.add_pass(np.zeros((1, 2, 3)))
        acc.add_sample(0, 1, (1.0, 1.0, 1.0))
        assert acc.sample_count == 1

    def test_clear(self):
        """Test clear discards all samples."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=2)
        acc.add_pass(np.ones((2, 2, 3)))
        acc.clear()
        assert acc.sample_count == 0
        np.testing.assert_array_equal(acc.mean(), 0.0)

    def test_non_finite_and_negative_samples_count_as_black(self):
        """Test NaN, infinities and negatives contribute 0 but still count."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=1, height=1)
        acc.add_sample(0, 0, (float("nan"), float("inf"), -2.0))
        acc.add_sample(0, 0, (1.0, 1.0, 1.0))

        snap = acc.snapshot(gamma=1.0)
        assert snap.counts[0, 0] == 2
        np.testing.assert_allclose(snap.mean[0, 0], (0.5, 0.5, 0.5))
        assert np.all(np.isfinite(snap.image))


class TestAccumulatorErrors:
    """Tests for argument checking."""

    @pytest.mark.parametrize("width, height", [(0, 1), (1, 0), (-3, 4)])
    def test_invalid_dimensions(self, width, height):
        """Test non-positive dimensions are rejected."""
        from glint.core.accumulator import Accumulator

        with pytest.raises(ValueError, match="positive"):
            Accumulator(width=width, height=height)

    @pytest.mark.parametrize("row, col", [(-1, 0), (0, -1), (2, 0), (0, 3)])
    def test_sample_outside_image(self, row, col):
        """Test samples outside the image raise IndexError."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=3, height=2)
        with pytest.raises(IndexError):
            acc.add_sample(row, col, (0.5, 0.5, 0.5))

    def test_pass_shape_mismatch(self):
        """Test a pass of the wrong shape is rejected and adds nothing."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=3, height=2)
        with pytest.raises(ValueError, match="does not match"):
            acc.add_pass(np.zeros((3, 2, 3)))
        assert acc.snapshot().total_samples == 0


class TestSnapshot:
    """Tests for snapshot contents and display conversion."""

    def test_snapshot_is_read_only(self):
        """Test snapshot arrays cannot be modified."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=2)
        acc.add_pass(np.full((2, 2, 3), 0.5))
        snap = acc.snapshot()

        for arr in (snap.image, snap.mean, snap.counts):
            with pytest.raises(ValueError):
                arr[0, 0] = 1

    def test_snapshot_is_detached(self):
        """Test later samples do not change an earlier snapshot."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=2)
        acc.add_pass(np.full((2, 2, 3), 0.5))
        snap = acc.snapshot(gamma=1.0)
        acc.add_pass(np.zeros((2, 2, 3)))

        assert snap.min_count == 1
        np.testing.assert_allclose(snap.image, 0.5)

    def test_gamma_and_clamping(self):
        """Test the display image is clamped to [0, 1] then gamma corrected."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=1)
        pixels = np.array([[[0.25, 0.25, 0.25], [4.0, 4.0, 4.0]]])
        acc.add_pass(pixels)

        snap = acc.snapshot(gamma=2.0)
        np.testing.assert_allclose(snap.image[0, 0], 0.5, atol=1e-6)
        np.testing.assert_allclose(snap.image[0, 1], 1.0, atol=1e-6)
        # The linear mean is not clamped
        np.testing.assert_allclose(snap.mean[0, 1], 4.0)
        assert snap.gamma == 2.0

    def test_apply_gamma_rejects_non_positive(self):
        """Test apply_gamma refuses a zero gamma."""
        from glint.core.accumulator import apply_gamma

        with pytest.raises(ValueError, match="gamma"):
            apply_gamma(np.zeros((1, 1, 3)), gamma=0.0)

    def test_rgb_bytes_top_row_first(self):
        """Test packed bytes are row-major with row 0 first."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=2, height=2)
        pixels = np.zeros((2, 2, 3))
        pixels[0, 0] = (1.0, 0.0, 0.0)
        pixels[1, 1] = (0.0, 0.0, 1.0)
        acc.add_pass(pixels)

        snap = acc.snapshot(gamma=1.0)
        data = snap.to_rgb_bytes()
        assert len(data) == 2 * 2 * 3
        assert data[0:3] == bytes([255, 0, 0])
        assert data[9:12] == bytes([0, 0, 255])
        assert snap.to_uint8().dtype == np.uint8
        assert (snap.width, snap.height) == (2, 2)


class TestConvergence:
    """Tests that the mean converges as samples accumulate."""

    def test_error_decreases_with_samples(self):
        """Test noisy samples around 0.5 converge toward 0.5."""
        from glint.core.accumulator import Accumulator

        rng = np.random.default_rng(7)
        acc = Accumulator(width=16, height=16)
        errors = {}
        for n in range(1, 257):
            acc.add_pass(rng.uniform(0.0, 1.0, size=(16, 16, 3)))
            if n in (4, 64, 256):
                errors[n] = float(np.sqrt(np.mean((acc.mean() - 0.5) ** 2)))

        assert errors[4] > errors[64] > errors[256]
        # Standard error of a uniform(0, 1) mean is 0.289 / sqrt(n)
        assert errors[256] < 3 * 0.289 / 16


class TestConcurrency:
    """Tests for concurrent writers and readers."""

    def test_concurrent_passes_are_never_torn(self):
        """Test snapshots taken during concurrent passes are internally consistent."""
        from glint.core.accumulator import Accumulator

        width, height = 32, 16
        acc = Accumulator(width=width, height=height)
        passes_per_writer = 200
        n_writers = 4
        stop = threading.Event()
        failures = []

        def writer(value):
            frame = np.full((height, width, 3), value)
            for _ in range(passes_per_writer):
                acc.add_pass(frame)

        def reader():
            while not stop.is_set():
                snap = acc.snapshot(gamma=1.0)
                # Pass-only writers touch every pixel at once
                if snap.min_count != snap.max_count:
                    failures.append("uneven counts")
                if snap.mean.max() > 1.0 + 1e-9 or snap.mean.min() < 0.0:
                    failures.append("mean out of range")
                if snap.min_count > 0 and np.ptp(snap.mean) > 1e-9:
                    failures.append("pixels disagree")

        writers = [
            threading.Thread(target=writer, args=(v,)) for v in np.linspace(0.0, 1.0, n_writers)
        ]
        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        for t in writers:
            t.start()
        for t in writers:
            t.join()
        stop.set()
        reader_thread.join()

        assert failures == []
        assert acc.sample_count == passes_per_writer * n_writers
        np.testing.assert_allclose(acc.mean(), 0.5, atol=1e-9)

    def test_concurrent_single_samples(self):
        """Test no single-pixel samples are lost under contention."""
        from glint.core.accumulator import Accumulator

        acc = Accumulator(width=4, height=4)

        def writer():
            for i in range(500):
                acc.add_sample(i % 4, (i // 4) % 4, (1.0, 1.0, 1.0))

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snap = acc.snapshot()
        assert snap.total_samples == 2000
        np.testing.assert_allclose(snap.mean, 1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
