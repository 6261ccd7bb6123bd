"""Thread-safe per-pixel sample accumulation.

The Accumulator keeps running sums and sample counts for every pixel on the
host. Displayed color is ``sum / count`` per pixel, gamma corrected and
clamped to [0, 1]; pixels without samples display black.

Writers may add single samples or whole passes from any thread. Every update
and every snapshot copy happens under one lock, so a snapshot never mixes a
pixel's sum with the count from a different moment. Readers hold the lock
only long enough to copy.

Example:
    >>> import numpy as np
    >>> from glint.core.accumulator import Accumulator
    >>> acc = Accumulator(width=4, height=2)
    >>> acc.add_pass(np.full((2, 4, 3), 0.25, dtype=np.float32))
    >>> acc.add_sample(0, 0, (1.0, 1.0, 1.0))
    >>> snap = acc.snapshot(gamma=1.0)
    >>> snap.counts[0, 0], snap.min_count, snap.max_count
    (2, 1, 2)
    >>> float(snap.image[0, 0, 0])
    0.625
"""

import threading
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


def _sanitize(colors: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Replace NaN and infinite components with 0 and clamp negatives to 0."""
    arr = np.nan_to_num(np.asarray(colors, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    return np.maximum(arr, 0.0)


def apply_gamma(image: npt.NDArray[np.floating], gamma: float = 2.2) -> npt.NDArray[np.float32]:
    """Clamp linear colors to [0, 1] and apply display gamma.

    Args:
        image: Linear color values.
        gamma: Display gamma. 1.0 leaves values linear.

    Returns:
        A float32 array of the same shape with values in [0, 1].
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    clamped = np.clip(image, 0.0, 1.0)
    if gamma != 1.0:
        clamped = np.power(clamped, 1.0 / gamma)
    return clamped.astype(np.float32)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Snapshot:
    """A consistent, immutable view of the accumulated image.

    Attributes:
        image: Display image of shape (height, width, 3), gamma corrected,
            values in [0, 1], row 0 at the top.
        mean: Linear per-pixel mean of shape (height, width, 3).
        counts: Samples per pixel, shape (height, width).
        min_count: Fewest samples of any pixel.
        max_count: Most samples of any pixel.
        gamma: Gamma used to build ``image``.
    """

    image: npt.NDArray[np.float32]
    mean: npt.NDArray[np.float64]
    counts: npt.NDArray[np.int64]
    min_count: int
    max_count: int
    gamma: float

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def total_samples(self) -> int:
        """Total number of samples over all pixels."""
        return int(self.counts.sum())

    def to_uint8(self) -> npt.NDArray[np.uint8]:
        """Return the display image as a (height, width, 3) uint8 array."""
        return (self.image * 255).astype(np.uint8)

    def to_rgb_bytes(self) -> bytes:
        """Return the display image as packed row-major RGB bytes, top row first."""
        return self.to_uint8().tobytes()


class Accumulator:
    """Running per-pixel color sums and sample counts.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        """Create an empty accumulator.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Accumulator dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self._lock = threading.Lock()
        self._sums = np.zeros((height, width, 3), dtype=np.float64)
        self._counts = np.zeros((height, width), dtype=np.int64)

    def add_sample(self, row: int, col: int, color: Sequence[float]) -> None:
        """Add one sample to a single pixel.

        Args:
            row: Pixel row, 0 at the top.
            col: Pixel column, 0 at the left.
            color: Linear RGB sample. Non-finite and negative components
                count as 0.

        Raises:
            IndexError: If the pixel is outside the image.
        """
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(f"Pixel ({row}, {col}) outside {self.width}x{self.height} image")
        sample = _sanitize(color)
        with self._lock:
            self._sums[row, col] += sample
            self._counts[row, col] += 1

    def add_pass(self, colors: npt.ArrayLike) -> None:
        """Add one sample to every pixel at once.

        Args:
            colors: Array of shape (height, width, 3), row 0 at the top.

        Raises:
            ValueError: If the array shape does not match the image.
        """
        samples = _sanitize(colors)
        if samples.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Pass shape {samples.shape} does not match image "
                f"({self.height}, {self.width}, 3)"
            )
        with self._lock:
            self._sums += samples
            self._counts += 1

    def clear(self) -> None:
        """Discard every sample."""
        with self._lock:
            self._sums.fill(0.0)
            self._counts.fill(0)

    @property
    def sample_count(self) -> int:
        """Samples every pixel has received (the minimum over all pixels)."""
        with self._lock:
            return int(self._counts.min())

    def _copy(self) -> tuple[np.ndarray, np.ndarray]:
        with self._lock:
            return self._sums.copy(), self._counts.copy()

    @staticmethod
    def _mean(sums: np.ndarray, counts: np.ndarray) -> npt.NDArray[np.float64]:
        mean = np.zeros_like(sums)
        np.divide(sums, counts[..., np.newaxis], out=mean, where=counts[..., np.newaxis] > 0)
        return mean

    def mean(self) -> npt.NDArray[np.float64]:
        """Linear per-pixel mean color; pixels without samples are black."""
        sums, counts = self._copy()
        return self._mean(sums, counts)

    def snapshot(self, gamma: float = 2.2) -> Snapshot:
        """Build a consistent snapshot of the current image.

        Args:
            gamma: Display gamma for ``Snapshot.image``.

        Returns:
            A frozen Snapshot whose image, mean and counts come from the
            same instant.
        """
        sums, counts = self._copy()
        mean = self._mean(sums, counts)
        return Snapshot(
            image=_readonly(apply_gamma(mean, gamma)),
            mean=_readonly(mean),
            counts=_readonly(counts),
            min_count=int(counts.min()),
            max_count=int(counts.max()),
            gamma=gamma,
        )

    def __repr__(self) -> str:
        return f"Accumulator(width={self.width}, height={self.height}, samples={self.sample_count})"
