"""Host-side bookkeeping shared by the per-kind material tables.

Each material kind keeps its parameters in preallocated Taichi fields, one
slot per material. A MaterialTable owns the live-slot counter for one kind;
the parameter fields themselves stay with the kind that reads them.
"""

from collections.abc import Sequence

import taichi as ti


def validate_albedo(albedo: Sequence[float]) -> tuple[float, float, float]:
    """Check a reflectance color and return it as a float triple.

    Raises:
        ValueError: If there are not exactly three channels or a channel lies
            outside [0, 1] (NaN included).
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo needs 3 channels, got {len(albedo)}")
    red, green, blue = (float(channel) for channel in albedo)
    for name, value in (("red", red), ("green", green), ("blue", blue)):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Albedo {name} channel {value} is outside [0, 1]")
    return red, green, blue


class MaterialTable:
    """Slot allocator for one material kind.

    Attributes:
        kind: Label used in error messages.
        capacity: Number of preallocated slots.
        count: Scalar Taichi field with the number of slots in use.
    """

    def __init__(self, kind: str, capacity: int) -> None:
        self.kind = kind
        self.capacity = capacity
        self.count = ti.field(dtype=ti.i32, shape=())

    def reserve(self) -> int:
        """Hand out the next free slot.

        Raises:
            RuntimeError: When every slot is taken.
        """
        slot = int(self.count[None])
        if slot >= self.capacity:
            raise RuntimeError(f"Maximum number of {self.kind} materials ({self.capacity}) exceeded")
        self.count[None] = slot + 1
        return slot

    def clear(self) -> None:
        # Slot contents are left in place and overwritten on reuse
        self.count[None] = 0

    def __len__(self) -> int:
        return int(self.count[None])

    def __repr__(self) -> str:
        return f"MaterialTable({self.kind!r}, {len(self)}/{self.capacity})"
