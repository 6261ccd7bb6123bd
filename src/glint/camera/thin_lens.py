"""Thin-lens camera.

A ThinLensCamera is placed with lookfrom/lookat/vup and shaped by a vertical
field of view and an aspect ratio. setup_camera() turns it into a frame
that kernels read:

    w = unit(lookfrom - lookat)     backward
    u = unit(vup x w)               right
    v = w x u                       up

The image rectangle lies on the plane of focus, ``focus_dist`` in front of
the lens, with ``lower_left`` at image coordinates (0, 0) and ``horizontal``
and ``vertical`` spanning it. Each ray leaves a random point of the lens
disk (radius ``aperture / 2``) and heads for its point on that rectangle, so
only the focus plane is sharp. A zero aperture is a pinhole.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.camera.thin_lens import ThinLensCamera, get_camera_info, setup_camera
    >>> setup_camera(ThinLensCamera((13, 2, 3), (0, 0, 0), (0, 1, 0), 20.0, 16 / 9, 0.1, 10.0))
    >>> round(get_camera_info()["lens_radius"], 3)
    0.05
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from glint.core.config import ConfigurationError
from glint.core.ray import Ray, make_ray, normalize, random_in_unit_disk, vec3

logger = logging.getLogger(__name__)

# Below this, view vectors count as coincident or parallel
_DEGENERATE_EPSILON = 1e-6


@dataclass
class ThinLensCamera:
    """Camera placement and lens.

    Attributes:
        lookfrom: Lens center in world space.
        lookat: Point the camera faces.
        vup: World direction that should appear upward.
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Image width over height.
        aperture: Lens diameter; 0 for a pinhole.
        focus_dist: Distance to the plane in focus, None for |lookfrom - lookat|.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float | None = None

    @property
    def lens_radius(self) -> float:
        return self.aperture / 2.0

    def resolved_focus_dist(self) -> float:
        if self.focus_dist is not None:
            return float(self.focus_dist)
        return math.dist(self.lookfrom, self.lookat)


@ti.dataclass
class _LensFrame:
    origin: vec3
    u: vec3
    v: vec3
    w: vec3
    horizontal: vec3
    vertical: vec3
    lower_left: vec3
    lens_radius: ti.f32


# Read by every primary ray; written only by setup_camera()
_frame = _LensFrame.field(shape=())


def validate_camera(camera: ThinLensCamera) -> None:
    """Check that a camera describes a usable view.

    Raises:
        ConfigurationError: On a field of view outside (0, 180), a
            non-positive aspect ratio or focus distance, a negative aperture,
            coincident lookfrom and lookat, or vup parallel to the view.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ConfigurationError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if camera.aspect_ratio <= 0.0:
        raise ConfigurationError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    if camera.aperture < 0.0:
        raise ConfigurationError(f"aperture must be >= 0, got {camera.aperture}")

    backward = np.subtract(camera.lookfrom, camera.lookat, dtype=np.float64)
    distance = np.linalg.norm(backward)
    if distance < _DEGENERATE_EPSILON:
        raise ConfigurationError("lookfrom and lookat must be different points")
    vup = np.asarray(camera.vup, dtype=np.float64)
    if np.linalg.norm(np.cross(vup, backward / distance)) < _DEGENERATE_EPSILON:
        raise ConfigurationError("vup must not be parallel to the view direction")

    if camera.resolved_focus_dist() <= 0.0:
        raise ConfigurationError(f"focus_dist must be positive, got {camera.focus_dist}")


def _unit(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def setup_camera(camera: ThinLensCamera) -> None:
    """Load a camera into the kernel-side frame.

    Raises:
        ConfigurationError: If validate_camera() rejects the camera.
    """
    validate_camera(camera)

    eye = np.asarray(camera.lookfrom, dtype=np.float64)
    w = _unit(eye - np.asarray(camera.lookat, dtype=np.float64))
    u = _unit(np.cross(np.asarray(camera.vup, dtype=np.float64), w))
    v = np.cross(w, u)

    focus = camera.resolved_focus_dist()
    half_height = math.tan(math.radians(camera.vfov) / 2.0)
    half_width = camera.aspect_ratio * half_height
    horizontal = (2.0 * focus * half_width) * u
    vertical = (2.0 * focus * half_height) * v
    lower_left = eye - focus * w - 0.5 * horizontal - 0.5 * vertical

    for name, value in (
        ("origin", eye),
        ("u", u),
        ("v", v),
        ("w", w),
        ("horizontal", horizontal),
        ("vertical", vertical),
        ("lower_left", lower_left),
    ):
        getattr(_frame, name)[None] = value.tolist()
    _frame.lens_radius[None] = camera.lens_radius

    logger.debug(
        "Camera %s -> %s, vfov %.1f, aspect %.3f, lens radius %.3f, focus %.3f",
        camera.lookfrom,
        camera.lookat,
        camera.vfov,
        camera.aspect_ratio,
        camera.lens_radius,
        focus,
    )


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Primary ray through image coordinates (s, t).

    s runs 0 to 1 from left to right and t from bottom to top. The ray has a
    unit direction.
    """
    frame = _frame[None]
    disk = frame.lens_radius * random_in_unit_disk()
    origin = frame.origin + disk.x * frame.u + disk.y * frame.v
    target = frame.lower_left + s * frame.horizontal + t * frame.vertical
    return make_ray(origin, normalize(target - origin))


@ti.func
def get_ray_jittered(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Primary ray through a uniformly random point of pixel (pixel_i, pixel_j).

    pixel_i counts columns from the left and pixel_j rows from the bottom.
    """
    s = (ti.cast(pixel_i, ti.f32) + ti.random(ti.f32)) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + ti.random(ti.f32)) / ti.cast(height, ti.f32)
    return get_ray(s, t)


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """The frame last loaded by setup_camera(), as plain floats."""
    info: dict[str, tuple[float, float, float] | float] = {}
    for name in ("origin", "u", "v", "w", "horizontal", "vertical", "lower_left"):
        value = getattr(_frame, name)[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    info["lens_radius"] = float(_frame.lens_radius[None])
    return info
