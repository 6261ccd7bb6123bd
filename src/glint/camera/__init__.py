"""Cameras.

Components:
    thin_lens: Perspective camera with defocus blur (aperture 0 = pinhole)

Kernels ask for primary rays with get_ray(s, t), where s runs left to right
and t bottom to top over [0, 1], or get_ray_jittered() for a random point
inside a pixel.
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
    validate_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "validate_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
