"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, vector utilities and random sampling
    config: RenderConfig, CameraSettings, RenderMode and ConfigurationError
    integrator: Path tracing loop with debug visualization modes
    accumulator: Thread-safe per-pixel sample accumulation and snapshots
    progressive: Render session driving passes into the accumulator

All compute-intensive operations use Taichi kernels.
"""

from .config import (
    CameraSettings,
    ConfigurationError,
    RenderConfig,
    RenderMode,
)
from .ray import (
    T_MAX,
    T_MIN,
    Ray,
    length_squared,
    lerp,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_disk,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
)

# Note: integrator, accumulator and progressive are NOT imported here to avoid
# circular imports. Import directly from glint.core.integrator or
# glint.core.progressive when needed.

__all__ = [
    "CameraSettings",
    "ConfigurationError",
    "RenderConfig",
    "RenderMode",
    "Ray",
    "T_MIN",
    "T_MAX",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "normalize",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "lerp",
    "random_unit_vector",
    "random_in_unit_disk",
]
