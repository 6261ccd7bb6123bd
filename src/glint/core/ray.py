"""Rays and the small vector toolkit the kernels share.

Points and directions are both ``vec3``. A Ray carries the open interval
``(t_min, t_max)`` in which hits count; :func:`make_ray` starts the interval
at ``T_MIN`` so a bounced ray cannot land back on the surface it left.

Random sampling goes through ``ti.random()``, whose state is per kernel
thread, so parallel pixels draw independent streams.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.core.ray import make_ray, ray_at, vec3
    >>> @ti.kernel
    ... def point_at_five() -> ti.f32:
    ...     return ray_at(make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0)), 5.0).z
    >>> point_at_five()
    -5.0
"""

import math

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Hits closer than this are self-intersections
T_MIN = 1e-3

# Stands in for an unbounded interval in f32
T_MAX = 1e10

# Component and length threshold below which a vector counts as zero
NEAR_ZERO_EPSILON = 1e-8

# Rejection sampling gives up after this many draws (each disk draw is kept 79% of the time)
_MAX_REJECTION_DRAWS = 64


@ti.dataclass
class Ray:
    """Origin, direction (any non-zero length) and the interval of valid t."""

    origin: vec3
    direction: vec3
    t_min: ti.f32
    t_max: ti.f32


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction, t_min=T_MIN, t_max=T_MAX)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point at parameter t; negative t lies behind the origin."""
    return ray.origin + t * ray.direction


# =============================================================================
# Vector Helpers
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Unit vector along v, or the zero vector when v is (nearly) zero.

    ``tm.normalize`` divides by zero on a zero input; this does not.
    """
    unit = vec3(0.0, 0.0, 0.0)
    n2 = length_squared(v)
    if n2 > NEAR_ZERO_EPSILON * NEAR_ZERO_EPSILON:
        unit = v * ti.rsqrt(n2)
    return unit


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 when every component of v is below NEAR_ZERO_EPSILON in magnitude."""
    return ti.max(ti.abs(v.x), ti.abs(v.y), ti.abs(v.z)) < NEAR_ZERO_EPSILON


@ti.func
def lerp(t: ti.f32, a: vec3, b: vec3) -> vec3:
    """a at t = 0, b at t = 1."""
    return a + t * (b - a)


# =============================================================================
# Optics
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror ``incident`` about the unit ``normal``."""
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Bend a unit direction through a surface by Snell's law.

    Args:
        incident: Unit direction travelling toward the surface.
        normal: Unit normal facing the incident ray.
        eta: Index of the incident side over index of the far side.

    Returns:
        The transmitted direction, or the zero vector under total internal
        reflection.
    """
    cos_i = tm.min(-tm.dot(incident, normal), 1.0)
    k = 1.0 - eta * eta * (1.0 - cos_i * cos_i)
    transmitted = vec3(0.0, 0.0, 0.0)
    if k >= 0.0:
        transmitted = eta * incident + (eta * cos_i - ti.sqrt(k)) * normal
    return transmitted


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Schlick's approximation of the Fresnel reflectance.

    ``R(theta) = R0 + (1 - R0)(1 - cos theta)^5`` with
    ``R0 = ((1 - n) / (1 + n))^2``.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    m = 1.0 - cosine
    return r0 + (1.0 - r0) * m * m * m * m * m


# =============================================================================
# Sampling
# =============================================================================


@ti.func
def random_unit_vector() -> vec3:
    """Uniform direction on the unit sphere.

    By Archimedes' hat-box theorem a uniform height z in [-1, 1] with a
    uniform azimuth covers the sphere uniformly.
    """
    z = 1.0 - 2.0 * ti.random(ti.f32)
    phi = 2.0 * math.pi * ti.random(ti.f32)
    r = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def random_in_unit_disk() -> vec3:
    """Uniform point (x, y, 0) strictly inside the unit disk, for lens sampling."""
    p = vec3(0.0, 0.0, 0.0)
    accepted = 0
    for _ in range(_MAX_REJECTION_DRAWS):
        if accepted == 0:
            x = 2.0 * ti.random(ti.f32) - 1.0
            y = 2.0 * ti.random(ti.f32) - 1.0
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                accepted = 1
    return p
