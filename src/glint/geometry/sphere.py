"""Sphere primitive.

Points on a sphere satisfy ``|p - center| = |radius|``. Substituting the ray
``p = origin + t * direction`` gives ``a t^2 + 2 h t + c = 0`` with::

    oc = origin - center
    a  = dot(direction, direction)
    h  = dot(direction, oc)
    c  = dot(oc, oc) - radius^2

The roots are computed through ``q = -(h + sign(h) sqrt(h^2 - a c))``, which
never subtracts two nearly equal numbers (Ray Tracing Gems, chapter 7).

The outward normal is ``(p - center) / radius``. A negative radius describes
the same surface with the normal turned inward, which is how a hollow bubble
is carved out of a glass sphere.
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import NEAR_ZERO_EPSILON, Ray, ray_at

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Where a ray met a surface.

    Only ``hit`` is meaningful on a miss. ``normal`` is unit length and points
    back toward the ray's origin side; ``front_face`` is 1 when the ray came
    from the side the outward normal points to.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def set_face_normal(ray_direction: vec3, outward_normal: vec3):
    """Turn the outward normal to face the ray.

    Returns:
        (normal, front_face).
    """
    normal = outward_normal
    front_face = 1
    if tm.dot(ray_direction, outward_normal) > 0.0:
        normal = -outward_normal
        front_face = 0
    return normal, front_face


@ti.func
def _roots(a: ti.f32, h: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Both roots of a t^2 + 2 h t + c, smaller first."""
    q = -(h + ti.select(h < 0.0, -1.0, 1.0) * sqrt_d)
    near = 0.0
    far = 0.0
    if ti.abs(q) < 1e-10:
        # h and the discriminant both vanish; the textbook form is exact here
        near = (-h - sqrt_d) / a
        far = (-h + sqrt_d) / a
    else:
        near = q / a
        far = c / q
    return ti.min(near, far), ti.max(near, far)


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere) -> HitRecord:
    """Intersect a ray with one sphere.

    Reports the smaller root that lies strictly inside
    ``(ray.t_min, ray.t_max)``. Zero-length directions and zero radii never hit.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    record = HitRecord(
        hit=0, t=0.0, point=vec3(0.0, 0.0, 0.0), normal=vec3(0.0, 0.0, 0.0), front_face=0
    )

    solvable = (
        discriminant >= 0.0
        and a >= NEAR_ZERO_EPSILON
        and ti.abs(sphere.radius) >= NEAR_ZERO_EPSILON
    )
    if solvable:
        near, far = _roots(a, h, c, ti.sqrt(discriminant))

        t = far
        if ray.t_min < near < ray.t_max:
            t = near

        if ray.t_min < t < ray.t_max:
            point = ray_at(ray, t)
            normal, front_face = set_face_normal(
                ray.direction, (point - sphere.center) / sphere.radius
            )
            record = HitRecord(hit=1, t=t, point=point, normal=normal, front_face=front_face)

    return record
