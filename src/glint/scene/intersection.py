"""Sphere storage and scene-wide ray queries.

Spheres live in parallel Taichi fields (center, radius, material id) and stay
untouched while a render runs. Queries scan every sphere; the closest-hit
scan narrows the ray's upper bound at each hit so the record that survives
has the smallest t in ``(t_min, t_max)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.intersection import add_sphere, get_sphere_count, vec3
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    0
    >>> get_sphere_count()
    1
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import Ray
from glint.geometry.sphere import Sphere, hit_sphere

vec3 = tm.vec3

MAX_SPHERES = 1024

sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


@ti.dataclass
class SceneHitRecord:
    """A HitRecord plus the material of the sphere that was hit.

    ``material_id`` is -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Append a sphere and return its index.

    Args:
        center: Sphere center.
        radius: Non-zero radius; a negative value turns the normal inward.
        material_id: Unified material id from the scene manager.

    Raises:
        ValueError: If the radius is zero.
        RuntimeError: If MAX_SPHERES spheres are already stored.
    """
    if radius == 0.0:
        raise ValueError("Sphere radius must be non-zero")

    index = int(num_spheres[None])
    if index >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    sphere_centers[index] = center
    sphere_radii[index] = radius
    sphere_material_ids[index] = material_id
    num_spheres[None] = index + 1
    return index


def clear_scene() -> None:
    num_spheres[None] = 0


def get_sphere_count() -> int:
    return int(num_spheres[None])


@ti.func
def _sphere_at(index: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[index], radius=sphere_radii[index])


@ti.func
def intersect_scene(ray: Ray) -> SceneHitRecord:
    """Closest hit along the ray, or a miss record with material_id -1."""
    closest = SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )
    window = Ray(origin=ray.origin, direction=ray.direction, t_min=ray.t_min, t_max=ray.t_max)

    for i in range(num_spheres[None]):
        rec = hit_sphere(window, _sphere_at(i))
        if rec.hit == 1:
            window.t_max = rec.t
            closest = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                front_face=rec.front_face,
                material_id=sphere_material_ids[i],
            )

    return closest
