"""Dielectric material (glass, water, clear plastics).

A dielectric either reflects or refracts each ray it receives:

- Entering from outside the ratio of indices is ``1 / ior``; leaving, it is
  ``ior``.
- When Snell's law has no solution (``ratio * sin(theta) > 1``) the ray is
  totally internally reflected.
- Otherwise the ray reflects with probability given by Schlick's
  approximation and refracts the rest of the time.

Clear dielectrics absorb nothing, so the attenuation is always white and a
ray is never absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.materials.dielectric import add_dielectric_material
    >>> add_dielectric_material(1.5)  # crown glass
    0
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import normalize, reflect, refract, schlick_fresnel
from glint.materials.registry import MaterialTable

vec3 = tm.vec3

MAX_DIELECTRIC_MATERIALS = 256

_table = MaterialTable("dielectric", MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = _table.count
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    ratio = ior
    if front_face != 0:
        ratio = 1.0 / ior
    return ratio


@ti.func
def _incidence(ior: ti.f32, incident_direction: vec3, normal: vec3, front_face: ti.i32):
    """Unit direction, index ratio and the cosine and sine of the incidence angle."""
    unit_direction = normalize(incident_direction)
    ratio = _refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return unit_direction, ratio, cos_theta, sin_theta


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Reflect or refract through a dielectric boundary.

    Args:
        ior: Index of refraction of the material.
        incident_direction: Direction of the arriving ray, any length.
        normal: Unit normal on the side the ray arrived from.
        front_face: 1 when the ray enters from outside, 0 when it leaves.

    Returns:
        (direction, attenuation, did_scatter) with a unit direction, white
        attenuation and did_scatter always 1.
    """
    unit_direction, ratio, cos_theta, sin_theta = _incidence(
        ior, incident_direction, normal, front_face
    )

    direction = vec3(0.0, 0.0, 0.0)
    total_internal = ratio * sin_theta > 1.0
    if total_internal or ti.random() < schlick_fresnel(cos_theta, ratio):
        direction = reflect(unit_direction, normal)
    else:
        direction = refract(unit_direction, normal, ratio)

    return normalize(direction), vec3(1.0, 1.0, 1.0), 1


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    return dielectric_iors[material_idx]


def add_dielectric_material(ior: float = 1.5) -> int:
    """Register a dielectric and return its slot.

    Args:
        ior: Index of refraction, at least 1.0 (1.33 water, 1.5 glass,
            2.4 diamond).

    Raises:
        ValueError: If ior is less than 1.0.
        RuntimeError: If the table is full.
    """
    if not ior >= 1.0:
        raise ValueError(f"Index of refraction {ior} is less than 1.0")

    slot = _table.reserve()
    dielectric_iors[slot] = ior
    return slot


def clear_dielectric_materials() -> None:
    _table.clear()


def get_dielectric_material_count() -> int:
    return len(_table)
