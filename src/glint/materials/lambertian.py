"""Diffuse material.

A diffuse bounce leaves along ``normal + u`` where ``u`` is uniform on the unit
sphere. That construction is cosine-weighted about the normal, so the cosine
term and the sampling density cancel and each bounce simply multiplies the
path by the albedo. Diffuse surfaces never absorb a ray outright.
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import near_zero, normalize, random_unit_vector
from glint.materials.registry import MaterialTable, validate_albedo

vec3 = tm.vec3

MAX_LAMBERTIAN_MATERIALS = 1024

_table = MaterialTable("Lambertian", MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = _table.count
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3):
    """Bounce off a diffuse surface.

    Args:
        albedo: Reflectance per channel.
        normal: Unit normal on the side the ray arrived from.

    Returns:
        (direction, attenuation, did_scatter) with a unit direction, the
        albedo as attenuation and did_scatter always 1.
    """
    bounce = normal + random_unit_vector()
    if near_zero(bounce):
        # u landed opposite the normal
        bounce = normal
    return normalize(bounce), albedo, 1


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return lambertian_albedos[material_idx]


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Register a diffuse material and return its slot.

    Raises:
        ValueError: If an albedo channel is outside [0, 1].
        RuntimeError: If the table is full.
    """
    rgb = validate_albedo(albedo)
    slot = _table.reserve()
    lambertian_albedos[slot] = rgb
    return slot


def clear_lambertian_materials() -> None:
    _table.clear()


def get_lambertian_material_count() -> int:
    return len(_table)
