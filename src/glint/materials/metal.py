"""Metal material.

Metals mirror the incoming ray about the normal and then push the mirrored
direction by ``fuzz`` times a random unit vector. A fuzz of 0 is a perfect
mirror; larger values blur the reflection. When the push sends the ray to
or below the surface the ray is absorbed, so rough metals darken at
grazing angles.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.materials.metal import add_metal_material
    >>> add_metal_material((0.8, 0.6, 0.2), fuzz=0.3)
    0
"""

import taichi as ti
import taichi.math as tm

from glint.core.ray import normalize, random_unit_vector, reflect
from glint.materials.registry import MaterialTable, validate_albedo

vec3 = tm.vec3

MAX_METAL_MATERIALS = 1024

_table = MaterialTable("metal", MAX_METAL_MATERIALS)
num_metal_materials = _table.count
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)


@ti.func
def scatter_metal(albedo: vec3, fuzz: ti.f32, incident_direction: vec3, normal: vec3):
    """Bounce off a metal surface.

    Args:
        albedo: Reflectance per channel.
        fuzz: Roughness in [0, 1].
        incident_direction: Direction of the arriving ray, any length.
        normal: Unit normal on the side the ray arrived from.

    Returns:
        (direction, attenuation, did_scatter). An absorbed ray reports a zero
        direction and did_scatter 0.
    """
    mirrored = reflect(normalize(incident_direction), normal)
    direction = normalize(mirrored + fuzz * random_unit_vector())
    did_scatter = 1
    if tm.dot(direction, normal) <= 0.0:
        direction = vec3(0.0, 0.0, 0.0)
        did_scatter = 0
    return direction, albedo, did_scatter


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    return metal_fuzzes[material_idx]


def add_metal_material(albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
    """Register a metal and return its slot.

    Args:
        albedo: Reflectance per channel, each in [0, 1].
        fuzz: Roughness in [0, 1].

    Raises:
        ValueError: If the albedo or fuzz is out of range.
        RuntimeError: If the table is full.
    """
    rgb = validate_albedo(albedo)
    if not 0.0 <= fuzz <= 1.0:
        raise ValueError(f"Fuzz {fuzz} is outside [0, 1]")

    slot = _table.reserve()
    metal_albedos[slot] = rgb
    metal_fuzzes[slot] = fuzz
    return slot


def clear_metal_materials() -> None:
    _table.clear()


def get_metal_material_count() -> int:
    return len(_table)
