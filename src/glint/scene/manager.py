"""Scene builder tying spheres to materials.

Each material kind keeps its own parameter table (see glint.materials), so a
sphere cannot point straight at "metal number 3". The manager hands out one
material id per registered material, across all kinds, and records two
lookup fields the integrator reads per hit::

    material_types[material_id]        -> MaterialType value
    material_type_indices[material_id] -> slot in that kind's table

On the host it mirrors what was added (MaterialInfo, SphereInfo) so a scene
can be inspected and written out as a plain dict.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(1.5)
    >>> scene.add_sphere((0, 0, -1), 0.5, glass)
    0
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from glint.materials.dielectric import add_dielectric_material, clear_dielectric_materials
from glint.materials.lambertian import add_lambertian_material, clear_lambertian_materials
from glint.materials.metal import add_metal_material, clear_metal_materials
from glint.scene.intersection import MAX_SPHERES, add_sphere, clear_scene, get_sphere_count

vec3 = tm.vec3


class MaterialType(IntEnum):
    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


MAX_MATERIALS = 1024

material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def _is_registered(material_id: ti.i32) -> ti.i32:
    return 0 <= material_id < num_materials[None]


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """MaterialType value of a material id, or -1 if it is not registered."""
    kind = -1
    if _is_registered(material_id):
        kind = material_types[material_id]
    return kind


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Slot of a material id in its kind's table, or -1 if it is not registered."""
    slot = -1
    if _is_registered(material_id):
        slot = material_type_indices[material_id]
    return slot


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: Id shared across all material kinds.
        material_type: Which kind's table holds the parameters.
        type_index: Slot in that table.
        params: Parameters as given, keyed like the ``add_*_material`` arguments.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


def _triple(values: Any) -> tuple[float, float, float]:
    x, y, z = values
    return float(x), float(y), float(z)


class SceneManager:
    """Builds the one live scene in the shared Taichi storage.

    Creating a manager empties the sphere storage, every material table and
    the id lookup fields.

    Attributes:
        materials: Registered materials, indexed by material id.
        spheres: Added spheres, indexed by sphere index.
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere and material."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    # =========================================================================
    # Materials
    # =========================================================================

    def _register(self, material_type: MaterialType, type_index: int, **params: Any) -> int:
        material_id = int(num_materials[None])
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1
        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Register a diffuse material and return its material id.

        Raises:
            ValueError: If an albedo channel is outside [0, 1].
            RuntimeError: If a material table is full.
        """
        albedo = _triple(albedo)
        return self._register(
            MaterialType.LAMBERTIAN, add_lambertian_material(albedo), albedo=albedo
        )

    def add_metal_material(self, albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
        """Register a metal and return its material id.

        Raises:
            ValueError: If the albedo or fuzz is outside [0, 1].
            RuntimeError: If a material table is full.
        """
        albedo = _triple(albedo)
        return self._register(
            MaterialType.METAL, add_metal_material(albedo, fuzz), albedo=albedo, fuzz=fuzz
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a dielectric and return its material id.

        Raises:
            ValueError: If ior is less than 1.0.
            RuntimeError: If a material table is full.
        """
        return self._register(MaterialType.DIELECTRIC, add_dielectric_material(ior), ior=ior)

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of the get_material_type Taichi function."""
        info = self.get_material_info(material_id)
        return None if info is None else info.material_type

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere using an already registered material.

        Args:
            center: Sphere center.
            radius: Non-zero radius; negative turns the normal inward.
            material_id: Id returned by one of the ``add_*_material`` methods.

        Returns:
            The sphere index.

        Raises:
            ValueError: If material_id is not registered or the radius is zero.
            RuntimeError: If the sphere storage is full.
        """
        if self.get_material_info(material_id) is None:
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _triple(center)
        sphere_index = add_sphere(vec3(*center), radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, center, radius, material_id))
        return sphere_index

    def add_lambertian_sphere(self, center, radius, albedo) -> tuple[int, int]:
        """Add a sphere with its own new diffuse material.

        Returns:
            (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(self, center, radius, albedo, fuzz: float = 0.0) -> tuple[int, int]:
        """Add a sphere with its own new metal material.

        Returns:
            (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(self, center, radius, ior: float = 1.5) -> tuple[int, int]:
        """Add a sphere with its own new dielectric material.

        Returns:
            (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # =========================================================================
    # Plain-dict form
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Describe the scene with JSON-compatible values.

        Materials are listed in id order as ``{"type": <kind>, **params}``;
        spheres refer to them by ``material_id``.
        """
        materials = []
        for info in self.materials:
            entry: dict[str, Any] = {"type": info.material_type.name.lower()}
            for key, value in info.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            materials.append(entry)

        spheres = [
            {"center": list(s.center), "radius": s.radius, "material_id": s.material_id}
            for s in self.spheres
        ]
        return {"materials": materials, "spheres": spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the current scene with one produced by to_dict().

        Raises:
            ValueError: On an unknown material type or invalid parameters.
        """
        loaders = {
            "lambertian": lambda m: self.add_lambertian_material(m.get("albedo", (0.5, 0.5, 0.5))),
            "metal": lambda m: self.add_metal_material(
                m.get("albedo", (0.8, 0.8, 0.8)), m.get("fuzz", 0.0)
            ),
            "dielectric": lambda m: self.add_dielectric_material(m.get("ior", 1.5)),
        }

        self.clear()
        for material in data.get("materials", []):
            kind = str(material.get("type", "")).lower()
            if kind not in loaders:
                raise ValueError(f"Unknown material type: {kind}")
            loaders[kind](material)

        for sphere in data.get("spheres", []):
            self.add_sphere(
                sphere.get("center", (0.0, 0.0, 0.0)),
                sphere.get("radius", 1.0),
                sphere.get("material_id", 0),
            )

    # =========================================================================
    # Capacities
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
