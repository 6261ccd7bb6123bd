"""Scene module for scene storage, hit records and preset scenes.

Components:
    intersection: Sphere storage in Taichi fields and closest-hit queries
    manager: Unified scene manager coordinating spheres and materials
    presets: Named scenes with their default cameras

Scene data lives in Taichi fields read by the kernels:
    - Structure-of-Arrays layout for sphere data
    - Contiguous material ID arrays
    - material_id -> (material type, type-local index) dispatch tables
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .presets import (
    PRESET_SCENES,
    ScenePreset,
    build_scene,
    get_preset,
    list_scenes,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Presets
    "PRESET_SCENES",
    "ScenePreset",
    "build_scene",
    "get_preset",
    "list_scenes",
]
