"""Pytest configuration for glint tests.

Taichi is initialized once per session; every test starts with empty scene
and material registries.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Repeated ti.init() calls reset the runtime and invalidate module-level
    fields, so this happens exactly once.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene and material registries before and after each test."""
    # Imported here so Taichi is initialized first
    from glint.materials.dielectric import clear_dielectric_materials
    from glint.materials.lambertian import clear_lambertian_materials
    from glint.materials.metal import clear_metal_materials
    from glint.scene.intersection import clear_scene
    from glint.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()

    _clear_all()
    yield
    _clear_all()
