"""Preset scenes selectable by name.

Each preset pairs a builder, which fills a SceneManager with spheres and
materials, with the camera that frames it. Front-ends pick a scene by name
from PRESET_SCENES; adding a scene means writing a builder and registering it.

Presets:
    three_body: Diffuse, hollow-glass and gold spheres on a large ground sphere.
    many_balls: The classic final render of small random spheres around three
        large ones. Generation is seeded, so every build is identical.
    checkers_colliding: Two large spheres touching at the origin.
    single_sphere: One grey diffuse sphere that fills the view.
    empty: No geometry, only the sky gradient.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.scene.presets import build_scene, list_scenes
    >>> list_scenes()
    ['three_body', 'many_balls', 'checkers_colliding', 'single_sphere', 'empty']
    >>> scene = build_scene("three_body")
    >>> scene.get_sphere_count()
    5
"""

import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass

from glint.core.config import CameraSettings, ConfigurationError
from glint.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Seed for the many_balls layout
MANY_BALLS_SEED = 1


@dataclass(frozen=True)
class ScenePreset:
    """A named scene with its default camera.

    Attributes:
        name: Identifier used in RenderConfig.scene.
        description: One-line description for menus.
        build: Fills the given (cleared) SceneManager.
        camera: Camera that frames the scene.
    """

    name: str
    description: str
    build: Callable[[SceneManager], None]
    camera: CameraSettings

    def default_camera(self) -> CameraSettings:
        """Return a fresh copy of the preset's camera settings."""
        return CameraSettings(**vars(self.camera))


# =============================================================================
# Builders
# =============================================================================


def _build_three_body(scene: SceneManager) -> None:
    ground = scene.add_lambertian_material((0.2, 0.3, 0.1))
    center = scene.add_lambertian_material((0.1, 0.2, 0.5))
    glass = scene.add_dielectric_material(1.5)
    gold = scene.add_metal_material((0.8, 0.6, 0.2), fuzz=0.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    # Negative radius turns the glass ball into a hollow bubble
    scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)


def _build_many_balls(scene: SceneManager) -> None:
    rng = random.Random(MANY_BALLS_SEED)

    def random_color(lo: float, hi: float) -> tuple[float, float, float]:
        return (rng.uniform(lo, hi), rng.uniform(lo, hi), rng.uniform(lo, hi))

    ground = scene.add_lambertian_material((0.8, 0.8, 0.0))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    glass = scene.add_dielectric_material(1.5)

    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            center = (a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random())

            if math.dist(center, (4.0, 0.2, 0.0)) <= 0.9:
                continue

            if choose_mat < 0.8:
                a1, a2 = random_color(0.0, 1.0), random_color(0.0, 1.0)
                albedo = (a1[0] * a2[0], a1[1] * a2[1], a1[2] * a2[2])
                scene.add_lambertian_sphere(center, 0.2, albedo)
            elif choose_mat < 0.95:
                scene.add_metal_sphere(
                    center, 0.2, random_color(0.5, 1.0), fuzz=rng.uniform(0.0, 0.5)
                )
            else:
                scene.add_sphere(center, 0.2, glass)

    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, (0.1, 0.2, 0.5))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.8, 0.6, 0.2), fuzz=0.0)


def _build_checkers_colliding(scene: SceneManager) -> None:
    scene.add_lambertian_sphere((0.0, 10.0, 0.0), 10.0, (0.2, 0.3, 0.1))
    scene.add_lambertian_sphere((0.0, -10.0, 0.0), 10.0, (0.9, 0.9, 0.9))


def _build_single_sphere(scene: SceneManager) -> None:
    scene.add_lambertian_sphere((0.0, 0.0, 0.0), 1.0, (0.5, 0.5, 0.5))


def _build_empty(scene: SceneManager) -> None:
    pass


# =============================================================================
# Registry
# =============================================================================

_THREE_BODY_FROM = (3.0, 3.0, 2.0)
_THREE_BODY_AT = (0.0, 0.0, -1.0)

PRESET_SCENES: dict[str, ScenePreset] = {
    preset.name: preset
    for preset in (
        ScenePreset(
            name="three_body",
            description="Diffuse, hollow glass and gold spheres on a ground sphere",
            build=_build_three_body,
            camera=CameraSettings(
                lookfrom=_THREE_BODY_FROM,
                lookat=_THREE_BODY_AT,
                vfov=20.0,
                aperture=0.25,
                focus_dist=math.dist(_THREE_BODY_FROM, _THREE_BODY_AT),
            ),
        ),
        ScenePreset(
            name="many_balls",
            description="Hundreds of small random spheres around three large ones",
            build=_build_many_balls,
            camera=CameraSettings(
                lookfrom=(13.0, 2.0, 3.0),
                lookat=(0.0, 0.0, 0.0),
                vfov=20.0,
                aperture=0.1,
                focus_dist=10.0,
            ),
        ),
        ScenePreset(
            name="checkers_colliding",
            description="Two large spheres touching at the origin",
            build=_build_checkers_colliding,
            camera=CameraSettings(
                lookfrom=(13.0, 2.0, 3.0),
                lookat=(0.0, 0.0, 0.0),
                vfov=20.0,
                aperture=0.1,
                focus_dist=10.0,
            ),
        ),
        ScenePreset(
            name="single_sphere",
            description="One grey diffuse sphere filling the view",
            build=_build_single_sphere,
            # Silhouette half-angle asin(1/3) exceeds the frame half-diagonal
            camera=CameraSettings(
                lookfrom=(0.0, 0.0, 3.0),
                lookat=(0.0, 0.0, 0.0),
                vfov=15.0,
                aperture=0.0,
                focus_dist=None,
            ),
        ),
        ScenePreset(
            name="empty",
            description="No geometry, sky only",
            build=_build_empty,
            camera=CameraSettings(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vfov=90.0,
                aperture=0.0,
                focus_dist=None,
            ),
        ),
    )
}


def list_scenes() -> list[str]:
    """Return the names of all registered presets."""
    return list(PRESET_SCENES)


def get_preset(name: str) -> ScenePreset:
    """Look up a preset by name.

    Raises:
        ConfigurationError: If no preset has that name.
    """
    try:
        return PRESET_SCENES[name]
    except (KeyError, TypeError):
        raise ConfigurationError(
            f"Unknown scene '{name}'. Available scenes: {', '.join(PRESET_SCENES)}"
        ) from None


def build_scene(name: str, scene: SceneManager | None = None) -> SceneManager:
    """Build a preset into the scene storage.

    Args:
        name: Preset name.
        scene: Manager to fill. It is cleared first. A new one is created if None.

    Returns:
        The populated SceneManager.

    Raises:
        ConfigurationError: If no preset has that name.
    """
    preset = get_preset(name)
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    preset.build(scene)
    logger.info(
        "Built scene '%s': %d spheres, %d materials",
        name,
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene
