"""Render configuration and validation.

A RenderConfig is supplied once per render by whatever front-end drives the
engine (example scripts, a GUI, tests). The core treats it as read-only and
validates it before any accumulation begins, so a render never starts in an
invalid state.

Configs round-trip through plain dictionaries and JSON so that a front-end can
persist its settings between sessions.

Example:
    >>> from glint.core.config import RenderConfig, RenderMode
    >>> config = RenderConfig(width=320, height=180, samples_per_pixel=16)
    >>> config.validate()
    >>> config.aspect_ratio
    1.7777777777777777
    >>> RenderConfig.from_dict({"mode": "normal"}).mode
    <RenderMode.NORMAL: 1>
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from glint.camera.thin_lens import ThinLensCamera


class ConfigurationError(ValueError):
    """Raised when a render is requested with invalid settings."""


class RenderMode(IntEnum):
    """What the integrator computes for each camera ray.

    MATERIAL is the full path tracer. The other modes short-circuit at the
    first hit and produce a diagnostic image from the same intersection code.
    """

    MATERIAL = 0
    NORMAL = 1
    DEPTH = 2
    BLOCK_COLOR = 3

    @classmethod
    def parse(cls, value: RenderMode | int | str) -> RenderMode:
        """Convert a mode name ("normal", "DEPTH"), int or RenderMode to a RenderMode.

        Raises:
            ConfigurationError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                names = ", ".join(m.name.lower() for m in cls)
                raise ConfigurationError(
                    f"Unknown render mode '{value}'. Expected one of: {names}"
                ) from None
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ConfigurationError(f"Unknown render mode: {value!r}") from None


Vec3Tuple = tuple[float, float, float]


def _is_real(value: Any) -> bool:
    """True for ints and floats, but not bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_vec3(value: Any, name: str) -> Vec3Tuple:
    try:
        x, y, z = (float(c) for c in value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a sequence of 3 numbers, got {value!r}") from None
    return (x, y, z)


@dataclass
class CameraSettings:
    """User-editable camera parameters.

    Attributes:
        lookfrom: Eye position in world space.
        lookat: Point the camera is aimed at.
        vup: Approximate up direction used to orient the image.
        vfov: Vertical field of view in degrees.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_dist: Distance to the plane in perfect focus. None means the
            distance from lookfrom to lookat.
    """

    lookfrom: Vec3Tuple = (13.0, 2.0, 3.0)
    lookat: Vec3Tuple = (0.0, 0.0, 0.0)
    vup: Vec3Tuple = (0.0, 1.0, 0.0)
    vfov: float = 20.0
    aperture: float = 0.1
    focus_dist: float | None = 10.0

    def to_camera(self, aspect_ratio: float) -> ThinLensCamera:
        """Build the camera for an image of the given aspect ratio."""
        from glint.camera.thin_lens import ThinLensCamera

        return ThinLensCamera(
            lookfrom=self.lookfrom,
            lookat=self.lookat,
            vup=self.vup,
            vfov=self.vfov,
            aspect_ratio=aspect_ratio,
            aperture=self.aperture,
            focus_dist=self.focus_dist,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("lookfrom", "lookat", "vup"):
            data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CameraSettings:
        """Build settings from a dictionary, defaulting missing keys.

        Raises:
            ConfigurationError: On unknown keys or malformed vectors.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown camera settings: {sorted(unknown)}")
        kwargs: dict[str, Any] = dict(data)
        for key in ("lookfrom", "lookat", "vup"):
            if key in kwargs:
                kwargs[key] = _as_vec3(kwargs[key], key)
        return cls(**kwargs)


@dataclass
class RenderConfig:
    """Everything the core needs to run one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Target number of samples for every pixel.
        max_depth: Maximum number of bounces per path. 0 renders black.
        mode: Integrator mode (full material shading or a debug view).
        depth_max_t: Distance that maps to black in DEPTH mode.
        block_color: Color of every hit surface in BLOCK_COLOR mode.
        scene: Name of the preset scene to render.
        camera: Camera settings. None uses the preset's default camera.
        batch_size: Samples per pixel rendered between progress callbacks.
        publish_every: Passes between snapshot publications.
        gamma: Display gamma applied to snapshots.
    """

    width: int = 400
    height: int = 225
    samples_per_pixel: int = 100
    max_depth: int = 50
    mode: RenderMode = RenderMode.MATERIAL
    depth_max_t: float = 1.0
    block_color: Vec3Tuple = (1.0, 0.0, 0.0)
    scene: str = "three_body"
    camera: CameraSettings | None = None
    batch_size: int = 1
    publish_every: int = 1
    gamma: float = 2.2

    @property
    def aspect_ratio(self) -> float:
        """Image width divided by height."""
        return self.width / self.height

    @property
    def pixel_count(self) -> int:
        """Number of pixels in the image."""
        return self.width * self.height

    def validate(self) -> None:
        """Check the configuration before a render starts.

        Raises:
            ConfigurationError: Describing the first invalid setting found.
        """
        from glint.core.integrator import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
        from glint.scene.presets import get_preset

        for name in ("width", "height", "samples_per_pixel", "batch_size", "publish_every"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ConfigurationError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )

        if (
            not isinstance(self.max_depth, int)
            or isinstance(self.max_depth, bool)
            or self.max_depth < 0
        ):
            raise ConfigurationError(f"max_depth must be an integer >= 0, got {self.max_depth!r}")

        self.mode = RenderMode.parse(self.mode)

        for name in ("depth_max_t", "gamma"):
            value = getattr(self, name)
            if not _is_real(value) or not math.isfinite(value) or value <= 0.0:
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")

        self.block_color = _as_vec3(self.block_color, "block_color")

        # Raises ConfigurationError for unknown names
        get_preset(self.scene)

    def resolve_camera(self) -> CameraSettings:
        """Return the explicit camera settings or the preset's default."""
        if self.camera is not None:
            return self.camera

        from glint.scene.presets import get_preset

        return get_preset(self.scene).default_camera()

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the config to a JSON-compatible dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "samples_per_pixel": self.samples_per_pixel,
            "max_depth": self.max_depth,
            "mode": RenderMode.parse(self.mode).name.lower(),
            "depth_max_t": self.depth_max_t,
            "block_color": list(self.block_color),
            "scene": self.scene,
            "camera": None if self.camera is None else self.camera.to_dict(),
            "batch_size": self.batch_size,
            "publish_every": self.publish_every,
            "gamma": self.gamma,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenderConfig:
        """Load a config from a dictionary.

        Missing keys take their defaults so that settings saved by an older
        front-end still load.

        Raises:
            ConfigurationError: On unknown keys or malformed values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown render settings: {sorted(unknown)}")

        kwargs: dict[str, Any] = dict(data)
        if "mode" in kwargs:
            kwargs["mode"] = RenderMode.parse(kwargs["mode"])
        if "block_color" in kwargs:
            kwargs["block_color"] = _as_vec3(kwargs["block_color"], "block_color")
        if kwargs.get("camera") is not None:
            kwargs["camera"] = CameraSettings.from_dict(kwargs["camera"])
        return cls(**kwargs)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> RenderConfig:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid render config JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError("Render config JSON must be an object")
        return cls.from_dict(data)

    def save(self, path: str | Path) -> None:
        Path(path).write_text(self.to_json())

    @classmethod
    def load(cls, path: str | Path) -> RenderConfig:
        return cls.from_json(Path(path).read_text())

