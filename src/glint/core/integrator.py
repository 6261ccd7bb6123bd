"""Path tracing integrator.

This module turns camera rays into colors. Each call to :func:`render_pass`
traces one jittered sample through every pixel into a preallocated pass
buffer; accumulation across passes happens on the host in
:mod:`glint.core.accumulator`.

The integrator walks a path iteratively, carrying the product of the
attenuations seen so far (the throughput):

1. A remaining depth of 0 yields black.
2. A ray that escapes the scene picks up the sky gradient.
3. The debug modes stop at the first hit:
   NORMAL shows 0.5 * (normal + 1), DEPTH shows 1 - t / depth_max_t in grey,
   BLOCK_COLOR paints every hit one fixed color.
4. MATERIAL asks the hit material to scatter. An absorbed ray yields black;
   otherwise the throughput is multiplied by the attenuation and the path
   continues with one less bounce.

Colors leave the kernel sanitized: NaN and infinite components become 0 and
negative components are clamped to 0.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from glint.camera.thin_lens import ThinLensCamera, setup_camera
    >>> from glint.core.integrator import get_pass_numpy, render_pass, set_render_params
    >>> from glint.scene.presets import build_scene
    >>>
    >>> build_scene("three_body")
    >>> setup_camera(ThinLensCamera((3, 3, 2), (0, 0, -1), (0, 1, 0), 20.0, 16 / 9))
    >>> set_render_params(mode=0, max_depth=50)
    >>> render_pass(400, 225)
    >>> get_pass_numpy(400, 225).shape
    (225, 400, 3)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from glint.camera.thin_lens import get_ray_jittered
from glint.core.config import RenderMode
from glint.core.ray import Ray, lerp, make_ray, normalize
from glint.materials.dielectric import get_dielectric_ior, scatter_dielectric
from glint.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from glint.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from glint.scene.intersection import intersect_scene
from glint.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Sky gradient endpoints, blended by the direction's y component (down to up)
SKY_HORIZON_COLOR = (1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = (0.5, 0.7, 1.0)

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# =============================================================================
# Render Parameters
# =============================================================================

_render_mode = ti.field(dtype=ti.i32, shape=())
_max_depth = ti.field(dtype=ti.i32, shape=())
_depth_max_t = ti.field(dtype=ti.f32, shape=())
_block_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_render_params(
    mode: RenderMode | int = RenderMode.MATERIAL,
    max_depth: int = 50,
    depth_max_t: float = 1.0,
    block_color: tuple[float, float, float] = (1.0, 0.0, 0.0),
) -> None:
    """Set the integrator parameters used by subsequent passes.

    Args:
        mode: Integrator mode (see RenderMode).
        max_depth: Maximum number of bounces per path. 0 renders black.
        depth_max_t: Distance mapped to black in DEPTH mode.
        block_color: Color of every hit surface in BLOCK_COLOR mode.

    Raises:
        ValueError: If max_depth is negative or depth_max_t is not positive.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    if depth_max_t <= 0.0:
        raise ValueError(f"depth_max_t must be positive, got {depth_max_t}")

    _render_mode[None] = int(RenderMode.parse(mode))
    _max_depth[None] = max_depth
    _depth_max_t[None] = depth_max_t
    _block_color[None] = [block_color[0], block_color[1], block_color[2]]


# =============================================================================
# Pass Buffer
# =============================================================================

# One sample per pixel for the current pass, indexed [row, col] with row 0 at the top
_pass_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Dispatch to the appropriate material scattering function.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). Unknown
        material IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, incident_direction, normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            ior, incident_direction, normal, front_face
        )

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def sky(direction: vec3) -> vec3:
    """Background color seen by a ray that leaves the scene."""
    unit_direction = normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    horizon = vec3(SKY_HORIZON_COLOR[0], SKY_HORIZON_COLOR[1], SKY_HORIZON_COLOR[2])
    zenith = vec3(SKY_ZENITH_COLOR[0], SKY_ZENITH_COLOR[1], SKY_ZENITH_COLOR[2])
    return lerp(t, horizon, zenith)


@ti.func
def _sanitize(color: vec3) -> vec3:
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def trace(ray: Ray) -> vec3:
    """Estimate the color carried back along a ray.

    Uses the parameters from :func:`set_render_params`. Every intersection
    test uses the default ``T_MIN`` lower bound, so scattered rays do not
    re-hit the surface they leave.

    Args:
        ray: The primary ray.

    Returns:
        The sanitized color estimate for this sample.
    """
    mode = _render_mode[None]
    max_depth = _max_depth[None]

    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction

    # Taichi funcs cannot break out of loops; the flag ends the path instead
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(make_ray(origin, direction))

            if rec.hit == 0:
                color = throughput * sky(direction)
                active = 0
            elif mode == int(RenderMode.NORMAL):
                color = 0.5 * (rec.normal + vec3(1.0, 1.0, 1.0))
                active = 0
            elif mode == int(RenderMode.DEPTH):
                grey = 1.0 - tm.clamp(rec.t / _depth_max_t[None], 0.0, 1.0)
                color = vec3(grey, grey, grey)
                active = 0
            elif mode == int(RenderMode.BLOCK_COLOR):
                color = _block_color[None]
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = _scatter_material(
                    rec.material_id, direction, rec.normal, rec.front_face
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = rec.point
                    direction = scattered_direction

    # A path still active here ran out of bounces and contributes black
    return _sanitize(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass_kernel(width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        # Camera pixel rows count up from the bottom edge
        ray = get_ray_jittered(col, height - 1 - row, width, height)
        _pass_buffer[row, col] = trace(ray)


@ti.kernel
def _copy_pass(out: ti.types.ndarray(), width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        for c in ti.static(range(3)):
            out[row, col, c] = _pass_buffer[row, col][c]


@ti.kernel
def _trace_single(
    ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32
) -> vec3:
    return trace(make_ray(vec3(ox, oy, oz), vec3(dx, dy, dz)))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_pass(width: int, height: int) -> None:
    """Trace one jittered sample through every pixel into the pass buffer.

    The scene, camera and render parameters must already be set up.

    Raises:
        ValueError: If the dimensions are not positive or exceed the maximum.
    """
    _check_dimensions(width, height)
    _render_pass_kernel(width, height)


def get_pass_numpy(width: int, height: int) -> npt.NDArray[np.float32]:
    """Return the last pass as an array of shape (height, width, 3), row 0 at the top."""
    _check_dimensions(width, height)
    out = np.empty((height, width, 3), dtype=np.float32)
    _copy_pass(out, width, height)
    return out


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Trace a single ray with the current render parameters.

    Python-callable for diagnostics and tests. For images use render_pass(),
    which processes all pixels in parallel.

    Returns:
        Tuple of (R, G, B) color values.
    """
    color = _trace_single(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2]
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def sky_color(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    """Host-side sky gradient for a direction (any non-zero length)."""
    d = np.asarray(direction, dtype=np.float64)
    t = 0.5 * (d[1] / np.linalg.norm(d) + 1.0)
    color = (1.0 - t) * np.asarray(SKY_HORIZON_COLOR) + t * np.asarray(SKY_ZENITH_COLOR)
    return (float(color[0]), float(color[1]), float(color[2]))
