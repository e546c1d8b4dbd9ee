"""Path tracing integrators for Monte Carlo light transport.

This module implements the rendering kernels. Each pixel sample fires a
jittered camera ray into the uploaded scene and follows it from surface to
surface, asking the hit material for a scattered direction at every bounce.
Two policies are supported:

RECURSIVE_BACKGROUND
    Light comes only from the environment. A miss returns the environment
    radiance along the ray; a hit samples the BSDF and continues with
    ``throughput *= value * |cos| / pdf``. Paths still bouncing after the
    maximum depth (10) contribute zero. Surfaces never emit.

EMISSIVE
    Light comes only from illuminant surfaces. Every hit adds
    ``weight * emit``, then the BSDF is sampled; after the weight update the
    path survives Russian roulette with probability ``max(weight)`` and is
    compensated by that probability. A miss ends the path with no
    contribution. Paths are capped at 50 bounces.

In both, a material that cannot sample (an illuminant) or a zero pdf ends
the path. Rays restart at the hit point with no offset; the ``T_MIN`` hit
distance keeps them from re-hitting the surface they left.

Samples are accumulated into a preallocated color buffer with a running
average per pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import setup_camera
    >>> from pathtracer.config import IntegratorType
    >>> from pathtracer.core.integrator import render_image, setup_render_target
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(128, 128)
    >>> render_image(num_samples=16, integrator=IntegratorType.EMISSIVE)
"""

import logging
from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.camera.pinhole import get_ray_jittered, is_camera_ready
from pathtracer.config import (
    MAX_BOUNCES,
    MAX_RECURSION_DEPTH,
    IntegratorType,
    default_max_depth,
)
from pathtracer.core.ray import max_component
from pathtracer.materials.registry import emit_material, sample_material
from pathtracer.scene.environment import sample_environment
from pathtracer.scene.intersection import T_MAX, T_MIN, intersect_scene, to_intersection

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Indexed [x, y] with y = 0 at the bottom row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_ready() -> None:
    _check_render_target_initialized()
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")


def _resolve(integrator, max_depth: int | None) -> tuple[IntegratorType, int]:
    try:
        integrator = IntegratorType(integrator)
    except ValueError:
        raise ValueError(f"Unknown integrator: {integrator!r}") from None
    if max_depth is None:
        max_depth = default_max_depth(integrator)
    if max_depth <= 0:
        raise ValueError(f"max_depth must be positive, got {max_depth}")
    return integrator, max_depth


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def russian_roulette(weight: vec3):
    """Randomly terminate a path, compensating survivors.

    The survival probability is the largest component of ``weight``.

    Returns:
        ``(survived, weight)`` where a surviving weight is divided by the
        survival probability.
    """
    p = max_component(weight)
    survived = 1
    result = weight
    if p <= 0.0 or ti.random(ti.f32) > p:
        survived = 0
    else:
        result = weight / p
    return survived, result


@ti.func
def trace_recursive_background(origin: vec3, direction: vec3, max_depth: ti.i32) -> vec3:
    """Estimate radiance along a ray lit only by the environment.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be unit).
        max_depth: Deepest recursion level that may still query the scene.

    Returns:
        The radiance estimate (RGB).
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction

    # Taichi doesn't support break in ti.func loops
    active = 1

    for _depth in range(max_depth + 1):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)
            if rec.hit == 0:
                radiance += throughput * sample_environment(ray_direction)
                active = 0
            else:
                bsdf = sample_material(rec.material_id, to_intersection(rec))
                if bsdf.valid == 0 or bsdf.pdf == 0.0:
                    active = 0
                else:
                    cosine = ti.abs(tm.dot(rec.normal, bsdf.wi))
                    throughput *= bsdf.value * cosine / bsdf.pdf
                    ray_origin = rec.point
                    ray_direction = bsdf.wi

    return radiance


@ti.func
def trace_emissive(origin: vec3, direction: vec3, max_bounces: ti.i32) -> vec3:
    """Estimate radiance along a ray lit only by illuminant surfaces.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be unit).
        max_bounces: Hard cap on the number of surface hits.

    Returns:
        The radiance estimate (RGB).
    """
    result = vec3(0.0, 0.0, 0.0)
    weight = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction
    active = 1

    for _bounce in range(max_bounces):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)
            if rec.hit == 0:
                active = 0
            else:
                isec = to_intersection(rec)
                result += weight * emit_material(rec.material_id, isec)

                bsdf = sample_material(rec.material_id, isec)
                if bsdf.valid == 0 or bsdf.pdf == 0.0:
                    active = 0
                else:
                    cosine = ti.abs(tm.dot(rec.normal, bsdf.wi))
                    weight *= bsdf.value * cosine / bsdf.pdf

                    survived, weight = russian_roulette(weight)
                    if survived == 0:
                        active = 0
                    else:
                        ray_origin = rec.point
                        ray_direction = bsdf.wi

    return result


@ti.func
def trace_ray(origin: vec3, direction: vec3, integrator: ti.i32, max_depth: ti.i32) -> vec3:
    """Dispatch a ray to the selected integrator."""
    result = vec3(0.0, 0.0, 0.0)
    if integrator == int(IntegratorType.EMISSIVE):
        result = trace_emissive(origin, direction, max_depth)
    else:
        result = trace_recursive_background(origin, direction, max_depth)
    return result


@ti.func
def trace_path(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    integrator: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    """Trace one jittered camera sample through pixel (pixel_i, pixel_j)."""
    ray = get_ray_jittered(pixel_i, pixel_j, width, height)
    return trace_ray(ray.origin, ray.direction, integrator, max_depth)


@ti.func
def _sanitize(color: vec3) -> vec3:
    # Clamp negative values and replace NaN/Inf with zero
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32, integrator: ti.i32, max_depth: ti.i32):
    """Trace one path through every pixel and fold it into the running average."""
    for i, j in ti.ndrange(width, height):
        color = _sanitize(trace_path(i, j, width, height, integrator, max_depth))

        _sample_count[i, j] += 1
        n = _sample_count[i, j]

        # avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / ti.cast(n, ti.f32)


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    integrator: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    return _sanitize(trace_path(pixel_i, pixel_j, width, height, integrator, max_depth))


@ti.kernel
def _trace_single_ray(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    integrator: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    return trace_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), integrator, max_depth)


# =============================================================================
# Public Rendering API
# =============================================================================


def estimate_radiance(
    origin: Sequence[float],
    direction: Sequence[float],
    integrator: IntegratorType = IntegratorType.EMISSIVE,
    max_depth: int | None = None,
) -> tuple[float, float, float]:
    """One radiance sample along an explicit ray.

    Uses the uploaded scene and environment; no camera or render target is
    needed. The sample is returned as-is, without NaN or negative clamping.

    Raises:
        ValueError: If the integrator is unknown or max_depth is not positive.
    """
    integrator, max_depth = _resolve(integrator, max_depth)
    o = [float(x) for x in origin]
    d = [float(x) for x in direction]
    color = _trace_single_ray(*o, *d, int(integrator), max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_sample(
    pixel_i: int,
    pixel_j: int,
    integrator: IntegratorType = IntegratorType.EMISSIVE,
    max_depth: int | None = None,
) -> tuple[float, float, float]:
    """Render a single sample for one pixel without accumulating it.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).

    Raises:
        RuntimeError: If the render target or camera has not been set up.
        ValueError: If the integrator is unknown.
    """
    _check_ready()
    integrator, max_depth = _resolve(integrator, max_depth)

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, int(integrator), max_depth)

    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(
    num_samples: int = 1,
    integrator: IntegratorType = IntegratorType.EMISSIVE,
    max_depth: int | None = None,
) -> None:
    """Accumulate ``num_samples`` more samples into every pixel.

    Can be called repeatedly; the color buffer holds the running average.

    Raises:
        RuntimeError: If the render target or camera has not been set up.
        ValueError: If the integrator is unknown.
    """
    _check_ready()
    integrator, max_depth = _resolve(integrator, max_depth)

    width, height = get_image_dimensions()
    logger.debug(
        "Rendering %d spp at %dx%d with %s (max depth %d)",
        num_samples,
        width,
        height,
        integrator.name,
        max_depth,
    )
    for _ in range(num_samples):
        _render_one_spp(width, height, int(integrator), max_depth)


def get_total_samples() -> int:
    """Samples accumulated so far; every pixel holds the same count.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> np.ndarray:
    """The accumulated linear radiance as an array of shape (height, width, 3).

    Row 0 is the top of the image. Values are not clamped.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    image = _color_buffer.to_numpy()[:width, :height, :]

    # (width, height, 3) -> (height, width, 3), then bottom-left origin to top-left
    image = np.flipud(np.transpose(image, (1, 0, 2)))

    return np.ascontiguousarray(image, dtype=np.float32)


def get_normalized_image_numpy() -> np.ndarray:
    """Like ``get_linear_image_numpy`` with values clamped to [0, 1]."""
    return np.clip(get_linear_image_numpy(), 0.0, 1.0)


def save_image(filepath: str, gamma: float = 2.2) -> None:
    """Gamma-encode the accumulated image and write it with Pillow.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    from pathtracer.preview.export import save_png

    save_png(get_linear_image_numpy(), filepath, gamma=gamma)


__all__ = [
    "MAX_BOUNCES",
    "MAX_RECURSION_DEPTH",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
    "setup_render_target",
    "clear_render_target",
    "get_image_dimensions",
    "russian_roulette",
    "trace_recursive_background",
    "trace_emissive",
    "trace_ray",
    "trace_path",
    "estimate_radiance",
    "render_sample",
    "render_image",
    "get_total_samples",
    "get_linear_image_numpy",
    "get_normalized_image_numpy",
    "save_image",
]
