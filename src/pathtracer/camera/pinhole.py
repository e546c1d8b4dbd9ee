"""Pinhole camera model for perspective projection ray generation.

This module implements a pinhole camera that generates primary rays for rendering.
The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios
- Jittered sampling for anti-aliasing

The camera keeps a scaled basis built from the view parameters:
- front: unit vector from lookfrom toward lookat
- right: unit vector ``front x vup``, scaled by the half width of the image
  plane at unit distance
- up: unit vector ``right x front``, scaled by the half height

Image coordinates (u, v) in [0, 1] are remapped to [-1, 1], so the ray
direction is ``right * (2u - 1) + up * (2v - 1) + front``. Directions are not
normalized.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import PinholeCamera, setup_camera, get_ray
    >>>
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 5.0, -14.0),
    ...     lookat=(0.0, 5.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=1.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5)  # Ray through image center
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from pathtracer.core.linalg import Vector3, as_vector3, normalize
from pathtracer.core.ray import Ray, make_ray, vec3

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        front = as_vector3(self.lookat) - as_vector3(self.lookfrom)
        if not np.any(front):
            raise ValueError("lookfrom and lookat must differ")
        if not np.any(np.cross(front, as_vector3(self.vup))):
            raise ValueError("vup must not be parallel to the view direction")

    @classmethod
    def look_at(
        cls,
        origin: tuple[float, float, float],
        target: tuple[float, float, float],
        up: tuple[float, float, float],
        vfov: float,
        aspect_ratio: float,
    ) -> "PinholeCamera":
        return cls(
            lookfrom=tuple(origin),
            lookat=tuple(target),
            vup=tuple(up),
            vfov=vfov,
            aspect_ratio=aspect_ratio,
        )

    def basis(self) -> tuple[Vector3, Vector3, Vector3]:
        """Scaled basis ``(hw * right, hh * up, front)``."""
        hh = math.tan(math.radians(self.vfov) / 2.0)
        hw = self.aspect_ratio * hh
        front = normalize(as_vector3(self.lookat) - as_vector3(self.lookfrom))
        right = normalize(np.cross(front, as_vector3(self.vup)))
        up = np.cross(right, front)
        return hw * right, hh * up, front

    def get_ray(self, u: float, v: float) -> tuple[Vector3, Vector3]:
        """Ray through image coordinates (u, v), computed in Python.

        Returns:
            ``(origin, direction)``.

        Raises:
            ValueError: If u or v is outside [0, 1].
        """
        if not (0.0 <= u <= 1.0 and 0.0 <= v <= 1.0):
            raise ValueError(f"Image coordinates must be in [0, 1], got ({u}, {v})")
        horizontal, vertical, front = self.basis()
        direction = horizontal * (2.0 * u - 1.0) + vertical * (2.0 * v - 1.0) + front
        return as_vector3(self.lookfrom), direction


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())  # hw * right
_camera_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())  # hh * up
_camera_front = ti.Vector.field(3, dtype=ti.f32, shape=())

_camera_ready = False


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: PinholeCamera) -> None:
    """Write the camera into the fields read by ``get_ray``.

    Must be called before rendering.
    """
    global _camera_ready
    horizontal, vertical, front = camera.basis()
    _camera_origin[None] = as_vector3(camera.lookfrom).tolist()
    _camera_horizontal[None] = horizontal.tolist()
    _camera_vertical[None] = vertical.tolist()
    _camera_front[None] = front.tolist()
    _camera_ready = True


def is_camera_ready() -> bool:
    """Whether ``setup_camera`` has been called."""
    return _camera_ready


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Generate a ray through normalized image coordinates (u, v).

    The coordinates are normalized:
    - u = 0: left edge of image, u = 1: right edge
    - v = 0: bottom edge of image, v = 1: top edge

    Args:
        u: Horizontal coordinate in [0, 1] (left to right).
        v: Vertical coordinate in [0, 1] (bottom to top).

    Returns:
        A Ray from the camera origin; its direction is not normalized.
    """
    direction = (
        _camera_horizontal[None] * (2.0 * u - 1.0)
        + _camera_vertical[None] * (2.0 * v - 1.0)
        + _camera_front[None]
    )
    return make_ray(_camera_origin[None], direction)


@ti.func
def get_ray_jittered(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate a jittered ray for anti-aliasing.

    Adds a uniform random offset in [0, 1) to the pixel coordinates before
    converting them to normalized image coordinates.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A Ray with random sub-pixel offset for anti-aliasing.
    """
    jitter_u = ti.random(ti.f32)
    jitter_v = ti.random(ti.f32)

    u = (ti.cast(pixel_i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
    v = (ti.cast(pixel_j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)

    return get_ray(u, v)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, horizontal, vertical and front vectors.
    """
    return {
        "origin": tuple(float(x) for x in _camera_origin[None]),
        "horizontal": tuple(float(x) for x in _camera_horizontal[None]),
        "vertical": tuple(float(x) for x in _camera_vertical[None]),
        "front": tuple(float(x) for x in _camera_front[None]),
    }
