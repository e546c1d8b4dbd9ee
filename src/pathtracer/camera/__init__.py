"""Pinhole camera for primary ray generation.

The camera is described on the host by a PinholeCamera (look-at position,
vertical field of view, aspect ratio) and uploaded with setup_camera. Kernels
then call get_ray for a point on the image plane or get_ray_jittered for a
random point inside pixel (i, j).

Image plane coordinates:
    u in [0, 1]: along the camera right vector (front x up)
    v in [0, 1]: bottom to top
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    is_camera_ready,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "is_camera_ready",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
