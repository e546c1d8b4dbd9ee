"""Axis-aligned bounding boxes.

The Python ``AABB`` is used while building the BVH; ``hit_aabb`` is the
kernel-side slab test run against the flattened node bounds.

The slab test shrinks the ``(t_min, t_max)`` interval axis by axis and
reports a miss as soon as it collapses. Flat shapes pad their boxes by a
small epsilon so a zero-thickness box never collapses the interval for rays
crossing it.

Example:
    >>> from pathtracer.geometry.aabb import AABB
    >>> box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
    >>> box.hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), 0.0, 100.0)
    True
"""

from collections.abc import Iterable

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, as_vector3, vector_max, vector_min

vec3 = tm.vec3

# Thickness added to flat shapes' boxes
AABB_EPSILON = 1e-4


class AABB:
    """Box given by its minimum and maximum corners.

    Attributes:
        min: Minimum corner.
        max: Maximum corner.
        center: Midpoint, computed once at construction.
    """

    __slots__ = ("min", "max", "center")

    def __init__(self, min_corner: Vector3, max_corner: Vector3) -> None:
        self.min = as_vector3(min_corner)
        self.max = as_vector3(max_corner)
        self.center = 0.5 * (self.min + self.max)

    def merge(self, other: "AABB") -> "AABB":
        """Smallest box enclosing both boxes."""
        return AABB(vector_min(self.min, other.min), vector_max(self.max, other.max))

    def padded(self, epsilon: float = AABB_EPSILON) -> "AABB":
        return AABB(self.min - epsilon, self.max + epsilon)

    def area(self) -> float:
        """Surface area of the box."""
        x, y, z = self.max - self.min
        return float(2.0 * (x * y + y * z + z * x))

    def hit(self, origin: Vector3, direction: Vector3, t_min: float, t_max: float) -> bool:
        """Slab test of a ray against the box over ``(t_min, t_max)``."""
        origin = as_vector3(origin)
        direction = as_vector3(direction)
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_d = 1.0 / direction
            t0 = (self.min - origin) * inv_d
            t1 = (self.max - origin) * inv_d
        for axis in range(3):
            near, far = t0[axis], t1[axis]
            if near > far:
                near, far = far, near
            # NaN comparisons are False, so a NaN slab leaves the interval as is
            if near > t_min:
                t_min = near
            if far < t_max:
                t_max = far
            if t_max <= t_min:
                return False
        return True

    def __repr__(self) -> str:
        return f"AABB(min={self.min.tolist()}, max={self.max.tolist()})"


def merge_all(boxes: Iterable[AABB]) -> AABB:
    """Merge a non-empty iterable of boxes."""
    it = iter(boxes)
    result = next(it)
    for box in it:
        result = result.merge(box)
    return result


@ti.func
def hit_aabb(
    ray_origin: vec3,
    ray_direction: vec3,
    box_min: vec3,
    box_max: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test for use inside kernels.

    Returns:
        1 if the ray overlaps the box somewhere in ``(t_min, t_max)``, else 0.
    """
    inv_d = 1.0 / ray_direction
    t0 = (box_min - ray_origin) * inv_d
    t1 = (box_max - ray_origin) * inv_d
    lo = t_min
    hi = t_max
    hit = 1
    for axis in ti.static(range(3)):
        near = ti.min(t0[axis], t1[axis])
        far = ti.max(t0[axis], t1[axis])
        lo = ti.max(lo, near)
        hi = ti.min(hi, far)
    if hi <= lo:
        hit = 0
    return hit
