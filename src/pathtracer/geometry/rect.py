"""Finite rectangle in the local XZ plane.

A Rect of ``width`` x ``height`` is centered at the origin of its object
space, spans ``x`` in (-width/2, width/2) and ``z`` in (-height/2, height/2),
and faces +Y. Rectangles elsewhere in the scene are placed with a Transform.

The intersection is a ray/plane test against ``y = 0`` followed by a
half-extent containment test. The normal is +Y on both sides.
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, vec3 as np_vec3
from pathtracer.core.ray import Intersection, make_hit, make_miss
from pathtracer.geometry.aabb import AABB, AABB_EPSILON
from pathtracer.geometry.shape import Shape, ShapeType

vec3 = tm.vec3


class Rect(Shape):
    """Axis-aligned rectangle of the local XZ plane.

    Attributes:
        width: Extent along X.
        height: Extent along Z.
    """

    shape_type = ShapeType.RECT

    def __init__(self, width: float, height: float) -> None:
        if width <= 0.0 or height <= 0.0:
            raise ValueError(f"Rect extents must be positive, got {width} x {height}")
        self.width = float(width)
        self.height = float(height)
        hw = 0.5 * self.width
        hh = 0.5 * self.height
        # Zero thickness in Y is padded so slab tests stay well defined
        super().__init__(
            AABB(
                (-hw, -AABB_EPSILON, -hh),
                (hw, AABB_EPSILON, hh),
            )
        )

    def area(self) -> float:
        return self.width * self.height

    def sample(self, rng: np.random.Generator | None = None) -> tuple[Vector3, float]:
        """Uniform object-space point on the rectangle.

        Returns:
            ``(point, pdf)`` with ``pdf = 1 / (width * height)``.
        """
        if rng is None:
            rng = np.random.default_rng()
        u, v = rng.random(2)
        point = np_vec3((u - 0.5) * self.width, 0.0, (v - 0.5) * self.height)
        return point, 1.0 / self.area()

    def __repr__(self) -> str:
        return f"Rect(width={self.width}, height={self.height})"


@ti.func
def hit_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    half_width: ti.f32,
    half_height: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> Intersection:
    """Intersect a ray with the rectangle ``|x| < hw, y = 0, |z| < hh``.

    Rays parallel to the plane never hit.
    """
    result = make_miss()
    if ray_direction.y != 0.0:
        t = -ray_origin.y / ray_direction.y
        if t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            inside_x = point.x > -half_width and point.x < half_width
            inside_z = point.z > -half_height and point.z < half_height
            if inside_x and inside_z:
                result = make_hit(t, ray_direction, point, vec3(0.0, 1.0, 0.0))
    return result
