"""Sphere primitive with robust ray-sphere intersection.

This module provides the Sphere shape and its kernel intersection function,
which follows the robust formulation of Ray Tracing Gems (chapter 7) in
single precision:

- The discriminant is computed as ``a * (r^2 - |l|^2)`` where ``l`` is the
  offset from the center to the closest point on the ray line. The textbook
  ``h^2 - a * c`` loses ``r^2`` entirely once ``|oc|^2`` dwarfs it, so small
  far-away spheres would be missed.
- The roots come from ``q = -(h + sign(h) sqrt(D))`` to avoid catastrophic
  cancellation between ``h`` and ``sqrt(D)``.

Rays that only graze the sphere are treated as misses: the discriminant must
exceed ``TANGENT_EPSILON * a * r^2``, so a double root never produces a hit.

Example:
    >>> from pathtracer.geometry.sphere import Sphere
    >>> sphere = Sphere(center=(0.0, 2.5, 0.0), radius=2.5)
    >>> sphere.aabb()
    AABB(min=[-2.5, 0.0, -2.5], max=[2.5, 5.0, 2.5])
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, as_vector3
from pathtracer.core.ray import Intersection, make_hit, make_miss
from pathtracer.geometry.aabb import AABB
from pathtracer.geometry.shape import Shape, ShapeType

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Relative discriminant below which a ray is considered tangent
TANGENT_EPSILON = 1e-6


class Sphere(Shape):
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive float).
    """

    shape_type = ShapeType.SPHERE

    def __init__(self, center: Vector3, radius: float) -> None:
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self.center = as_vector3(center)
        self.radius = float(radius)
        super().__init__(AABB(self.center - self.radius, self.center + self.radius))

    def __repr__(self) -> str:
        return f"Sphere(center={self.center.tolist()}, radius={self.radius})"


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> Intersection:
    """Test for ray-sphere intersection using robust quadratic formula.

    The ray-sphere intersection is found by solving:
        |ray_origin + t * ray_direction - center|^2 = radius^2

    Expanding and rearranging gives the quadratic equation:
        a*t^2 + 2*h*t + c = 0

    where:
        a = dot(direction, direction)
        h = dot(direction, oc)  (half of traditional b)
        c = dot(oc, oc) - radius^2
        oc = origin - center

    Of the roots inside ``(t_min, t_max)`` the smaller is returned. The
    normal is the outward unit normal whichever side the ray comes from.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        center: The sphere center.
        radius: The sphere radius.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        An Intersection; check its ``hit`` field.
    """
    oc = ray_origin - center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    # h^2 - a*c rewritten through the closest approach to the center, which
    # keeps r^2 when |oc| is much larger than r
    perp = oc - (h / a) * ray_direction
    discriminant = a * (radius * radius - tm.dot(perp, perp))

    result = make_miss()

    if discriminant > TANGENT_EPSILON * a * radius * radius:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            point = ray_origin + t * ray_direction
            normal = tm.normalize(point - center)
            result = make_hit(t, ray_direction, point, normal)

    return result
