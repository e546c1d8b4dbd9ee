"""Ray and intersection records plus vector utilities for path tracing kernels.

This module provides the Ray and Intersection dataclasses shared by every
kernel, together with the reflection/refraction helpers and the
cosine-weighted hemisphere sampler used by the BSDFs. All functions are
``@ti.func`` and run inside Taichi kernels.

Ray directions are not required to be unit length. Shapes solve for the ray
parameter ``t`` along the direction as given, which keeps ``t`` meaningful
after a ray is mapped into object space by an affine transform.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.ray import make_ray, vec3
    >>> # Inside a kernel:
    >>> # ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0))
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not necessarily
            normalized; consumers normalize on demand.
    """

    origin: vec3
    direction: vec3


@ti.dataclass
class Intersection:
    """Record of a ray-surface intersection.

    Attributes:
        hit: 1 if the ray hit the surface, 0 otherwise. The remaining fields
            are only meaningful when hit == 1.
        t: Ray parameter of the hit.
        wo: Unit direction from the hit point back toward the ray origin.
        point: Hit position.
        normal: Unit geometric normal of the surface (outward for spheres,
            +Y for rects, interpolated for triangles). It is not flipped to
            face the ray.
    """

    hit: ti.i32
    t: ti.f32
    wo: vec3
    point: vec3
    normal: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction)


@ti.func
def make_miss() -> Intersection:
    """An Intersection with hit == 0."""
    return Intersection(
        hit=0,
        t=0.0,
        wo=vec3(0.0, 0.0, 0.0),
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def make_hit(t: ti.f32, direction: vec3, point: vec3, normal: vec3) -> Intersection:
    """Build a hit record; ``wo`` is derived from the ray direction."""
    return Intersection(
        hit=1,
        t=t,
        wo=-tm.normalize(direction),
        point=point,
        normal=normal,
    )


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def max_component(v: vec3) -> ti.f32:
    return tm.max(v.x, tm.max(v.y, v.z))


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The direction pointing toward the surface.
        normal: The surface normal (unit length).

    Returns:
        The mirrored direction ``incident - 2 (incident . n) n``.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(wo: vec3, normal: vec3, eta: ti.f32):
    """Refract the outgoing direction through a surface using Snell's law.

    Args:
        wo: Unit direction pointing away from the surface on the incident
            side.
        normal: Unit normal on the same side as ``wo``.
        eta: Ratio of refractive indices (incident side / transmitted side).

    Returns:
        A tuple ``(ok, direction)``. ``ok`` is 0 on total internal
        reflection, in which case ``direction`` is the zero vector.
    """
    dt = tm.dot(wo, normal)
    d = 1.0 - eta * eta * (1.0 - dt * dt)
    ok = 0
    direction = vec3(0.0, 0.0, 0.0)
    if d > 0.0:
        ok = 1
        direction = -eta * (wo - normal * dt) - normal * ti.sqrt(d)
    return ok, direction


@ti.func
def schlick_fresnel(cosine: ti.f32, eta: ti.f32) -> ti.f32:
    """Fresnel reflectance using Schlick's approximation."""
    r0 = ((1.0 - eta) / (1.0 + eta)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_cosine_direction():
    """Sample a cosine-weighted direction in the local z-up hemisphere.

    Uses Malley's method: a uniform point on the unit disk is projected up
    onto the hemisphere.

    Returns:
        A tuple ``(direction, pdf)`` with ``pdf = cos(theta) / pi``.
    """
    r1 = ti.random(ti.f32)
    r2 = ti.random(ti.f32)
    z = ti.sqrt(1.0 - r2)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    direction = vec3(ti.cos(phi) * sqrt_r2, ti.sin(phi) * sqrt_r2, z)
    return direction, z / tm.pi


@ti.func
def change_basis(v: vec3, normal: vec3) -> vec3:
    """Express a local z-up direction in the frame whose z axis is ``normal``."""
    n = tm.normalize(normal)
    up = vec3(1.0, 0.0, 0.0)
    if ti.abs(n.x) > 0.9:
        up = vec3(0.0, 1.0, 0.0)
    s = tm.normalize(tm.cross(n, up))
    t = tm.cross(s, n)
    return v.x * s + v.y * t + v.z * n


@ti.func
def sample_cosine_hemisphere(normal: vec3):
    """Cosine-weighted hemisphere sample about ``normal``.

    Returns:
        A tuple ``(direction, pdf)`` in world space.
    """
    local_dir, pdf = random_cosine_direction()
    return change_basis(local_dir, normal), pdf
