"""Lambertian (ideal diffuse) material implementation.

This module implements the Lambertian BRDF, which models ideal diffuse reflection
where incident light is scattered uniformly in all directions weighted by the
cosine of the angle from the surface normal.

The Lambertian BRDF is:
    f_r(wi, wo) = reflectance / pi

The probability density function for cosine-weighted hemisphere sampling is:
    pdf(wi) = cos(theta) / pi

where theta is the angle between the sampled direction and the surface normal.
The hemisphere is taken about the geometric normal as stored in the
intersection.

Example:
    >>> from pathtracer.materials.lambert import LambertMaterial
    >>> white = LambertMaterial((0.95, 0.95, 0.95))
    >>> # Within a Taichi kernel:
    >>> # sample = sample_lambert(reflectance, normal)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3
from pathtracer.core.ray import sample_cosine_hemisphere
from pathtracer.materials.base import (
    BsdfSample,
    Material,
    MaterialType,
    check_color,
    make_sample,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class LambertMaterial(Material):
    """Lambertian (ideal diffuse) material properties.

    Attributes:
        reflectance: The diffuse reflectance color (RGB). Components in
            [0, 1] conserve energy.
    """

    material_type = MaterialType.LAMBERT

    def __init__(self, reflectance: Vector3) -> None:
        self.reflectance = check_color("Reflectance", reflectance)

    def packed(self) -> tuple[Vector3, float]:
        return self.reflectance, 0.0

    def __repr__(self) -> str:
        return f"LambertMaterial(reflectance={self.reflectance.tolist()})"


@ti.func
def eval_lambert(reflectance: vec3) -> vec3:
    """Evaluate the Lambertian BRDF.

    The Lambertian BRDF is constant for all directions:
        f_r = reflectance / pi

    This function returns the BRDF value (not including the cosine term,
    which is applied separately in the rendering equation).
    """
    return reflectance / tm.pi


@ti.func
def sample_lambert(reflectance: vec3, normal: vec3) -> BsdfSample:
    """Sample a scattered direction for a Lambertian material.

    Uses cosine-weighted hemisphere sampling, so the estimator weight
    ``value * cos(theta) / pdf`` equals the reflectance.

    Args:
        reflectance: The diffuse reflectance color (RGB).
        normal: The surface normal at the hit point (unit length).

    Returns:
        A BsdfSample with ``pdf = cos(theta) / pi``.
    """
    wi, pdf = sample_cosine_hemisphere(normal)
    return make_sample(eval_lambert(reflectance), wi, pdf)
