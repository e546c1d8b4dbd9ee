"""Microfacet reflection with the GGX (Trowbridge-Reitz) distribution.

    f(wo, wi) = R * D(h) * G(wo, wi) * F / (4 (n . wo) (n . wi))

with ``h = normalize(wo + wi)`` and the Fresnel term F fixed at 1.

    D(h) = a^2 / (pi * (1 - (1 - a^2) (n . h)^2)^2)
    G(wo, wi) = 1 / (1 + L(wo) + L(wi))
    L(v) = (-1 + sqrt(1 + a^2 (1 / (n . v)^2 - 1))) / 2

where ``a`` is the roughness. Directions are drawn from the cosine-weighted
hemisphere rather than from the GGX lobe, which is unbiased but noisy for
small roughness.
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

vec3 = tm.vec3


class MicrofacetReflectionMaterial(Material):
    """Rough conductor-like reflection.

    Attributes:
        reflectance: RGB weight of the lobe.
        roughness: GGX roughness in (0, 1].
    """

    material_type = MaterialType.MICROFACET

    def __init__(self, reflectance: Vector3, roughness: float) -> None:
        if roughness <= 0.0 or roughness > 1.0:
            raise ValueError(f"Roughness = {roughness} is outside (0, 1]")
        self.reflectance = check_color("Reflectance", reflectance)
        self.roughness = float(roughness)

    def packed(self) -> tuple[Vector3, float]:
        return self.reflectance, self.roughness

    def __repr__(self) -> str:
        return (
            f"MicrofacetReflectionMaterial(reflectance={self.reflectance.tolist()}, "
            f"roughness={self.roughness})"
        )


@ti.func
def ggx_distribution(wh: vec3, normal: vec3, roughness: ti.f32) -> ti.f32:
    rough2 = roughness * roughness
    dot_nh = tm.dot(normal, wh)
    denom = 1.0 - (1.0 - rough2) * dot_nh * dot_nh
    return rough2 / (tm.pi * denom * denom)


@ti.func
def ggx_g1(v: vec3, normal: vec3, roughness: ti.f32) -> ti.f32:
    rough2 = roughness * roughness
    dot = tm.dot(normal, v)
    dot2 = dot * dot
    return 0.5 * (-1.0 + ti.sqrt(1.0 + rough2 * (1.0 / dot2 - 1.0)))


@ti.func
def ggx_g(wo: vec3, wi: vec3, normal: vec3, roughness: ti.f32) -> ti.f32:
    """Height-correlated masking-shadowing term."""
    return 1.0 / (1.0 + ggx_g1(wo, normal, roughness) + ggx_g1(wi, normal, roughness))


@ti.func
def eval_microfacet(
    reflectance: vec3,
    roughness: ti.f32,
    wo: vec3,
    wi: vec3,
    normal: vec3,
) -> vec3:
    wh = tm.normalize(wo + wi)
    d = ggx_distribution(wh, normal, roughness)
    g = ggx_g(wo, wi, normal, roughness)
    dot_no = tm.dot(normal, wo)
    dot_ni = tm.dot(normal, wi)
    return reflectance * d * g / (4.0 * dot_no * dot_ni)


@ti.func
def sample_microfacet(
    reflectance: vec3,
    roughness: ti.f32,
    wo: vec3,
    normal: vec3,
) -> BsdfSample:
    wi, pdf = sample_cosine_hemisphere(normal)
    value = eval_microfacet(reflectance, roughness, wo, wi, normal)
    return make_sample(value, wi, pdf)
