"""Perfectly specular reflection and transmission.

Both models are delta distributions. Their BSDF is zero for any explicitly
given pair of directions and they only produce energy through ``sample``.

Mirror reflection:
    wi = reflect(-wo, n),  value = R / (n . wi),  pdf = 1

A mirror seen from behind (n . wi <= 0) returns no sample.

Dividing by the cosine cancels the ``|n . wi|`` factor the integrator
applies, so the path weight is multiplied by exactly R.

Dielectric transmission picks reflection or refraction with the Schlick
Fresnel probability F, reporting ``pdf = F`` or ``pdf = 1 - F`` so the
estimator stays unbiased. Total internal reflection always reflects with
``pdf = 1``. The normal is oriented toward ``wo`` first; when the ray
arrives from behind the surface the indices are swapped.

Example:
    >>> from pathtracer.materials.specular import SpecularTransmissionMaterial
    >>> glass = SpecularTransmissionMaterial((1.0, 1.0, 1.0), ior=1.5)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3
from pathtracer.core.ray import reflect, refract, schlick_fresnel
from pathtracer.materials.base import (
    BsdfSample,
    Material,
    MaterialType,
    check_color,
    make_sample,
    no_sample,
)

vec3 = tm.vec3


class SpecularReflectionMaterial(Material):
    """Ideal mirror.

    Attributes:
        reflectance: RGB weight applied on every bounce.
    """

    material_type = MaterialType.SPECULAR_REFLECTION

    def __init__(self, reflectance: Vector3) -> None:
        self.reflectance = check_color("Reflectance", reflectance)

    def packed(self) -> tuple[Vector3, float]:
        return self.reflectance, 0.0

    def __repr__(self) -> str:
        return f"SpecularReflectionMaterial(reflectance={self.reflectance.tolist()})"


class SpecularTransmissionMaterial(Material):
    """Smooth dielectric such as glass or water.

    Attributes:
        transmittance: RGB weight applied on every bounce.
        ior: Index of refraction of the interior relative to the exterior.
    """

    material_type = MaterialType.SPECULAR_TRANSMISSION

    def __init__(self, transmittance: Vector3, ior: float = 1.5) -> None:
        if ior <= 0.0:
            raise ValueError(f"Index of refraction must be positive, got {ior}")
        self.transmittance = check_color("Transmittance", transmittance)
        self.ior = float(ior)

    def packed(self) -> tuple[Vector3, float]:
        return self.transmittance, self.ior

    def __repr__(self) -> str:
        return (
            f"SpecularTransmissionMaterial(transmittance={self.transmittance.tolist()}, "
            f"ior={self.ior})"
        )


@ti.func
def sample_specular_reflection(reflectance: vec3, wo: vec3, normal: vec3) -> BsdfSample:
    wi = reflect(-wo, normal)
    cosine = tm.dot(normal, wi)
    result = no_sample()
    # Seen from behind the mirror nothing is reflected
    if cosine > 0.0:
        result = make_sample(reflectance / cosine, wi, 1.0)
    return result


@ti.func
def sample_specular_transmission(
    transmittance: vec3,
    ior: ti.f32,
    wo: vec3,
    normal: vec3,
) -> BsdfSample:
    """Choose between Fresnel reflection and refraction.

    Args:
        transmittance: RGB weight.
        ior: Interior over exterior index of refraction.
        wo: Unit direction toward the viewer.
        normal: Geometric normal, pointing to the exterior.

    Returns:
        A BsdfSample whose pdf is the probability of the chosen branch.
    """
    reflected = reflect(-wo, normal)
    dot = tm.dot(normal, wo)

    eta = 1.0 / ior
    facing = normal
    cosine = dot
    if dot <= 0.0:
        eta = ior
        facing = -normal
        cosine = -dot

    ok, refracted = refract(wo, facing, eta)

    result = no_sample()
    # Exactly grazing rays carry no energy
    if cosine > 0.0:
        value = transmittance / cosine
        wi = reflected
        pdf = 1.0
        if ok == 1:
            fresnel = schlick_fresnel(cosine, eta)
            if ti.random(ti.f32) < fresnel:
                value = fresnel * transmittance / cosine
                pdf = fresnel
            else:
                value = (1.0 - fresnel) * transmittance / cosine
                wi = refracted
                pdf = 1.0 - fresnel
        result = make_sample(value, wi, pdf)
    return result
