"""Materials module for BSDF models.

This module implements the scattering models a surface can carry:

Components:
    base: Material base class, MaterialType tags and the BsdfSample record
    lambert: Ideal diffuse reflection
    specular: Mirror reflection and smooth dielectric transmission
    microfacet: GGX microfacet reflection
    illuminant: Constant area emitter
    registry: Material table fields and kernel dispatch

Each material provides, as Taichi functions:
    - sample: Draw an incoming direction with its BSDF value and pdf
    - eval: Evaluate the BSDF for an explicit pair of directions
    - emit: Emitted radiance (zero except for illuminants)
"""

from .base import BsdfSample, Material, MaterialType
from .illuminant import IlluminantMaterial
from .lambert import LambertMaterial, eval_lambert, sample_lambert
from .microfacet import (
    MicrofacetReflectionMaterial,
    eval_microfacet,
    ggx_distribution,
    ggx_g,
    sample_microfacet,
)
from .registry import (
    MAX_MATERIALS,
    add_material,
    clear_materials,
    emit_material,
    eval_material,
    get_material_count,
    sample_material,
)
from .specular import (
    SpecularReflectionMaterial,
    SpecularTransmissionMaterial,
    sample_specular_reflection,
    sample_specular_transmission,
)

__all__ = [
    "Material",
    "MaterialType",
    "BsdfSample",
    # Material classes
    "LambertMaterial",
    "SpecularReflectionMaterial",
    "SpecularTransmissionMaterial",
    "MicrofacetReflectionMaterial",
    "IlluminantMaterial",
    # Kernel functions
    "eval_lambert",
    "sample_lambert",
    "eval_microfacet",
    "sample_microfacet",
    "ggx_distribution",
    "ggx_g",
    "sample_specular_reflection",
    "sample_specular_transmission",
    # Material table
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "eval_material",
    "sample_material",
    "emit_material",
]
