"""Core rendering module.

Components:
    linalg: Construction-time vector and 4x4 matrix helpers (numpy, float64)
    transform: Affine transforms and their kernel-side application
    ray: Ray and Intersection structs, ray and sampling kernels
    integrator: Path tracing kernels and the render target
    progressive: Batched progressive rendering with progress reporting

Construction happens in double precision with numpy; per-ray work runs in
Taichi kernels in single precision.
"""

from .linalg import (
    Matrix4,
    Vector3,
    as_vector3,
    identity4,
    length,
    normalize,
    vector_max,
    vector_min,
)
from .ray import (
    Intersection,
    Ray,
    change_basis,
    make_hit,
    make_miss,
    make_ray,
    max_component,
    random_cosine_direction,
    reflect,
    refract,
    sample_cosine_hemisphere,
    schlick_fresnel,
    vec3,
)
from .transform import Transform, transform_normal, transform_point, transform_vector

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.progressive.

__all__ = [
    "Vector3",
    "Matrix4",
    "as_vector3",
    "identity4",
    "length",
    "normalize",
    "vector_min",
    "vector_max",
    "Ray",
    "Intersection",
    "make_ray",
    "make_miss",
    "make_hit",
    "max_component",
    "reflect",
    "refract",
    "schlick_fresnel",
    "random_cosine_direction",
    "change_basis",
    "sample_cosine_hemisphere",
    "vec3",
    "Transform",
    "transform_point",
    "transform_vector",
    "transform_normal",
]
