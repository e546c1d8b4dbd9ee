"""Material types shared by all BSDF models.

A material is an immutable parameter holder on the Python side. When a scene
is uploaded, every distinct material instance is packed once into the
material table (see ``pathtracer.materials.registry``) as a type tag, an RGB
color and one scalar parameter. Kernels dispatch on the type tag.

Every BSDF kernel returns a ``BsdfSample``. ``valid == 0`` means the material
produced no scattering event; the integrators treat that, and any sample
with ``pdf == 0``, as the end of the path.
"""

from collections.abc import Sequence
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, as_vector3

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERT = 0
    SPECULAR_REFLECTION = 1
    SPECULAR_TRANSMISSION = 2
    MICROFACET = 3
    ILLUMINANT = 4


@ti.dataclass
class BsdfSample:
    """Result of sampling a BSDF.

    Attributes:
        value: BSDF value for the sampled pair of directions (RGB weight).
        wi: Sampled incoming direction (unit length).
        pdf: Probability density of ``wi``. Delta lobes report the
            probability of choosing the lobe (1 for a pure mirror).
        valid: 1 if a direction was produced, 0 if the path should stop.
    """

    value: vec3
    wi: vec3
    pdf: ti.f32
    valid: ti.i32


@ti.func
def make_sample(value: vec3, wi: vec3, pdf: ti.f32) -> BsdfSample:
    return BsdfSample(value=value, wi=wi, pdf=pdf, valid=1)


@ti.func
def no_sample() -> BsdfSample:
    return BsdfSample(
        value=vec3(0.0, 0.0, 0.0),
        wi=vec3(0.0, 0.0, 0.0),
        pdf=0.0,
        valid=0,
    )


class Material:
    """Base class for materials.

    Subclasses set ``material_type`` and implement ``packed`` which returns
    the ``(color, param)`` pair stored in the material table. Instances are
    compared by identity: two materials with equal parameters still get
    separate table slots.
    """

    material_type: MaterialType

    def packed(self) -> tuple[Vector3, float]:
        raise NotImplementedError

    def __setattr__(self, name: str, value: object) -> None:
        if name in self.__dict__:
            raise AttributeError(f"{type(self).__name__} is immutable")
        super().__setattr__(name, value)


def check_color(name: str, color: Sequence[float]) -> Vector3:
    """Validate an RGB weight.

    Raises:
        ValueError: If the color does not have three non-negative components.
    """
    rgb = as_vector3(color)
    for i, component in enumerate(rgb):
        if component < 0.0:
            raise ValueError(f"{name} component {i} = {component} is negative")
    return rgb
