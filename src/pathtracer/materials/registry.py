"""Material table shared by all kernels.

Every material is stored as one slot of three parallel fields: its type tag,
an RGB color (reflectance, transmittance or radiance) and one scalar
parameter (index of refraction or roughness). Primitives refer to materials
by slot index, so a material bound to many primitives is stored once.

The dispatch functions at the bottom are the only place kernels branch on
the material type.

Example:
    >>> from pathtracer.materials import LambertMaterial
    >>> from pathtracer.materials.registry import add_material, clear_materials
    >>> clear_materials()
    >>> slot = add_material(LambertMaterial((0.8, 0.3, 0.3)))
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Intersection
from pathtracer.materials.base import (
    BsdfSample,
    Material,
    MaterialType,
    no_sample,
)
from pathtracer.materials.lambert import eval_lambert, sample_lambert
from pathtracer.materials.microfacet import eval_microfacet, sample_microfacet
from pathtracer.materials.specular import (
    sample_specular_reflection,
    sample_specular_transmission,
)

vec3 = tm.vec3

# Maximum number of materials in a scene
MAX_MATERIALS = 1024

material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_params = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Reset the material count to zero.

    Existing data in the fields will be overwritten when new materials are
    added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Append a material to the table.

    Args:
        material: Any Material instance.

    Returns:
        The slot index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    color, param = material.packed()
    material_types[idx] = int(material.material_type)
    material_colors[idx] = vec3(color[0], color[1], color[2])
    material_params[idx] = param
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a slot, or -1 for an invalid slot."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def eval_material(material_id: ti.i32, isec: Intersection, wi: vec3) -> vec3:
    """BSDF value for an explicit incoming direction.

    Delta materials and illuminants evaluate to zero.
    """
    mat_type = get_material_type(material_id)
    result = vec3(0.0, 0.0, 0.0)
    if mat_type == int(MaterialType.LAMBERT):
        result = eval_lambert(material_colors[material_id])
    elif mat_type == int(MaterialType.MICROFACET):
        result = eval_microfacet(
            material_colors[material_id],
            material_params[material_id],
            isec.wo,
            wi,
            isec.normal,
        )
    return result


@ti.func
def sample_material(material_id: ti.i32, isec: Intersection) -> BsdfSample:
    """Sample a scattering direction.

    Returns:
        A BsdfSample; ``valid == 0`` for illuminants and invalid slots.
    """
    mat_type = get_material_type(material_id)
    color = vec3(0.0, 0.0, 0.0)
    param = 0.0
    if mat_type >= 0:
        color = material_colors[material_id]
        param = material_params[material_id]

    result = no_sample()
    if mat_type == int(MaterialType.LAMBERT):
        result = sample_lambert(color, isec.normal)
    elif mat_type == int(MaterialType.SPECULAR_REFLECTION):
        result = sample_specular_reflection(color, isec.wo, isec.normal)
    elif mat_type == int(MaterialType.SPECULAR_TRANSMISSION):
        result = sample_specular_transmission(color, param, isec.wo, isec.normal)
    elif mat_type == int(MaterialType.MICROFACET):
        result = sample_microfacet(color, param, isec.wo, isec.normal)
    return result


@ti.func
def emit_material(material_id: ti.i32, isec: Intersection) -> vec3:
    """Emitted radiance; zero for every non-emissive material."""
    result = vec3(0.0, 0.0, 0.0)
    if get_material_type(material_id) == int(MaterialType.ILLUMINANT):
        result = material_colors[material_id]
    return result
