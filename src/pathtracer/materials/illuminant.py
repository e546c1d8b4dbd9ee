"""Emissive material for area lights.

An illuminant emits a constant radiance from every point and direction and
never scatters, so paths end on it.
"""

from pathtracer.core.linalg import Vector3
from pathtracer.materials.base import Material, MaterialType, check_color


class IlluminantMaterial(Material):
    """Constant emitter.

    Attributes:
        radiance: Emitted RGB radiance (may exceed 1).
    """

    material_type = MaterialType.ILLUMINANT

    def __init__(self, radiance: Vector3) -> None:
        self.radiance = check_color("Radiance", radiance)

    def packed(self) -> tuple[Vector3, float]:
        return self.radiance, 0.0

    def __repr__(self) -> str:
        return f"IlluminantMaterial(radiance={self.radiance.tolist()})"
