"""Primitives: shapes bound to materials, optionally transformed.

A scene is a list of primitives. Three kinds exist:

    GeometricPrimitive(shape, material)    a shape with its material
    TransformedPrimitive(primitive, xform) any primitive placed by a Transform
    BVH(primitives)                        an aggregate (pathtracer.geometry.bvh)

They can be nested freely, e.g. a transformed BVH of triangles instances a
mesh. Shapes never know their material, and the same material instance can
back many primitives.

Example:
    >>> from pathtracer.core.transform import Transform
    >>> from pathtracer.geometry import Rect
    >>> from pathtracer.materials import LambertMaterial
    >>> wall = GeometricPrimitive(Rect(10.0, 10.0), LambertMaterial((0.95, 0.95, 0.95)))
    >>> far = TransformedPrimitive(
    ...     wall, Transform.rotate_x(-90.0).then(Transform.translate(0.0, 5.0, 5.0))
    ... )
"""

from pathtracer.core.transform import Transform
from pathtracer.geometry.aabb import AABB
from pathtracer.geometry.shape import Shape
from pathtracer.materials.base import Material


class GeometricPrimitive:
    """A shape together with its material.

    Attributes:
        shape: The object-space shape.
        material: The material shared by reference.
    """

    __slots__ = ("shape", "material")

    def __init__(self, shape: Shape, material: Material) -> None:
        if not isinstance(shape, Shape):
            raise ValueError(f"Expected a Shape, got {type(shape).__name__}")
        if not isinstance(material, Material):
            raise ValueError(f"Expected a Material, got {type(material).__name__}")
        self.shape = shape
        self.material = material

    def aabb(self) -> AABB:
        return self.shape.aabb()

    def __repr__(self) -> str:
        return f"GeometricPrimitive({self.shape!r}, {self.material!r})"


class TransformedPrimitive:
    """A primitive mapped from object space to world space.

    Attributes:
        primitive: The wrapped primitive (geometric, transformed or BVH).
        transform: Object-to-world transform.
    """

    __slots__ = ("primitive", "transform", "_aabb")

    def __init__(self, primitive, transform: Transform) -> None:
        self.primitive = primitive
        self.transform = transform
        self._aabb = transform.aabb(primitive.aabb())

    def aabb(self) -> AABB:
        """World-space box of the transformed primitive."""
        return self._aabb

    def __repr__(self) -> str:
        return f"TransformedPrimitive({self.primitive!r}, {self.transform!r})"
