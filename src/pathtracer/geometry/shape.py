"""Common interface of the analytic shapes.

Shapes are immutable object-space descriptions. Each one knows its kernel
type tag and its bounding box; intersection itself runs in kernels (see
``hit_sphere``, ``hit_rect`` and ``hit_triangle``) against the data the scene
upload packs into Taichi fields.
"""

from enum import IntEnum

import numpy as np

from pathtracer.core.linalg import Vector3
from pathtracer.geometry.aabb import AABB


class ShapeType(IntEnum):
    """Kernel dispatch tag for shapes."""

    SPHERE = 0
    RECT = 1
    TRIANGLE = 2


class Shape:
    """Base class for shapes.

    Subclasses set ``shape_type`` and build their box once in ``__init__``.
    """

    shape_type: ShapeType

    def __init__(self, bounds: AABB) -> None:
        self._aabb = bounds

    def aabb(self) -> AABB:
        return self._aabb

    def sample(self, rng: np.random.Generator | None = None) -> tuple[Vector3, float]:
        """Draw a uniform point on the surface.

        Returns:
            A tuple ``(point, pdf)`` with the pdf taken with respect to area.

        Raises:
            NotImplementedError: If the shape has no area sampling policy.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support area sampling")
