"""Affine transforms between object space and world space.

A Transform holds a forward 4x4 matrix together with its inverse so that
world-space rays can be brought into object space without ever inverting a
matrix at render time. Composition multiplies the forward matrices in
application order and the inverse matrices in reverse order, which keeps the
pair consistent by construction.

Normals are mapped with the inverse-transpose, so they stay perpendicular to
transformed surfaces under non-uniform scale.

The Python-side class is used while building the scene. The ``@ti.func``
helpers at the bottom apply the same maps inside kernels to matrices that the
scene upload stores per primitive.

Example:
    >>> from pathtracer.core.transform import Transform
    >>> from pathtracer.core.linalg import vec3
    >>> t = Transform.rotate_x(-90.0).then(Transform.translate(0.0, 5.0, 5.0))
    >>> t.point(vec3(0.0, 0.0, 0.0))
    array([0., 5., 5.])
"""

import math
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import (
    Matrix4,
    Vector3,
    as_vector3,
    identity4,
    matrix4,
    max_of,
    min_of,
)

if TYPE_CHECKING:
    from pathtracer.geometry.aabb import AABB

vec3 = tm.vec3


class Transform:
    """A forward affine matrix paired with its inverse.

    Attributes:
        mat: Object-to-world matrix (4x4, float64).
        inv_mat: World-to-object matrix (4x4, float64).
    """

    __slots__ = ("mat", "inv_mat")

    def __init__(self, mat: Matrix4, inv_mat: Matrix4) -> None:
        # The caller guarantees inv_mat == inverse(mat); it is never re-derived.
        self.mat = matrix4(mat)
        self.inv_mat = matrix4(inv_mat)

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def identity(cls) -> "Transform":
        return cls(identity4(), identity4())

    @classmethod
    def translate(cls, x: float, y: float, z: float) -> "Transform":
        mat = identity4()
        mat[:3, 3] = (x, y, z)
        inv_mat = identity4()
        inv_mat[:3, 3] = (-x, -y, -z)
        return cls(mat, inv_mat)

    @classmethod
    def scale(cls, x: float, y: float, z: float) -> "Transform":
        """Scale along each axis.

        Raises:
            ValueError: If any factor is zero (the inverse would not exist).
        """
        if x == 0.0 or y == 0.0 or z == 0.0:
            raise ValueError(f"Scale factors must be non-zero, got ({x}, {y}, {z})")
        mat = np.diag([x, y, z, 1.0]).astype(np.float64)
        inv_mat = np.diag([1.0 / x, 1.0 / y, 1.0 / z, 1.0]).astype(np.float64)
        return cls(mat, inv_mat)

    @classmethod
    def rotate_x(cls, degrees: float) -> "Transform":
        c, s = _cos_sin(degrees)
        mat = matrix4(
            [
                [1.0, 0.0, 0.0, 0.0],
                [0.0, c, -s, 0.0],
                [0.0, s, c, 0.0],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )
        return cls(mat, mat.T.copy())

    @classmethod
    def rotate_y(cls, degrees: float) -> "Transform":
        c, s = _cos_sin(degrees)
        mat = matrix4(
            [
                [c, 0.0, s, 0.0],
                [0.0, 1.0, 0.0, 0.0],
                [-s, 0.0, c, 0.0],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )
        return cls(mat, mat.T.copy())

    @classmethod
    def rotate_z(cls, degrees: float) -> "Transform":
        c, s = _cos_sin(degrees)
        mat = matrix4(
            [
                [c, -s, 0.0, 0.0],
                [s, c, 0.0, 0.0],
                [0.0, 0.0, 1.0, 0.0],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )
        return cls(mat, mat.T.copy())

    # =========================================================================
    # Composition
    # =========================================================================

    def inverse(self) -> "Transform":
        """Swap the forward and inverse matrices."""
        return Transform(self.inv_mat, self.mat)

    def then(self, other: "Transform") -> "Transform":
        """Compose: apply ``self`` first, then ``other``."""
        return Transform(other.mat @ self.mat, self.inv_mat @ other.inv_mat)

    # =========================================================================
    # Mapping
    # =========================================================================

    def point(self, p: Vector3) -> Vector3:
        p = as_vector3(p)
        return self.mat[:3, :3] @ p + self.mat[:3, 3]

    def vector(self, v: Vector3) -> Vector3:
        v = as_vector3(v)
        return self.mat[:3, :3] @ v

    def normal(self, n: Vector3) -> Vector3:
        """Map a normal with the inverse-transpose (not renormalized)."""
        n = as_vector3(n)
        return self.inv_mat[:3, :3].T @ n

    def ray(self, origin: Vector3, direction: Vector3) -> tuple[Vector3, Vector3]:
        """Map a ray; the direction keeps its scale so hit distances agree."""
        return self.point(origin), self.vector(direction)

    def aabb(self, aabb: "AABB") -> "AABB":
        """Bound the eight transformed corners of ``aabb``."""
        from pathtracer.geometry.aabb import AABB

        lo, hi = aabb.min, aabb.max
        corners = [
            self.point((x, y, z))
            for x in (lo[0], hi[0])
            for y in (lo[1], hi[1])
            for z in (lo[2], hi[2])
        ]
        return AABB(min_of(corners), max_of(corners))

    def __repr__(self) -> str:
        return f"Transform(mat={self.mat.tolist()})"


def _cos_sin(degrees: float) -> tuple[float, float]:
    r = math.radians(degrees)
    return math.cos(r), math.sin(r)


# =============================================================================
# Kernel-side helpers
# =============================================================================


@ti.func
def transform_point(m: tm.mat4, p: vec3) -> vec3:
    """Apply an affine matrix to a point (w = 1)."""
    h = m @ tm.vec4(p.x, p.y, p.z, 1.0)
    return vec3(h.x, h.y, h.z)


@ti.func
def transform_vector(m: tm.mat4, v: vec3) -> vec3:
    """Apply an affine matrix to a direction (w = 0)."""
    h = m @ tm.vec4(v.x, v.y, v.z, 0.0)
    return vec3(h.x, h.y, h.z)


@ti.func
def transform_normal(inv_m: tm.mat4, n: vec3) -> vec3:
    """Map a normal using the transpose of the inverse matrix."""
    h = inv_m.transpose() @ tm.vec4(n.x, n.y, n.z, 0.0)
    return vec3(h.x, h.y, h.z)
