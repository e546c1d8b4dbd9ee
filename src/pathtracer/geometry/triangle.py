"""Triangle primitive with per-vertex normals.

Intersection follows Moller-Trumbore. Near-parallel rays (``|det| < 1e-6``)
never hit, and both faces are hittable.

The shading normal is an inverse-distance weighted blend of the three vertex
normals: each vertex contributes ``n_i / |p - v_i|``, and the sum is
normalized. This is not the textbook barycentric interpolation and gives
visibly different shading on coarse meshes. A hit landing exactly on a vertex
takes that vertex's normal.

Meshes come from an external loader as flat arrays; ``triangles_from_arrays``
turns them into Triangle objects.

Example:
    >>> from pathtracer.geometry.triangle import Triangle
    >>> tri = Triangle(((0, 0, 0), (1, 0, 0), (0, 1, 0)))
    >>> tri.normals[0]
    array([0., 0., 1.])
"""

from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, as_vector3, max_of, min_of, normalize
from pathtracer.core.ray import Intersection, make_hit, make_miss
from pathtracer.geometry.aabb import AABB, AABB_EPSILON
from pathtracer.geometry.shape import Shape, ShapeType

vec3 = tm.vec3

# Determinant threshold below which a ray is treated as parallel
DET_EPSILON = 1e-6
# Distance under which a hit is considered to lie on a vertex
VERTEX_EPSILON = 1e-8


class Triangle(Shape):
    """Triangle given by three positions and three vertex normals.

    Attributes:
        positions: Tuple of three vertex positions.
        normals: Tuple of three unit vertex normals. When omitted, all three
            are the face normal ``normalize((v1 - v0) x (v2 - v0))``.
    """

    shape_type = ShapeType.TRIANGLE

    def __init__(
        self,
        positions: Sequence[Vector3],
        normals: Sequence[Vector3] | None = None,
    ) -> None:
        if len(positions) != 3:
            raise ValueError(f"A triangle needs 3 positions, got {len(positions)}")
        self.positions = tuple(as_vector3(p) for p in positions)
        if normals is None:
            v0, v1, v2 = self.positions
            face = normalize(np.cross(v1 - v0, v2 - v0))
            self.normals = (face, face.copy(), face.copy())
        else:
            if len(normals) != 3:
                raise ValueError(f"A triangle needs 3 normals, got {len(normals)}")
            self.normals = tuple(normalize(as_vector3(n)) for n in normals)
        super().__init__(
            AABB(
                min_of(self.positions) - AABB_EPSILON,
                max_of(self.positions) + AABB_EPSILON,
            )
        )

    def __repr__(self) -> str:
        return f"Triangle(positions={[p.tolist() for p in self.positions]})"


def triangles_from_arrays(positions, normals=None, indices=None) -> list[Triangle]:
    """Build triangles from mesh arrays as produced by an OBJ loader.

    Args:
        positions: Vertex positions, flat (3 floats per vertex) or shaped (N, 3).
        normals: Vertex normals indexed like ``positions``, or None to use
            face normals.
        indices: Vertex indices grouped three at a time. When None, the
            vertices are taken in order.

    Returns:
        One Triangle per index triple.

    Raises:
        ValueError: If the index count is not a multiple of three or an index
            is out of range.
    """
    pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    nrm = None
    if normals is not None and len(normals) > 0:
        nrm = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
        if nrm.shape[0] != pos.shape[0]:
            raise ValueError(
                f"Got {nrm.shape[0]} normals for {pos.shape[0]} positions"
            )
    if indices is None:
        idx = np.arange(pos.shape[0])
    else:
        idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    if idx.size % 3 != 0:
        raise ValueError(f"Index count {idx.size} is not a multiple of 3")
    if idx.size and (idx.min() < 0 or idx.max() >= pos.shape[0]):
        raise ValueError("Triangle index out of range")

    triangles = []
    for face in idx.reshape(-1, 3):
        face_normals = None if nrm is None else [nrm[i] for i in face]
        triangles.append(Triangle([pos[i] for i in face], face_normals))
    return triangles


@ti.func
def interpolate_normal(
    point: vec3,
    v0: vec3,
    v1: vec3,
    v2: vec3,
    n0: vec3,
    n1: vec3,
    n2: vec3,
) -> vec3:
    """Inverse-distance weighted vertex normal at ``point``."""
    d0 = tm.length(point - v0)
    d1 = tm.length(point - v1)
    d2 = tm.length(point - v2)
    normal = n0
    if d0 < VERTEX_EPSILON:
        normal = n0
    elif d1 < VERTEX_EPSILON:
        normal = n1
    elif d2 < VERTEX_EPSILON:
        normal = n2
    else:
        normal = tm.normalize(n0 / d0 + n1 / d1 + n2 / d2)
    return normal


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    v0: vec3,
    v1: vec3,
    v2: vec3,
    n0: vec3,
    n1: vec3,
    n2: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> Intersection:
    """Moller-Trumbore ray/triangle intersection."""
    result = make_miss()
    e1 = v1 - v0
    e2 = v2 - v0
    pvec = tm.cross(ray_direction, e2)
    det = tm.dot(e1, pvec)
    if ti.abs(det) >= DET_EPSILON:
        inv_det = 1.0 / det
        tvec = ray_origin - v0
        u = tm.dot(tvec, pvec) * inv_det
        qvec = tm.cross(tvec, e1)
        v = tm.dot(ray_direction, qvec) * inv_det
        t = tm.dot(e2, qvec) * inv_det
        inside = u >= 0.0 and u <= 1.0 and v >= 0.0 and v <= 1.0 and u + v <= 1.0
        if inside and t >= 0.0 and t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            normal = interpolate_normal(point, v0, v1, v2, n0, n1, n2)
            result = make_hit(t, ray_direction, point, normal)
    return result
