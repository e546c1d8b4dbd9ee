"""Construction-time vector and matrix helpers.

Scene construction (transforms, bounding boxes, BVH building) runs in Python
on float64 NumPy arrays. A ``Vector3`` is an array of shape (3,) and a
``Matrix4`` an array of shape (4, 4). Kernel-side code uses ``taichi.math``
vectors instead; see ``pathtracer.core.ray``.

Example:
    >>> from pathtracer.core.linalg import vec3, normalize, vector_min
    >>> normalize(vec3(3.0, 0.0, 4.0))
    array([0.6, 0. , 0.8])
    >>> vector_min(vec3(1, 5, 2), vec3(4, 0, 3))
    array([1., 0., 2.])
"""

from collections.abc import Iterable, Sequence

import numpy as np
import numpy.typing as npt

Vector3 = npt.NDArray[np.float64]
Matrix4 = npt.NDArray[np.float64]


def vec3(x: float, y: float, z: float) -> Vector3:
    """Create a float64 3-vector."""
    return np.array([x, y, z], dtype=np.float64)


def as_vector3(values: Sequence[float] | Vector3) -> Vector3:
    """Convert a tuple, list or array into a float64 3-vector.

    Raises:
        ValueError: If ``values`` does not hold exactly three components.
    """
    v = np.asarray(values, dtype=np.float64).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"Expected 3 components, got {v.shape[0]}")
    return v.copy()


def length(v: Vector3) -> float:
    return float(np.sqrt(np.dot(v, v)))


def normalize(v: Vector3) -> Vector3:
    """Return ``v`` scaled to unit length.

    A zero vector is returned unchanged rather than producing NaNs.
    """
    n = length(v)
    if n == 0.0:
        return np.array(v, dtype=np.float64)
    return v / n


def vector_min(a: Vector3, b: Vector3) -> Vector3:
    """Component-wise minimum."""
    return np.minimum(a, b)


def vector_max(a: Vector3, b: Vector3) -> Vector3:
    """Component-wise maximum."""
    return np.maximum(a, b)


def min_of(points: Iterable[Vector3]) -> Vector3:
    return np.min(np.stack(list(points)), axis=0)


def max_of(points: Iterable[Vector3]) -> Vector3:
    return np.max(np.stack(list(points)), axis=0)


def identity4() -> Matrix4:
    return np.eye(4, dtype=np.float64)


def matrix4(rows: Sequence[Sequence[float]]) -> Matrix4:
    """Build a 4x4 matrix from row-major nested sequences."""
    m = np.array(rows, dtype=np.float64)
    if m.shape != (4, 4):
        raise ValueError(f"Expected a 4x4 matrix, got shape {m.shape}")
    return m
