"""Geometry module for shapes and spatial acceleration.

This module provides geometric primitives and intersection algorithms:

Components:
    aabb: Axis-aligned bounding boxes and the slab test
    shape: Shape base class and kernel type tags
    sphere: Sphere with robust ray-sphere intersection
    rect: Finite rectangle in the local XZ plane
    triangle: Triangle with inverse-distance weighted vertex normals
    bvh: Randomized median-split bounding volume hierarchy

Shapes are Python objects used while building the scene. Their intersection
routines are Taichi functions (@ti.func) run against the packed scene data.
"""

from .aabb import AABB, AABB_EPSILON, hit_aabb, merge_all
from .bvh import BVH, BVHBranch, BVHLeaf
from .rect import Rect, hit_rect
from .shape import Shape, ShapeType
from .sphere import Sphere, hit_sphere
from .triangle import Triangle, hit_triangle, interpolate_normal, triangles_from_arrays

__all__ = [
    "AABB",
    "AABB_EPSILON",
    "hit_aabb",
    "merge_all",
    "Shape",
    "ShapeType",
    "Sphere",
    "hit_sphere",
    "Rect",
    "hit_rect",
    "Triangle",
    "hit_triangle",
    "interpolate_normal",
    "triangles_from_arrays",
    "BVH",
    "BVHLeaf",
    "BVHBranch",
]
