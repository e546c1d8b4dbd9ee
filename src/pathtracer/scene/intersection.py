"""Scene-level ray intersection on the packed scene data.

The scene graph is flattened by ``pathtracer.scene.manager`` into the
Structure of Arrays fields below:

- shape tables per shape type (sphere centers and radii, rect half extents,
  triangle vertices and vertex normals)
- a primitive table binding a shape slot to a material slot and, for
  transformed primitives, a transform slot
- object-to-world matrices and their inverses
- BVH nodes in pre-order. A node with a primitive index is a leaf; any other
  node is a branch with a world-space box and the index one past the end of
  its subtree.

Top-level primitives are stored as one-node subtrees, so a flat primitive
list and a BVH are walked by the same loop. The walk keeps the closest hit
found so far and uses its ``t`` as the upper bound for everything after it,
so boxes beyond the current hit are skipped.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import intersect_scene
    >>> # Use intersect_scene within a Taichi kernel after a Scene upload
"""

from dataclasses import dataclass, field

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Intersection, make_miss
from pathtracer.core.transform import transform_normal, transform_point, transform_vector
from pathtracer.geometry.aabb import hit_aabb
from pathtracer.geometry.rect import hit_rect
from pathtracer.geometry.shape import ShapeType
from pathtracer.geometry.sphere import hit_sphere
from pathtracer.geometry.triangle import hit_triangle

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The ray parameter of the closest hit. Only valid if hit == 1.
        wo: Unit direction back toward the ray origin.
        point: World-space hit position.
        normal: World-space unit normal, not flipped toward the ray.
        material_id: Material slot of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    wo: vec3
    point: vec3
    normal: vec3
    material_id: ti.i32


# Maximum number of shapes of each type
MAX_SPHERES = 1024
MAX_RECTS = 1024
MAX_TRIANGLES = 65536
MAX_PRIMITIVES = MAX_SPHERES + MAX_RECTS + MAX_TRIANGLES
# A binary tree over n leaves has n - 1 branches
MAX_NODES = 2 * MAX_PRIMITIVES
MAX_TRANSFORMS = 1024

# Default t range of scene queries
T_MIN = 1e-4
T_MAX = 1e10

# Shape storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
rect_half_extents = ti.Vector.field(2, dtype=ti.f32, shape=MAX_RECTS)
triangle_vertices = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_TRIANGLES, 3))
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_TRIANGLES, 3))

# Primitive table
prim_shape_types = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_shape_indices = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_material_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
# -1 for primitives placed directly in world space
prim_transform_ids = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)

transform_mats = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_TRANSFORMS)
transform_inv_mats = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_TRANSFORMS)

# Pre-order node arrays
node_mins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_maxs = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_subtree_ends = ti.field(dtype=ti.i32, shape=MAX_NODES)
# -1 for branches
node_primitives = ti.field(dtype=ti.i32, shape=MAX_NODES)

num_primitives = ti.field(dtype=ti.i32, shape=())
num_nodes = ti.field(dtype=ti.i32, shape=())


@dataclass
class SceneArrays:
    """Host-side copy of the packed scene, one list per field.

    The scene manager fills the lists while walking the scene graph and
    ``upload_scene`` copies them into the fields.
    """

    sphere_centers: list = field(default_factory=list)
    sphere_radii: list = field(default_factory=list)
    rect_half_extents: list = field(default_factory=list)
    triangle_vertices: list = field(default_factory=list)
    triangle_normals: list = field(default_factory=list)
    prim_shape_types: list = field(default_factory=list)
    prim_shape_indices: list = field(default_factory=list)
    prim_material_ids: list = field(default_factory=list)
    prim_transform_ids: list = field(default_factory=list)
    transform_mats: list = field(default_factory=list)
    transform_inv_mats: list = field(default_factory=list)
    node_mins: list = field(default_factory=list)
    node_maxs: list = field(default_factory=list)
    node_subtree_ends: list = field(default_factory=list)
    node_primitives: list = field(default_factory=list)


def _padded(values: list, capacity: int, item_shape: tuple, dtype) -> np.ndarray:
    """Zero-padded array of ``capacity`` items for ``from_numpy``."""
    out = np.zeros((capacity, *item_shape), dtype=dtype)
    if values:
        out[: len(values)] = np.asarray(values, dtype=dtype).reshape((len(values), *item_shape))
    return out


def check_capacity(arrays: SceneArrays) -> None:
    """Raise if the packed scene does not fit the preallocated fields.

    Raises:
        RuntimeError: If any table exceeds its maximum size.
    """
    limits = [
        ("spheres", len(arrays.sphere_radii), MAX_SPHERES),
        ("rects", len(arrays.rect_half_extents), MAX_RECTS),
        ("triangles", len(arrays.triangle_vertices), MAX_TRIANGLES),
        ("primitives", len(arrays.prim_shape_types), MAX_PRIMITIVES),
        ("transforms", len(arrays.transform_mats), MAX_TRANSFORMS),
        ("nodes", len(arrays.node_primitives), MAX_NODES),
    ]
    for name, count, limit in limits:
        if count > limit:
            raise RuntimeError(f"Maximum number of {name} ({limit}) exceeded: {count}")


def upload_scene(arrays: SceneArrays) -> None:
    """Copy a packed scene into the Taichi fields, replacing the previous one.

    Raises:
        RuntimeError: If the scene exceeds a field capacity.
    """
    check_capacity(arrays)
    f32 = np.float32
    i32 = np.int32
    sphere_centers.from_numpy(_padded(arrays.sphere_centers, MAX_SPHERES, (3,), f32))
    sphere_radii.from_numpy(_padded(arrays.sphere_radii, MAX_SPHERES, (), f32))
    rect_half_extents.from_numpy(_padded(arrays.rect_half_extents, MAX_RECTS, (2,), f32))
    triangle_vertices.from_numpy(
        _padded(arrays.triangle_vertices, MAX_TRIANGLES, (3, 3), f32)
    )
    triangle_normals.from_numpy(
        _padded(arrays.triangle_normals, MAX_TRIANGLES, (3, 3), f32)
    )
    prim_shape_types.from_numpy(_padded(arrays.prim_shape_types, MAX_PRIMITIVES, (), i32))
    prim_shape_indices.from_numpy(
        _padded(arrays.prim_shape_indices, MAX_PRIMITIVES, (), i32)
    )
    prim_material_ids.from_numpy(_padded(arrays.prim_material_ids, MAX_PRIMITIVES, (), i32))
    prim_transform_ids.from_numpy(
        _padded(arrays.prim_transform_ids, MAX_PRIMITIVES, (), i32)
    )
    transform_mats.from_numpy(_padded(arrays.transform_mats, MAX_TRANSFORMS, (4, 4), f32))
    transform_inv_mats.from_numpy(
        _padded(arrays.transform_inv_mats, MAX_TRANSFORMS, (4, 4), f32)
    )
    node_mins.from_numpy(_padded(arrays.node_mins, MAX_NODES, (3,), f32))
    node_maxs.from_numpy(_padded(arrays.node_maxs, MAX_NODES, (3,), f32))
    node_subtree_ends.from_numpy(_padded(arrays.node_subtree_ends, MAX_NODES, (), i32))
    node_primitives.from_numpy(_padded(arrays.node_primitives, MAX_NODES, (), i32))
    num_primitives[None] = len(arrays.prim_shape_types)
    num_nodes[None] = len(arrays.node_primitives)


def clear_scene() -> None:
    """Remove every primitive; all rays miss afterwards."""
    num_primitives[None] = 0
    num_nodes[None] = 0


def get_primitive_count() -> int:
    """Get the number of primitives in the uploaded scene."""
    return int(num_primitives[None])


def get_node_count() -> int:
    """Get the number of flattened nodes in the uploaded scene."""
    return int(num_nodes[None])


@ti.func
def _hit_shape(
    prim: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> Intersection:
    """Intersect the shape of a primitive in its own space."""
    shape_type = prim_shape_types[prim]
    idx = prim_shape_indices[prim]
    rec = make_miss()
    if shape_type == int(ShapeType.SPHERE):
        rec = hit_sphere(
            ray_origin, ray_direction, sphere_centers[idx], sphere_radii[idx], t_min, t_max
        )
    elif shape_type == int(ShapeType.RECT):
        half = rect_half_extents[idx]
        rec = hit_rect(ray_origin, ray_direction, half.x, half.y, t_min, t_max)
    elif shape_type == int(ShapeType.TRIANGLE):
        rec = hit_triangle(
            ray_origin,
            ray_direction,
            triangle_vertices[idx, 0],
            triangle_vertices[idx, 1],
            triangle_vertices[idx, 2],
            triangle_normals[idx, 0],
            triangle_normals[idx, 1],
            triangle_normals[idx, 2],
            t_min,
            t_max,
        )
    return rec


@ti.func
def hit_primitive(
    prim: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> Intersection:
    """Intersect one primitive, mapping the ray through its transform.

    The object-space direction is not renormalized, so ``t`` is the same in
    both spaces and the ``(t_min, t_max)`` bounds carry over unchanged.
    """
    xform = prim_transform_ids[prim]
    rec = make_miss()
    if xform < 0:
        rec = _hit_shape(prim, ray_origin, ray_direction, t_min, t_max)
    else:
        inv = transform_inv_mats[xform]
        local_origin = transform_point(inv, ray_origin)
        local_direction = transform_vector(inv, ray_direction)
        rec = _hit_shape(prim, local_origin, local_direction, t_min, t_max)
        if rec.hit == 1:
            rec.point = ray_origin + rec.t * ray_direction
            rec.normal = tm.normalize(transform_normal(inv, rec.normal))
            rec.wo = -tm.normalize(ray_direction)
    return rec


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        wo=vec3(0.0, 0.0, 0.0),
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def to_intersection(rec: SceneHitRecord) -> Intersection:
    """Drop the material slot from a scene hit."""
    return Intersection(hit=rec.hit, t=rec.t, wo=rec.wo, point=rec.point, normal=rec.normal)


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the closest hit along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be unit).
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    n = num_nodes[None]
    i = 0
    while i < n:
        prim = node_primitives[i]
        if prim >= 0:
            rec = hit_primitive(prim, ray_origin, ray_direction, t_min, closest_t)
            if rec.hit == 1:
                closest_t = rec.t
                result = SceneHitRecord(
                    hit=1,
                    t=rec.t,
                    wo=rec.wo,
                    point=rec.point,
                    normal=rec.normal,
                    material_id=prim_material_ids[prim],
                )
            i += 1
        elif hit_aabb(
            ray_origin, ray_direction, node_mins[i], node_maxs[i], t_min, closest_t
        ) == 1:
            i += 1
        else:
            i = node_subtree_ends[i]

    return result

