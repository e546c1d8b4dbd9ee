"""Scene container: packs a primitive graph into the kernel fields.

A Scene takes the top-level primitives (geometric, transformed or BVH, in
any nesting), assigns one material slot per distinct material instance,
composes transforms down to the leaves and writes everything into the
fields of ``pathtracer.scene.intersection`` and the material table.

The kernel fields are process-wide, so exactly one scene is active at a
time. ``Scene.upload`` makes a scene active; ``Scene.hit`` re-uploads on
demand if another scene took over in the meantime.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry import Sphere
    >>> from pathtracer.materials import LambertMaterial
    >>> from pathtracer.scene.manager import Scene
    >>> from pathtracer.scene.primitive import GeometricPrimitive
    >>> grey = LambertMaterial((0.3, 0.3, 0.3))
    >>> scene = Scene([GeometricPrimitive(Sphere((0, 2.5, 0), 2.5), grey)])
    >>> surface, material = scene.hit((0, 2.5, -10), (0, 0, 1))
    >>> round(surface.t, 3)
    7.5
"""

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.linalg import Vector3, as_vector3
from pathtracer.core.transform import Transform
from pathtracer.geometry.aabb import AABB, merge_all
from pathtracer.geometry.bvh import BVH, BVHBranch, BVHLeaf
from pathtracer.geometry.rect import Rect
from pathtracer.geometry.sphere import Sphere
from pathtracer.geometry.triangle import Triangle
from pathtracer.materials.base import Material
from pathtracer.materials.registry import add_material, clear_materials
from pathtracer.scene.intersection import (
    T_MAX,
    T_MIN,
    SceneArrays,
    check_capacity,
    clear_scene,
    intersect_scene,
    upload_scene,
)
from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Token of the scene whose data is in the fields
_scene_tokens = itertools.count()
_active_token: int | None = None


@dataclass
class SurfaceHit:
    """Host-side copy of a closest hit.

    Attributes:
        t: Ray parameter of the hit.
        wo: Unit direction back toward the ray origin.
        point: World-space hit position.
        normal: World-space unit normal, not flipped toward the ray.
    """

    t: float
    wo: Vector3
    point: Vector3
    normal: Vector3


# Single-ray query results, written by _query_closest_hit
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_wo = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _query_closest_hit(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    rec = intersect_scene(vec3(ox, oy, oz), vec3(dx, dy, dz), t_min, t_max)
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_wo[None] = rec.wo
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_material[None] = rec.material_id


def clear_active_scene() -> None:
    """Empty the scene and material fields; no scene is active afterwards."""
    global _active_token
    clear_scene()
    clear_materials()
    _active_token = None


class Scene:
    """A fully constructed, immutable scene.

    Args:
        primitives: Top-level primitives. Pass a single BVH in a list for an
            accelerated scene, or the primitives themselves for a linear scan.
        upload: Write the scene into the kernel fields right away.

    Raises:
        ValueError: If a primitive or shape type is not supported.
        RuntimeError: If the scene exceeds a field capacity.
    """

    def __init__(self, primitives: Sequence, upload: bool = True) -> None:
        self.primitives = list(primitives)
        self._token = next(_scene_tokens)
        self.materials: list[Material] = []
        self._material_slots: dict[int, int] = {}
        self._transform_slots: dict[int, int] = {}
        # Keeps composed transforms alive so their ids stay unique
        self._transforms: list[Transform] = []
        self._arrays = SceneArrays()
        for primitive in self.primitives:
            self._pack(primitive, None)
        check_capacity(self._arrays)
        logger.debug(
            "Packed scene: %d primitives, %d nodes, %d materials, %d transforms",
            self.num_primitives,
            self.num_nodes,
            len(self.materials),
            len(self._arrays.transform_mats),
        )
        if upload:
            self.upload()

    # =========================================================================
    # Packing
    # =========================================================================

    @property
    def num_primitives(self) -> int:
        return len(self._arrays.prim_shape_types)

    @property
    def num_nodes(self) -> int:
        return len(self._arrays.node_primitives)

    def _material_slot(self, material: Material) -> int:
        key = id(material)
        if key not in self._material_slots:
            self._material_slots[key] = len(self.materials)
            self.materials.append(material)
        return self._material_slots[key]

    def _transform_slot(self, transform: Transform | None) -> int:
        if transform is None:
            return -1
        key = id(transform)
        if key not in self._transform_slots:
            self._transform_slots[key] = len(self._transforms)
            self._transforms.append(transform)
            self._arrays.transform_mats.append(transform.mat)
            self._arrays.transform_inv_mats.append(transform.inv_mat)
        return self._transform_slots[key]

    def _pack_shape(self, shape) -> int:
        a = self._arrays
        if isinstance(shape, Sphere):
            a.sphere_centers.append(shape.center)
            a.sphere_radii.append(shape.radius)
            return len(a.sphere_radii) - 1
        if isinstance(shape, Rect):
            a.rect_half_extents.append((0.5 * shape.width, 0.5 * shape.height))
            return len(a.rect_half_extents) - 1
        if isinstance(shape, Triangle):
            a.triangle_vertices.append(np.stack(shape.positions))
            a.triangle_normals.append(np.stack(shape.normals))
            return len(a.triangle_vertices) - 1
        raise ValueError(f"Unsupported shape type: {type(shape).__name__}")

    def _push_node(self, bounds: AABB, primitive_index: int) -> int:
        a = self._arrays
        index = len(a.node_primitives)
        a.node_mins.append(bounds.min)
        a.node_maxs.append(bounds.max)
        a.node_subtree_ends.append(index + 1)
        a.node_primitives.append(primitive_index)
        return index

    def _pack(self, primitive, transform: Transform | None) -> None:
        """Append a primitive (and anything nested in it) to the arrays.

        ``transform`` is the accumulated object-to-world transform of the
        enclosing TransformedPrimitives, or None in world space.
        """
        if isinstance(primitive, GeometricPrimitive):
            a = self._arrays
            shape = primitive.shape
            shape_index = self._pack_shape(shape)
            prim_index = len(a.prim_shape_types)
            a.prim_shape_types.append(int(shape.shape_type))
            a.prim_shape_indices.append(shape_index)
            a.prim_material_ids.append(self._material_slot(primitive.material))
            a.prim_transform_ids.append(self._transform_slot(transform))
            bounds = shape.aabb() if transform is None else transform.aabb(shape.aabb())
            self._push_node(bounds, prim_index)
        elif isinstance(primitive, TransformedPrimitive):
            composed = (
                primitive.transform
                if transform is None
                else primitive.transform.then(transform)
            )
            self._pack(primitive.primitive, composed)
        elif isinstance(primitive, BVH):
            self._pack_bvh_node(primitive.root, transform)
        else:
            raise ValueError(f"Unsupported primitive type: {type(primitive).__name__}")

    def _pack_bvh_node(self, node, transform: Transform | None) -> None:
        if isinstance(node, BVHLeaf):
            self._pack(node.primitive, transform)
            return
        if not isinstance(node, BVHBranch):
            raise ValueError(f"Unsupported BVH node type: {type(node).__name__}")
        bounds = node.aabb() if transform is None else transform.aabb(node.aabb())
        index = self._push_node(bounds, -1)
        self._pack_bvh_node(node.left, transform)
        self._pack_bvh_node(node.right, transform)
        self._arrays.node_subtree_ends[index] = len(self._arrays.node_primitives)

    # =========================================================================
    # Queries
    # =========================================================================

    def aabb(self) -> AABB:
        """World-space box of all top-level primitives.

        Raises:
            ValueError: If the scene is empty.
        """
        if not self.primitives:
            raise ValueError("An empty scene has no bounding box")
        return merge_all(p.aabb() for p in self.primitives)

    def upload(self) -> None:
        """Make this scene the one the kernels render."""
        global _active_token
        clear_materials()
        for material in self.materials:
            add_material(material)
        upload_scene(self._arrays)
        _active_token = self._token
        logger.info(
            "Uploaded scene: %d primitives, %d nodes, %d materials",
            self.num_primitives,
            self.num_nodes,
            len(self.materials),
        )

    def is_active(self) -> bool:
        return _active_token == self._token

    def hit(
        self,
        origin: Vector3,
        direction: Vector3,
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> tuple[SurfaceHit, Material] | None:
        """Closest hit along a ray, evaluated by the kernels.

        Returns:
            ``(SurfaceHit, material)`` for the closest hit in
            ``(t_min, t_max)``, or None if the ray misses everything.
        """
        if not self.is_active():
            self.upload()
        o = as_vector3(origin)
        d = as_vector3(direction)
        _query_closest_hit(*map(float, o), *map(float, d), float(t_min), float(t_max))
        if _query_hit[None] == 0:
            return None
        surface = SurfaceHit(
            t=float(_query_t[None]),
            wo=_query_wo.to_numpy().astype(np.float64),
            point=_query_point.to_numpy().astype(np.float64),
            normal=_query_normal.to_numpy().astype(np.float64),
        )
        return surface, self.materials[_query_material[None]]

    def __repr__(self) -> str:
        return (
            f"Scene(primitives={len(self.primitives)}, "
            f"num_primitives={self.num_primitives}, nodes={self.num_nodes})"
        )
