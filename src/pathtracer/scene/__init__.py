"""Scene module: primitives, scene upload and ray-scene queries.

Components:
    primitive: Shape/material bindings and transformed primitives
    intersection: Scene fields, capacities and the closest-hit kernel
    manager: Scene container that packs a primitive graph into the fields
    environment: Background radiance (constant color or equirectangular image)
    cornell_box: Cornell box scene factory

Scene data is organized for Taichi kernels:
    - Structure-of-Arrays fields per shape type
    - A pre-order node array with subtree end indices for stackless traversal
    - One 4x4 transform pair per transformed primitive
"""

from .cornell_box import (
    BOX_SIZE,
    CornellBoxParams,
    create_cornell_box_primitives,
    create_cornell_box_scene,
    create_cornell_camera,
    get_light_center,
)
from .environment import (
    load_environment_image,
    sample_environment,
    set_environment_color,
    set_environment_image,
    sphere_uv,
)
from .intersection import (
    MAX_NODES,
    MAX_PRIMITIVES,
    MAX_RECTS,
    MAX_SPHERES,
    MAX_TRANSFORMS,
    MAX_TRIANGLES,
    T_MAX,
    T_MIN,
    SceneHitRecord,
    clear_scene,
    get_node_count,
    get_primitive_count,
    intersect_scene,
    to_intersection,
)
from .manager import Scene, SurfaceHit, clear_active_scene
from .primitive import GeometricPrimitive, TransformedPrimitive

__all__ = [
    # Primitives
    "GeometricPrimitive",
    "TransformedPrimitive",
    # Scene container
    "Scene",
    "SurfaceHit",
    "clear_active_scene",
    # Intersection fields and kernels
    "SceneHitRecord",
    "intersect_scene",
    "to_intersection",
    "clear_scene",
    "get_primitive_count",
    "get_node_count",
    "MAX_SPHERES",
    "MAX_RECTS",
    "MAX_TRIANGLES",
    "MAX_PRIMITIVES",
    "MAX_NODES",
    "MAX_TRANSFORMS",
    "T_MIN",
    "T_MAX",
    # Environment
    "set_environment_color",
    "set_environment_image",
    "load_environment_image",
    "sample_environment",
    "sphere_uv",
    # Cornell box
    "CornellBoxParams",
    "create_cornell_box_scene",
    "create_cornell_box_primitives",
    "create_cornell_camera",
    "get_light_center",
    "BOX_SIZE",
]
