"""Cornell box scene configuration.

The box is built from 10 x 10 rectangles placed with transforms:
- Floor at y = 0, ceiling at y = 10 and far wall at z = 5 (white)
- Left wall at x = -5 (green) and right wall at x = 5 (red)
- A 3 x 3 emissive rectangle just below the ceiling
- A diffuse grey sphere of radius 2.5 resting on the floor

The front (z = -5) is open; the camera sits at (0, 5, -14) looking at the
center of the box with a 60 degree vertical field of view, so the corners of
the image look past the box into the background.

Note that the camera's right vector is ``front x up``, which points toward
-x here: the red wall at x = 5 appears on the left of the image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import setup_camera
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> scene.num_primitives
    7
"""

from dataclasses import dataclass

import numpy as np

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.core.transform import Transform
from pathtracer.geometry.bvh import BVH
from pathtracer.geometry.rect import Rect
from pathtracer.geometry.sphere import Sphere
from pathtracer.materials.illuminant import IlluminantMaterial
from pathtracer.materials.lambert import LambertMaterial
from pathtracer.scene.manager import Scene
from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

# =============================================================================
# Cornell Box Constants
# =============================================================================

BOX_SIZE = 10.0

WHITE_WALL_REFLECTANCE = (0.95, 0.95, 0.95)
RED_WALL_REFLECTANCE = (0.95, 0.1, 0.1)
GREEN_WALL_REFLECTANCE = (0.1, 0.95, 0.1)
LIGHT_RADIANCE = (1.2, 1.2, 1.2)
SPHERE_REFLECTANCE = (0.3, 0.3, 0.3)

# Kept just below the ceiling so the two never coincide
LIGHT_HEIGHT = 9.999


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    Attributes:
        light_radiance: Emitted radiance of the ceiling light.
        light_size: Side length of the square light.
        left_wall_color: Reflectance of the wall at x = -5.
        right_wall_color: Reflectance of the wall at x = 5.
        white_wall_color: Reflectance of floor, ceiling and far wall.
        sphere_color: Reflectance of the sphere.
        sphere_radius: Radius of the sphere resting on the floor.
        aspect_ratio: Camera aspect ratio (image width / height).
        use_bvh: Wrap the primitives in a BVH instead of a flat list.
        seed: Seed of the BVH build when ``use_bvh`` is set.

    Example:
        >>> params = CornellBoxParams(light_radiance=(4.0, 3.6, 3.0))
        >>> params.light_size
        3.0
    """

    light_radiance: tuple[float, float, float] = LIGHT_RADIANCE
    light_size: float = 3.0
    left_wall_color: tuple[float, float, float] = GREEN_WALL_REFLECTANCE
    right_wall_color: tuple[float, float, float] = RED_WALL_REFLECTANCE
    white_wall_color: tuple[float, float, float] = WHITE_WALL_REFLECTANCE
    sphere_color: tuple[float, float, float] = SPHERE_REFLECTANCE
    sphere_radius: float = 2.5
    aspect_ratio: float = 1.0
    use_bvh: bool = False
    seed: int | None = None


def _wall(material, transform: Transform | None) -> GeometricPrimitive | TransformedPrimitive:
    primitive = GeometricPrimitive(Rect(BOX_SIZE, BOX_SIZE), material)
    if transform is None:
        return primitive
    return TransformedPrimitive(primitive, transform)


def create_cornell_box_primitives(params: CornellBoxParams | None = None) -> list:
    """The primitives of the box, light and sphere, without uploading them."""
    params = params or CornellBoxParams()
    half = 0.5 * BOX_SIZE

    white = LambertMaterial(params.white_wall_color)
    left = LambertMaterial(params.left_wall_color)
    right = LambertMaterial(params.right_wall_color)
    light = IlluminantMaterial(params.light_radiance)
    sphere = LambertMaterial(params.sphere_color)

    primitives = [
        _wall(white, None),
        _wall(white, Transform.rotate_x(-180.0).then(Transform.translate(0.0, BOX_SIZE, 0.0))),
        _wall(white, Transform.rotate_x(-90.0).then(Transform.translate(0.0, half, half))),
        _wall(left, Transform.rotate_z(-90.0).then(Transform.translate(-half, half, 0.0))),
        _wall(right, Transform.rotate_z(90.0).then(Transform.translate(half, half, 0.0))),
        TransformedPrimitive(
            GeometricPrimitive(Rect(params.light_size, params.light_size), light),
            Transform.rotate_x(-180.0).then(Transform.translate(0.0, LIGHT_HEIGHT, 0.0)),
        ),
        GeometricPrimitive(
            Sphere((0.0, params.sphere_radius, 0.0), params.sphere_radius), sphere
        ),
    ]
    return primitives


def create_cornell_camera(aspect_ratio: float = 1.0) -> PinholeCamera:
    return PinholeCamera.look_at(
        origin=(0.0, 5.0, -14.0),
        target=(0.0, 5.0, 0.0),
        up=(0.0, 1.0, 0.0),
        vfov=60.0,
        aspect_ratio=aspect_ratio,
    )


def create_cornell_box_scene(
    params: CornellBoxParams | None = None,
) -> tuple[Scene, PinholeCamera]:
    """Create and upload the Cornell box scene.

    Args:
        params: Optional scene parameters; defaults to CornellBoxParams().

    Returns:
        ``(scene, camera)``; the scene is already the active one. The camera
        still has to be passed to ``setup_camera``.
    """
    params = params or CornellBoxParams()
    primitives = create_cornell_box_primitives(params)
    if params.use_bvh:
        primitives = [BVH(primitives, rng=np.random.default_rng(params.seed))]
    return Scene(primitives), create_cornell_camera(params.aspect_ratio)


def get_light_center() -> tuple[float, float, float]:
    """World-space center of the ceiling light."""
    return (0.0, LIGHT_HEIGHT, 0.0)
