"""Tests for scene packing and closest-hit queries.

Tests cover:
- Closest hit across several primitives
- Transformed and nested transformed primitives
- Material slot sharing
- Active scene tracking and re-upload
- Unsupported primitives and capacity limits
"""

import numpy as np
import pytest


def _grey():
    from pathtracer.materials import LambertMaterial

    return LambertMaterial((0.5, 0.5, 0.5))


class TestClosestHit:
    """Tests for Scene.hit."""

    def test_sphere(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        material = _grey()
        scene = Scene([GeometricPrimitive(Sphere((0.0, 2.5, 0.0), 2.5), material)])
        surface, hit_material = scene.hit((0.0, 2.5, -10.0), (0.0, 0.0, 1.0))
        assert surface.t == pytest.approx(7.5, rel=1e-5)
        np.testing.assert_allclose(surface.point, [0.0, 2.5, -2.5], atol=1e-5)
        np.testing.assert_allclose(surface.normal, [0.0, 0.0, -1.0], atol=1e-5)
        np.testing.assert_allclose(surface.wo, [0.0, 0.0, -1.0], atol=1e-6)
        assert hit_material is material

    def test_closest_of_several(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials import LambertMaterial
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        near = LambertMaterial((1.0, 0.0, 0.0))
        far = LambertMaterial((0.0, 1.0, 0.0))
        # Listed far first so the scan order differs from depth order
        scene = Scene(
            [
                GeometricPrimitive(Sphere((0.0, 0.0, 10.0), 1.0), far),
                GeometricPrimitive(Sphere((0.0, 0.0, 4.0), 1.0), near),
            ]
        )
        surface, material = scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert material is near
        assert surface.t == pytest.approx(3.0, rel=1e-5)

    def test_miss_and_t_range(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        scene = Scene([GeometricPrimitive(Sphere((0.0, 0.0, 5.0), 1.0), _grey())])
        assert scene.hit((0.0, 0.0, 0.0), (0.0, 1.0, 0.0)) is None
        assert scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_max=3.0) is None
        # Near root excluded, far root still in range
        surface, _ = scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_min=5.0)
        assert surface.t == pytest.approx(6.0, rel=1e-5)

    def test_small_sphere_far_away(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        scene = Scene([GeometricPrimitive(Sphere((0.0, 0.0, 10000.0), 0.5), _grey())])
        result = scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert result is not None
        surface, _ = result
        assert surface.t == pytest.approx(9999.5, abs=1e-2)
        np.testing.assert_allclose(surface.normal, [0.0, 0.0, -1.0], atol=1e-3)

    def test_empty_scene_misses(self):
        from pathtracer.scene.manager import Scene

        scene = Scene([])
        assert scene.num_primitives == 0
        assert scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)) is None
        with pytest.raises(ValueError):
            scene.aabb()


class TestTransforms:
    """Tests for transformed primitives."""

    def test_rotated_wall_normal(self):
        """rotate_x(-90) turns the +Y rect normal to -Z."""
        from pathtracer.core.transform import Transform
        from pathtracer.geometry.rect import Rect
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

        wall = TransformedPrimitive(
            GeometricPrimitive(Rect(10.0, 10.0), _grey()),
            Transform.rotate_x(-90.0).then(Transform.translate(0.0, 5.0, 5.0)),
        )
        scene = Scene([wall])
        surface, _ = scene.hit((1.0, 3.0, 0.0), (0.0, 0.0, 1.0))
        assert surface.t == pytest.approx(5.0, rel=1e-5)
        np.testing.assert_allclose(surface.point, [1.0, 3.0, 5.0], atol=1e-5)
        np.testing.assert_allclose(surface.normal, [0.0, 0.0, -1.0], atol=1e-5)
        # Outside the 10 x 10 extent
        assert scene.hit((0.0, 10.5, 0.0), (0.0, 0.0, 1.0)) is None

    def test_nested_transforms_compose(self):
        from pathtracer.core.transform import Transform
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

        inner = TransformedPrimitive(
            GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), _grey()),
            Transform.translate(1.0, 0.0, 0.0),
        )
        outer = TransformedPrimitive(inner, Transform.translate(0.0, 2.0, 0.0))
        scene = Scene([outer])
        surface, _ = scene.hit((1.0, 2.0, -10.0), (0.0, 0.0, 1.0))
        assert surface.t == pytest.approx(9.0, rel=1e-5)
        np.testing.assert_allclose(surface.point, [1.0, 2.0, -1.0], atol=1e-5)

    def test_scaled_sphere(self):
        """A sphere scaled by 2 along x is hit at x = -2 with normal -x."""
        from pathtracer.core.transform import Transform
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

        scene = Scene(
            [
                TransformedPrimitive(
                    GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), _grey()),
                    Transform.scale(2.0, 1.0, 1.0),
                )
            ]
        )
        surface, _ = scene.hit((-10.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert surface.t == pytest.approx(8.0, rel=1e-5)
        np.testing.assert_allclose(surface.normal, [-1.0, 0.0, 0.0], atol=1e-5)

        # Off-axis the normal is skewed by the inverse transpose
        surface, _ = scene.hit((-10.0, 0.5, 0.0), (1.0, 0.0, 0.0))
        x = -2.0 * np.sqrt(0.75)
        expected = np.array([x / 4.0, 0.5, 0.0])
        expected /= np.linalg.norm(expected)
        np.testing.assert_allclose(surface.point, [x, 0.5, 0.0], atol=1e-4)
        np.testing.assert_allclose(surface.normal, expected, atol=1e-4)

    def test_transformed_aabb(self):
        from pathtracer.core.transform import Transform
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive, TransformedPrimitive

        scene = Scene(
            [
                GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), _grey()),
                TransformedPrimitive(
                    GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), _grey()),
                    Transform.translate(5.0, 0.0, 0.0),
                ),
            ],
            upload=False,
        )
        box = scene.aabb()
        np.testing.assert_allclose(box.min, [-1.0, -1.0, -1.0], atol=1e-9)
        np.testing.assert_allclose(box.max, [6.0, 1.0, 1.0], atol=1e-9)


class TestMaterials:
    """Tests for material slot assignment."""

    def test_shared_material_stored_once(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.materials import get_material_count
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        material = _grey()
        prims = [
            GeometricPrimitive(Sphere((float(i) * 3.0, 0.0, 0.0), 1.0), material)
            for i in range(4)
        ]
        scene = Scene(prims)
        assert scene.materials == [material]
        assert get_material_count() == 1

    def test_equal_materials_get_separate_slots(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        scene = Scene(
            [
                GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), _grey()),
                GeometricPrimitive(Sphere((3.0, 0.0, 0.0), 1.0), _grey()),
            ],
            upload=False,
        )
        assert len(scene.materials) == 2


class TestActiveScene:
    """Tests for upload and re-upload between scenes."""

    def test_hit_reuploads_inactive_scene(self):
        from pathtracer.geometry.rect import Rect
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        spheres = Scene([GeometricPrimitive(Sphere((0.0, 0.0, 5.0), 1.0), _grey())])
        floor = Scene([GeometricPrimitive(Rect(4.0, 4.0), _grey())])
        assert floor.is_active()
        assert not spheres.is_active()

        surface, _ = spheres.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert surface.t == pytest.approx(4.0, rel=1e-5)
        assert spheres.is_active()
        assert not floor.is_active()

    def test_counts_after_upload(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.intersection import get_node_count, get_primitive_count
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        Scene([GeometricPrimitive(Sphere((3.0 * i, 0.0, 0.0), 1.0), _grey()) for i in range(3)])
        assert get_primitive_count() == 3
        assert get_node_count() == 3

    def test_clear_deactivates(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.intersection import get_primitive_count
        from pathtracer.scene.manager import Scene, clear_active_scene
        from pathtracer.scene.primitive import GeometricPrimitive

        scene = Scene([GeometricPrimitive(Sphere((0.0, 0.0, 5.0), 1.0), _grey())])
        clear_active_scene()
        assert not scene.is_active()
        assert get_primitive_count() == 0
        # Querying brings it back
        assert scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)) is not None


class TestValidation:
    """Tests for rejected scenes."""

    def test_unsupported_primitive(self):
        from pathtracer.scene.manager import Scene

        with pytest.raises(ValueError):
            Scene(["not a primitive"], upload=False)

    def test_unsupported_shape(self):
        from pathtracer.geometry.aabb import AABB
        from pathtracer.geometry.shape import Shape
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        class Blob(Shape):
            def __init__(self):
                super().__init__(AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)))

        with pytest.raises(ValueError):
            Scene([GeometricPrimitive(Blob(), _grey())], upload=False)

    def test_primitive_requires_shape_and_material(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.primitive import GeometricPrimitive

        with pytest.raises(ValueError):
            GeometricPrimitive("sphere", _grey())
        with pytest.raises(ValueError):
            GeometricPrimitive(Sphere((0.0, 0.0, 0.0), 1.0), (0.5, 0.5, 0.5))

    def test_too_many_spheres(self):
        from pathtracer.geometry.sphere import Sphere
        from pathtracer.scene.intersection import MAX_SPHERES
        from pathtracer.scene.manager import Scene
        from pathtracer.scene.primitive import GeometricPrimitive

        material = _grey()
        prims = [
            GeometricPrimitive(Sphere((float(i), 0.0, 0.0), 0.25), material)
            for i in range(MAX_SPHERES + 1)
        ]
        with pytest.raises(RuntimeError):
            Scene(prims, upload=False)
