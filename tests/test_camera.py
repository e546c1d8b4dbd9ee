"""Unit tests for the pinhole camera.

Tests cover:
- Camera validation and basis construction
- Python and kernel ray generation
- Jittered samples staying inside their pixel
- Field of view and aspect ratio scaling
"""

import math

import numpy as np
import pytest
import taichi as ti


def _camera(**overrides):
    from pathtracer.camera.pinhole import PinholeCamera

    params = {
        "lookfrom": (0.0, 0.0, 0.0),
        "lookat": (0.0, 0.0, -1.0),
        "vup": (0.0, 1.0, 0.0),
        "vfov": 90.0,
        "aspect_ratio": 1.0,
    }
    params.update(overrides)
    return PinholeCamera(**params)


class TestCameraSetup:
    """Tests for PinholeCamera construction and its basis."""

    def test_basis_looking_down_negative_z(self):
        horizontal, vertical, front = _camera().basis()
        np.testing.assert_allclose(front, [0.0, 0.0, -1.0], atol=1e-12)
        # right = front x up
        np.testing.assert_allclose(horizontal, [1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(vertical, [0.0, 1.0, 0.0], atol=1e-12)

    def test_basis_is_orthogonal(self):
        camera = _camera(lookfrom=(1.0, 2.0, 3.0), lookat=(-2.0, 0.5, 7.0), vfov=40.0)
        h, v, f = camera.basis()
        assert abs(np.dot(h, v)) < 1e-12
        assert abs(np.dot(h, f)) < 1e-12
        assert abs(np.dot(v, f)) < 1e-12
        assert np.linalg.norm(f) == pytest.approx(1.0)

    def test_cornell_view_right_points_to_negative_x(self):
        from pathtracer.scene.cornell_box import create_cornell_camera

        horizontal, _, front = create_cornell_camera().basis()
        np.testing.assert_allclose(front, [0.0, 0.0, 1.0], atol=1e-12)
        assert horizontal[0] < 0.0

    def test_look_at_constructor(self):
        from pathtracer.camera.pinhole import PinholeCamera

        camera = PinholeCamera.look_at(
            (0.0, 5.0, -14.0), (0.0, 5.0, 0.0), (0.0, 1.0, 0.0), 60.0, 2.0
        )
        assert camera.lookfrom == (0.0, 5.0, -14.0)
        assert camera.aspect_ratio == 2.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"lookat": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 2.0)},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            _camera(**overrides)


class TestFieldOfView:
    """Tests for image plane scaling."""

    def test_fov_90(self):
        """tan(45) = 1, so the corner ray is (1, 1, -1)."""
        _, direction = _camera().get_ray(1.0, 1.0)
        np.testing.assert_allclose(direction, [1.0, 1.0, -1.0], atol=1e-12)

    def test_narrow_fov(self):
        _, direction = _camera(vfov=30.0).get_ray(0.5, 1.0)
        assert direction[1] == pytest.approx(math.tan(math.radians(15.0)))

    def test_aspect_ratio_scales_horizontal(self):
        _, direction = _camera(aspect_ratio=2.0).get_ray(1.0, 0.5)
        np.testing.assert_allclose(direction, [2.0, 0.0, -1.0], atol=1e-12)


class TestRayGeneration:
    """Tests for ray generation in Python and in kernels."""

    def test_center_ray_is_front(self):
        origin, direction = _camera(lookfrom=(1.0, 2.0, 3.0), lookat=(1.0, 2.0, 10.0)).get_ray(
            0.5, 0.5
        )
        np.testing.assert_allclose(origin, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(direction, [0.0, 0.0, 1.0], atol=1e-12)

    def test_out_of_range_coordinates(self):
        with pytest.raises(ValueError):
            _camera().get_ray(1.5, 0.5)
        with pytest.raises(ValueError):
            _camera().get_ray(0.5, -0.1)

    def test_kernel_matches_python(self):
        from pathtracer.camera.pinhole import get_ray, setup_camera

        camera = _camera(
            lookfrom=(0.0, 5.0, -14.0), lookat=(0.0, 5.0, 0.0), vfov=60.0, aspect_ratio=1.5
        )
        setup_camera(camera)

        coords = [(0.0, 0.0), (1.0, 1.0), (0.25, 0.75), (0.5, 0.5)]
        count = len(coords)
        origins = ti.Vector.field(3, dtype=ti.f32, shape=count)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=count)
        uv = ti.Vector.field(2, dtype=ti.f32, shape=count)
        uv.from_numpy(np.array(coords, dtype=np.float32))

        @ti.kernel
        def test_kernel():
            for k in range(count):
                ray = get_ray(uv[k][0], uv[k][1])
                origins[k] = ray.origin
                directions[k] = ray.direction

        test_kernel()
        o = origins.to_numpy()
        d = directions.to_numpy()
        for k, (u, v) in enumerate(coords):
            expected_origin, expected_direction = camera.get_ray(u, v)
            np.testing.assert_allclose(o[k], expected_origin, atol=1e-5)
            np.testing.assert_allclose(d[k], expected_direction, atol=1e-5)

    def test_camera_info(self):
        from pathtracer.camera.pinhole import get_camera_info, is_camera_ready, setup_camera

        setup_camera(_camera(lookfrom=(1.0, 2.0, 3.0), lookat=(1.0, 2.0, 2.0)))
        assert is_camera_ready()
        info = get_camera_info()
        assert set(info) == {"origin", "horizontal", "vertical", "front"}
        assert info["origin"] == pytest.approx((1.0, 2.0, 3.0))
        assert info["front"] == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)


class TestJitteredSampling:
    """Tests for get_ray_jittered."""

    def test_samples_stay_in_pixel(self):
        from pathtracer.camera.pinhole import get_ray_jittered, setup_camera

        camera = _camera(vfov=60.0, aspect_ratio=2.0)
        setup_camera(camera)
        n = 512
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                directions[k] = get_ray_jittered(3, 1, 8, 4).direction

        test_kernel()
        h, v, _ = camera.basis()
        d = directions.to_numpy().astype(np.float64)
        u = (d @ h / np.dot(h, h) + 1.0) / 2.0
        w = (d @ v / np.dot(v, v) + 1.0) / 2.0
        assert np.all((u >= 3.0 / 8.0 - 1e-5) & (u <= 4.0 / 8.0 + 1e-5))
        assert np.all((w >= 1.0 / 4.0 - 1e-5) & (w <= 2.0 / 4.0 + 1e-5))
        # Jitter covers the pixel rather than repeating one point
        assert u.std() > 0.02
        assert w.std() > 0.04
