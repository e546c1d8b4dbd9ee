"""Unit tests for triangles.

Tests cover:
- Face normals and padded bounding boxes
- Building triangles from mesh arrays
- Moller-Trumbore hits, misses and parallel rays
- Inverse-distance normal interpolation
"""

import numpy as np
import pytest
import taichi as ti


def _hit(origin, direction, positions, normals, t_min=1e-4, t_max=1e10):
    from pathtracer.geometry.triangle import hit_triangle

    verts = ti.Vector.field(3, dtype=ti.f32, shape=6)
    verts.from_numpy(np.vstack([positions, normals]).astype(np.float32))
    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    vecs = ti.Vector.field(3, dtype=ti.f32, shape=2)
    ox, oy, oz = (float(v) for v in origin)
    dx, dy, dz = (float(v) for v in direction)
    lo = float(t_min)
    hi = float(t_max)

    @ti.kernel
    def test_kernel():
        rec = hit_triangle(
            ti.math.vec3(ox, oy, oz),
            ti.math.vec3(dx, dy, dz),
            verts[0],
            verts[1],
            verts[2],
            verts[3],
            verts[4],
            verts[5],
            lo,
            hi,
        )
        hit[None] = rec.hit
        t_val[None] = rec.t
        vecs[0] = rec.point
        vecs[1] = rec.normal

    test_kernel()
    v = vecs.to_numpy()
    return hit[None], t_val[None], v[0], v[1]


UNIT = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
UP = np.array([[0.0, 0.0, 1.0]] * 3)


class TestTriangleBasics:
    """Tests for the Triangle shape class."""

    def test_face_normal_default(self):
        from pathtracer.geometry.triangle import Triangle

        tri = Triangle(UNIT)
        for n in tri.normals:
            np.testing.assert_allclose(n, [0.0, 0.0, 1.0])

    def test_normals_are_normalized(self):
        from pathtracer.geometry.triangle import Triangle

        tri = Triangle(UNIT, [(0.0, 0.0, 2.0), (0.0, 3.0, 0.0), (4.0, 0.0, 0.0)])
        for n in tri.normals:
            assert np.linalg.norm(n) == pytest.approx(1.0)

    def test_aabb_padded(self):
        from pathtracer.geometry.aabb import AABB_EPSILON
        from pathtracer.geometry.triangle import Triangle

        box = Triangle(UNIT).aabb()
        np.testing.assert_allclose(box.min, [-AABB_EPSILON] * 3)
        np.testing.assert_allclose(box.max, [1.0 + AABB_EPSILON, 1.0 + AABB_EPSILON, AABB_EPSILON])

    def test_wrong_vertex_count(self):
        from pathtracer.geometry.triangle import Triangle

        with pytest.raises(ValueError):
            Triangle(UNIT[:2])

    def test_sample_not_supported(self):
        from pathtracer.geometry.triangle import Triangle

        with pytest.raises(NotImplementedError):
            Triangle(UNIT).sample()


class TestTrianglesFromArrays:
    """Tests for triangles_from_arrays."""

    def test_indexed_quad(self):
        from pathtracer.geometry.triangle import triangles_from_arrays

        positions = [0, 0, 0, 1, 0, 0, 1, 1, 0, 0, 1, 0]
        tris = triangles_from_arrays(positions, indices=[0, 1, 2, 0, 2, 3])
        assert len(tris) == 2
        np.testing.assert_allclose(tris[1].positions[2], [0.0, 1.0, 0.0])

    def test_unindexed(self):
        from pathtracer.geometry.triangle import triangles_from_arrays

        tris = triangles_from_arrays(UNIT, normals=UP)
        assert len(tris) == 1
        np.testing.assert_allclose(tris[0].normals[1], [0.0, 0.0, 1.0])

    def test_bad_index_count(self):
        from pathtracer.geometry.triangle import triangles_from_arrays

        with pytest.raises(ValueError):
            triangles_from_arrays(UNIT, indices=[0, 1])

    def test_index_out_of_range(self):
        from pathtracer.geometry.triangle import triangles_from_arrays

        with pytest.raises(ValueError):
            triangles_from_arrays(UNIT, indices=[0, 1, 3])


class TestTriangleIntersection:
    """Tests for hit_triangle."""

    def test_hit_inside(self):
        hit, t, point, normal = _hit((0.25, 0.25, 2.0), (0.0, 0.0, -1.0), UNIT, UP)
        assert hit == 1
        assert t == pytest.approx(2.0, rel=1e-6)
        np.testing.assert_allclose(point, [0.25, 0.25, 0.0], atol=1e-6)
        np.testing.assert_allclose(normal, [0.0, 0.0, 1.0], atol=1e-6)

    def test_back_face_hit(self):
        hit, t, *_ = _hit((0.25, 0.25, -1.0), (0.0, 0.0, 1.0), UNIT, UP)
        assert hit == 1
        assert t == pytest.approx(1.0, rel=1e-6)

    def test_outside_misses(self):
        hit, *_ = _hit((0.75, 0.75, 2.0), (0.0, 0.0, -1.0), UNIT, UP)
        assert hit == 0

    def test_parallel_ray_misses(self):
        hit, *_ = _hit((-1.0, 0.25, 0.0), (1.0, 0.0, 0.0), UNIT, UP)
        assert hit == 0

    def test_behind_origin_misses(self):
        hit, *_ = _hit((0.25, 0.25, 2.0), (0.0, 0.0, 1.0), UNIT, UP)
        assert hit == 0

    def test_inverse_distance_normal(self):
        """The normal blends vertex normals weighted by 1 / distance."""
        normals = np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        p = np.array([0.2, 0.3, 0.0])
        hit, _, point, normal = _hit((0.2, 0.3, 1.0), (0.0, 0.0, -1.0), UNIT, normals)
        assert hit == 1

        weights = [1.0 / np.linalg.norm(p - v) for v in UNIT]
        expected = sum(w * n for w, n in zip(weights, normals))
        expected /= np.linalg.norm(expected)
        np.testing.assert_allclose(normal, expected, atol=1e-5)

        # Differs from barycentric interpolation
        bary = 0.5 * normals[0] + 0.2 * normals[1] + 0.3 * normals[2]
        bary /= np.linalg.norm(bary)
        assert np.linalg.norm(normal - bary) > 1e-2

    def test_hit_on_vertex_takes_vertex_normal(self):
        normals = np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        hit, _, _, normal = _hit((1.0, 0.0, 1.0), (0.0, 0.0, -1.0), UNIT, normals)
        assert hit == 1
        np.testing.assert_allclose(normal, [1.0, 0.0, 0.0], atol=1e-6)
