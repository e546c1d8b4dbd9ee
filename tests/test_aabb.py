"""Unit tests for axis-aligned bounding boxes.

Tests cover:
- Construction, merge and padding
- Slab test hits and misses (Python and kernel versions)
- Degenerate (flat) boxes and axis-parallel rays
"""

import numpy as np
import pytest
import taichi as ti


class TestAABBBasics:
    """Tests for AABB construction and combination."""

    def test_center_cached(self):
        from pathtracer.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (2.0, 4.0, 6.0))
        np.testing.assert_allclose(box.center, [1.0, 2.0, 3.0])

    def test_merge(self):
        from pathtracer.geometry.aabb import AABB

        a = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        b = AABB((-1.0, 0.5, 0.5), (0.5, 3.0, 0.75))
        m = a.merge(b)
        np.testing.assert_allclose(m.min, [-1.0, 0.0, 0.0])
        np.testing.assert_allclose(m.max, [1.0, 3.0, 1.0])

    def test_merge_all(self):
        from pathtracer.geometry.aabb import AABB, merge_all

        boxes = [AABB((i, 0.0, 0.0), (i + 1.0, 1.0, 1.0)) for i in range(5)]
        m = merge_all(boxes)
        np.testing.assert_allclose(m.min, [0.0, 0.0, 0.0])
        np.testing.assert_allclose(m.max, [5.0, 1.0, 1.0])

    def test_padded_and_area(self):
        from pathtracer.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        assert box.area() == pytest.approx(6.0)
        padded = box.padded(0.5)
        np.testing.assert_allclose(padded.min, [-0.5, -0.5, -0.5])
        assert padded.area() == pytest.approx(24.0)


class TestAABBSlabTest:
    """Tests for the Python slab test."""

    def test_ray_through_interior_hits(self):
        """Hit for any t range that covers the entry and exit."""
        from pathtracer.geometry.aabb import AABB

        box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
        origin = (0.2, -0.3, -5.0)
        direction = (0.0, 0.05, 1.0)
        # Entry near t = 4, exit near t = 6
        for t_min, t_max in [(0.0, 100.0), (3.9, 6.1), (-1.0, 1e10)]:
            assert box.hit(origin, direction, t_min, t_max)

    def test_ray_missing_box(self):
        from pathtracer.geometry.aabb import AABB

        box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
        for t_max in (1.0, 10.0, 1e6):
            assert not box.hit((3.0, 0.0, -5.0), (0.0, 0.0, 1.0), 0.0, t_max)

    def test_interval_outside_range(self):
        from pathtracer.geometry.aabb import AABB

        box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
        # The box lies at t in [4, 6]
        assert not box.hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), 0.0, 3.5)
        assert not box.hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), 6.5, 10.0)

    def test_slabs_shrink_cumulatively(self):
        """A ray inside each slab separately but never all at once misses."""
        from pathtracer.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        # x in [0, 1] for t in [1, 2]; y in [0, 1] for t in [3, 4]
        assert not box.hit((-1.0, -3.0, 0.5), (1.0, 1.0, 0.0), 0.0, 10.0)

    def test_flat_box_is_hittable(self):
        """A padded zero-thickness box still stops perpendicular rays."""
        from pathtracer.geometry.aabb import AABB_EPSILON, AABB

        box = AABB((-1.0, -AABB_EPSILON, -1.0), (1.0, AABB_EPSILON, 1.0))
        assert box.hit((0.0, 5.0, 0.0), (0.0, -1.0, 0.0), 0.0, 100.0)

    def test_axis_parallel_ray_outside_slab(self):
        from pathtracer.geometry.aabb import AABB

        box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
        assert not box.hit((0.0, 2.0, -5.0), (0.0, 0.0, 1.0), 0.0, 100.0)


class TestAABBKernel:
    """Tests for hit_aabb inside kernels."""

    def test_kernel_matches_python(self):
        from pathtracer.geometry.aabb import AABB, hit_aabb

        box = AABB((-1.0, -2.0, -0.5), (1.5, 1.0, 0.5))
        rng = np.random.default_rng(3)
        origins = rng.uniform(-4.0, 4.0, size=(64, 3)).astype(np.float32)
        directions = rng.normal(size=(64, 3)).astype(np.float32)

        o_field = ti.Vector.field(3, dtype=ti.f32, shape=64)
        d_field = ti.Vector.field(3, dtype=ti.f32, shape=64)
        result = ti.field(dtype=ti.i32, shape=64)
        o_field.from_numpy(origins)
        d_field.from_numpy(directions)
        lx, ly, lz = (float(v) for v in box.min)
        hx, hy, hz = (float(v) for v in box.max)

        @ti.kernel
        def test_kernel():
            for i in range(64):
                result[i] = hit_aabb(
                    o_field[i],
                    d_field[i],
                    ti.math.vec3(lx, ly, lz),
                    ti.math.vec3(hx, hy, hz),
                    0.0,
                    1e10,
                )

        test_kernel()
        hits = result.to_numpy()
        for i in range(64):
            assert bool(hits[i]) == box.hit(origins[i], directions[i], 0.0, 1e10)
        assert hits.sum() > 0
