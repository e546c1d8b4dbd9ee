"""Bounding volume hierarchy over primitives.

The tree is built once in Python with a randomized median split: pick a
uniformly random axis, sort the primitives by the minimum corner of their
box along it, split at the median index, recurse. A single primitive becomes
a leaf.

The tree is walked by the scene upload (``pathtracer.scene.manager``), which
flattens it into pre-order node arrays for the kernels.

Example:
    >>> import numpy as np
    >>> from pathtracer.geometry.bvh import BVH
    >>> from pathtracer.geometry.sphere import Sphere
    >>> from pathtracer.materials.lambert import LambertMaterial
    >>> from pathtracer.scene.primitive import GeometricPrimitive
    >>> white = LambertMaterial((0.8, 0.8, 0.8))
    >>> balls = [GeometricPrimitive(Sphere((x, 0, 0), 0.5), white) for x in range(4)]
    >>> BVH(balls, rng=np.random.default_rng(1)).aabb()
    AABB(min=[-0.5, -0.5, -0.5], max=[3.5, 0.5, 0.5])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import numpy as np

from pathtracer.geometry.aabb import AABB

logger = logging.getLogger(__name__)


class Bounded(Protocol):
    """Anything the tree can partition: it only needs a bounding box."""

    def aabb(self) -> AABB: ...


class BVHLeaf:
    """Node holding exactly one primitive."""

    __slots__ = ("primitive",)

    def __init__(self, primitive: Bounded) -> None:
        self.primitive = primitive

    def aabb(self) -> AABB:
        return self.primitive.aabb()


class BVHBranch:
    """Node with two children and the box enclosing both."""

    __slots__ = ("left", "right", "_aabb")

    def __init__(
        self, left: BVHLeaf | BVHBranch, right: BVHLeaf | BVHBranch, bounds: AABB
    ) -> None:
        self.left = left
        self.right = right
        self._aabb = bounds

    def aabb(self) -> AABB:
        return self._aabb


def _build(primitives: list[Bounded], rng: np.random.Generator) -> BVHLeaf | BVHBranch:
    if len(primitives) == 1:
        return BVHLeaf(primitives[0])

    axis = int(rng.integers(3))
    ordered = sorted(primitives, key=lambda p: p.aabb().min[axis])
    mid = len(ordered) // 2
    left = _build(ordered[:mid], rng)
    right = _build(ordered[mid:], rng)
    return BVHBranch(left, right, left.aabb().merge(right.aabb()))


class BVH:
    """Binary tree of boxes over a non-empty list of primitives.

    A BVH is itself a primitive: it can be placed in a Scene, wrapped in a
    TransformedPrimitive, or nested inside another BVH.

    Args:
        primitives: The primitives to partition.
        rng: Random generator for the split axes. Pass a seeded generator for
            reproducible trees.

    Raises:
        ValueError: If ``primitives`` is empty.
    """

    def __init__(
        self,
        primitives: Sequence[Bounded],
        rng: np.random.Generator | None = None,
    ) -> None:
        if len(primitives) == 0:
            raise ValueError("Cannot build a BVH from an empty primitive list")
        if rng is None:
            rng = np.random.default_rng()
        self.root = _build(list(primitives), rng)
        self.num_primitives = len(primitives)
        logger.debug(
            "Built BVH over %d primitives (depth %d)", self.num_primitives, self.depth()
        )

    def aabb(self) -> AABB:
        """Box of the root node, enclosing every primitive."""
        return self.root.aabb()

    def depth(self) -> int:
        """Number of levels, counting a lone leaf as 1."""
        deepest = 0
        stack = [(self.root, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            if isinstance(node, BVHBranch):
                stack.append((node.left, level + 1))
                stack.append((node.right, level + 1))
        return deepest

    def __len__(self) -> int:
        return self.num_primitives

    def __repr__(self) -> str:
        return f"BVH(num_primitives={self.num_primitives})"
