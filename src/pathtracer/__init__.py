"""Monte Carlo path tracer built on Taichi.

This package estimates the radiance arriving at each pixel of a pinhole camera
by stochastically sampling light-transport paths through a scene of spheres,
rectangles and triangles. It provides:
- Affine transforms for placing shapes and whole meshes in world space
- A randomized median-split bounding volume hierarchy
- Diffuse, mirror, dielectric, GGX microfacet and emissive materials
- Two path tracing integrators (background-lit recursive form and
  emissive iterative form with Russian roulette)

Subpackages:
    core: Ray/vector kernels, transforms, integrators and progressive rendering
    geometry: Bounding boxes, shape primitives and the BVH
    materials: BSDF sampling kernels and the material table
    scene: Primitive binding, scene upload, closest-hit queries, environment
    camera: Pinhole look-at camera
    preview: Display conversion and PNG export
"""

__version__ = "0.1.0"
