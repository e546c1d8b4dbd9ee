"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset scene, materials, environment and render target around each test."""
    # Import here so Taichi is initialized before any field is allocated
    from pathtracer.core.integrator import clear_render_target
    from pathtracer.scene.environment import set_environment_color
    from pathtracer.scene.manager import clear_active_scene

    def _clear_all():
        clear_active_scene()
        set_environment_color((0.0, 0.0, 0.0))
        clear_render_target()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def load_png():
    """Return a reader that decodes an 8-bit PNG back to linear values."""
    import numpy as np
    from PIL import Image

    from pathtracer.preview.export import DEFAULT_GAMMA, gamma_to_linear

    def _load(path, gamma=DEFAULT_GAMMA):
        with Image.open(path) as img:
            pixels = np.asarray(img.convert("RGB"), dtype=np.float32) / 255.0
        return gamma_to_linear(pixels, gamma)

    return _load
