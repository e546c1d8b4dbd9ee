"""Background radiance seen by rays that leave the scene.

The environment is either a constant color (black by default) or an
equirectangular image. A direction ``d`` maps to image coordinates through
spherical UVs:

    u = 1 - (atan2(d.z, d.x) + pi) / (2 pi)
    v = (asin(d.y) + pi / 2) / pi
    pixel = (u * width, (1 - v) * height)

Images are stored linear: 8-bit inputs are decoded with ``value ** gamma``.
The field is preallocated; larger images are downsampled with Pillow.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.environment import set_environment_color
    >>> set_environment_color((1.0, 1.0, 1.0))
"""

import logging
from pathlib import Path

import numpy as np
import taichi as ti
import taichi.math as tm
from PIL import Image

from pathtracer.preview.export import gamma_to_linear

logger = logging.getLogger(__name__)

vec3 = tm.vec3

MAX_ENV_WIDTH = 1024
MAX_ENV_HEIGHT = 512
DEFAULT_GAMMA = 2.2

ENV_MODE_COLOR = 0
ENV_MODE_IMAGE = 1

env_mode = ti.field(dtype=ti.i32, shape=())
env_color = ti.Vector.field(3, dtype=ti.f32, shape=())
# Indexed [row, column], row 0 at the top of the image
env_pixels = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_ENV_HEIGHT, MAX_ENV_WIDTH))
env_width = ti.field(dtype=ti.i32, shape=())
env_height = ti.field(dtype=ti.i32, shape=())


def set_environment_color(color: tuple[float, float, float] = (0.0, 0.0, 0.0)) -> None:
    """Use a constant background radiance.

    Raises:
        ValueError: If the color does not have three non-negative components.
    """
    if len(color) != 3 or any(c < 0.0 for c in color):
        raise ValueError(f"Environment color must be 3 non-negative values, got {color}")
    env_mode[None] = ENV_MODE_COLOR
    env_color[None] = [float(c) for c in color]


def set_environment_image(image: np.ndarray, gamma: float = DEFAULT_GAMMA) -> None:
    """Use an equirectangular image as the background.

    Args:
        image: Array of shape (height, width, 3). Integer arrays are read as
            8-bit values; float arrays as values in [0, 1].
        gamma: Decoding exponent applied to the normalized values. Pass 1.0
            for images that are already linear.

    Raises:
        ValueError: If the array is not an RGB image or gamma is not positive.
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")

    height, width = image.shape[:2]
    if width > MAX_ENV_WIDTH or height > MAX_ENV_HEIGHT:
        scale = min(MAX_ENV_WIDTH / width, MAX_ENV_HEIGHT / height)
        size = (max(1, int(width * scale)), max(1, int(height * scale)))
        logger.info("Downsampling environment image from %dx%d to %dx%d", width, height, *size)
        if np.issubdtype(image.dtype, np.integer):
            pil = Image.fromarray(image.astype(np.uint8))
            image = np.asarray(pil.resize(size, Image.Resampling.BILINEAR))
        else:
            channels = [
                np.asarray(
                    Image.fromarray(image[..., c].astype(np.float32)).resize(
                        size, Image.Resampling.BILINEAR
                    )
                )
                for c in range(3)
            ]
            image = np.stack(channels, axis=-1)
        height, width = image.shape[:2]

    if np.issubdtype(image.dtype, np.integer):
        linear = gamma_to_linear(image.astype(np.float32) / 255.0, gamma)
    else:
        linear = np.clip(image.astype(np.float32), 0.0, None) ** gamma

    padded = np.zeros((MAX_ENV_HEIGHT, MAX_ENV_WIDTH, 3), dtype=np.float32)
    padded[:height, :width] = linear
    env_pixels.from_numpy(padded)
    env_width[None] = width
    env_height[None] = height
    env_mode[None] = ENV_MODE_IMAGE


def load_environment_image(path: str | Path, gamma: float = DEFAULT_GAMMA) -> None:
    """Load an equirectangular image file as the background.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    with Image.open(path) as img:
        pixels = np.asarray(img.convert("RGB"))
    logger.info("Loaded environment image %s (%dx%d)", path, pixels.shape[1], pixels.shape[0])
    set_environment_image(pixels, gamma)


@ti.func
def sphere_uv(direction: vec3):
    """Spherical UV coordinates of a unit direction, both in [0, 1]."""
    phi = ti.atan2(direction.z, direction.x)
    theta = ti.asin(tm.clamp(direction.y, -1.0, 1.0))
    u = 1.0 - (phi + tm.pi) / (2.0 * tm.pi)
    v = (theta + 0.5 * tm.pi) / tm.pi
    return u, v


@ti.func
def sample_environment(direction: vec3) -> vec3:
    """Background radiance seen looking along ``direction``."""
    result = env_color[None]
    if env_mode[None] == ENV_MODE_IMAGE:
        u, v = sphere_uv(tm.normalize(direction))
        width = env_width[None]
        height = env_height[None]
        col = ti.min(ti.max(ti.cast(u * width, ti.i32), 0), width - 1)
        row = ti.min(ti.max(ti.cast((1.0 - v) * height, ti.i32), 0), height - 1)
        result = env_pixels[row, col]
    return result
