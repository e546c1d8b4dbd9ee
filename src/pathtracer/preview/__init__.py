"""Preview module for converting and saving rendered images.

Components:
    export: Gamma encoding, 8-bit quantization and PNG files (Pillow)

The renderer's output is linear radiance per pixel; everything display
related (clamping, gamma, file formats) happens here.

Example:
    >>> from pathtracer.preview import save_png
    >>> save_png(renderer.get_linear_image(), "output.png", gamma=2.2)
"""

from pathtracer.preview.export import (
    gamma_to_linear,
    image_to_uint8,
    linear_to_gamma,
    save_png,
)

__all__ = [
    "linear_to_gamma",
    "gamma_to_linear",
    "image_to_uint8",
    "save_png",
]
