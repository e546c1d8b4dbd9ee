"""Image export utilities for rendered images.

The renderer produces linear radiance. Conversion for display clamps to
[0, 1], applies a power-law gamma and quantizes to 8 bits; PNG files are
written with Pillow.

Example:
    >>> import numpy as np
    >>> from pathtracer.preview.export import image_to_uint8
    >>> image_to_uint8(np.full((1, 1, 3), 0.5, dtype=np.float32))[0, 0, 0]
    186
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

DEFAULT_GAMMA = 2.2


def linear_to_gamma(
    image: npt.NDArray[np.floating], gamma: float = DEFAULT_GAMMA
) -> npt.NDArray[np.float32]:
    """Clamp to [0, 1] and encode with ``value ** (1 / gamma)``.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    clamped = np.clip(np.asarray(image, dtype=np.float32), 0.0, 1.0)
    return np.power(clamped, 1.0 / gamma)


def gamma_to_linear(
    image: npt.NDArray[np.floating], gamma: float = DEFAULT_GAMMA
) -> npt.NDArray[np.float32]:
    """Inverse of ``linear_to_gamma`` for values in [0, 1]."""
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    clamped = np.clip(np.asarray(image, dtype=np.float32), 0.0, 1.0)
    return np.power(clamped, gamma)


def image_to_uint8(
    image: npt.NDArray[np.floating], gamma: float = DEFAULT_GAMMA
) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit display values.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Display gamma (2.2 for sRGB-like output, 1.0 for none).

    Returns:
        Array of shape (H, W, 3) with dtype uint8.
    """
    encoded = linear_to_gamma(image, gamma)
    # 255.99 maps 1.0 to 255 without a separate clamp
    return (encoded * 255.99).astype(np.uint8)


def save_png(
    image: npt.NDArray[np.floating],
    filepath: str | Path,
    *,
    gamma: float = DEFAULT_GAMMA,
) -> None:
    """Save a linear image of shape (H, W, 3) as an 8-bit PNG.

    Raises:
        ValueError: If the array is not an RGB image.
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")
    PILImage.fromarray(image_to_uint8(image, gamma=gamma)).save(filepath)

