"""Progressive renderer for iterative sample accumulation.

This module wraps the integrator's render target in a small stateful object:
- Batch rendering (several samples per pixel per call)
- Progress reporting after every batch, by callback or generator
- Reset and resize of the accumulator

Progress is counted per call: a call asked for ``n`` samples reports
``(done, n)`` with ``done`` counting only the samples of that call, so two
renders never see each other's counts.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import setup_camera
    >>> from pathtracer.config import RenderSettings
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(128, 128, RenderSettings(width=128, height=128))
    >>> renderer.render(16, batch_size=4)
    >>> image = renderer.get_image_numpy()
"""

import logging
import time
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from pathtracer.config import RenderSettings
from pathtracer.core.integrator import (
    clear_render_target,
    get_linear_image_numpy,
    get_normalized_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)

logger = logging.getLogger(__name__)

# Callback receives (samples_done_in_this_call, samples_requested_in_this_call)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps the image size and settings; the pixel data lives in
    the integrator's global buffers (Taichi fields), so only one renderer is
    usable at a time.

    Args:
        width: Image width in pixels (max 2048).
        height: Image height in pixels (max 2048).
        settings: Integrator, depth and batch defaults. The size in the
            settings is ignored in favor of ``width`` and ``height``.

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """

    def __init__(self, width: int, height: int, settings: RenderSettings | None = None) -> None:
        self._width = width
        self._height = height
        self.settings = settings or RenderSettings(width=width, height=height)
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Samples accumulated per pixel since the last reset."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulator without changing the image size."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions are not positive or exceed the maximum.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def _render_batch(self, batch: int) -> None:
        render_image(
            batch,
            integrator=self.settings.integrator,
            max_depth=self.settings.resolved_max_depth(),
        )

    def render_progressive(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples in batches, yielding progress after each batch.

        Args:
            num_samples: Samples to add; defaults to ``settings.samples_per_pixel``.
            batch_size: Samples per batch; defaults to ``settings.batch_size``.

        Yields:
            ``(done, num_samples)`` for this call.

        Raises:
            ValueError: If batch_size is not positive.
        """
        if num_samples is None:
            num_samples = self.settings.samples_per_pixel
        if batch_size is None:
            batch_size = self.settings.batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if num_samples <= 0:
            return

        done = 0
        while done < num_samples:
            batch = min(batch_size, num_samples - done)
            start = time.perf_counter()
            self._render_batch(batch)
            done += batch
            logger.debug(
                "Rendered batch of %d spp in %.3fs (%d/%d)",
                batch,
                time.perf_counter() - start,
                done,
                num_samples,
            )
            yield (done, num_samples)

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples in batches with an optional progress callback.

        Accumulates into the existing buffer; call repeatedly to keep
        refining the image.

        Example:
            >>> def progress(done, total):
            ...     print(f"Progress: {done}/{total} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for done, total in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(done, total)
        logger.info("Accumulated %d spp at %dx%d", self.sample_count, self.width, self.height)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """The image clamped to [0, 1], shape (height, width, 3).

        Args:
            gamma: Display gamma. 1.0 returns linear values; use 2.2 for sRGB.
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_linear_image(self) -> npt.NDArray[np.float32]:
        """Unclamped linear radiance, shape (height, width, 3)."""
        return get_linear_image_numpy()

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        from pathtracer.preview.export import image_to_uint8

        return image_to_uint8(get_linear_image_numpy(), gamma=gamma)

    def save_image(self, filepath: str, gamma: float = 2.2) -> None:
        """Gamma-encode the image and write it with Pillow."""
        from pathtracer.preview.export import save_png

        save_png(get_linear_image_numpy(), filepath, gamma=gamma)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
