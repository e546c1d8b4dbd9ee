"""Render settings and runtime initialization.

This module has no Taichi fields, so it can be imported before ``ti.init``.
Scripts typically do::

    settings = RenderSettings(width=256, height=256, samples_per_pixel=64)
    init_taichi(settings)
    configure_logging("INFO")

and only then import the modules that allocate fields (scene, camera,
integrator).
"""

import logging
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Path length limits of the two integrators
MAX_BOUNCES = 50
MAX_RECURSION_DEPTH = 10


class IntegratorType(IntEnum):
    """Path tracing policy used by the render kernels.

    RECURSIVE_BACKGROUND: paths are lit only by the environment; surfaces
        never emit. A path that is still bouncing after the maximum depth
        contributes nothing.
    EMISSIVE: surfaces emit, misses contribute nothing, and paths are
        terminated by Russian roulette on the path weight.
    """

    RECURSIVE_BACKGROUND = 0
    EMISSIVE = 1


def default_max_depth(integrator: IntegratorType) -> int:
    if integrator == IntegratorType.EMISSIVE:
        return MAX_BOUNCES
    return MAX_RECURSION_DEPTH


@dataclass
class RenderSettings:
    """Parameters of a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Total samples accumulated per pixel.
        batch_size: Samples rendered between progress reports.
        integrator: Path tracing policy.
        max_depth: Maximum path length. None selects the integrator default
            (50 bounces emissive, depth 10 recursive).
        arch: Taichi backend, "cpu" or "gpu". "gpu" falls back to the CPU
            when no GPU backend is available.
        seed: Seed of the kernel random streams, or None for Taichi's default.
    """

    width: int = 512
    height: int = 512
    samples_per_pixel: int = 16
    batch_size: int = 4
    integrator: IntegratorType = IntegratorType.EMISSIVE
    max_depth: int | None = None
    arch: str = "cpu"
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.samples_per_pixel < 0:
            raise ValueError(f"samples_per_pixel must be >= 0, got {self.samples_per_pixel}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.max_depth is not None and self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.arch not in ("cpu", "gpu"):
            raise ValueError(f"arch must be 'cpu' or 'gpu', got {self.arch!r}")
        try:
            self.integrator = IntegratorType(self.integrator)
        except ValueError:
            raise ValueError(f"Unknown integrator: {self.integrator!r}") from None

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def resolved_max_depth(self) -> int:
        if self.max_depth is None:
            return default_max_depth(self.integrator)
        return self.max_depth


def init_taichi(settings: RenderSettings | None = None) -> str:
    """Initialize the Taichi runtime for the given settings.

    Returns:
        The backend actually used, "cpu" or "gpu".
    """
    settings = settings or RenderSettings()
    kwargs = {}
    if settings.seed is not None:
        kwargs["random_seed"] = settings.seed

    if settings.arch == "gpu":
        try:
            ti.init(arch=ti.gpu, **kwargs)
            logger.info("Initialized Taichi on the GPU")
            return "gpu"
        except Exception as exc:
            logger.warning("GPU initialization failed (%s), falling back to CPU", exc)

    ti.init(arch=ti.cpu, **kwargs)
    logger.info("Initialized Taichi on the CPU")
    return "cpu"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a console handler to the ``pathtracer`` logger.

    Library modules never install handlers themselves. Calling this twice
    does not duplicate output.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger("pathtracer")
    root.setLevel(level)
    if not any(getattr(h, "_pathtracer", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._pathtracer = True
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setLevel(level)
    return root
