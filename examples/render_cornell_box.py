#!/usr/bin/env python3
"""Render the Cornell box scene.

Builds the Cornell box, sets up the camera and renders it with progressive
refinement, then writes a gamma-encoded PNG. The emissive path tracer is lit
by the ceiling light; the recursive one only by the background set with
--environment or --sky.

Usage:
    python examples/render_cornell_box.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 512)
    --height HEIGHT     Image height in pixels (default: 512)
    --samples SAMPLES   Number of samples per pixel (default: 100)
    --output OUTPUT     Output file path (default: cornell_box.png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --integrator NAME   "emissive" or "recursive" (default: emissive)
    --environment PATH  Equirectangular background image (lights "recursive")
    --sky R G B         Constant background radiance (default: 0 0 0)
    --bvh               Wrap the scene in a bounding volume hierarchy
    --arch ARCH         Taichi backend, "cpu" or "gpu" (default: cpu)
    --seed SEED         Random seed for the render kernels
    --quiet             Suppress progress output

Example:
    python examples/render_cornell_box.py --width 256 --height 256 --samples 50
    python examples/render_cornell_box.py --integrator recursive --sky 0.8 0.9 1.0
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from pathtracer.config import IntegratorType, RenderSettings, configure_logging, init_taichi

logger = logging.getLogger("pathtracer.examples.cornell_box")

INTEGRATORS = {
    "emissive": IntegratorType.EMISSIVE,
    "recursive": IntegratorType.RECURSIVE_BACKGROUND,
}


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Cornell box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=512,
        help="Image width in pixels (default: 512)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=512,
        help="Image height in pixels (default: 512)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="cornell_box.png",
        help="Output file path (default: cornell_box.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--integrator",
        choices=sorted(INTEGRATORS),
        default="emissive",
        help="Path tracing policy (default: emissive)",
    )
    parser.add_argument(
        "--environment",
        type=str,
        default=None,
        help="Equirectangular background image (PNG, JPEG, ...)",
    )
    parser.add_argument(
        "--sky",
        type=float,
        nargs=3,
        metavar=("R", "G", "B"),
        default=None,
        help="Constant background radiance (default: black)",
    )
    parser.add_argument(
        "--bvh",
        action="store_true",
        help="Wrap the scene in a bounding volume hierarchy",
    )
    parser.add_argument(
        "--arch",
        choices=["cpu", "gpu"],
        default="cpu",
        help="Taichi backend; gpu falls back to cpu (default: cpu)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the render kernels",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_cornell_box(
    settings: RenderSettings,
    output_path: str,
    use_bvh: bool = False,
    environment: str | None = None,
    sky: tuple[float, float, float] | None = None,
    quiet: bool = False,
) -> Path:
    """Render the Cornell box scene and save it to a PNG file.

    Taichi must already be initialized. The background is the image at
    ``environment`` if given, else the constant ``sky`` radiance, else black.
    The recursive integrator is lit only by this background.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports: these modules allocate Taichi fields
    from pathtracer.camera.pinhole import setup_camera
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.cornell_box import CornellBoxParams, create_cornell_box_scene
    from pathtracer.scene.environment import load_environment_image, set_environment_color

    if not quiet:
        print(f"Creating Cornell box scene ({settings.width}x{settings.height})...")

    params = CornellBoxParams(
        aspect_ratio=settings.aspect_ratio,
        use_bvh=use_bvh,
        seed=settings.seed,
    )
    scene, camera = create_cornell_box_scene(params)
    setup_camera(camera)
    logger.info("Scene has %d primitives in %d nodes", scene.num_primitives, scene.num_nodes)

    if environment is not None:
        load_environment_image(environment)
    elif sky is not None:
        set_environment_color(tuple(sky))
    elif settings.integrator == IntegratorType.RECURSIVE_BACKGROUND:
        logger.warning("Recursive integrator with a black background renders a black image")

    renderer = ProgressiveRenderer(settings.width, settings.height, settings)

    if not quiet:
        print(f"Rendering {settings.samples_per_pixel} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if quiet:
            return
        elapsed = time.time() - start_time
        progress_pct = (current / target) * 100 if target > 0 else 0
        samples_per_sec = current / elapsed if elapsed > 0 else 0
        print(
            f"\r  Progress: {current}/{target} samples "
            f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
            end="",
            flush=True,
        )

    renderer.render(callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    renderer.save_image(str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    configure_logging("WARNING" if args.quiet else "INFO")

    try:
        settings = RenderSettings(
            width=args.width,
            height=args.height,
            samples_per_pixel=args.samples,
            batch_size=args.batch_size,
            integrator=INTEGRATORS[args.integrator],
            arch=args.arch,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    backend = init_taichi(settings)
    if not args.quiet:
        print(f"Using {backend.upper()} backend")

    try:
        render_cornell_box(
            settings,
            args.output,
            use_bvh=args.bvh,
            environment=args.environment,
            sky=args.sky,
            quiet=args.quiet,
        )
    except (OSError, RuntimeError, ValueError) as e:
        logger.error("Render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
