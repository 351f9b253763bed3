#!/usr/bin/env python3
"""Render the random spheres scene.

Builds the field of random spheres, renders it with progressive refinement
and saves the result.

Usage:
    python -m examples.render_random_scene [options]

Options:
    --width WIDTH       Image width in pixels (default: 600)
    --samples SAMPLES   Number of samples per pixel (default: 50)
    --max-depth DEPTH   Maximum ray bounces (default: 50)
    --seed SEED         Seed for the scene layout and sampling (default: 0)
    --output OUTPUT     Output file path (default: random_scene.png)

Example:
    python -m examples.render_random_scene --width 300 --samples 20
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from src.tracer.runtime import init_taichi

logger = logging.getLogger("render_random_scene")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Render the random spheres scene.")
    parser.add_argument("--width", type=int, default=600, help="Image width (default: 600)")
    parser.add_argument("--samples", type=int, default=50, help="Samples per pixel (default: 50)")
    parser.add_argument("--max-depth", type=int, default=50, help="Maximum bounces (default: 50)")
    parser.add_argument("--seed", type=int, default=0, help="Seed (default: 0)")
    parser.add_argument(
        "--output",
        type=str,
        default="random_scene.png",
        help="Output file path (default: random_scene.png)",
    )
    return parser.parse_args()


def render_random_scene(
    width: int = 600,
    num_samples: int = 50,
    max_depth: int = 50,
    seed: int = 0,
    output_path: str = "random_scene.png",
) -> Path:
    """Render the random spheres scene and save it.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.tracer.camera.thin_lens import setup_camera
    from src.tracer.core.progressive import ProgressiveRenderer
    from src.tracer.scene.demo_scenes import create_random_scene

    aspect_ratio = 3.0 / 2.0
    height = int(width / aspect_ratio)

    scene, camera = create_random_scene(aspect_ratio=aspect_ratio, seed=seed)
    logger.info("Created random scene with %d spheres", scene.get_sphere_count())
    setup_camera(camera)

    renderer = ProgressiveRenderer(width, height, max_depth=max_depth, seed=seed)
    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.time() - start_time
        logger.info("%d/%d samples (%.1f spp/s)", current, target, current / max(elapsed, 1e-9))

    renderer.render(num_samples=num_samples, batch_size=5, callback=progress_callback)

    output_file = Path(output_path)
    renderer.save_image(output_file)
    logger.info("Saved to %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    init_taichi(arch="cpu", seed=args.seed)
    render_random_scene(
        width=args.width,
        num_samples=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
        output_path=args.output,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
