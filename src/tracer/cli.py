"""Command-line renderer.

Renders a demo scene or a JSON scene file and writes the image as PPM or
PNG, depending on the output extension.

Usage:
    sphere-tracer [options]
    python -m src.tracer.cli [options]

Example:
    sphere-tracer --scene random --width 600 --samples 50 --output final.png
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from src.tracer.errors import ConfigurationError, DegenerateVectorError
from src.tracer.runtime import ARCHS, init_taichi
from src.tracer.settings import SHADING_MODES, RenderSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

SCENE_NAMES = ("two-spheres", "showcase", "random")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="sphere-tracer",
        description="Render a scene of spheres with a Monte Carlo ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--scene",
        choices=SCENE_NAMES,
        default="two-spheres",
        help="Demo scene to render (default: two-spheres)",
    )
    source.add_argument(
        "--scene-file",
        type=Path,
        help="JSON scene file (with a camera) to render instead of a demo scene",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: from the camera aspect ratio)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=10,
        help="Samples per pixel (default: 10)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum ray bounces (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for sampling and for the random scene layout (default: 0)",
    )
    parser.add_argument(
        "--shading",
        choices=SHADING_MODES,
        default="path",
        help="path: full ray tracing, normals: surface normal colors (default: path)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("image.ppm"),
        help="Output image, .ppm or .png (default: image.ppm)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--arch",
        choices=sorted(ARCHS),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Show the result in a Matplotlib window",
    )
    parser.add_argument(
        "--dump-scene",
        type=Path,
        default=None,
        help="Write the scene and camera to a JSON file and exit",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings")
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging for command-line use."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_scene(args: argparse.Namespace):
    """Build the scene and camera selected on the command line.

    Returns:
        Tuple of (scene, camera). The camera aspect ratio matches --width
        and --height when both are given.

    Raises:
        ConfigurationError: If the scene file is invalid or has no camera.
    """
    # Imported here because these modules allocate Taichi fields
    from src.tracer.scene.demo_scenes import DEMO_SCENES
    from src.tracer.scene.manager import SceneManager

    aspect_ratio = args.width / args.height if args.height else None

    if args.scene_file is not None:
        scene = SceneManager()
        camera = scene.load_json(args.scene_file)
        if camera is None:
            raise ConfigurationError(f"{args.scene_file} has no 'camera' entry")
        if aspect_ratio is not None:
            camera = dataclasses.replace(camera, aspect_ratio=aspect_ratio)
        return scene, camera

    builder = DEMO_SCENES[args.scene]
    kwargs = {}
    if aspect_ratio is not None:
        kwargs["aspect_ratio"] = aspect_ratio
    if args.scene == "random":
        kwargs["seed"] = args.seed
    return builder(**kwargs)


def run(args: argparse.Namespace, initialize: bool = True) -> int:
    """Render according to parsed arguments.

    Args:
        args: Parsed command-line arguments.
        initialize: Start the Taichi runtime first. Pass False when Taichi is
            already initialized in this process.

    Returns:
        The process exit code.
    """
    if initialize:
        init_taichi(arch=args.arch, seed=args.seed)

    from src.tracer.camera.thin_lens import setup_camera
    from src.tracer.core.integrator import ShadingMode
    from src.tracer.core.progressive import ProgressiveRenderer

    scene, camera = load_scene(args)
    logger.info(
        "Scene has %d spheres and %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )

    if args.dump_scene is not None:
        scene.save_json(args.dump_scene, camera=camera)
        return 0

    height = args.height if args.height else max(1, int(args.width / camera.aspect_ratio))
    settings = RenderSettings(
        width=args.width,
        height=height,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
        shading=args.shading,
    )

    setup_camera(camera)
    mode = ShadingMode.NORMALS if settings.shading == "normals" else ShadingMode.PATH
    renderer = ProgressiveRenderer(
        settings.width,
        settings.height,
        max_depth=settings.max_depth,
        seed=settings.seed,
        mode=mode,
    )

    logger.info(
        "Rendering %dx%d, %d spp, max depth %d",
        settings.width,
        settings.height,
        settings.samples_per_pixel,
        settings.max_depth,
    )

    def progress_callback(current: int, target: int) -> None:
        logger.info("Progress: %d/%d samples (%.1f%%)", current, target, 100.0 * current / target)

    renderer.render(
        num_samples=settings.samples_per_pixel,
        batch_size=max(1, args.batch_size),
        callback=progress_callback,
    )

    renderer.save_image(args.output, gamma=settings.gamma)

    if args.show:
        from src.tracer.preview.display import show_preview

        show_preview(renderer.get_image_numpy(), gamma=settings.gamma, title=str(args.output))

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        return run(args)
    except (ConfigurationError, DegenerateVectorError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    except OSError as e:
        logger.error("I/O error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
