"""Ready-made demo scenes.

Each builder clears the active scene, fills it through a SceneManager and
returns the manager together with a camera framing the scene:

    two-spheres: a unit sphere resting on a huge ground sphere
    showcase:    one sphere of each material, including a hollow glass ball
    random:      a field of small random spheres around three large ones

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.scene.demo_scenes import create_random_scene
    >>> scene, camera = create_random_scene(aspect_ratio=3.0 / 2.0, seed=7)
"""

import logging
import math
from collections.abc import Callable

import numpy as np

from src.tracer.camera.thin_lens import ThinLensCamera
from src.tracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = 16.0 / 9.0

# Small spheres of the random scene sit on a grid of this half-extent
RANDOM_GRID_MIN = -11
RANDOM_GRID_MAX = 11
RANDOM_SPHERE_RADIUS = 0.2


def create_two_sphere_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a diffuse sphere sitting on a large diffuse ground sphere.

    The camera sits at the origin looking down -z with a 90 degree vertical
    field of view, so the viewport is 2 units tall at unit distance.

    Args:
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene, camera).
    """
    scene = SceneManager()
    diffuse = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, diffuse)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, diffuse)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera


def create_showcase_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a row of three spheres, one per material, on a ground sphere.

    The left sphere is a hollow glass bubble: a glass sphere containing a
    slightly smaller sphere of negative radius, whose normals point inward.

    Args:
        aspect_ratio: Image width divided by height.

    Returns:
        Tuple of (scene, camera).
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material((0.8, 0.8, 0.0))
    center = scene.add_lambertian_material((0.1, 0.2, 0.5))
    glass = scene.add_dielectric_material(1.5)
    gold = scene.add_metal_material((0.8, 0.6, 0.2), fuzz=1.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)

    lookfrom = (3.0, 3.0, 2.0)
    lookat = (0.0, 0.0, -1.0)
    camera = ThinLensCamera(
        lookfrom=lookfrom,
        lookat=lookat,
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=2.0,
        focus_dist=math.dist(lookfrom, lookat),
    )
    return scene, camera


def create_random_scene(
    aspect_ratio: float = 3.0 / 2.0,
    seed: int | None = 0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the field of random spheres around three large ones.

    Every grid cell holds one small sphere at a jittered position: 80%
    diffuse with a random albedo, 15% metal with a random tint and fuzz, 5%
    glass. Cells too close to the large metal sphere are left empty.

    Args:
        aspect_ratio: Image width divided by height.
        seed: Seed for the scene layout. The same seed always builds the
            same scene.

    Returns:
        Tuple of (scene, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    ground = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    # Every small glass sphere shares one material
    glass = scene.add_dielectric_material(1.5)
    clearance_point = np.array([4.0, RANDOM_SPHERE_RADIUS, 0.0])

    for a in range(RANDOM_GRID_MIN, RANDOM_GRID_MAX):
        for b in range(RANDOM_GRID_MIN, RANDOM_GRID_MAX):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), RANDOM_SPHERE_RADIUS, b + 0.9 * rng.random()]
            )
            if np.linalg.norm(center - clearance_point) <= 0.9:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                material = scene.add_lambertian_material(tuple(albedo))
            elif choose_mat < 0.95:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = rng.uniform(0.0, 0.5)
                material = scene.add_metal_material(tuple(albedo), fuzz)
            else:
                material = glass

            scene.add_sphere(tuple(center), RANDOM_SPHERE_RADIUS, material)

    scene.add_dielectric_sphere((0.0, 1.0, 0.0), 1.0, ior=1.5)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, albedo=(0.4, 0.2, 0.1))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, albedo=(0.7, 0.6, 0.5), fuzz=0.0)

    logger.debug("Random scene (seed=%s) has %d spheres", seed, scene.get_sphere_count())

    camera = ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


# Builders by the names used on the command line
DEMO_SCENES: dict[str, Callable[..., tuple[SceneManager, ThinLensCamera]]] = {
    "two-spheres": create_two_sphere_scene,
    "showcase": create_showcase_scene,
    "random": create_random_scene,
}
