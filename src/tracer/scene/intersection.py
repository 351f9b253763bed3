"""Scene-level ray intersection over the sphere arena.

The scene is a flat list of spheres stored in Taichi fields (Structure of
Arrays layout). ``intersect_scene`` tests every sphere and keeps the
closest hit, shrinking the search interval as it goes. No acceleration
structure is used.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti

from src.tracer.core.ray import Ray, vec3
from src.tracer.geometry.hit_record import HitRecord, make_miss_record
from src.tracer.geometry.sphere import Sphere, hit_sphere

MAX_SPHERES = 1024

sphere_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f64, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    The field data is left in place and overwritten by later additions.
    """
    num_spheres[None] = 0


def add_sphere(center, radius: float, material_id: int = 0) -> int:
    """Append a sphere to the arena.

    No validation happens here; ``SceneManager.add_sphere`` checks its
    arguments before calling this.

    Args:
        center: The center point as (x, y, z).
        radius: The radius. Negative values model hollow shells.
        material_id: The unified material ID for this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def get_sphere(idx: ti.i32) -> Sphere:
    """Load sphere ``idx`` from the arena."""
    return Sphere(
        center=sphere_centers[idx],
        radius=sphere_radii[idx],
        material_id=sphere_material_ids[idx],
    )


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f64, t_max: ti.f64) -> HitRecord:
    """Find the closest intersection of a ray with every sphere.

    Args:
        ray: The ray to trace.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        The HitRecord with the smallest t in [t_min, t_max], or a miss
        record if nothing was hit (including for an empty scene).
    """
    closest_t = t_max
    result = make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray, get_sphere(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec

    return result
