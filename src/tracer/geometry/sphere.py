"""Sphere primitive with ray-sphere intersection.

The intersection solves |origin + t d - center|^2 = radius^2 for t. With
oc = origin - center this is the quadratic

    a t^2 + 2 h t + c = 0,  a = d . d,  h = oc . d,  c = oc . oc - radius^2

written with the half coefficient h so the factors of two cancel. The
smaller root is tried first, then the larger one.

A negative radius is allowed: the outward normal (p - center) / radius then
points inward, which models a hollow shell (e.g. the inside of a glass
bubble).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=vec3(0, 0, -1), radius=0.5, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Ray, ray_at, vec3
from src.tracer.geometry.hit_record import HitRecord, make_hit_record, make_miss_record


@ti.dataclass
class Sphere:
    """A sphere defined by center point, radius and material.

    Attributes:
        center: The center point of the sphere.
        radius: The radius. Negative values flip the normal (hollow shell).
        material_id: The unified material ID shading this sphere.
    """

    center: vec3
    radius: ti.f64
    material_id: ti.i32


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f64, t_max: ti.f64) -> HitRecord:
    """Find the nearest intersection of a ray with a sphere.

    A root is accepted when t_min <= root <= t_max.

    Args:
        ray: The ray to test. Its direction need not be normalized.
        sphere: The sphere to test against.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        A HitRecord for the nearest accepted root, or a miss record.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    half_b = tm.dot(oc, ray.direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    result = make_miss_record()

    if discriminant >= 0.0:
        sqrtd = ti.sqrt(discriminant)

        root = (-half_b - sqrtd) / a
        valid = t_min <= root <= t_max
        if not valid:
            root = (-half_b + sqrtd) / a
            valid = t_min <= root <= t_max

        if valid:
            point = ray_at(ray, root)
            outward_normal = (point - sphere.center) / sphere.radius
            result = make_hit_record(ray, root, point, outward_normal, sphere.material_id)

    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f64, material_id: ti.i32) -> Sphere:
    """Create a sphere within a Taichi kernel."""
    return Sphere(center=center, radius=radius, material_id=material_id)
