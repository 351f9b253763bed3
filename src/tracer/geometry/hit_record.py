"""Hit record produced by ray-primitive intersection tests.

A HitRecord describes the nearest accepted intersection of a ray with a
primitive. Taichi has no optional values, so a miss is a record with
``hit == 0`` and every other field left at its default.

The stored normal always opposes the incident ray. ``front_face`` records
which side was hit, which the dielectric material needs to pick the
refraction ratio.
"""

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Ray, vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: 1 if the ray hit a surface, 0 for a miss.
        t: The ray parameter of the intersection.
        point: The intersection point.
        normal: Unit surface normal, oriented against the incident ray.
        front_face: 1 if the ray approached from outside the surface
            (dot(direction, outward_normal) < 0), 0 otherwise.
        material_id: The unified material ID of the surface, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f64
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def set_face_normal(ray: Ray, outward_normal: vec3):
    """Orient a normal against the incident ray.

    Args:
        ray: The incident ray.
        outward_normal: The unit normal pointing out of the surface.

    Returns:
        A tuple (front_face, normal) where normal opposes ray.direction.
    """
    front_face = 0
    normal = -outward_normal
    if tm.dot(ray.direction, outward_normal) < 0.0:
        front_face = 1
        normal = outward_normal
    return front_face, normal


@ti.func
def make_hit_record(
    ray: Ray,
    t: ti.f64,
    point: vec3,
    outward_normal: vec3,
    material_id: ti.i32,
) -> HitRecord:
    """Build a hit record, fixing the normal orientation at construction."""
    front_face, normal = set_face_normal(ray, outward_normal)
    return HitRecord(
        hit=1,
        t=t,
        point=point,
        normal=normal,
        front_face=front_face,
        material_id=material_id,
    )


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )
