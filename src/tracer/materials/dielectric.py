"""Dielectric (glass/water) material implementation.

Dielectrics never absorb light. At each hit the ray either reflects or
refracts:

    - Snell's law gives the refracted direction: n1 sin(theta1) = n2 sin(theta2)
    - When ratio * sin(theta) > 1 no refraction exists (total internal
      reflection) and the ray reflects
    - Otherwise the ray reflects with probability given by Schlick's
      approximation of the Fresnel reflectance, and refracts the rest of
      the time

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.materials.dielectric import add_dielectric_material
    >>> glass = add_dielectric_material(1.5)
"""

import math

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Ray, reflect, reflectance, refract, unit_vector, vec3
from src.tracer.core.sampler import random_real
from src.tracer.errors import ConfigurationError
from src.tracer.geometry.hit_record import HitRecord


@ti.func
def refraction_ratio(ior: ti.f64, front_face: ti.i32) -> ti.f64:
    """Ratio of refractive indices for a ray entering (front face) or leaving."""
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def cannot_refract(ratio: ti.f64, unit_direction: vec3, normal: vec3) -> ti.i32:
    """Check for total internal reflection.

    Args:
        ratio: Ratio of refractive indices (incident / transmitted).
        unit_direction: The incoming direction (unit length).
        normal: The surface normal facing the incoming ray.

    Returns:
        1 if no refracted direction exists, 0 otherwise.
    """
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(1.0 - cos_theta * cos_theta)
    return ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(ior: ti.f64, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Reflect or refract a ray at a dielectric boundary.

    One uniform number is drawn per call, whether or not it decides the
    outcome.

    Args:
        ior: Index of refraction of the material.
        ray_in: The incoming ray.
        rec: The hit record at the surface.
        stream: The random stream to draw from.

    Returns:
        A tuple of (scattered, attenuation, did_scatter). Attenuation is
        (1, 1, 1) and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = refraction_ratio(ior, rec.front_face)

    unit_direction = unit_vector(ray_in.direction)
    cos_theta = tm.min(tm.dot(-unit_direction, rec.normal), 1.0)

    u = random_real(stream)
    direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract(ratio, unit_direction, rec.normal) or reflectance(cos_theta, ratio) > u:
        direction = reflect(unit_direction, rec.normal)
    else:
        direction = refract(unit_direction, rec.normal, ratio)

    scattered = Ray(origin=rec.point, direction=direction)
    return scattered, attenuation, 1


# =============================================================================
# Parameter Registry (indexed by the slot in the material ID table)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 256

dielectric_iors = ti.field(dtype=ti.f64, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def validate_ior(ior: float) -> float:
    """Check an index of refraction.

    Values below 1 are accepted; they describe a medium less dense than its
    surroundings.

    Raises:
        ConfigurationError: If ior is not a finite positive number.
    """
    try:
        ior = float(ior)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Index of refraction must be a number, got {ior!r}") from e
    if not math.isfinite(ior) or ior <= 0.0:
        raise ConfigurationError(f"Index of refraction = {ior} must be a finite value > 0")
    return ior


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).

    Returns:
        The index of the added material.

    Raises:
        ConfigurationError: If ior is not positive and finite.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    ior = validate_ior(ior)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f64:
    """Get the IOR for a dielectric material by index."""
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Scatter off the dielectric material stored at ``material_idx``.

    Returns:
        A tuple of (scattered, attenuation, did_scatter).
    """
    ior = get_dielectric_ior(material_idx)
    return scatter_dielectric(ior, ray_in, rec, stream)
