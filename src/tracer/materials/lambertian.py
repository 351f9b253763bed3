"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters light in all directions above the surface.
The scattered direction is the surface normal plus a random unit vector,
which yields a cosine-weighted distribution around the normal. Light is
attenuated by the albedo on every bounce and never absorbed outright.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.materials.lambertian import (
    ...     add_lambertian_material, scatter_lambertian
    ... )
    >>> idx = add_lambertian_material((0.8, 0.3, 0.3))
    >>> # Use within a Taichi kernel:
    >>> # scattered, attenuation, did_scatter = scatter_lambertian(
    >>> #     albedo, ray_in, rec, stream
    >>> # )
"""

import math
from collections.abc import Sequence

import taichi as ti

from src.tracer.core.ray import Ray, near_zero, vec3
from src.tracer.core.sampler import random_unit_vector
from src.tracer.errors import ConfigurationError
from src.tracer.geometry.hit_record import HitRecord


@ti.func
def scatter_lambertian(albedo: vec3, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Scatter a ray off a diffuse surface.

    Args:
        albedo: The diffuse reflectance color.
        ray_in: The incoming ray. Diffuse scattering ignores its direction.
        rec: The hit record at the surface.
        stream: The random stream to draw from.

    Returns:
        A tuple of (scattered, attenuation, did_scatter) where scattered
        starts at the hit point, attenuation equals albedo and did_scatter
        is always 1.
    """
    scatter_direction = rec.normal + random_unit_vector(stream)

    # Degenerate when the random vector nearly cancels the normal
    if near_zero(scatter_direction):
        scatter_direction = rec.normal

    scattered = Ray(origin=rec.point, direction=scatter_direction)
    return scattered, albedo, 1


# =============================================================================
# Parameter Registry (indexed by the slot in the material ID table)
# =============================================================================

MAX_LAMBERTIAN_MATERIALS = 512

lambertian_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def validate_albedo(albedo: Sequence[float]) -> tuple[float, float, float]:
    """Check that an albedo is three finite components in [0, 1].

    Args:
        albedo: The color as an (R, G, B) sequence.

    Returns:
        The albedo as a tuple of floats.

    Raises:
        ConfigurationError: If the albedo is malformed or out of range.
    """
    try:
        components = tuple(float(c) for c in albedo)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Albedo must be three numbers, got {albedo!r}") from e

    if len(components) != 3:
        raise ConfigurationError(f"Albedo must have 3 components, got {albedo!r}")

    for i, component in enumerate(components):
        if not math.isfinite(component) or component < 0.0 or component > 1.0:
            raise ConfigurationError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return components


def clear_lambertian_materials() -> None:
    """Empty the registry. Stale slots are overwritten by later additions."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: Sequence[float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B).

    Returns:
        The index of the added material.

    Raises:
        ConfigurationError: If the albedo is invalid.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    r, g, b = validate_albedo(albedo)

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(r, g, b)
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Scatter off the Lambertian material stored at ``material_idx``.

    Returns:
        A tuple of (scattered, attenuation, did_scatter).
    """
    albedo = get_lambertian_albedo(material_idx)
    return scatter_lambertian(albedo, ray_in, rec, stream)
