"""Metal (specular reflective) material implementation.

Metals reflect the incoming ray about the surface normal:

    R = I - 2(I . N)N

A fuzz parameter perturbs the reflected direction by a random point in a
sphere of radius ``fuzz``, which blurs the reflection. If the perturbed ray
ends up below the surface it is absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.materials.metal import add_metal_material
    >>> idx = add_metal_material((0.8, 0.6, 0.2), fuzz=0.3)
"""

import math

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Ray, reflect, unit_vector, vec3
from src.tracer.core.sampler import random_in_unit_sphere
from src.tracer.errors import ConfigurationError
from src.tracer.geometry.hit_record import HitRecord
from src.tracer.materials.lambertian import validate_albedo


@ti.func
def scatter_metal(albedo: vec3, fuzz: ti.f64, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Reflect a ray off a metal surface.

    Args:
        albedo: The reflective color.
        fuzz: Reflection blur radius.
        ray_in: The incoming ray.
        rec: The hit record at the surface.
        stream: The random stream to draw from.

    Returns:
        A tuple of (scattered, attenuation, did_scatter). did_scatter is 0
        when the fuzzed direction points into the surface.
    """
    reflected = reflect(unit_vector(ray_in.direction), rec.normal)
    scattered = Ray(origin=rec.point, direction=reflected + fuzz * random_in_unit_sphere(stream))

    did_scatter = 0
    if tm.dot(scattered.direction, rec.normal) > 0.0:
        did_scatter = 1

    return scattered, albedo, did_scatter


# =============================================================================
# Parameter Registry (indexed by the slot in the material ID table)
# =============================================================================

MAX_METAL_MATERIALS = 256

metal_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f64, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def validate_fuzz(fuzz: float) -> float:
    """Check a fuzz value, clamping values above 1.

    Args:
        fuzz: The requested fuzz.

    Returns:
        min(fuzz, 1.0).

    Raises:
        ConfigurationError: If fuzz is negative or not finite.
    """
    try:
        fuzz = float(fuzz)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Fuzz must be a number, got {fuzz!r}") from e
    if not math.isfinite(fuzz) or fuzz < 0.0:
        raise ConfigurationError(f"Fuzz = {fuzz} must be a finite value >= 0")
    return min(fuzz, 1.0)


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(albedo, fuzz: float = 0.0) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B), components in [0, 1].
        fuzz: Reflection blur. Default is 0 (perfect mirror). Values above 1
            are clamped to 1.

    Returns:
        The index of the added material.

    Raises:
        ConfigurationError: If the albedo is invalid or fuzz is negative.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    r, g, b = validate_albedo(albedo)
    fuzz = validate_fuzz(fuzz)

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(r, g, b)
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f64:
    """Get the fuzz for a metal material by index."""
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Scatter off the metal material stored at ``material_idx``.

    Returns:
        A tuple of (scattered, attenuation, did_scatter).
    """
    albedo = get_metal_albedo(material_idx)
    fuzz = get_metal_fuzz(material_idx)
    return scatter_metal(albedo, fuzz, ray_in, rec, stream)
