"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    sampler: Per-pixel random streams and Monte Carlo sampling
    integrator: Color integrator, material dispatch and render kernels
    progressive: Batch/progressive render loop wrapper

The integrator evaluates the bounce-limited light transport recursion for
each camera ray and accumulates jittered samples per pixel.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    ray_at,
    reflect,
    reflectance,
    refract,
    to_vec3_array,
    unit_vector,
    unit_vector_np,
    vec3,
)

# Note: sampler, integrator and progressive allocate Taichi fields and are NOT
# imported here. Import them directly after Taichi has been initialized:
#   from src.tracer.core.integrator import trace_ray

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "unit_vector",
    "dot",
    "cross",
    "near_zero",
    "reflect",
    "refract",
    "reflectance",
    "to_vec3_array",
    "unit_vector_np",
]
