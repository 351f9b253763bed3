"""Ray data structure and vector utilities.

This module provides the Ray dataclass and the vector algebra used by every
other part of the tracer. Points, directions and colors all share the same
float64 ``vec3`` representation.

The Taichi functions are meant to be called from inside kernels. The small
NumPy helpers at the bottom are for Python-side setup code (camera basis,
scene validation).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> origin = vec3(0.0, 0.0, 0.0)
    >>> direction = vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.tracer.errors import ConfigurationError, DegenerateVectorError

# 3-component float64 vector used for points, directions and colors
vec3 = ti.types.vector(3, ti.f64)

# Component threshold below which a vector counts as zero
NEAR_ZERO_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction of the ray. Not normalized by convention.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f64) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Any value is allowed, including negative t.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f64:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f64:
    """Compute the Euclidean length of a vector."""
    return ti.sqrt(length_squared(v))


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Scale a vector to unit length.

    A zero-length input has no direction. In debug mode (``ti.init(debug=True)``)
    it trips an assertion; otherwise the result is NaN.

    Args:
        v: The input vector.

    Returns:
        v / length(v).
    """
    assert length_squared(v) > 0.0, "unit_vector() of a zero-length vector"
    return v / length(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f64:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to catch degenerate scatter directions.

    Args:
        v: The vector to check.

    Returns:
        1 if every component's magnitude is below 1e-8, 0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Reflect a vector about a normal.

    Args:
        v: The incoming direction (pointing toward the surface).
        n: The surface normal (unit length).

    Returns:
        The mirror direction v - 2 (v . n) n.
    """
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def refract(uv: vec3, n: vec3, etai_over_etat: ti.f64) -> vec3:
    """Refract a unit vector through a surface using Snell's law.

    The result is split into the components perpendicular and parallel to
    the normal. Callers check for total internal reflection first; this
    function always returns a direction.

    Args:
        uv: The incoming direction (unit length).
        n: The surface normal (unit length, facing the incoming ray).
        etai_over_etat: Ratio of refractive indices (incident / transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-uv, n), 1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * n)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * n
    return r_out_perp + r_out_parallel


@ti.func
def reflectance(cosine: ti.f64, ref_idx: ti.f64) -> ti.f64:
    """Estimate Fresnel reflectance with Schlick's approximation.

    Args:
        cosine: Cosine of the angle between the incoming ray and the normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The probability that the ray reflects instead of refracting.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * (1.0 - cosine) ** 5


# =============================================================================
# Python-side Helpers
# =============================================================================


def to_vec3_array(values: Sequence[float], name: str = "vector") -> npt.NDArray[np.float64]:
    """Convert a 3-component sequence to a float64 NumPy array.

    Args:
        values: Three numbers (x, y, z).
        name: Name used in the error message.

    Returns:
        A NumPy array of shape (3,).

    Raises:
        ConfigurationError: If the input does not have three finite components.
    """
    try:
        array = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be three numbers, got {values!r}") from e

    if array.shape != (3,):
        raise ConfigurationError(f"{name} must have 3 components, got {values!r}")
    if not np.all(np.isfinite(array)):
        raise ConfigurationError(f"{name} components must be finite, got {values!r}")
    return array


def unit_vector_np(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Scale a NumPy vector to unit length.

    Args:
        v: The input vector.

    Returns:
        v / |v|.

    Raises:
        DegenerateVectorError: If v has zero length.
    """
    norm = float(np.linalg.norm(v))
    if norm == 0.0 or not math.isfinite(norm):
        raise DegenerateVectorError(f"Cannot normalize vector {v.tolist()} of length {norm}")
    return v / norm
