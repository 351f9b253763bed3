"""Color integrator for Monte Carlo ray tracing.

This module computes the color seen along a camera ray and accumulates
jittered samples per pixel into a render target.

The color along a ray is defined recursively:

    color(ray, 0)     = black
    color(ray, depth) = sky(ray)                                  if nothing is hit
                      = black                                     if the surface absorbs
                      = attenuation * color(scattered, depth - 1) otherwise

Taichi functions cannot recurse, so ``ray_color`` evaluates the same product
with a loop that carries the running attenuation. When the bounce budget
runs out the result is black.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric)
    - Sky gradient for rays that escape the scene
    - Surface-normal debug shading
    - Per-pixel random streams, so renders are reproducible for a seed
    - Sum and count accumulation buffers for progressive rendering

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.camera.thin_lens import setup_camera
    >>> from src.tracer.core.integrator import render_image, setup_render_target
    >>> from src.tracer.scene.demo_scenes import create_two_sphere_scene
    >>>
    >>> scene, camera = create_two_sphere_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100, max_depth=50)
"""

from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from src.tracer.camera.thin_lens import get_ray_jittered
from src.tracer.core.ray import Ray, unit_vector, vec3
from src.tracer.core.sampler import MAX_STREAM_ROWS, STREAM_ROW_STRIDE, pixel_stream
from src.tracer.geometry.hit_record import HitRecord
from src.tracer.materials.dielectric import scatter_dielectric_by_id
from src.tracer.materials.lambertian import scatter_lambertian_by_id
from src.tracer.materials.metal import scatter_metal_by_id
from src.tracer.scene.intersection import intersect_scene
from src.tracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)


class ShadingMode(IntEnum):
    """How the integrator colors a camera ray.

    PATH traces the full bounce recursion. NORMALS colors hits by their
    surface normal, mapped from [-1, 1] to [0, 1].
    """

    PATH = 0
    NORMALS = 1


# =============================================================================
# Rendering Constants
# =============================================================================

# Default bounce budget per camera ray
MAX_DEPTH = 50

# Scene queries ignore hits closer than T_MIN (shadow acne)
T_MIN = 0.001
T_MAX = tm.inf

SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Every pixel needs its own random stream
MAX_IMAGE_WIDTH = STREAM_ROW_STRIDE
MAX_IMAGE_HEIGHT = MAX_STREAM_ROWS

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of all samples per pixel, indexed [i, j] with j = 0 at the bottom
_color_sum = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Result slot for single-ray queries from Python
_query_color = ti.Vector.field(3, dtype=ti.f64, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT so that resizing
    never reallocates fields.

    Args:
        width: Image width in pixels, in [1, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [1, MAX_IMAGE_HEIGHT].

    Raises:
        ValueError: If a dimension is out of range.
    """
    if not (1 <= width <= MAX_IMAGE_WIDTH and 1 <= height <= MAX_IMAGE_HEIGHT):
        raise ValueError(
            f"Image dimensions ({width}x{height}) must be between 1x1 and "
            f"{MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT}"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(material_id: ti.i32, ray_in: Ray, rec: HitRecord, stream: ti.i32):
    """Dispatch to the scatter function of a material.

    Args:
        material_id: The unified material ID of the hit surface.
        ray_in: The incoming ray.
        rec: The hit record.
        stream: The random stream to draw from.

    Returns:
        A tuple of (scattered, attenuation, did_scatter). Unknown material
        IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered = Ray(origin=rec.point, direction=vec3(0.0, 0.0, 0.0))
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered, attenuation, did_scatter = scatter_lambertian_by_id(
            type_index, ray_in, rec, stream
        )
    elif mat_type == int(MaterialType.METAL):
        scattered, attenuation, did_scatter = scatter_metal_by_id(type_index, ray_in, rec, stream)
    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, ray_in, rec, stream
        )

    return scattered, attenuation, did_scatter


# =============================================================================
# Ray Color
# =============================================================================


@ti.func
def sky_color(ray: Ray) -> vec3:
    """Background gradient from white at the horizon to blue overhead."""
    t = 0.5 * (unit_vector(ray.direction).y + 1.0)
    return (1.0 - t) * SKY_HORIZON_COLOR + t * SKY_ZENITH_COLOR


@ti.func
def ray_color(ray: Ray, depth: ti.i32, stream: ti.i32) -> vec3:
    """Compute the color seen along a ray.

    Args:
        ray: The ray to trace.
        depth: Remaining bounce budget. At most ``depth`` scene queries are
            made; a budget of 0 or less gives black.
        stream: The random stream to draw from.

    Returns:
        The product of the attenuations along the path times the sky color
        where the path escapes, or black if the path is absorbed or runs
        out of bounces.
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    # Taichi doesn't support break in ti.func loops
    active = 1
    for _ in range(depth):
        if active == 1:
            rec = intersect_scene(current, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * sky_color(current)
                active = 0
            else:
                scattered, attenuation, did_scatter = scatter_material(
                    rec.material_id, current, rec, stream
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    current = scattered

    return color


@ti.func
def normal_color(ray: Ray) -> vec3:
    """Color a ray by the surface normal it hits, or by the sky on a miss."""
    color = sky_color(ray)
    rec = intersect_scene(ray, T_MIN, T_MAX)
    if rec.hit == 1:
        color = 0.5 * (rec.normal + vec3(1.0, 1.0, 1.0))
    return color


@ti.func
def sanitize_sample(color: vec3) -> vec3:
    """Replace NaN, infinite and negative components with zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def render_sample_impl(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    mode: ti.i32,
) -> vec3:
    """Compute one jittered sample of pixel (i, j) on the pixel's own stream.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Bounce budget per camera ray.
        mode: A ShadingMode value.

    Returns:
        The sanitized sample color.
    """
    stream = pixel_stream(pixel_i, pixel_j)
    ray = get_ray_jittered(pixel_i, pixel_j, width, height, stream)

    color = vec3(0.0, 0.0, 0.0)
    if mode == int(ShadingMode.NORMALS):
        color = normal_color(ray)
    else:
        color = ray_color(ray, max_depth, stream)
    return sanitize_sample(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32, max_depth: ti.i32, mode: ti.i32):
    """Render one sample per pixel and add it to the buffers."""
    for i, j in ti.ndrange(width, height):
        color = render_sample_impl(i, j, width, height, max_depth, mode)
        _color_sum[i, j] += color
        _sample_count[i, j] += 1


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    mode: ti.i32,
):
    # Single-iteration outer loop keeps the scene loop serial
    for _ in range(1):
        _query_color[None] = render_sample_impl(pixel_i, pixel_j, width, height, max_depth, mode)


@ti.kernel
def _trace_ray_kernel(
    ox: ti.f64,
    oy: ti.f64,
    oz: ti.f64,
    dx: ti.f64,
    dy: ti.f64,
    dz: ti.f64,
    depth: ti.i32,
    stream: ti.i32,
):
    for _ in range(1):
        ray = Ray(origin=vec3(ox, oy, oz), direction=vec3(dx, dy, dz))
        _query_color[None] = ray_color(ray, depth, stream)


# =============================================================================
# Public Rendering API
# =============================================================================


def _query_result() -> tuple[float, float, float]:
    color = _query_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray(origin, direction, depth: int = MAX_DEPTH, stream: int = 0) -> tuple[float, float, float]:
    """Compute the color along a single ray against the current scene.

    Args:
        origin: Ray origin as (x, y, z).
        direction: Ray direction as (x, y, z). Need not be normalized.
        depth: Bounce budget. 0 or less gives black.
        stream: The random stream to draw from.

    Returns:
        Tuple of (R, G, B) linear color values.
    """
    _trace_ray_kernel(
        float(origin[0]),
        float(origin[1]),
        float(origin[2]),
        float(direction[0]),
        float(direction[1]),
        float(direction[2]),
        int(depth),
        int(stream),
    )
    return _query_result()


def render_sample(
    pixel_i: int,
    pixel_j: int,
    max_depth: int = MAX_DEPTH,
    mode: ShadingMode = ShadingMode.PATH,
) -> tuple[float, float, float]:
    """Render one sample of a pixel without accumulating it.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        max_depth: Bounce budget per camera ray.
        mode: How to shade the camera ray.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    _render_single_pixel(pixel_i, pixel_j, width, height, max_depth, int(mode))
    return _query_result()


def render_image(
    num_samples: int = 1,
    max_depth: int = MAX_DEPTH,
    mode: ShadingMode = ShadingMode.PATH,
) -> None:
    """Render samples for every pixel and accumulate them.

    Can be called repeatedly to add more samples.

    Args:
        num_samples: Number of samples to add per pixel.
        max_depth: Bounce budget per camera ray.
        mode: How to shade camera rays.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If num_samples is negative.
    """
    _check_render_target_initialized()
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")

    width, height = get_image_dimensions()
    for _ in range(num_samples):
        _render_one_spp(width, height, max_depth, int(mode))


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel.

    Every pixel receives the same number of samples, so pixel (0, 0) is
    representative.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> np.ndarray:
    """Get the averaged linear image as a NumPy array.

    Pixels without samples are black. No clamping or gamma is applied.

    Returns:
        A float64 array of shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    sums = _color_sum.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height].astype(np.float64)

    image = np.zeros_like(sums)
    np.divide(sums, counts[..., None], out=image, where=counts[..., None] > 0)

    # (width, height, 3) -> (height, width, 3), then put the top row first
    image = np.transpose(image, (1, 0, 2))
    return np.flipud(image).copy()
