"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed on the focus plane, ``focus_dist`` in front of the
camera. Ray origins are spread over a lens disk of radius ``aperture / 2``;
every ray through a given viewport point meets at that point, so objects on
the focus plane are sharp and everything else blurs. With ``aperture = 0``
the camera is a pinhole.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=3.0 / 2.0,
    ...     aperture=0.1,
    ...     focus_dist=10.0,
    ... )
    >>> setup_camera(camera)
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import taichi as ti

from src.tracer.core.ray import Ray, make_ray, to_vec3_array, unit_vector_np, vec3
from src.tracer.core.sampler import random_in_unit_disk, random_real
from src.tracer.errors import ConfigurationError

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class ThinLensCamera:
    """Configuration for a thin-lens camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at (x, y, z).
        vup: Up direction for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_dist: Distance from the camera to the plane in perfect focus.

    Raises:
        ConfigurationError: If a parameter is out of range.
        DegenerateVectorError: If the view direction is zero or parallel to vup.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0

    def __post_init__(self) -> None:
        if not (math.isfinite(self.vfov) and 0.0 < self.vfov < 180.0):
            raise ConfigurationError(f"vfov = {self.vfov} must be in (0, 180) degrees")
        if not (math.isfinite(self.aspect_ratio) and self.aspect_ratio > 0.0):
            raise ConfigurationError(f"aspect_ratio = {self.aspect_ratio} must be > 0")
        if not (math.isfinite(self.aperture) and self.aperture >= 0.0):
            raise ConfigurationError(f"aperture = {self.aperture} must be >= 0")
        if not (math.isfinite(self.focus_dist) and self.focus_dist > 0.0):
            raise ConfigurationError(f"focus_dist = {self.focus_dist} must be > 0")
        # Raises DegenerateVectorError for a degenerate orientation
        self.basis()

    def basis(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Compute the camera's orthonormal basis.

        Returns:
            A tuple (u, v, w) of unit NumPy vectors.

        Raises:
            DegenerateVectorError: If lookfrom == lookat, or vup is parallel
                to the view direction.
        """
        lookfrom = to_vec3_array(self.lookfrom, "lookfrom")
        lookat = to_vec3_array(self.lookat, "lookat")
        vup = to_vec3_array(self.vup, "vup")

        w = unit_vector_np(lookfrom - lookat)
        u = unit_vector_np(np.cross(vup, w))
        v = np.cross(w, u)
        return u, v, w

    def to_dict(self) -> dict[str, Any]:
        """Export the camera as a JSON-friendly dictionary."""
        data = asdict(self)
        for key in ("lookfrom", "lookat", "vup"):
            data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ThinLensCamera":
        """Build a camera from a dictionary produced by ``to_dict``.

        Raises:
            ConfigurationError: If required keys are missing or a value has
                the wrong type.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Camera must be an object, got {type(data).__name__}")
        try:
            params = {
                "lookfrom": tuple(data["lookfrom"]),
                "lookat": tuple(data["lookat"]),
                "vup": tuple(data.get("vup", (0.0, 1.0, 0.0))),
                "vfov": float(data["vfov"]),
                "aspect_ratio": float(data["aspect_ratio"]),
                "aperture": float(data.get("aperture", 0.0)),
                "focus_dist": float(data.get("focus_dist", 1.0)),
            }
        except KeyError as e:
            raise ConfigurationError(f"Camera is missing required key {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Camera has a malformed value: {e}") from e
        return cls(**params)


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f64, shape=())

_camera_u = ti.Vector.field(3, dtype=ti.f64, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f64, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f64, shape=())  # Backward (opposite view)

_viewport_horizontal = ti.Vector.field(3, dtype=ti.f64, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f64, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f64, shape=())
_lens_radius = ti.field(dtype=ti.f64, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Load a camera configuration into the Taichi camera state.

    Must be called before rendering.

    Args:
        camera: The camera configuration.
    """
    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    origin = to_vec3_array(camera.lookfrom, "lookfrom")
    u, v, w = camera.basis()

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = origin - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = origin.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f64, t: ti.f64, stream: ti.i32) -> Ray:
    """Generate a ray through viewport coordinates (s, t).

    s = 0 is the left edge and s = 1 the right edge; t = 0 is the bottom
    edge and t = 1 the top edge. The origin is jittered over the lens disk.
    The direction is not normalized.

    Args:
        s: Horizontal viewport coordinate.
        t: Vertical viewport coordinate.
        stream: The random stream used for the lens sample.

    Returns:
        A ray from a point on the lens toward the focus-plane point (s, t).
    """
    rd = _lens_radius[None] * random_in_unit_disk(stream)
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None]
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return make_ray(origin + offset, target - origin - offset)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, stream: ti.i32
) -> Ray:
    """Generate a ray through a uniformly jittered point of pixel (i, j).

    Pixel (0, 0) is the bottom-left of the image.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        stream: The random stream to draw from.

    Returns:
        A ray for one anti-aliasing sample of the pixel.
    """
    jitter_u = random_real(stream)
    jitter_v = random_real(stream)

    s = (ti.cast(pixel_i, ti.f64) + jitter_u) / ti.cast(width, ti.f64)
    t = (ti.cast(pixel_j, ti.f64) + jitter_v) / ti.cast(height, ti.f64)
    return get_ray(s, t, stream)


# =============================================================================
# Utility Functions
# =============================================================================

_sample_origin = ti.Vector.field(3, dtype=ti.f64, shape=())
_sample_direction = ti.Vector.field(3, dtype=ti.f64, shape=())


@ti.kernel
def _sample_camera_ray_kernel(s: ti.f64, t: ti.f64, stream: ti.i32):
    # Single-iteration outer loop keeps the lens rejection loop serial
    for _ in range(1):
        ray = get_ray(s, t, stream)
        _sample_origin[None] = ray.origin
        _sample_direction[None] = ray.direction


def sample_camera_ray(s: float, t: float, stream: int = 0):
    """Generate one camera ray from Python.

    Args:
        s: Horizontal viewport coordinate.
        t: Vertical viewport coordinate.
        stream: The random stream used for the lens sample.

    Returns:
        A tuple (origin, direction) of (x, y, z) tuples.
    """
    _sample_camera_ray_kernel(s, t, stream)
    origin = _sample_origin[None]
    direction = _sample_direction[None]
    return (
        (float(origin[0]), float(origin[1]), float(origin[2])),
        (float(direction[0]), float(direction[1]), float(direction[2])),
    )


def get_camera_info() -> dict[str, Any]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        and lens_radius.
    """

    def _tuple(field) -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _tuple(_camera_origin),
        "u": _tuple(_camera_u),
        "v": _tuple(_camera_v),
        "w": _tuple(_camera_w),
        "horizontal": _tuple(_viewport_horizontal),
        "vertical": _tuple(_viewport_vertical),
        "lower_left": _tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
