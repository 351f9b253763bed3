"""Random number streams and Monte Carlo sampling utilities.

Every random draw in the tracer goes through an explicit stream: an index
into a field of xorshift32 states. Each pixel owns one stream (see
``pixel_stream``), so pixels rendered in parallel never share generator
state and a render is reproducible for a given seed regardless of how the
pixel loop is scheduled.

Streams are seeded from Python with ``seed_rng``. Stream 0 doubles as the
stream for single-ray queries made from Python (tests, ``trace_ray``).

Example:
    >>> from src.tracer.core.sampler import seed_rng, random_unit_vector
    >>> seed_rng(7)
    >>> # Inside a Taichi kernel:
    >>> # direction = random_unit_vector(stream)
"""

import numpy as np
import taichi as ti

from src.tracer.core.ray import length_squared, unit_vector, vec3

# Streams are laid out row-major over the largest supported image
STREAM_ROW_STRIDE = 1024
MAX_STREAM_ROWS = 1024
MAX_STREAMS = STREAM_ROW_STRIDE * MAX_STREAM_ROWS

# Seed used at import so that draws are valid before the first seed_rng() call
DEFAULT_SEED = 0

# Upper bound on rejection-sampling attempts (expected ~2 for the unit ball)
MAX_REJECTION_TRIES = 64

_U32_TO_UNIT = 1.0 / 4294967296.0

_rng_states = ti.field(dtype=ti.u32, shape=MAX_STREAMS)


def seed_rng(seed: int | None = DEFAULT_SEED) -> None:
    """Seed every random stream.

    Stream states are drawn from a NumPy generator, so the same seed always
    produces the same states. xorshift32 must never hold a zero state, so
    states are drawn from [1, 2^32 - 1].

    Args:
        seed: Seed for the stream states. None draws fresh OS entropy.
    """
    rng = np.random.default_rng(seed)
    states = rng.integers(1, 2**32 - 1, size=MAX_STREAMS, dtype=np.uint32, endpoint=True)
    _rng_states.from_numpy(states)


def get_stream_state(stream: int) -> int:
    """Get the current state of a stream (for inspection and tests)."""
    if not 0 <= stream < MAX_STREAMS:
        raise ValueError(f"Stream {stream} is outside [0, {MAX_STREAMS})")
    return int(_rng_states[stream])


@ti.func
def pixel_stream(pixel_i: ti.i32, pixel_j: ti.i32) -> ti.i32:
    """Get the stream owned by pixel (i, j)."""
    return pixel_j * STREAM_ROW_STRIDE + pixel_i


@ti.func
def _next_u32(stream: ti.i32) -> ti.u32:
    """Advance a stream by one xorshift32 step and return the new state."""
    x = _rng_states[stream]
    x ^= x << 13
    x ^= ti.bit_shr(x, 17)
    x ^= x << 5
    _rng_states[stream] = x
    return x


@ti.func
def random_real(stream: ti.i32) -> ti.f64:
    """Draw a uniform real in [0, 1)."""
    return ti.cast(_next_u32(stream), ti.f64) * _U32_TO_UNIT


@ti.func
def random_real_range(stream: ti.i32, lo: ti.f64, hi: ti.f64) -> ti.f64:
    """Draw a uniform real in [lo, hi)."""
    return lo + (hi - lo) * random_real(stream)


@ti.func
def random_vec3(stream: ti.i32) -> vec3:
    """Draw a vector with each component uniform in [0, 1)."""
    x = random_real(stream)
    y = random_real(stream)
    z = random_real(stream)
    return vec3(x, y, z)


@ti.func
def random_vec3_range(stream: ti.i32, lo: ti.f64, hi: ti.f64) -> vec3:
    """Draw a vector with each component uniform in [lo, hi)."""
    x = random_real_range(stream, lo, hi)
    y = random_real_range(stream, lo, hi)
    z = random_real_range(stream, lo, hi)
    return vec3(x, y, z)


@ti.func
def random_in_unit_sphere(stream: ti.i32) -> vec3:
    """Draw a point uniformly distributed inside the unit ball.

    Uses rejection sampling: candidates in the [-1, 1)^3 cube with
    squared length >= 1 are discarded.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            candidate = random_vec3_range(stream, -1.0, 1.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_unit_vector(stream: ti.i32) -> vec3:
    """Draw a unit vector uniformly distributed on the sphere."""
    return unit_vector(random_in_unit_sphere(stream))


@ti.func
def random_in_hemisphere(stream: ti.i32, normal: vec3) -> vec3:
    """Draw a point in the unit ball, flipped into the normal's hemisphere.

    Args:
        stream: The random stream to draw from.
        normal: The normal defining the hemisphere.

    Returns:
        A random point p with dot(p, normal) >= 0.
    """
    in_unit_sphere = random_in_unit_sphere(stream)
    result = in_unit_sphere
    if in_unit_sphere.dot(normal) < 0.0:
        result = -in_unit_sphere
    return result


@ti.func
def random_in_unit_disk(stream: ti.i32) -> vec3:
    """Draw a point uniformly inside the unit disk in the xy-plane.

    Used to sample the camera lens for depth of field.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x = random_real_range(stream, -1.0, 1.0)
            y = random_real_range(stream, -1.0, 1.0)
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = True
    return p


seed_rng(DEFAULT_SEED)
