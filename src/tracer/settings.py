"""Render settings.

RenderSettings collects everything that controls a render apart from the
scene and camera. It validates itself on construction, so a settings object
that exists is always usable.

Example:
    >>> from src.tracer.settings import RenderSettings
    >>> settings = RenderSettings(width=400, height=225, samples_per_pixel=100)
"""

import math
from dataclasses import dataclass

from src.tracer.errors import ConfigurationError

# Must match the render target capacity in core.integrator
MAX_IMAGE_SIZE = 1024

SHADING_MODES = ("path", "normals")


@dataclass(frozen=True)
class RenderSettings:
    """Settings for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Jittered samples averaged per pixel.
        max_depth: Bounce budget per camera ray.
        seed: Seed for the per-pixel random streams.
        gamma: Gamma used when writing the image.
        shading: "path" for full ray tracing, "normals" for normal shading.
    """

    width: int
    height: int
    samples_per_pixel: int = 10
    max_depth: int = 50
    seed: int = 0
    gamma: float = 2.0
    shading: str = "path"

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not 1 <= value <= MAX_IMAGE_SIZE:
                raise ConfigurationError(f"{name} = {value} must be in [1, {MAX_IMAGE_SIZE}]")
        if self.samples_per_pixel < 1:
            raise ConfigurationError(
                f"samples_per_pixel = {self.samples_per_pixel} must be >= 1"
            )
        if self.max_depth < 1:
            raise ConfigurationError(f"max_depth = {self.max_depth} must be >= 1")
        if not (math.isfinite(self.gamma) and self.gamma > 0.0):
            raise ConfigurationError(f"gamma = {self.gamma} must be > 0")
        if self.shading not in SHADING_MODES:
            raise ConfigurationError(
                f"shading = {self.shading!r} must be one of {', '.join(SHADING_MODES)}"
            )

    @property
    def aspect_ratio(self) -> float:
        """Image width divided by height."""
        return self.width / self.height
