"""Progressive rendering on top of the integrator.

A ProgressiveRenderer owns the render target settings and adds samples in
batches, so long renders can report progress and be continued or restarted.
Every pixel draws from its own random stream; reseeding with the same seed
reproduces a render exactly.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from src.tracer.camera.thin_lens import setup_camera
    >>> from src.tracer.core.progressive import ProgressiveRenderer
    >>> from src.tracer.scene.demo_scenes import create_showcase_scene
    >>>
    >>> scene, camera = create_showcase_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(400, 225, seed=42)
    >>> renderer.render(100, batch_size=10)
    >>> renderer.save_image("showcase.png")
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.tracer.core.integrator import (
    MAX_DEPTH,
    ShadingMode,
    clear_render_target,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from src.tracer.core.sampler import seed_rng
from src.tracer.preview.export import apply_gamma, image_to_uint8, save_image

logger = logging.getLogger(__name__)

# Called as callback(samples_so_far, samples_when_done)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates jittered samples per pixel over any number of calls.

    The sample buffers are the integrator's module-level fields, so only
    one renderer should be in use at a time.

    Attributes:
        max_depth: Bounce budget per camera ray.
        mode: How camera rays are shaded.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = MAX_DEPTH,
        seed: int | None = None,
        mode: ShadingMode = ShadingMode.PATH,
    ) -> None:
        """Set up an empty render target.

        Args:
            width: Image width in pixels, at most 1024.
            height: Image height in pixels, at most 1024.
            max_depth: Bounce budget per camera ray.
            seed: Seed for the per-pixel streams. None leaves them as they are.
            mode: How camera rays are shaded.

        Raises:
            ValueError: If a dimension is out of range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.mode = ShadingMode(mode)
        if seed is not None:
            seed_rng(seed)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Samples accumulated so far in every pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Drop all accumulated samples."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Change the image size. Accumulated samples are dropped.

        Raises:
            ValueError: If a dimension is out of range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def reseed(self, seed: int | None) -> None:
        """Reseed the per-pixel streams and start over."""
        seed_rng(seed)
        self.reset()

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Add ``num_samples`` samples per pixel.

        Args:
            num_samples: Samples to add on top of those already accumulated.
            batch_size: Samples rendered between progress reports.
            callback: Called after every batch with the sample count so far
                and the count this call will reach.

        Example:
            >>> renderer.render(
            ...     100, batch_size=25, callback=lambda n, total: print(f"{n}/{total}")
            ... )
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Add samples batch by batch, yielding after each batch.

        Yields:
            (samples_so_far, samples_when_done) after every batch.

        Raises:
            ValueError: If batch_size is less than 1.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if num_samples <= 0:
            return

        target = self.sample_count + num_samples
        started = time.perf_counter()

        while self.sample_count < target:
            render_image(min(batch_size, target - self.sample_count), self.max_depth, self.mode)
            logger.debug("%d/%d samples per pixel", self.sample_count, target)
            yield self.sample_count, target

        logger.info(
            "Rendered %d samples per pixel at %dx%d in %.2fs",
            num_samples,
            self._width,
            self._height,
            time.perf_counter() - started,
        )

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float64]:
        """Averaged image of shape (height, width, 3), top row first.

        With the default gamma of 1.0 the image is linear and unclamped.
        Any other gamma clamps to [0, 1] and gamma encodes.
        """
        image = get_linear_image_numpy()
        if gamma != 1.0:
            image = apply_gamma(image, gamma)
        return image

    def get_image_uint8(self, gamma: float = 2.0) -> npt.NDArray[np.uint8]:
        """Gamma encoded 8-bit image."""
        return image_to_uint8(get_linear_image_numpy(), gamma)

    def save_image(self, filepath: str | Path, gamma: float = 2.0) -> None:
        """Write the image as PPM or PNG, chosen by file extension."""
        save_image(get_linear_image_numpy(), filepath, gamma)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer({self._width}x{self._height}, "
            f"samples={self.sample_count})"
        )
