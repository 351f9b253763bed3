"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview window
    export: Gamma encoding, quantization, PPM and PNG writers

Neither module touches Taichi; both work on linear NumPy images of shape
(H, W, 3), top row first, as returned by
``ProgressiveRenderer.get_image_numpy()``.

Example:
    >>> from src.tracer.preview import save_image, show_preview
    >>> save_image(image, "output.png")
    >>> show_preview(image)
"""

from src.tracer.preview.display import show_preview
from src.tracer.preview.export import (
    apply_gamma,
    image_to_uint8,
    quantize,
    save_image,
    save_png,
    save_ppm,
    write_ppm,
)

__all__ = [
    # Display functions
    "show_preview",
    # Export functions
    "apply_gamma",
    "quantize",
    "image_to_uint8",
    "write_ppm",
    "save_ppm",
    "save_png",
    "save_image",
]
