"""Image export utilities for rendered images.

Rendered images are linear float arrays of shape (H, W, 3), top row first.
Before writing, each component is gamma encoded and quantized to 8 bits:

    c' = clamp(c, 0, 1) ** (1 / gamma)
    byte = int(256 * clamp(c', 0, 0.999))

Supported formats:
    - PPM (plain-text P3), written to any text stream
    - PNG (8-bit via Pillow)

Example:
    >>> from src.tracer.preview.export import save_image
    >>> from src.tracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> save_image(renderer.get_image_numpy(), "output.ppm")
"""

import logging
from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Largest component value before quantization, so 256 * c stays below 256
MAX_QUANTIZE_VALUE = 0.999


def apply_gamma(
    image: npt.NDArray[np.floating],
    gamma: float = 2.0,
) -> npt.NDArray[np.float64]:
    """Apply gamma encoding to a linear image.

    Values are clamped to [0, 1] first so negative inputs cannot produce NaN.
    Gamma 2 is a square root.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value. 1.0 only clamps.

    Returns:
        The gamma encoded image as float64.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be > 0, got {gamma}")

    image = np.clip(np.asarray(image, dtype=np.float64), 0.0, 1.0)
    if gamma == 1.0:
        return image
    if gamma == 2.0:
        return np.sqrt(image)
    return np.power(image, 1.0 / gamma)


def quantize(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Map display values in [0, 1] to bytes.

    Each component becomes int(256 * clamp(c, 0, 0.999)), so 1.0 maps to 255
    and every byte value covers an equal share of [0, 1).

    Args:
        image: Gamma encoded image array.

    Returns:
        The quantized image as uint8.
    """
    clamped = np.clip(np.asarray(image, dtype=np.float64), 0.0, MAX_QUANTIZE_VALUE)
    return (256.0 * clamped).astype(np.uint8)


def image_to_uint8(
    image: npt.NDArray[np.floating],
    gamma: float = 2.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit for display or export.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value.

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    return quantize(apply_gamma(image, gamma))


def _check_image_shape(image: np.ndarray) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")


def write_ppm(image: npt.NDArray[np.floating], sink: TextIO, gamma: float = 2.0) -> None:
    """Write a linear image as a plain-text PPM to a text stream.

    The output is the header ``P3``, ``<width> <height>`` and ``255`` on
    separate lines, then one ``R G B`` line per pixel, rows from top to
    bottom and pixels left to right.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        sink: Any writable text stream (a file, ``sys.stdout``, ``io.StringIO``).
        gamma: Gamma value.
    """
    image = np.asarray(image)
    _check_image_shape(image)
    height, width, _ = image.shape

    pixels = image_to_uint8(image, gamma).reshape(-1, 3)

    sink.write(f"P3\n{width} {height}\n255\n")
    sink.writelines(f"{r} {g} {b}\n" for r, g, b in pixels.tolist())


def save_ppm(image: npt.NDArray[np.floating], filepath: str | Path, gamma: float = 2.0) -> None:
    """Save a linear image as a plain-text PPM file."""
    with open(filepath, "w", encoding="ascii", newline="\n") as f:
        write_ppm(image, f, gamma)
    logger.info("Wrote %s", filepath)


def save_png(image: npt.NDArray[np.floating], filepath: str | Path, gamma: float = 2.0) -> None:
    """Save a linear image as an 8-bit PNG file using Pillow."""
    image = np.asarray(image)
    _check_image_shape(image)

    pil_image = PILImage.fromarray(image_to_uint8(image, gamma))
    pil_image.save(filepath)
    logger.info("Wrote %s", filepath)


def save_image(image: npt.NDArray[np.floating], filepath: str | Path, gamma: float = 2.0) -> None:
    """Save a linear image, picking the format from the file extension.

    ``.ppm`` files are written as plain-text PPM; anything else goes through
    Pillow (PNG, JPEG, ...).

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        filepath: Output file path.
        gamma: Gamma value.
    """
    if Path(filepath).suffix.lower() == ".ppm":
        save_ppm(image, filepath, gamma)
    else:
        save_png(image, filepath, gamma)
