"""Matplotlib-based preview display for rendered images.

Example:
    >>> from src.tracer.preview.display import show_preview
    >>> from src.tracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> show_preview(renderer.get_image_numpy(), title="Two spheres")
"""

import numpy as np
import numpy.typing as npt

from src.tracer.preview.export import apply_gamma


def show_preview(
    image: npt.NDArray[np.floating],
    *,
    gamma: float = 2.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display a linear image in a Matplotlib window.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        gamma: Gamma value used for display.
        title: Figure title (default "Render Preview").
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until the window is closed.
    """
    import matplotlib.pyplot as plt

    display_image = apply_gamma(image, gamma)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    ax.set_title(title if title is not None else "Render Preview")

    plt.tight_layout()
    plt.show(block=block)
