"""Taichi runtime initialization.

All tracer fields and kernels use float64, so the runtime is always started
with ``default_fp=ti.f64``. Call :func:`init_taichi` once, before importing
any module that allocates Taichi fields.

Example:
    >>> from src.tracer.runtime import init_taichi
    >>> init_taichi(arch="cpu")
    >>> from src.tracer.scene.manager import SceneManager
"""

import logging

import taichi as ti

logger = logging.getLogger(__name__)

# Backends with 64-bit float support. Taichi falls back to the CPU on its own
# when CUDA is not available.
ARCHS = {
    "cpu": ti.cpu,
    "cuda": ti.cuda,
}


def init_taichi(arch: str = "cpu", debug: bool = False, seed: int = 0) -> None:
    """Initialize Taichi for rendering.

    Args:
        arch: Backend name ("cpu" or "cuda").
        debug: Enable Taichi debug mode. Kernel assertions (such as the
            zero-length check in ``unit_vector``) only fire in debug mode.
        seed: Seed for Taichi's built-in generator. The tracer itself draws
            from the explicit streams in ``core.sampler``.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if arch not in ARCHS:
        raise ValueError(f"Unknown Taichi arch {arch!r}; expected one of {sorted(ARCHS)}")

    ti.init(arch=ARCHS[arch], default_fp=ti.f64, debug=debug, random_seed=seed)
    logger.debug("Taichi initialized (arch=%s, debug=%s)", arch, debug)
