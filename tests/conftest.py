"""Pytest configuration for tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate every field allocated by the tracer modules.
    """
    from src.tracer.runtime import init_taichi

    init_taichi(arch="cpu", seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset scene, materials, render target and random streams around each test."""
    # Import here so that fields are allocated after Taichi is initialized
    from src.tracer.core.integrator import clear_render_target
    from src.tracer.core.sampler import DEFAULT_SEED, seed_rng
    from src.tracer.scene.manager import clear_all

    def _clear_all():
        clear_all()
        clear_render_target()
        seed_rng(DEFAULT_SEED)

    _clear_all()
    yield
    _clear_all()
