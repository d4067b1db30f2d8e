"""Pytest configuration for ray tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene and material storage around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before any field is created
    from src.tracer.core.shading import configure_shader
    from src.tracer.scene.intersection import clear_scene
    from src.tracer.scene.manager import clear_all_materials

    def _clear_all():
        clear_scene()
        clear_all_materials()
        configure_shader()

    _clear_all()

    yield

    _clear_all()
