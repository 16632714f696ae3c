"""Pytest configuration for sphere tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Debug mode turns on
    kernel assertions, which the error handling tests rely on.
    """
    ti.init(arch=ti.cpu, debug=True)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture
def ball_scene():
    """A PrimitiveScene with one sphere of radius 5 at (0, 0, 10)."""
    from spheretrace.scene.primitives import PrimitiveScene

    scene = PrimitiveScene()
    scene.add_sphere((0.0, 0.0, 10.0), 5.0)
    return scene


@pytest.fixture
def ground_scene():
    """Sphere of radius 2.5 at the origin over a ground plane at y = -10."""
    from spheretrace.scene.primitives import PrimitiveScene

    scene = PrimitiveScene()
    scene.add_sphere((0.0, 0.0, 0.0), 2.5)
    scene.add_plane((0.0, 1.0, 0.0), -10.0)
    return scene
