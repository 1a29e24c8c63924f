"""Pytest configuration for raycaster tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti

ROOM_5X5 = [
    "#####",
    "#   #",
    "# c #",
    "#   #",
    "#####",
]

OPEN_5X5 = [
    "     ",
    "     ",
    "  c  ",
    "     ",
    "     ",
]


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    discard every field allocated by earlier tests.
    """
    from src.raycaster.config import init_taichi

    init_taichi(arch=ti.cpu)
    yield


@pytest.fixture
def room_map():
    """A 5x5 room walled on the border with the camera in the centre."""
    from src.raycaster.world.grid_map import Map

    return Map(ROOM_5X5)


@pytest.fixture
def open_map():
    """A 5x5 map with no walls at all."""
    from src.raycaster.world.grid_map import Map

    return Map(OPEN_5X5)
