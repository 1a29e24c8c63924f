"""Global defaults and Taichi runtime setup.

This module is the central registry for the constants shared by the map,
camera and projector modules, and for initialising the Taichi runtime with
the double precision the grid traversal relies on.

Exports:
    DEFAULT_RANGE (int): Maximum cast distance in grid units.
    DEFAULT_FOCAL_LENGTH (float): Camera focal length (smaller = wider view).
    WALL_GLYPH, FLOOR_GLYPH, START_GLYPH (str): Map glyphs.
    WALL_HEIGHT (float): Height of a wall cell surface.
"""

import logging

import taichi as ti

logger = logging.getLogger(__name__)

# =============================================================================
# Camera Defaults
# =============================================================================

DEFAULT_RANGE = 25
DEFAULT_FOCAL_LENGTH = 0.8

# =============================================================================
# Map Glyphs
# =============================================================================

WALL_GLYPH = "#"
FLOOR_GLYPH = " "
START_GLYPH = "c"

WALL_HEIGHT = 1.0

# Bumped by every init_taichi() call; fields cached under an older value
# belong to a discarded runtime
_runtime_generation = 0


def init_taichi(arch=None, debug: bool = False) -> None:
    """Initialise the Taichi runtime for raycasting.

    Must be called before any camera or projector is used. Floating point
    literals inside kernels default to 64-bit so grid-line crossings stay
    exact for integer-aligned rays.

    Calling this again starts a new runtime. Maps, cameras and projectors
    notice the change through runtime_generation() and reallocate their
    fields on next use.

    Args:
        arch: Taichi backend (defaults to ti.cpu).
        debug: Enable Taichi bounds checking.
    """
    global _runtime_generation

    if arch is None:
        arch = ti.cpu

    ti.init(arch=arch, default_fp=ti.f64, debug=debug, random_seed=0)
    _runtime_generation += 1
    logger.debug(
        f"Taichi initialised (arch={arch}, debug={debug}, generation={_runtime_generation})"
    )


def runtime_generation() -> int:
    """Get the number of times init_taichi() has been called."""
    return _runtime_generation
