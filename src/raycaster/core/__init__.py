"""Core raycasting module.

This module contains the building blocks of grid traversal:

Components:
    ray: Ray and SamplePoint types plus the DDA step functions

Each ray starts at the camera position and steps from one grid-line
crossing to the next, choosing the nearer of the next vertical and
horizontal crossings, until it enters a cell with height or its
accumulated distance exceeds the camera range.

The step functions are Taichi functions called from the camera's cast
kernel, which runs one ray per screen column in parallel.
"""

from .ray import (
    UNREACHABLE_STEP_LENGTH,
    CastDirection,
    GridStep,
    Ray,
    SamplePoint,
    choose_step,
    make_cast_direction,
    next_x_boundary,
    next_y_boundary,
    surface_height,
)

__all__ = [
    "Ray",
    "SamplePoint",
    "CastDirection",
    "GridStep",
    "make_cast_direction",
    "next_x_boundary",
    "next_y_boundary",
    "choose_step",
    "surface_height",
    "UNREACHABLE_STEP_LENGTH",
]
