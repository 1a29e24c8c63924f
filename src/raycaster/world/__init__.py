"""World module for tile map representation.

Components:
    grid_map: ASCII map parsing, validation and surface lookup

The map is built once from static rows and is read-only afterwards, so a
single instance can be shared by every column of a parallel render pass.
"""

from .grid_map import (
    AmbiguousOrMissingStartError,
    Location2D,
    MalformedMapError,
    Map,
    MapError,
    Surface,
)

__all__ = [
    "Map",
    "Surface",
    "Location2D",
    "MapError",
    "MalformedMapError",
    "AmbiguousOrMissingStartError",
]
