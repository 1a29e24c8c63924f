"""Tile map representation for grid raycasting.

This module parses an ASCII tile map into an immutable square grid of
surfaces and locates the camera start marker. The map is read-only after
construction and is shared by every column worker of a render pass.

Glyphs:
    '#': wall (height 1)
    ' ': floor (height 0)
    'c': camera start marker, exactly one per map (rewritten to floor)

Example:
    >>> from src.raycaster.world.grid_map import Map
    >>> world = Map([
    ...     "#####",
    ...     "#   #",
    ...     "# c #",
    ...     "#   #",
    ...     "#####",
    ... ])
    >>> world.start_location
    Location2D(x=2.0, y=2.0)
    >>> world.surface_at(0, 0).height
    1.0
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import numpy.typing as npt

from src.raycaster.config import (
    FLOOR_GLYPH,
    START_GLYPH,
    WALL_GLYPH,
    WALL_HEIGHT,
    runtime_generation,
)

if TYPE_CHECKING:
    from src.raycaster.core.ray import SamplePoint

logger = logging.getLogger(__name__)

# Glyph used by to_debug_string() to mark visited sample points
TRACE_GLYPH = "."


# =============================================================================
# Errors
# =============================================================================


class MapError(ValueError):
    """Base class for tile map construction failures."""


class MalformedMapError(MapError):
    """The map rows are empty, ragged or do not form a square grid."""


class AmbiguousOrMissingStartError(MapError):
    """The map does not contain exactly one start marker."""


# =============================================================================
# Value Types
# =============================================================================


@dataclass(frozen=True)
class Location2D:
    """A continuous position in grid units.

    Attributes:
        x: Column coordinate (grows to the right).
        y: Row coordinate (grows downwards).
    """

    x: float
    y: float


@dataclass(frozen=True)
class Surface:
    """Material descriptor of a grid cell.

    Only solid height is modelled; a height of zero or less means the cell
    has no surface and rays pass through it.

    Attributes:
        height: Surface height in wall units.
    """

    height: float = 0.0

    NOTHING: ClassVar[Surface]

    @property
    def has_no_height(self) -> bool:
        """Whether rays pass through this surface."""
        return self.height <= 0


Surface.NOTHING = Surface()


# =============================================================================
# Map
# =============================================================================


class Map:
    """An immutable square grid of wall and floor cells.

    The grid is square: the row length is used as the bound for both axes,
    so the number of rows must equal the row length.

    Attributes:
        rows: The map rows with the start marker rewritten to floor.
        size: Width and height of the grid.
        start_location: Column and row of the start marker.
    """

    def __init__(self, topology: Iterable[str]) -> None:
        """Parse and validate a tile map.

        Args:
            topology: Ordered glyph rows, top row first.

        Raises:
            MalformedMapError: If there are no rows, a row is not a string,
                the rows have different lengths or the grid is not square.
            AmbiguousOrMissingStartError: If the start marker does not
                occur exactly once.
        """
        rows = list(topology)
        _validate_rows(rows)

        markers = [
            (column, row)
            for row, line in enumerate(rows)
            for column, glyph in enumerate(line)
            if glyph == START_GLYPH
        ]
        if len(markers) != 1:
            raise AmbiguousOrMissingStartError(
                f"Expected exactly one start marker {START_GLYPH!r}, found {len(markers)}"
            )

        start_x, start_y = markers[0]
        rows[start_y] = rows[start_y].replace(START_GLYPH, FLOOR_GLYPH)

        self._rows = tuple(rows)
        self._size = len(rows[0])
        self._start_location = Location2D(x=float(start_x), y=float(start_y))
        self._height_field: Any = None
        self._height_field_generation = -1

        logger.info(
            f"Loaded {self._size}x{self._size} map, start at ({start_x}, {start_y})"
        )

    @property
    def rows(self) -> tuple[str, ...]:
        """Get the map rows (start marker already rewritten to floor)."""
        return self._rows

    @property
    def size(self) -> int:
        """Get the grid size, shared by both axes."""
        return self._size

    @property
    def start_location(self) -> Location2D:
        """Get the location of the start marker."""
        return self._start_location

    def contains(self, x: int, y: int) -> bool:
        """Check whether a cell index lies inside the grid."""
        return 0 <= x < self._size and 0 <= y < self._size

    def surface_at(self, x: int, y: int) -> Surface:
        """Get the surface of a cell.

        Does not bounds-check; callers must keep x and y in [0, size).

        Args:
            x: Column index.
            y: Row index.

        Returns:
            A wall surface for the wall glyph, Surface.NOTHING otherwise.
        """
        if self._rows[y][x] == WALL_GLYPH:
            return Surface(height=WALL_HEIGHT)
        return Surface.NOTHING

    def height_grid(self) -> npt.NDArray[np.float64]:
        """Get the surface heights as an array indexed [x, y].

        Returns:
            Array of shape (size, size) with dtype float64.
        """
        grid = np.zeros((self._size, self._size), dtype=np.float64)
        for y, line in enumerate(self._rows):
            for x, glyph in enumerate(line):
                if glyph == WALL_GLYPH:
                    grid[x, y] = WALL_HEIGHT
        return grid

    def height_field(self) -> Any:
        """Get the surface heights as a Taichi field indexed [x, y].

        The field is created on first use, so Taichi must be initialised
        before calling this. The same field is returned afterwards until
        init_taichi() starts a new runtime, which uploads a fresh copy.
        Calling ti.init() directly bypasses this and leaves a stale field.

        Returns:
            A Taichi f64 ScalarField of shape (size, size).
        """
        generation = runtime_generation()
        if self._height_field is None or self._height_field_generation != generation:
            import taichi as ti

            field = ti.field(dtype=ti.f64, shape=(self._size, self._size))
            field.from_numpy(self.height_grid())
            self._height_field = field
            self._height_field_generation = generation
            logger.debug(f"Uploaded {self._size}x{self._size} height field")
        return self._height_field

    def to_debug_string(self, marks: Iterable[SamplePoint]) -> str:
        """Render the map with sample point locations marked.

        Each mark replaces the glyph of the cell containing it with '.'.
        Marks outside the grid are skipped.

        Args:
            marks: Sample points to mark, e.g. RenderResult.all_sample_points.

        Returns:
            The map rows joined with newlines.
        """
        grid = [list(line) for line in self._rows]
        for mark in marks:
            x = math.floor(mark.location.x)
            y = math.floor(mark.location.y)
            if self.contains(x, y):
                grid[y][x] = TRACE_GLYPH
        return "\n".join("".join(line) for line in grid)

    def __repr__(self) -> str:
        """Return a string representation of the map."""
        return f"Map(size={self._size}, start_location={self._start_location})"


def _validate_rows(rows: list[str]) -> None:
    """Check that rows form a non-empty square grid of strings."""
    if not rows:
        raise MalformedMapError("Map has no rows")

    for index, line in enumerate(rows):
        if not isinstance(line, str):
            raise MalformedMapError(
                f"Row {index} is {type(line).__name__}, expected str"
            )

    size = len(rows[0])
    if size == 0:
        raise MalformedMapError("Map rows are empty")

    for index, line in enumerate(rows):
        if len(line) != size:
            raise MalformedMapError(
                f"Row {index} has length {len(line)}, expected {size}"
            )

    if len(rows) != size:
        raise MalformedMapError(
            f"Map must be square: {len(rows)} rows of length {size}"
        )
