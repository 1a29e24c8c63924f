"""Ray data structures and grid traversal functions.

This module provides the host-side Ray and SamplePoint types returned to
callers, and the Taichi functions that step a ray across a tile grid from
one grid-line crossing to the next (DDA traversal). The traversal functions
are called from the camera's cast kernel, one ray per screen column.

Angles follow screen conventions for a top-down map: x grows to the right,
y grows downwards, and the direction is measured from the +x axis so that
cos() drives x and sin() drives y.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> @ti.kernel
    ... def first_crossing() -> ti.f64:
    ...     direction = make_cast_direction(0.0)
    ...     x, y, length_sq = next_x_boundary(2.0, 2.0, direction)
    ...     return x
    >>> first_crossing()
    3.0
"""

from collections.abc import Iterator
from dataclasses import dataclass

import taichi as ti

from src.raycaster.world.grid_map import Location2D, Surface

# Squared step length used for an axis the ray never crosses. Any real
# candidate is at most 2 units long, so this is never selected.
UNREACHABLE_STEP_LENGTH = 1e30


# =============================================================================
# Host-side Ray Types
# =============================================================================


@dataclass(frozen=True)
class SamplePoint:
    """One waypoint of a ray.

    Attributes:
        location: Where the ray crossed a grid line (or its origin).
        length: Squared length of the step that reached this point.
        distance: Accumulated distance from the ray origin.
        surface: Surface of the cell entered at this point.
    """

    location: Location2D
    length: float = 0.0
    distance: float = 0.0
    surface: Surface = Surface.NOTHING


class Ray:
    """Append-only ordered trace of sample points for one screen column.

    The first sample is the camera position. The last sample is either a
    height-bearing hit or the last no-height step before range ran out.

    Attributes:
        column: The screen column this ray was cast for.
    """

    def __init__(self, column: int) -> None:
        self._column = column
        self._samples: list[SamplePoint] = []

    @property
    def column(self) -> int:
        """Get the screen column index."""
        return self._column

    def append(self, sample: SamplePoint) -> None:
        """Add the next sample point to the trace."""
        self._samples.append(sample)

    @property
    def terminal(self) -> SamplePoint:
        """Get the last sample point of the trace.

        Raises:
            IndexError: If the ray has no samples.
        """
        return self._samples[-1]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[SamplePoint]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> SamplePoint:
        return self._samples[index]

    def __repr__(self) -> str:
        return f"Ray(column={self._column}, samples={len(self._samples)})"


# =============================================================================
# Taichi Traversal Structures
# =============================================================================


@ti.dataclass
class CastDirection:
    """Precomputed sine and cosine of one ray's absolute angle.

    Attributes:
        sin: Sine of the angle (drives the y axis).
        cos: Cosine of the angle (drives the x axis).
    """

    sin: ti.f64
    cos: ti.f64


@ti.dataclass
class GridStep:
    """Candidate step to the next grid-line crossing.

    Attributes:
        x: X coordinate of the crossing.
        y: Y coordinate of the crossing.
        length_sq: Squared step length.
        lookup_x: X coordinate used to look up the entered cell.
        lookup_y: Y coordinate used to look up the entered cell.
    """

    x: ti.f64
    y: ti.f64
    length_sq: ti.f64
    lookup_x: ti.f64
    lookup_y: ti.f64


@ti.func
def make_cast_direction(angle: ti.f64) -> CastDirection:
    """Create a cast direction from an absolute angle in radians."""
    return CastDirection(sin=ti.sin(angle), cos=ti.cos(angle))


@ti.func
def next_x_boundary(x: ti.f64, y: ti.f64, direction: CastDirection):
    """Find where the ray next crosses a vertical grid line (x = integer).

    Moving right the crossing is at floor(x) + 1, moving left at
    ceil(x) - 1. A ray with no x motion never crosses a vertical line and
    gets UNREACHABLE_STEP_LENGTH.

    Args:
        x: Current x coordinate.
        y: Current y coordinate.
        direction: The ray's cast direction.

    Returns:
        A tuple (x, y, length_sq) of the crossing point and squared length.
    """
    next_x: ti.f64 = x
    next_y: ti.f64 = y
    length_sq: ti.f64 = UNREACHABLE_STEP_LENGTH
    if direction.cos != 0.0:
        dx: ti.f64 = 0.0
        if direction.cos > 0.0:
            dx = ti.floor(x) + 1.0 - x
        else:
            dx = ti.ceil(x) - 1.0 - x
        dy = dx * (direction.sin / direction.cos)
        next_x = x + dx
        next_y = y + dy
        length_sq = dx * dx + dy * dy
    return next_x, next_y, length_sq


@ti.func
def next_y_boundary(x: ti.f64, y: ti.f64, direction: CastDirection):
    """Find where the ray next crosses a horizontal grid line (y = integer).

    Moving down the crossing is at floor(y) + 1, moving up at ceil(y) - 1.
    A ray with no y motion gets UNREACHABLE_STEP_LENGTH.

    Args:
        x: Current x coordinate.
        y: Current y coordinate.
        direction: The ray's cast direction.

    Returns:
        A tuple (x, y, length_sq) of the crossing point and squared length.
    """
    next_x: ti.f64 = x
    next_y: ti.f64 = y
    length_sq: ti.f64 = UNREACHABLE_STEP_LENGTH
    if direction.sin != 0.0:
        dy: ti.f64 = 0.0
        if direction.sin > 0.0:
            dy = ti.floor(y) + 1.0 - y
        else:
            dy = ti.ceil(y) - 1.0 - y
        dx = dy * (direction.cos / direction.sin)
        next_x = x + dx
        next_y = y + dy
        length_sq = dx * dx + dy * dy
    return next_x, next_y, length_sq


@ti.func
def choose_step(x: ti.f64, y: ti.f64, direction: CastDirection) -> GridStep:
    """Pick the nearer of the next vertical and horizontal crossings.

    Ties go to the vertical (x) crossing. The lookup coordinates point into
    the cell being entered: a ray moving in the negative direction of the
    crossed axis reads the cell one unit back from the grid line.

    Args:
        x: Current x coordinate.
        y: Current y coordinate.
        direction: The ray's cast direction.

    Returns:
        The chosen GridStep.
    """
    x_cross_x, x_cross_y, x_length_sq = next_x_boundary(x, y, direction)
    y_cross_x, y_cross_y, y_length_sq = next_y_boundary(x, y, direction)

    step = GridStep(
        x=x_cross_x,
        y=x_cross_y,
        length_sq=x_length_sq,
        lookup_x=x_cross_x,
        lookup_y=x_cross_y,
    )
    if direction.cos < 0.0:
        step.lookup_x = x_cross_x - 1.0

    if y_length_sq < x_length_sq:
        step.x = y_cross_x
        step.y = y_cross_y
        step.length_sq = y_length_sq
        step.lookup_x = y_cross_x
        step.lookup_y = y_cross_y
        if direction.sin < 0.0:
            step.lookup_y = y_cross_y - 1.0

    return step


@ti.func
def surface_height(heights: ti.template(), size: ti.i32, x: ti.f64, y: ti.f64) -> ti.f64:
    """Look up the surface height of the cell containing (x, y).

    Cells outside the grid have no surface.

    Args:
        heights: Square height field indexed [x, y].
        size: Grid size of the height field.
        x: X coordinate inside the cell.
        y: Y coordinate inside the cell.

    Returns:
        The surface height, or 0.0 outside the grid.
    """
    cell_x = ti.cast(ti.floor(x), ti.i32)
    cell_y = ti.cast(ti.floor(y), ti.i32)
    height: ti.f64 = 0.0
    if cell_x >= 0 and cell_x < size and cell_y >= 0 and cell_y < size:
        height = heights[cell_x, cell_y]
    return height
