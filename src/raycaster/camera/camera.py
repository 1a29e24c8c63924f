"""Camera model and the parallel ray-cast pass.

This module implements the camera that casts one ray per screen column
across a tile map. The cast runs as a single Taichi kernel whose outermost
loop is parallelised over columns; every column traverses the grid
independently and writes only its own slot of the trace buffers.

Ray generation uses a centred horizontal offset per column:
    x = column / render_width - 0.5, in [-0.5, 0.5)
    angle = direction + atan2(x, focal_length)
A shorter focal length therefore gives a wider field of view.

Example:
    >>> from src.raycaster.config import init_taichi
    >>> from src.raycaster.world.grid_map import Map
    >>> from src.raycaster.camera.camera import Camera
    >>> init_taichi()
    >>> world = Map(["#####", "#   #", "# c #", "#   #", "#####"])
    >>> camera = Camera(world.start_location, world, direction=0.0)
    >>> result = camera.snapshot(10)
    >>> result.columns[5].distance
    2.0
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.raycaster.config import DEFAULT_FOCAL_LENGTH, DEFAULT_RANGE, runtime_generation
from src.raycaster.core.ray import (
    Ray,
    SamplePoint,
    choose_step,
    make_cast_direction,
    surface_height,
)
from src.raycaster.world.grid_map import Location2D, Map, Surface

logger = logging.getLogger(__name__)

# Extra traversal steps on top of 1.5 * range. A ray of length r crosses at
# most r * (|cos| + |sin|) + 2 <= r * sqrt(2) + 2 grid lines.
STEP_MARGIN = 8


def max_steps_for_range(cast_range: float) -> int:
    """Get the traversal step bound for a cast range."""
    return int(math.ceil(cast_range * 1.5)) + STEP_MARGIN


# =============================================================================
# Render Result
# =============================================================================


@dataclass
class RenderResult:
    """Terminal sample points of one render pass.

    Attributes:
        columns: One terminal SamplePoint per column, in column order.
        rays: Full per-column traces, or None when the pass was run
            without include_trace.
    """

    columns: list[SamplePoint]
    rays: list[Ray] | None = None

    @property
    def all_sample_points(self) -> list[SamplePoint]:
        """Get every sample point of every ray.

        The order of the returned points is unspecified.
        """
        if self.rays is None:
            return []
        return [sample for ray in self.rays for sample in ray]

    def terminal_distances(self) -> npt.NDArray[np.float64]:
        """Get the terminal hit distance of each column."""
        return np.array([sample.distance for sample in self.columns], dtype=np.float64)

    def terminal_heights(self) -> npt.NDArray[np.float64]:
        """Get the terminal surface height of each column."""
        return np.array([sample.surface.height for sample in self.columns], dtype=np.float64)


# =============================================================================
# Trace Buffers
# =============================================================================


class _TraceBuffers:
    """Per-column trace storage written by the cast kernel.

    Each column owns one row of every field, so concurrent columns never
    write to the same location. Fields are reallocated only when a pass
    needs more columns or steps than the current capacity, or after
    init_taichi() has replaced the runtime they were allocated in.
    """

    def __init__(self, columns: int, steps: int) -> None:
        self.columns = columns
        self.steps = steps
        self.generation = runtime_generation()
        shape = (columns, steps)
        self.x = ti.field(dtype=ti.f64, shape=shape)
        self.y = ti.field(dtype=ti.f64, shape=shape)
        self.length = ti.field(dtype=ti.f64, shape=shape)
        self.distance = ti.field(dtype=ti.f64, shape=shape)
        self.height = ti.field(dtype=ti.f64, shape=shape)
        self.count = ti.field(dtype=ti.i32, shape=columns)
        logger.debug(f"Allocated trace buffers for {columns} columns x {steps} steps")

    def fits(self, columns: int, steps: int) -> bool:
        return (
            self.generation == runtime_generation()
            and columns <= self.columns
            and steps <= self.steps
        )

    def to_numpy(self) -> dict[str, Any]:
        return {
            "x": self.x.to_numpy(),
            "y": self.y.to_numpy(),
            "length": self.length.to_numpy(),
            "distance": self.distance.to_numpy(),
            "height": self.height.to_numpy(),
            "count": self.count.to_numpy(),
        }


# =============================================================================
# Cast Kernel
# =============================================================================


@ti.func
def _record_sample(
    buffers_x: ti.template(),
    buffers_y: ti.template(),
    buffers_length: ti.template(),
    buffers_distance: ti.template(),
    buffers_height: ti.template(),
    column: ti.i32,
    index: ti.i32,
    x: ti.f64,
    y: ti.f64,
    length_sq: ti.f64,
    distance: ti.f64,
    height: ti.f64,
):
    buffers_x[column, index] = x
    buffers_y[column, index] = y
    buffers_length[column, index] = length_sq
    buffers_distance[column, index] = distance
    buffers_height[column, index] = height


@ti.kernel
def _cast_columns(
    heights: ti.template(),
    size: ti.i32,
    origin_x: ti.f64,
    origin_y: ti.f64,
    direction_radians: ti.f64,
    focal_length: ti.f64,
    cast_range: ti.f64,
    render_width: ti.i32,
    max_steps: ti.i32,
    trace_x: ti.template(),
    trace_y: ti.template(),
    trace_length: ti.template(),
    trace_distance: ti.template(),
    trace_height: ti.template(),
    trace_count: ti.template(),
):
    """Cast one ray per column and record each ray's trace.

    Args:
        heights: Square height field of the map, indexed [x, y].
        size: Grid size of the map.
        origin_x: Camera x position.
        origin_y: Camera y position.
        direction_radians: Camera direction in radians.
        focal_length: Camera focal length.
        cast_range: Maximum accumulated distance of a recorded step.
        render_width: Number of columns to cast.
        max_steps: Traversal step bound per ray.
        trace_x, trace_y, trace_length, trace_distance, trace_height:
            Per-column sample buffers of shape (columns, max_steps + 1).
        trace_count: Number of samples recorded per column.
    """
    for column in range(render_width):
        offset = ti.cast(column, ti.f64) / ti.cast(render_width, ti.f64) - 0.5
        angle = direction_radians + ti.atan2(offset, focal_length)
        direction = make_cast_direction(angle)

        x = origin_x
        y = origin_y
        distance: ti.f64 = 0.0
        _record_sample(
            trace_x, trace_y, trace_length, trace_distance, trace_height,
            column, 0, x, y, 0.0, 0.0, 0.0,
        )
        count = 1

        # Active flag instead of break; the loop bound only guards termination
        active = 1
        for _ in range(max_steps):
            if active == 1:
                step = choose_step(x, y, direction)
                height = surface_height(heights, size, step.lookup_x, step.lookup_y)
                step_distance = distance + ti.sqrt(step.length_sq)

                if step_distance > cast_range:
                    active = 0
                else:
                    _record_sample(
                        trace_x, trace_y, trace_length, trace_distance, trace_height,
                        column, count, step.x, step.y, step.length_sq, step_distance, height,
                    )
                    count += 1
                    x = step.x
                    y = step.y
                    distance = step_distance
                    if height > 0.0:
                        active = 0

        trace_count[column] = count


# =============================================================================
# Camera
# =============================================================================


class Camera:
    """A camera placed on a tile map.

    Position and direction may change between render passes but not during
    one. The map is shared and never modified.

    Attributes:
        location: Camera position in grid units.
        world: The map being rendered.
        range: Maximum cast distance in grid units.
        focal_length: Distance to the virtual image plane.
        direction: View direction in degrees, always in [0, 360).
    """

    def __init__(
        self,
        location: Location2D,
        world: Map,
        range: float = DEFAULT_RANGE,
        focal_length: float = DEFAULT_FOCAL_LENGTH,
        direction: float = 0.0,
    ) -> None:
        """Create a camera.

        Args:
            location: Initial position, usually world.start_location.
            world: The map to render.
            range: Maximum cast distance (must be positive).
            focal_length: Focal length (must be positive).
            direction: Initial direction in degrees.

        Raises:
            ValueError: If range or focal_length is not positive.
        """
        if not range > 0:
            raise ValueError(f"Camera range must be positive, got {range}")
        if not focal_length > 0:
            raise ValueError(f"Focal length must be positive, got {focal_length}")

        self._location = location
        self._world = world
        self._range = range
        self._focal_length = focal_length
        self._direction = 0.0
        self._rendering = False
        self._buffers: _TraceBuffers | None = None
        self.direction = direction

    @property
    def location(self) -> Location2D:
        """Get the camera position."""
        return self._location

    @location.setter
    def location(self, value: Location2D) -> None:
        self._check_idle()
        self._location = value

    @property
    def world(self) -> Map:
        """Get the map this camera renders."""
        return self._world

    @property
    def range(self) -> float:
        """Get the maximum cast distance."""
        return self._range

    @property
    def focal_length(self) -> float:
        """Get the focal length."""
        return self._focal_length

    @property
    def direction(self) -> float:
        """Get the view direction in degrees, in [0, 360)."""
        return self._direction

    @direction.setter
    def direction(self, value: float) -> None:
        self._check_idle()
        normalized = float(value) % 360.0
        # -1e-20 % 360.0 rounds up to 360.0
        if normalized >= 360.0:
            normalized = 0.0
        self._direction = normalized

    def _check_idle(self) -> None:
        if self._rendering:
            raise RuntimeError("Camera cannot be moved while a render pass is in flight")

    def _trace_buffers(self, columns: int, steps: int) -> _TraceBuffers:
        if self._buffers is None or not self._buffers.fits(columns, steps):
            self._buffers = _TraceBuffers(columns, steps)
        return self._buffers

    def snapshot(self, render_width: int, include_trace: bool = False) -> RenderResult:
        """Cast one ray per column and collect the terminal samples.

        Args:
            render_width: Number of output columns (must be positive).
            include_trace: Also return every sample point of every ray.

        Returns:
            A RenderResult with render_width terminal samples in column
            order, plus the per-column rays when include_trace is set.

        Raises:
            ValueError: If render_width is not positive.
        """
        if render_width <= 0:
            raise ValueError(f"Render width must be positive, got {render_width}")

        max_steps = max_steps_for_range(self._range)
        buffers = self._trace_buffers(render_width, max_steps + 1)
        heights = self._world.height_field()

        logger.debug(
            f"Casting {render_width} columns from ({self._location.x:.2f}, "
            f"{self._location.y:.2f}) at {self._direction:.1f} deg"
        )

        self._rendering = True
        try:
            _cast_columns(
                heights,
                self._world.size,
                float(self._location.x),
                float(self._location.y),
                math.radians(self._direction),
                float(self._focal_length),
                float(self._range),
                render_width,
                max_steps,
                buffers.x,
                buffers.y,
                buffers.length,
                buffers.distance,
                buffers.height,
                buffers.count,
            )
            trace = buffers.to_numpy()
        finally:
            self._rendering = False

        counts = trace["count"]
        columns = [
            _sample_from_trace(trace, column, int(counts[column]) - 1)
            for column in range(render_width)
        ]

        rays = None
        if include_trace:
            rays = []
            for column in range(render_width):
                ray = Ray(column)
                for index in range(int(counts[column])):
                    ray.append(_sample_from_trace(trace, column, index))
                rays.append(ray)

        return RenderResult(columns=columns, rays=rays)

    def __repr__(self) -> str:
        """Return a string representation of the camera state."""
        return (
            f"Camera(location=({self._location.x}, {self._location.y}), "
            f"direction={self._direction}, range={self._range}, "
            f"focal_length={self._focal_length})"
        )


def _sample_from_trace(trace: dict[str, Any], column: int, index: int) -> SamplePoint:
    """Build a host-side SamplePoint from the downloaded trace buffers."""
    height = float(trace["height"][column, index])
    return SamplePoint(
        location=Location2D(
            x=float(trace["x"][column, index]),
            y=float(trace["y"][column, index]),
        ),
        length=float(trace["length"][column, index]),
        distance=float(trace["distance"][column, index]),
        surface=Surface(height=height) if height > 0 else Surface.NOTHING,
    )
