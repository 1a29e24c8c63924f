"""Column projection of terminal ray hits into wall bands.

This module turns the terminal sample point of every screen column into a
vertical band of pixels. The band height falls off with distance and the
band is vertically centred; the pixels above and below it stay unset so the
consumer's background shows through as floor and ceiling.

Band height:
    h = sample_height * surface_height / (distance / DISTANCE_SCALE)
    clamped to [0, sample_height] and rounded up to a whole pixel.

Shading (grayscale):
    brightness = 200 - 2 * (distance / range * 100)
    clamped to [0, 255] and truncated to an integer channel value.

Projection runs as a Taichi kernel parallelised over columns.

Example:
    >>> from src.raycaster.render.projector import ColumnProjector
    >>> projector = ColumnProjector(sample_width=800, sample_height=600)
    >>> result = camera.snapshot(projector.sample_width)
    >>> pixels = projector.project(result.columns, camera.range)
    >>> pixels.colors.shape
    (600, 800, 3)
"""

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from src.raycaster.config import runtime_generation
from src.raycaster.core.ray import SamplePoint
from src.raycaster.render.pixels import UNSET, PixelGrid

logger = logging.getLogger(__name__)

# =============================================================================
# Projection Constants
# =============================================================================

# Distance at which a unit-height wall fills the whole column
DISTANCE_SCALE = 2.5

# Brightness of a wall at distance zero; falls linearly to 0 at camera range
BASE_BRIGHTNESS = 200.0

# Valid channel range
MIN_CHANNEL = 0.0
MAX_CHANNEL = 255.0

# Distances at or below this are treated as touching the wall
NEAR_DISTANCE = 1e-9


@ti.func
def band_height_px(distance: ti.f64, surface_height: ti.f64, sample_height: ti.i32) -> ti.i32:
    """Compute the wall band height of one column in whole pixels.

    Args:
        distance: Terminal hit distance.
        surface_height: Terminal surface height (0 for no hit).
        sample_height: Column height in pixels.

    Returns:
        Band height in [0, sample_height].
    """
    limit = ti.cast(sample_height, ti.f64)
    raw: ti.f64 = 0.0
    if surface_height > 0.0:
        if distance <= NEAR_DISTANCE:
            raw = limit
        else:
            raw = limit * surface_height / (distance / DISTANCE_SCALE)

    if tm.isnan(raw) or tm.isinf(raw) or raw <= 0.0:
        raw = 0.0
    raw = tm.min(raw, limit)
    return ti.cast(ti.ceil(raw), ti.i32)


@ti.func
def shade(distance: ti.f64, cast_range: ti.f64) -> ti.i32:
    """Compute the grayscale channel value of a hit.

    A NaN distance shades to 0, matching the empty band it projects to.

    Args:
        distance: Terminal hit distance.
        cast_range: Camera range.

    Returns:
        Channel value in [0, 255].
    """
    percentage = (distance / cast_range) * 100.0
    brightness = BASE_BRIGHTNESS - ((BASE_BRIGHTNESS / 100.0) * percentage)
    if tm.isnan(brightness):
        brightness = MIN_CHANNEL
    brightness = tm.clamp(brightness, MIN_CHANNEL, MAX_CHANNEL)
    return ti.cast(brightness, ti.i32)


@ti.kernel
def _project_columns(
    distances: ti.template(),
    surface_heights: ti.template(),
    sample_width: ti.i32,
    sample_height: ti.i32,
    cast_range: ti.f64,
    pixels: ti.template(),
):
    """Fill each column of the pixel field with its wall band.

    Args:
        distances: Terminal distance per column.
        surface_heights: Terminal surface height per column.
        sample_width: Number of columns.
        sample_height: Column height in pixels.
        cast_range: Camera range used for shading.
        pixels: Brightness field indexed [column, row]; UNSET outside bands.
    """
    for column in range(sample_width):
        band = band_height_px(distances[column], surface_heights[column], sample_height)
        brightness = shade(distances[column], cast_range)
        margin = (sample_height - band) // 2

        for row in range(sample_height):
            pixels[column, row] = UNSET

        # Rows counted from the bottom, lifted by the bottom margin
        for y in range(band):
            pixels[column, sample_height - y - 1 - margin] = brightness


@ti.kernel
def _band_height_single(distance: ti.f64, surface_height: ti.f64, sample_height: ti.i32) -> ti.i32:
    return band_height_px(distance, surface_height, sample_height)


@ti.kernel
def _shade_single(distance: ti.f64, cast_range: ti.f64) -> ti.i32:
    return shade(distance, cast_range)


class ColumnProjector:
    """Projects terminal column hits into a grid of optional colors.

    Attributes:
        sample_width: Output width in pixels (one column per ray).
        sample_height: Output height in pixels.
    """

    def __init__(self, sample_width: int, sample_height: int) -> None:
        """Create a projector.

        Args:
            sample_width: Output width in pixels.
            sample_height: Output height in pixels.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if sample_width <= 0 or sample_height <= 0:
            raise ValueError(
                f"Projector dimensions must be positive, got {sample_width}x{sample_height}"
            )

        self._sample_width = sample_width
        self._sample_height = sample_height
        self._fields: dict[str, Any] | None = None
        self._fields_generation = -1

    @property
    def sample_width(self) -> int:
        """Get the output width in pixels."""
        return self._sample_width

    @property
    def sample_height(self) -> int:
        """Get the output height in pixels."""
        return self._sample_height

    def _get_fields(self) -> dict[str, Any]:
        # Created on first use so Taichi can be initialised after construction,
        # and again whenever init_taichi() has started a new runtime
        generation = runtime_generation()
        if self._fields is None or self._fields_generation != generation:
            self._fields_generation = generation
            self._fields = {
                "distances": ti.field(dtype=ti.f64, shape=self._sample_width),
                "heights": ti.field(dtype=ti.f64, shape=self._sample_width),
                "pixels": ti.field(
                    dtype=ti.i32, shape=(self._sample_width, self._sample_height)
                ),
            }
            logger.debug(
                f"Allocated projection fields {self._sample_width}x{self._sample_height}"
            )
        return self._fields

    def project(self, columns: Sequence[SamplePoint], cast_range: float) -> PixelGrid:
        """Project terminal samples into wall bands.

        Args:
            columns: One terminal SamplePoint per column, e.g.
                RenderResult.columns.
            cast_range: The camera range the samples were cast with.

        Returns:
            A PixelGrid of shape (sample_height, sample_width).

        Raises:
            ValueError: If the column count does not match sample_width or
                cast_range is not positive.
        """
        if len(columns) != self._sample_width:
            raise ValueError(
                f"Expected {self._sample_width} columns, got {len(columns)}"
            )
        if not cast_range > 0:
            raise ValueError(f"Cast range must be positive, got {cast_range}")

        fields = self._get_fields()
        fields["distances"].from_numpy(
            np.array([sample.distance for sample in columns], dtype=np.float64)
        )
        fields["heights"].from_numpy(
            np.array([sample.surface.height for sample in columns], dtype=np.float64)
        )

        _project_columns(
            fields["distances"],
            fields["heights"],
            self._sample_width,
            self._sample_height,
            float(cast_range),
            fields["pixels"],
        )

        return PixelGrid.from_brightness(fields["pixels"].to_numpy())

    def band_height(self, distance: float, surface_height: float = 1.0) -> int:
        """Compute the band height the projector would draw for one hit.

        Args:
            distance: Hit distance.
            surface_height: Surface height of the hit.

        Returns:
            Band height in pixels, in [0, sample_height].
        """
        return int(_band_height_single(float(distance), float(surface_height), self._sample_height))

    def shade(self, distance: float, cast_range: float) -> int:
        """Compute the channel value the projector would draw for one hit.

        Args:
            distance: Hit distance.
            cast_range: Camera range.

        Returns:
            Channel value in [0, 255].
        """
        return int(_shade_single(float(distance), float(cast_range)))

    def __repr__(self) -> str:
        return f"ColumnProjector(sample_width={self._sample_width}, sample_height={self._sample_height})"
