"""Render module for column projection.

Components:
    projector: Distance-based wall band projection and shading
    pixels: Grid of optional RGB colors handed to compositors

Example:
    >>> from src.raycaster.render import ColumnProjector
    >>> projector = ColumnProjector(sample_width=800, sample_height=600)
    >>> pixels = projector.project(result.columns, camera.range)
    >>> pixels.colors.shape
    (600, 800, 3)
"""

from src.raycaster.render.pixels import UNSET, PixelGrid
from src.raycaster.render.projector import ColumnProjector

__all__ = [
    "ColumnProjector",
    "PixelGrid",
    "UNSET",
]
