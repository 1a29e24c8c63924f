"""Python implementation of a Taichi-based grid raycaster.

This package projects a top-down tile map into a pseudo-3D column image,
in the style of classic Wolfenstein-3D engines, with support for:
- ASCII tile maps with a single camera start marker
- Per-column grid traversal (DDA) executed in parallel Taichi kernels
- Column projection into vertically centred, distance-shaded wall bands
- Optional full ray traces for diagnostics

Subpackages:
    world: Tile map parsing, validation and surface lookup
    core: Ray data structures and grid traversal functions
    camera: Camera state and the parallel ray-cast pass
    render: Column projection and the pixel hand-off container
"""

__version__ = "0.1.0"
