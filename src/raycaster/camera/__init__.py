"""Camera module for ray casting.

Components:
    camera: Camera state and the parallel per-column cast pass

Camera responsibilities:
    - Hold position, direction (degrees, normalised to [0, 360)),
      range and focal length
    - Cast one ray per output column through the shared map
    - Collect terminal samples in column order, plus optional traces
"""

from .camera import Camera, RenderResult, max_steps_for_range

__all__ = [
    "Camera",
    "RenderResult",
    "max_steps_for_range",
]
