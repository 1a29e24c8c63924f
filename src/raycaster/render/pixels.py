"""Pixel grid handed to external compositors.

The projector produces a grid of optional colors: pixels inside a wall band
carry a grayscale RGB triple, all other pixels are unset and show whatever
background the consumer composites underneath.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

# Sentinel brightness for pixels outside every wall band
UNSET = -1


@dataclass
class PixelGrid:
    """A sample_width x sample_height grid of optional RGB colors.

    Arrays use standard image layout: row 0 is the top of the image.

    Attributes:
        colors: RGB values of shape (height, width, 3) with dtype uint8.
            Unset pixels are zero.
        mask: Boolean array of shape (height, width), True where a color
            is set.
    """

    colors: npt.NDArray[np.uint8]
    mask: npt.NDArray[np.bool_]

    @classmethod
    def from_brightness(cls, brightness: npt.NDArray[np.int32]) -> "PixelGrid":
        """Build a grid from a (width, height) brightness array.

        Args:
            brightness: Channel value per pixel indexed [column, row],
                or UNSET for transparent pixels.

        Returns:
            The grayscale PixelGrid.
        """
        # (width, height) -> (height, width)
        image = np.transpose(brightness, (1, 0))
        mask = image != UNSET
        channel = np.where(mask, image, 0).astype(np.uint8)
        colors = np.repeat(channel[:, :, np.newaxis], 3, axis=2)
        return cls(colors=colors, mask=mask)

    @property
    def width(self) -> int:
        """Get the grid width in pixels."""
        return int(self.mask.shape[1])

    @property
    def height(self) -> int:
        """Get the grid height in pixels."""
        return int(self.mask.shape[0])

    def pixel(self, x: int, y: int) -> tuple[int, int, int] | None:
        """Get the color at column x, row y, or None if unset."""
        if not self.mask[y, x]:
            return None
        r, g, b = self.colors[y, x]
        return (int(r), int(g), int(b))

    def set_count(self) -> int:
        """Get the number of pixels with a color."""
        return int(np.count_nonzero(self.mask))
