#!/usr/bin/env python3
"""Render the demo tile map as ASCII art.

This script demonstrates end-to-end rendering with the grid raycaster. It
loads a small map, places the camera on the start marker, casts one ray per
terminal column and prints the projected wall bands using a character ramp.

Usage:
    python -m examples.render_demo_map [options]

Options:
    --width WIDTH         Output width in characters (default: 80)
    --height HEIGHT       Output height in characters (default: 24)
    --direction DEGREES   Camera direction in degrees (default: 0)
    --range RANGE         Maximum cast distance (default: 25)
    --focal-length F      Camera focal length (default: 0.8)
    --trace               Also print the map with every traced cell marked
    --verbose             Enable debug logging

Example:
    python -m examples.render_demo_map --direction 45 --trace
"""

from __future__ import annotations

import argparse
import logging
import sys

DEMO_MAP = [
    "################",
    "#              #",
    "#   #####      #",
    "#     #        #",
    "##    #    #   #",
    "##         #   #",
    "#        ###   #",
    "#    c   ###  ##",
    "#        ###  ##",
    "#          #   #",
    "##             #",
    "##     ##      #",
    "#      ##      #",
    "#              #",
    "#              #",
    "################",
]

# Dark to bright
SHADE_RAMP = ".:-=+*#%@"


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the demo tile map as ASCII art.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=80,
        help="Output width in characters (default: 80)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=24,
        help="Output height in characters (default: 24)",
    )
    parser.add_argument(
        "--direction",
        type=float,
        default=0.0,
        help="Camera direction in degrees (default: 0)",
    )
    parser.add_argument(
        "--range",
        type=float,
        default=25.0,
        help="Maximum cast distance (default: 25)",
    )
    parser.add_argument(
        "--focal-length",
        type=float,
        default=0.8,
        help="Camera focal length (default: 0.8)",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Also print the map with every traced cell marked",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


def to_ascii(pixels) -> str:
    """Convert a PixelGrid into lines of shade characters."""
    lines = []
    for y in range(pixels.height):
        line = []
        for x in range(pixels.width):
            color = pixels.pixel(x, y)
            if color is None:
                line.append(" ")
            else:
                index = color[0] * (len(SHADE_RAMP) - 1) // 255
                line.append(SHADE_RAMP[index])
        lines.append("".join(line))
    return "\n".join(lines)


def render_demo_map(
    width: int = 80,
    height: int = 24,
    direction: float = 0.0,
    cast_range: float = 25.0,
    focal_length: float = 0.8,
    trace: bool = False,
) -> str:
    """Render the demo map and return the ASCII image.

    Args:
        width: Output width in characters (one ray per character).
        height: Output height in characters.
        direction: Camera direction in degrees.
        cast_range: Maximum cast distance in grid units.
        focal_length: Camera focal length.
        trace: Append the traced map below the image.

    Returns:
        The rendered text.
    """
    # Lazy imports to allow Taichi initialization first
    from src.raycaster.camera.camera import Camera
    from src.raycaster.render.projector import ColumnProjector
    from src.raycaster.world.grid_map import Map

    world = Map(DEMO_MAP)
    camera = Camera(
        world.start_location,
        world,
        range=cast_range,
        focal_length=focal_length,
        direction=direction,
    )
    projector = ColumnProjector(sample_width=width, sample_height=height)

    result = camera.snapshot(projector.sample_width, include_trace=trace)
    pixels = projector.project(result.columns, camera.range)

    output = to_ascii(pixels)
    if trace:
        output += "\n\n" + world.to_debug_string(result.all_sample_points)
    return output


def main() -> int:
    """Main entry point."""
    args = parse_args()

    from src.raycaster.config import init_taichi
    from src.raycaster.logging_config import setup_logging

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    init_taichi()

    try:
        print(
            render_demo_map(
                width=args.width,
                height=args.height,
                direction=args.direction,
                cast_range=args.range,
                focal_length=args.focal_length,
                trace=args.trace,
            )
        )
        return 0
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
