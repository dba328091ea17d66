"""
Spatial utilities for the snake simulation.

Provides toroidal (wrap-around) grid math, position key encoding, and the
four cardinal movement directions.

All functions assume a 2D grid with dimensions (width, height) where
coordinates wrap: x % width, y % height. The grid has no edges.
"""

from __future__ import annotations

from enum import Enum


def toroidal_wrap(x: int, y: int, width: int, height: int) -> tuple[int, int]:
    """
    Wrap (x, y) coordinates to stay within grid bounds.

    Args:
        x, y: Raw coordinates (may be negative or >= dimensions).
        width, height: Grid dimensions.

    Returns:
        Wrapped (x, y) tuple within [0, width) and [0, height).
    """
    return x % width, y % height


def encode_pos(x: int, y: int, width: int) -> int:
    """
    Encode an in-bounds cell as a single integer key.

    The key is the row-major flat index (y * width + x), so it doubles as an
    index into a flattened (height, width) occupancy array.
    """
    return y * width + x


def decode_pos(key: int, width: int) -> tuple[int, int]:
    """Inverse of encode_pos."""
    y, x = divmod(key, width)
    return x, y


def manhattan(a: tuple[int, int], b: tuple[int, int]) -> int:
    """Plain (non-wrapping) Manhattan distance between two cells."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def is_reverse(a: tuple[int, int], b: tuple[int, int]) -> bool:
    """True if direction vector b exactly reverses direction vector a."""
    return a[0] + b[0] == 0 and a[1] + b[1] == 0


class Direction(Enum):
    """Player directional intents. Screen coordinates: y grows downward."""
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def vector(self) -> tuple[int, int]:
        return self.value

    def inverted(self) -> Direction:
        """Opposite direction (used while controls are inverted)."""
        dx, dy = self.value
        return Direction((-dx, -dy))
