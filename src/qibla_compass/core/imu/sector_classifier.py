"""8-point compass labels from a heading in degrees."""

from typing import Literal, Tuple

DirectionLabel = Literal["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

DIRECTIONS: Tuple[DirectionLabel, ...] = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

SECTOR_WIDTH_DEG = 45.0


def classify_sector(heading_deg: float) -> DirectionLabel:
    """
    Map a heading to the nearest of the 8 compass points.

    Bins are 45 degrees wide, half-open, with boundaries at odd multiples of
    22.5 degrees: [22.5, 67.5) is "NE", and so on. Anything outside
    [0, 360), including exactly 360, falls back to "N".
    """
    if not 0 <= heading_deg < 360:
        return "N"

    index = int((heading_deg + SECTOR_WIDTH_DEG / 2) // SECTOR_WIDTH_DEG) % len(DIRECTIONS)
    return DIRECTIONS[index]
