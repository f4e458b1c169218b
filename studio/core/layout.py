"""
Tile Layout Planner
===================
Computes where stamps go: a regular grid laid out in a coordinate system
rotated about the canvas centre, mapped back to canvas coordinates.

Technical Notes:
- The grid reaches one spacing unit past the canvas half-diagonal, so no
  corner is left unstamped whatever the rotation
- Anchors further than one spacing unit outside the canvas are dropped
- The canvas centre is always an anchor, so a plan is never empty
- Plans whose grid would exceed max_grid_points are refused up front
"""

import logging
import math
from dataclasses import dataclass

from .errors import UnrenderableConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TilePlacement:
    """Centre of one stamp in canvas coordinates, plus its rotation."""
    x: float
    y: float
    rotation_degrees: float


class TileLayoutPlanner:
    """Plans tile anchors covering a canvas."""

    DEFAULT_MAX_GRID_POINTS = 1_000_000

    def __init__(self, max_grid_points: int = DEFAULT_MAX_GRID_POINTS):
        self.max_grid_points = max_grid_points

    def plan(
            self,
            width: int,
            height: int,
            spacing_px: float,
            rotation_degrees: float,
            stagger: bool = False
    ) -> list[TilePlacement]:
        """
        Plan tile anchors for a canvas.

        Rotation is clockwise on screen (y axis pointing down), applied to
        the whole tile layer; every anchor carries the same rotation.

        Args:
            width: Canvas width in pixels.
            height: Canvas height in pixels.
            spacing_px: Grid pitch in the rotated coordinate system.
            rotation_degrees: Rotation of the tile layer.
            stagger: Shift odd rows by half a pitch.

        Returns:
            Anchors ordered row by row in the rotated grid.

        Raises:
            UnrenderableConfig: If spacing is not positive, or so small for
                the canvas that the grid exceeds max_grid_points.
        """
        if spacing_px <= 0:
            raise UnrenderableConfig("Tile spacing must be positive")

        center_x = width / 2
        center_y = height / 2
        theta = math.radians(rotation_degrees)
        cos_t = math.cos(theta)
        sin_t = math.sin(theta)

        reach = math.hypot(width, height) / 2 + spacing_px
        steps = math.ceil(reach / spacing_px)
        grid_points = (2 * steps + 1) * (2 * steps + 3)
        if grid_points > self.max_grid_points:
            raise UnrenderableConfig(
                f"Tile spacing {spacing_px} is too small for a {width}x{height} canvas "
                f"({grid_points} grid points, limit {self.max_grid_points})"
            )

        min_x, max_x = -spacing_px, width + spacing_px
        min_y, max_y = -spacing_px, height + spacing_px

        placements = []
        for row in range(-steps, steps + 1):
            v = row * spacing_px
            shift = spacing_px / 2 if stagger and row % 2 == 1 else 0.0

            for col in range(-steps - 1, steps + 2):
                u = col * spacing_px + shift
                x = center_x + u * cos_t - v * sin_t
                y = center_y + u * sin_t + v * cos_t

                if min_x <= x <= max_x and min_y <= y <= max_y:
                    placements.append(TilePlacement(x=x, y=y, rotation_degrees=rotation_degrees))

        logger.debug(
            "Planned %d tiles for %dx%d (spacing=%s, rotation=%s)",
            len(placements), width, height, spacing_px, rotation_degrees
        )
        return placements
