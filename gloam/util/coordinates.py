"""Coordinate helpers: bounds checks, distance metrics and adjacency."""

from __future__ import annotations

import math
from collections.abc import Iterator
from enum import Enum

from gloam.types import (
    CARDINAL_DIRECTIONS,
    DIRECTIONS,
    NULL_DIRECTION,
    Direction,
    TileCoord,
    WorldTilePos,
)

_SQRT_2 = math.sqrt(2.0)


# =============================================================================
# BOUNDS CHECKING HELPERS
# =============================================================================


def is_valid_world_tile_pos(
    pos: WorldTilePos, map_width: TileCoord, map_height: TileCoord
) -> bool:
    """Check if world tile position is within map bounds."""
    x, y = pos
    return 0 <= x < map_width and 0 <= y < map_height


# =============================================================================
# DISTANCE METRICS
# =============================================================================


class Distance(Enum):
    """Movement metric for a grid.

    The metric fixes three things at once so they can never disagree:
    the adjacency (which neighbours a cell has), the cost of a single step,
    and the A* heuristic, which is admissible for that adjacency.

    - MANHATTAN: 4-way moves, every step costs 1.
    - CHEBYSHEV: 8-way moves, every step costs 1.
    - EUCLIDEAN: 8-way moves, diagonal steps cost sqrt(2); octile heuristic.
    """

    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"
    EUCLIDEAN = "euclidean"

    @property
    def directions(self) -> tuple[Direction, ...]:
        """Step directions for this metric, clockwise from North."""
        if self is Distance.MANHATTAN:
            return CARDINAL_DIRECTIONS
        return DIRECTIONS

    def step_cost(self, direction: Direction) -> float:
        """Cost of a single step in ``direction``."""
        dx, dy = direction
        if self is Distance.EUCLIDEAN and dx != 0 and dy != 0:
            return _SQRT_2
        return 1.0

    def calculate(self, a: WorldTilePos, b: WorldTilePos) -> float:
        """Shortest open-grid travel distance between two cells.

        Used both as the A* heuristic and for range checks. For EUCLIDEAN this
        is the octile distance (the true open-grid path length for 8-way moves
        with sqrt(2) diagonals), not the straight-line distance.
        """
        dx = abs(a[0] - b[0])
        dy = abs(a[1] - b[1])
        match self:
            case Distance.MANHATTAN:
                return float(dx + dy)
            case Distance.CHEBYSHEV:
                return float(max(dx, dy))
            case Distance.EUCLIDEAN:
                return max(dx, dy) + (_SQRT_2 - 1.0) * min(dx, dy)
        raise AssertionError(f"Unhandled distance metric {self!r}")

    def neighbors(self, pos: WorldTilePos) -> Iterator[tuple[WorldTilePos, float]]:
        """Yield ``(neighbor, step_cost)`` pairs around ``pos`` (unbounded)."""
        x, y = pos
        for direction in self.directions:
            yield (x + direction[0], y + direction[1]), self.step_cost(direction)

    def is_adjacent(self, a: WorldTilePos, b: WorldTilePos) -> bool:
        """Return True if ``b`` is one step away from ``a`` under this metric."""
        return (b[0] - a[0], b[1] - a[1]) in self.directions


def chebyshev(a: WorldTilePos, b: WorldTilePos) -> int:
    """Chessboard distance between two cells."""
    return max(abs(a[0] - b[0]), abs(a[1] - b[1]))


def direction_between(a: WorldTilePos, b: WorldTilePos) -> Direction:
    """Unit step that moves from ``a`` toward ``b`` (sign of each delta)."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    if dx == 0 and dy == 0:
        return NULL_DIRECTION
    step_x = (dx > 0) - (dx < 0)
    step_y = (dy > 0) - (dy < 0)
    return (step_x, step_y)  # type: ignore[return-value]
