"""Field-of-view computation using Albert Ford's symmetric shadowcasting.

Implements the algorithm described at https://www.albertford.com/shadowcasting/
with exact integer arithmetic to avoid floating-point edge cases.

Key properties of symmetric shadowcasting:
- **Symmetry**: If floor tile A can see floor tile B, then B can see A.
- **Light walls**: Blocking tiles that border the visible region are
  themselves visible (the wall that blocks you is always revealed).
- **Exactness**: Slopes are tracked as integer numerator/denominator pairs with
  cross-multiplication for comparisons.

The algorithm processes four cardinal quadrants (north, east, south, west),
each covering a 90-degree arc made of two octants. Within each quadrant it
scans outward row by row, tracking which angular sectors are still unblocked.
The result is clipped to the Euclidean disc ``dx*dx + dy*dy <= radius*radius``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np
from numpy.typing import NDArray

from gloam.environment.grid import GridField
from gloam.types import WorldTilePos
from gloam.util.live_vars import record_time_live_variable

logger = logging.getLogger(__name__)

# Quadrant transform coefficients: (col_to_x, depth_to_x, col_to_y, depth_to_y).
# For a given quadrant, world coordinates are:
#   wx = ox + col * cx + depth * dx
#   wy = oy + col * cy + depth * dy
_QUADRANT_TRANSFORMS: list[tuple[int, int, int, int]] = [
    (1, 0, 0, -1),  # North: col->x, depth->-y
    (0, 1, 1, 0),  # East:  depth->x, col->y
    (1, 0, 0, 1),  # South: col->x, depth->+y
    (0, -1, 1, 0),  # West:  depth->-x, col->y
]


class VisibilitySet:
    """Immutable set of cells visible from one origin.

    Wraps the boolean visibility array so callers can use set-style membership
    tests while array-level code can still reach ``mask`` directly.
    """

    __slots__ = ("_mask",)

    def __init__(self, mask: NDArray[np.bool_]) -> None:
        mask = mask.copy()
        mask.flags.writeable = False
        self._mask = mask

    @classmethod
    def empty(cls, width: int, height: int) -> VisibilitySet:
        return cls(np.zeros((width, height), dtype=np.bool_))

    @property
    def mask(self) -> NDArray[np.bool_]:
        """Read-only boolean array shaped ``(width, height)``."""
        return self._mask

    def __contains__(self, pos: object) -> bool:
        if not isinstance(pos, tuple) or len(pos) != 2:
            return False
        x, y = pos
        width, height = self._mask.shape
        if not (0 <= x < width and 0 <= y < height):
            return False
        return bool(self._mask[x, y])

    def __iter__(self) -> Iterator[WorldTilePos]:
        """Iterate visible cells in coordinate order (x, then y)."""
        for x, y in np.argwhere(self._mask):
            yield (int(x), int(y))

    def __len__(self) -> int:
        return int(np.count_nonzero(self._mask))

    def positions(self) -> list[WorldTilePos]:
        return list(self)

    def __repr__(self) -> str:
        return f"VisibilitySet({len(self)} cells)"


def compute_visibility(
    origin: WorldTilePos, radius: int, grid: GridField
) -> VisibilitySet:
    """Return the cells visible from ``origin`` within ``radius``.

    Actors never block sight. An origin on Blocking terrain sees nothing, and
    an out-of-bounds origin is logged as an error and also sees nothing.
    """
    if not grid.in_bounds(origin):
        logger.error(
            "Visibility origin %s outside %dx%d grid", origin, grid.width, grid.height
        )
        return VisibilitySet.empty(grid.width, grid.height)
    if grid.is_blocking(origin):
        logger.debug("Visibility origin %s is inside blocking terrain", origin)
        return VisibilitySet.empty(grid.width, grid.height)

    with record_time_live_variable("time.ai.fov_ms"):
        visible = compute_fov(grid.transparent, origin, radius)
    return VisibilitySet(visible)


def compute_fov(
    transparent: NDArray[np.bool_],
    origin: tuple[int, int],
    radius: int,
) -> NDArray[np.bool_]:
    """Compute the set of tiles visible from *origin*.

    Args:
        transparent: Boolean array shaped ``(width, height)``.
            ``True`` means the tile is see-through.
        origin: ``(x, y)`` position of the viewer.
        radius: Maximum sight distance. Tiles outside the Euclidean disc of
            this radius are never visible.

    Returns:
        Boolean array with the same shape as *transparent*, where ``True``
        marks a visible tile.
    """
    width, height = transparent.shape
    visible = np.zeros_like(transparent, dtype=np.bool_)
    ox, oy = origin

    if radius < 0:
        return visible

    # The origin tile is always visible.
    if 0 <= ox < width and 0 <= oy < height:
        visible[ox, oy] = True

    for cx, dx, cy, dy in _QUADRANT_TRANSFORMS:
        _scan_quadrant(
            cx, dx, cy, dy, ox, oy, radius, width, height, transparent, visible
        )

    _clip_to_disc(visible, ox, oy, radius)
    return visible


def _clip_to_disc(visible: NDArray[np.bool_], ox: int, oy: int, radius: int) -> None:
    """Clear every visible cell outside ``dx*dx + dy*dy <= radius*radius``."""
    width, height = visible.shape
    xs = np.arange(width) - ox
    ys = np.arange(height) - oy
    outside = (xs[:, np.newaxis] ** 2 + ys[np.newaxis, :] ** 2) > radius * radius
    visible[outside] = False


def _scan_quadrant(
    cx: int,
    dx: int,
    cy: int,
    dy: int,
    ox: int,
    oy: int,
    radius: int,
    width: int,
    height: int,
    transparent: NDArray[np.bool_],
    visible: NDArray[np.bool_],
) -> None:
    """Iteratively scan one 90-degree quadrant outward from the origin.

    Uses an explicit stack instead of recursion to avoid stack-depth issues
    on large radii.
    """
    # Stack entries: (row_depth, start_num, start_den, end_num, end_den).
    # Initial sector spans the full quadrant: slope -1/1 to 1/1.
    stack: list[tuple[int, int, int, int, int]] = [(1, -1, 1, 1, 1)]

    while stack:
        depth, s_num, s_den, e_num, e_den = stack.pop()

        if depth > radius:
            continue

        # min_col = round_ties_up(depth * s_num / s_den)
        #         = floor((2 * depth * s_num + s_den) / (2 * s_den))
        min_col = (2 * depth * s_num + s_den) // (2 * s_den)

        # max_col = round_ties_down(depth * e_num / e_den)
        #         = ceil((2 * depth * e_num - e_den) / (2 * e_den))
        max_col = -(-(2 * depth * e_num - e_den) // (2 * e_den))

        prev_was_wall: bool | None = None

        for col in range(min_col, max_col + 1):
            wx = ox + col * cx + depth * dx
            wy = oy + col * cy + depth * dy

            # Tiles outside the map are treated as walls.
            in_bounds = 0 <= wx < width and 0 <= wy < height
            is_wall = not in_bounds or not transparent[wx, wy]

            # Reveal walls (light walls) and floor tiles whose centre lies
            # inside the sector:
            #   col * s_den >= depth * s_num AND col * e_den <= depth * e_num
            if in_bounds and (
                is_wall
                or (col * s_den >= depth * s_num and col * e_den <= depth * e_num)
            ):
                visible[wx, wy] = True

            if prev_was_wall is not None:
                if prev_was_wall and not is_wall:
                    # Wall-to-floor: sector re-opens at this tile's near edge.
                    s_num = 2 * col - 1
                    s_den = 2 * depth
                elif not prev_was_wall and is_wall:
                    # Floor-to-wall: a shadow begins. Push the still-visible
                    # sector for the next row.
                    stack.append((depth + 1, s_num, s_den, 2 * col - 1, 2 * depth))

            prev_was_wall = is_wall

        # Row ended on a floor tile: the sector continues unobstructed.
        if prev_was_wall is not None and not prev_was_wall:
            stack.append((depth + 1, s_num, s_den, e_num, e_den))
