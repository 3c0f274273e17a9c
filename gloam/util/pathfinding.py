from __future__ import annotations

import heapq
import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from gloam import config
from gloam.game.enums import StepBlock
from gloam.types import ActorId, WorldTilePos
from gloam.util.coordinates import Distance
from gloam.util.live_vars import record_time_live_variable

if TYPE_CHECKING:
    from gloam.environment.grid import GridField
    from gloam.util.cost_field import CostField

logger = logging.getLogger(__name__)


class UnreachableReason(Enum):
    NO_ROUTE = auto()  # Search exhausted without reaching the goal
    GOAL_BLOCKED = auto()  # Goal cell is Blocking terrain
    EXPANSION_LIMIT = auto()  # Gave up after max_expansions nodes
    OUT_OF_BOUNDS = auto()  # Start or goal outside the grid


@dataclass(frozen=True)
class Unreachable:
    """Returned by ``find_path`` instead of a path when none was found.

    This is a plain result, not an error: the goal that asked for the path
    treats it as "impossible" on its next check.
    """

    reason: UnreachableReason

    def __bool__(self) -> bool:
        return False


def probe_step(
    grid: GridField,
    pos: WorldTilePos,
    *,
    ignore: ActorId | None = None,
) -> StepBlock | None:
    """Check whether a single tile can be stepped onto and return why not.

    This is the authoritative definition of "what blocks a tile" for both
    AI planning and movement execution, so the two always agree. The check
    order is bounds -> terrain -> actor occupancy.

    Args:
        grid: The GridField for bounds, terrain and occupancy.
        pos: Tile to test.
        ignore: An actor to ignore for occupancy (typically the moving actor
            itself).

    Returns:
        ``None`` if the tile is passable, or a :class:`StepBlock` value
        explaining why the tile is blocked.
    """
    if not grid.in_bounds(pos):
        return StepBlock.OUT_OF_BOUNDS
    if grid.is_blocking(pos):
        return StepBlock.WALL
    occupant = grid.occupant(pos)
    if occupant is not None and occupant != ignore:
        return StepBlock.BLOCKED_BY_ACTOR
    return None


def _normalized_bias(bias: CostField) -> NDArray[np.float64]:
    """Scale finite bias values into [0, 1]; non-finite cells contribute 0."""
    costs = bias.costs
    finite = np.isfinite(costs)
    normalized = np.zeros(costs.shape, dtype=np.float64)
    if not finite.any():
        return normalized
    lo = float(costs[finite].min())
    hi = float(costs[finite].max())
    if hi > lo:
        normalized[finite] = (costs[finite] - lo) / (hi - lo)
    return normalized


def find_path(
    start: WorldTilePos,
    goal: WorldTilePos,
    grid: GridField,
    *,
    bias: CostField | None = None,
    bias_weight: float | None = None,
    distance: Distance | None = None,
    ignore: ActorId | None = None,
    max_expansions: int | None = None,
) -> list[WorldTilePos] | Unreachable:
    """Calculate a path from ``start`` to ``goal`` using A*.

    Terrain Blocking cells are impassable, and so are cells occupied by any
    actor other than ``ignore`` (the pathing actor). The goal cell's occupant
    is tolerated; whether that last step is possible is decided when it is
    executed. Diagonal moves may cut corners.

    Frontier entries are ordered by ``(f, h, (x, y))``: lower total estimate
    first, then lower heuristic, then coordinate order, so equal-cost routes
    always resolve the same way.

    Args:
        start: Starting cell (the actor's position).
        goal: Destination cell.
        grid: The grid to search.
        bias: Optional cost field. Each step onto a cell with a finite bias
            value costs an extra ``bias_weight * normalized_bias``, pulling the
            route toward lower bias values.
        bias_weight: Weight of the bias term; defaults to
            ``config.PATHFINDING_BIAS_WEIGHT``.
        distance: Movement metric; defaults to ``config.DEFAULT_DISTANCE``.
        ignore: Actor whose own occupancy does not block the search.
        max_expansions: Cap on expanded nodes; defaults to
            ``config.PATHFINDING_MAX_EXPANSIONS``.

    Returns:
        The cells from start to goal, excluding start (``[]`` when they are
        the same cell), or an :class:`Unreachable` describing the failure.
    """
    distance = distance or config.DEFAULT_DISTANCE
    if max_expansions is None:
        max_expansions = config.PATHFINDING_MAX_EXPANSIONS
    if bias_weight is None:
        bias_weight = config.PATHFINDING_BIAS_WEIGHT

    if not grid.in_bounds(start) or not grid.in_bounds(goal):
        logger.error(
            "Path request %s -> %s outside %dx%d grid",
            start,
            goal,
            grid.width,
            grid.height,
        )
        return Unreachable(UnreachableReason.OUT_OF_BOUNDS)
    if start == goal:
        return []
    if grid.is_blocking(goal):
        return Unreachable(UnreachableReason.GOAL_BLOCKED)

    with record_time_live_variable("time.ai.pathfinding_ms"):
        return _astar(
            start,
            goal,
            grid,
            distance,
            ignore,
            max_expansions,
            _normalized_bias(bias) * bias_weight if bias is not None else None,
        )


def _astar(
    start: WorldTilePos,
    goal: WorldTilePos,
    grid: GridField,
    distance: Distance,
    ignore: ActorId | None,
    max_expansions: int,
    extra_cost: NDArray[np.float64] | None,
) -> list[WorldTilePos] | Unreachable:
    passable = grid.passable_mask(ignore=ignore)
    passable[goal[0], goal[1]] = True
    width, height = passable.shape
    steps = [(d[0], d[1], distance.step_cost(d)) for d in distance.directions]

    g_score: dict[WorldTilePos, float] = {start: 0.0}
    came_from: dict[WorldTilePos, WorldTilePos] = {}
    closed: set[WorldTilePos] = set()

    h_start = distance.calculate(start, goal)
    frontier: list[tuple[float, float, WorldTilePos]] = [(h_start, h_start, start)]
    expansions = 0

    while frontier:
        _f, _h, current = heapq.heappop(frontier)
        if current in closed:
            continue
        if current == goal:
            return _reconstruct(came_from, start, goal)

        closed.add(current)
        expansions += 1
        if expansions > max_expansions:
            logger.debug(
                "A* from %s to %s hit the %d expansion cap", start, goal, max_expansions
            )
            return Unreachable(UnreachableReason.EXPANSION_LIMIT)

        x, y = current
        current_g = g_score[current]
        for dx, dy, step in steps:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height) or not passable[nx, ny]:
                continue
            neighbor = (nx, ny)
            if neighbor in closed:
                continue
            new_g = current_g + step
            if extra_cost is not None:
                new_g += float(extra_cost[nx, ny])
            if new_g < g_score.get(neighbor, math.inf):
                g_score[neighbor] = new_g
                came_from[neighbor] = current
                h = distance.calculate(neighbor, goal)
                heapq.heappush(frontier, (new_g + h, h, neighbor))

    return Unreachable(UnreachableReason.NO_ROUTE)


def _reconstruct(
    came_from: dict[WorldTilePos, WorldTilePos],
    start: WorldTilePos,
    goal: WorldTilePos,
) -> list[WorldTilePos]:
    path: list[WorldTilePos] = []
    node = goal
    while node != start:
        path.append(node)
        node = came_from[node]
    path.reverse()
    return path
