"""Multi-source Dijkstra cost fields ("Dijkstra maps").

A cost field stores, for every cell, the travel cost to the nearest source
under a Distance metric. Two modes share one relaxation routine:

- ATTRACT: plain distance to the nearest source. Lower is closer; an actor
  chasing a source follows the lowest neighbour.
- REPEL: a flee map. The attract costs are scaled by
  ``config.FLEE_MAP_MAGNITUDE`` (negative), relaxed once more so that cells
  which lead past the threat toward open space win, and negated so that
  higher values are safer. An actor fleeing follows the highest neighbour.

See http://www.roguebasin.com/index.php?title=The_Incredible_Power_of_Dijkstra_Maps

``CostFieldSolver`` caches attract fields per (grid, sources, metric) and,
when the grid's terrain changed, repairs only the part of the field the
change can affect.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

from gloam import config
from gloam.environment.grid import GridField, OutOfBoundsError
from gloam.types import Direction, WorldTilePos
from gloam.util.coordinates import Distance
from gloam.util.live_vars import record_time_live_variable

logger = logging.getLogger(__name__)

_Seed: TypeAlias = tuple[float, WorldTilePos]


class CostFieldMode(Enum):
    ATTRACT = auto()
    REPEL = auto()


@dataclass(frozen=True, eq=False)
class CostField:
    """Immutable per-cell cost array plus the inputs that produced it.

    ``costs`` is indexed ``[x, y]``; unreachable cells hold ``math.inf``.
    """

    costs: NDArray[np.float64]
    sources: tuple[WorldTilePos, ...]
    mode: CostFieldMode
    distance: Distance
    revision: int = 0

    @property
    def width(self) -> int:
        return self.costs.shape[0]

    @property
    def height(self) -> int:
        return self.costs.shape[1]

    def _check_bounds(self, pos: WorldTilePos) -> None:
        x, y = pos
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBoundsError(
                f"{pos} is outside the {self.width}x{self.height} cost field"
            )

    def cost_at(self, pos: WorldTilePos) -> float:
        self._check_bounds(pos)
        return float(self.costs[pos[0], pos[1]])

    def is_reachable(self, pos: WorldTilePos) -> bool:
        return math.isfinite(self.cost_at(pos))

    def improves(self, cost: float, reference: float) -> bool:
        """Whether ``cost`` is strictly better than ``reference`` for this mode."""
        if self.mode is CostFieldMode.ATTRACT:
            return cost < reference
        return cost > reference

    def best_direction(
        self,
        pos: WorldTilePos,
        *,
        passable: NDArray[np.bool_] | None = None,
    ) -> Direction | None:
        """Direction of the neighbour that improves most on ``pos``.

        ATTRACT fields prefer the lowest neighbour, REPEL fields the highest.
        Only strict improvements count; ties go to the first direction in
        clockwise order from North. ``passable`` optionally masks out cells
        the caller cannot step onto (for example occupied ones).

        Returns None when no neighbour improves on the current cell.
        """
        current = self.cost_at(pos)
        if self.mode is CostFieldMode.REPEL and not math.isfinite(current):
            return None

        x, y = pos
        best: Direction | None = None
        best_cost = current
        for direction in self.distance.directions:
            nx, ny = x + direction[0], y + direction[1]
            if not (0 <= nx < self.width and 0 <= ny < self.height):
                continue
            if passable is not None and not passable[nx, ny]:
                continue
            cost = float(self.costs[nx, ny])
            if not math.isfinite(cost):
                continue
            if self.improves(cost, best_cost):
                best = direction
                best_cost = cost
        return best

    def highest_position(self) -> WorldTilePos | None:
        """Reachable cell with the greatest cost, first in coordinate order."""
        finite = np.isfinite(self.costs)
        if not finite.any():
            return None
        masked = np.where(finite, self.costs, -np.inf)
        x, y = np.unravel_index(int(np.argmax(masked)), masked.shape)
        return (int(x), int(y))

    def reachable_mask(self) -> NDArray[np.bool_]:
        return np.isfinite(self.costs)

    def combine(self, other: CostField, weight: float = 1.0) -> CostField:
        """Return ``self + weight * other`` as a new field.

        Cells unreachable in either field stay unreachable. Used to blend a
        chase field with a flee field, for example.
        """
        if other.costs.shape != self.costs.shape:
            raise ValueError(
                f"Cannot combine fields of shape {self.costs.shape} "
                f"and {other.costs.shape}"
            )
        with np.errstate(invalid="ignore"):
            combined = self.costs + weight * other.costs
        combined[~(np.isfinite(self.costs) & np.isfinite(other.costs))] = math.inf
        combined.flags.writeable = False
        sources = tuple(dict.fromkeys(self.sources + other.sources))
        return CostField(
            combined, sources, self.mode, self.distance, max(self.revision, other.revision)
        )


# ---------------------------------------------------------------------------
# Relaxation
# ---------------------------------------------------------------------------


def _relax(
    costs: NDArray[np.float64],
    passable: NDArray[np.bool_],
    seeds: Iterable[_Seed],
    distance: Distance,
    max_cost: float = math.inf,
) -> None:
    """Run Dijkstra in place from ``seeds``, lowering ``costs`` where possible.

    Each seed's cost must already be stored in ``costs``. Frontier entries are
    ``(cost, insertion_counter, pos)`` so equal costs pop in insertion order.
    Cells whose cost would exceed ``max_cost`` are left untouched.
    """
    width, height = costs.shape
    counter = itertools.count()
    frontier: list[tuple[float, int, WorldTilePos]] = []
    for cost, pos in seeds:
        frontier.append((cost, next(counter), pos))
    heapq.heapify(frontier)

    steps = [(d[0], d[1], distance.step_cost(d)) for d in distance.directions]

    while frontier:
        cost, _, (x, y) = heapq.heappop(frontier)
        if cost > costs[x, y]:
            continue  # Stale entry
        for dx, dy, step in steps:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height) or not passable[nx, ny]:
                continue
            new_cost = cost + step
            if new_cost > max_cost or new_cost >= costs[nx, ny]:
                continue
            costs[nx, ny] = new_cost
            heapq.heappush(frontier, (new_cost, next(counter), (nx, ny)))


def _valid_sources(
    sources: Iterable[WorldTilePos], grid: GridField
) -> tuple[WorldTilePos, ...]:
    valid: list[WorldTilePos] = []
    for pos in sources:
        pos = (int(pos[0]), int(pos[1]))
        if not grid.in_bounds(pos):
            logger.warning("Cost field source %s is out of bounds; skipped", pos)
            continue
        if grid.is_blocking(pos):
            logger.warning("Cost field source %s is on blocking terrain; skipped", pos)
            continue
        if pos not in valid:
            valid.append(pos)
    return tuple(valid)


def _solve_attract(
    sources: Sequence[WorldTilePos],
    passable: NDArray[np.bool_],
    distance: Distance,
    max_cost: float,
) -> NDArray[np.float64]:
    costs = np.full(passable.shape, math.inf, dtype=np.float64)
    seeds: list[_Seed] = []
    for pos in sources:
        costs[pos[0], pos[1]] = 0.0
        seeds.append((0.0, pos))
    _relax(costs, passable, seeds, distance, max_cost)
    return costs


def _derive_repel(
    attract: NDArray[np.float64],
    passable: NDArray[np.bool_],
    distance: Distance,
) -> NDArray[np.float64]:
    """Turn an attract field into a flee field (higher is safer)."""
    scaled = attract * config.FLEE_MAP_MAGNITUDE
    reachable = np.isfinite(attract)
    scaled[~reachable] = math.inf
    # Every reachable cell seeds the second pass at its scaled value.
    seeds = [
        (float(scaled[x, y]), (int(x), int(y))) for x, y in np.argwhere(reachable)
    ]
    _relax(scaled, passable, seeds, distance)
    return -scaled


def _grow(mask: NDArray[np.bool_], directions: Iterable[Direction]) -> NDArray[np.bool_]:
    """Cells that have at least one neighbour (under ``directions``) in ``mask``."""
    width, height = mask.shape
    grown = np.zeros_like(mask)
    for dx, dy in directions:
        grown[max(-dx, 0) : width + min(-dx, 0), max(-dy, 0) : height + min(-dy, 0)] |= (
            mask[max(dx, 0) : width + min(dx, 0), max(dy, 0) : height + min(dy, 0)]
        )
    return grown


def _repair_attract(
    costs: NDArray[np.float64],
    passable: NDArray[np.bool_],
    sources: Sequence[WorldTilePos],
    changed: Sequence[WorldTilePos],
    distance: Distance,
    max_cost: float,
) -> None:
    """Repair an attract field in place after terrain changed at ``changed``.

    Let ``c_min`` be the lowest old cost among the changed cells and their
    neighbours. No shortest route to a cell cheaper than ``c_min`` can touch
    the changed region, so those cells keep their cost. Everything else is
    reset and re-relaxed from the kept cells bordering the reset area.
    """
    width, height = costs.shape
    c_min = math.inf
    for cx, cy in changed:
        c_min = min(c_min, float(costs[cx, cy]))
        for (nx, ny), _step in distance.neighbors((cx, cy)):
            if 0 <= nx < width and 0 <= ny < height:
                c_min = min(c_min, float(costs[nx, ny]))

    if math.isinf(c_min):
        reset = ~np.isfinite(costs)
    else:
        reset = costs >= c_min
    costs[reset] = math.inf

    seeds: list[_Seed] = []
    for pos in sources:
        if reset[pos[0], pos[1]] and passable[pos[0], pos[1]]:
            costs[pos[0], pos[1]] = 0.0
            seeds.append((0.0, pos))

    boundary = _grow(reset & passable, distance.directions) & np.isfinite(costs)
    for x, y in np.argwhere(boundary):
        seeds.append((float(costs[x, y]), (int(x), int(y))))

    _relax(costs, passable, seeds, distance, max_cost)


def _freeze(costs: NDArray[np.float64]) -> NDArray[np.float64]:
    costs.flags.writeable = False
    return costs


def compute_cost_field(
    sources: Iterable[WorldTilePos],
    grid: GridField,
    mode: CostFieldMode = CostFieldMode.ATTRACT,
    *,
    distance: Distance | None = None,
    max_cost: float = math.inf,
    ignore_occupancy: bool = True,
) -> CostField:
    """Compute a cost field from scratch.

    Args:
        sources: Cells seeded at cost 0. Out-of-bounds and Blocking sources are
            skipped with a warning.
        grid: The grid to read passability from.
        mode: ATTRACT for distance-to-source, REPEL for a flee map.
        distance: Movement metric; defaults to ``config.DEFAULT_DISTANCE``.
        max_cost: Cells farther than this from every source stay unreachable.
        ignore_occupancy: When False, occupied cells (other than sources) are
            impassable too.
    """
    distance = distance or config.DEFAULT_DISTANCE
    valid = _valid_sources(sources, grid)
    if ignore_occupancy:
        passable = grid.walkable
    else:
        passable = grid.passable_mask()
        for x, y in valid:
            passable[x, y] = True

    with record_time_live_variable("time.ai.cost_field_ms"):
        costs = _solve_attract(valid, passable, distance, max_cost)
        if mode is CostFieldMode.REPEL:
            costs = _derive_repel(costs, passable, distance)
    return CostField(_freeze(costs), valid, mode, distance, grid.structural_revision)


# ---------------------------------------------------------------------------
# Cached solver
# ---------------------------------------------------------------------------


_CacheKey: TypeAlias = tuple[int, tuple[WorldTilePos, ...], Distance, float]


@dataclass
class _CacheEntry:
    grid: GridField
    revision: int
    attract: NDArray[np.float64]
    fields: dict[CostFieldMode, CostField] = field(default_factory=dict)


class CostFieldSolver:
    """Caches terrain-only cost fields and repairs them as the grid changes.

    Fields are keyed by (grid, sources, metric, max_cost). A cached field is
    returned as-is while the grid's ``structural_revision`` is unchanged.
    After a terrain change the cached attract costs are repaired in place if
    few cells changed and none of them is a source; otherwise the field is
    recomputed. Either way the result equals a full recompute.

    Fields that must respect occupancy change every time an actor moves and
    are not cached; use ``compute_cost_field(..., ignore_occupancy=False)``.
    """

    def __init__(self, max_entries: int = 64) -> None:
        self.max_entries = max_entries
        self._cache: OrderedDict[_CacheKey, _CacheEntry] = OrderedDict()
        self.full_solves = 0
        self.incremental_solves = 0
        self.cache_hits = 0

    def clear(self) -> None:
        self._cache.clear()

    def solve(
        self,
        grid: GridField,
        sources: Iterable[WorldTilePos],
        mode: CostFieldMode = CostFieldMode.ATTRACT,
        *,
        distance: Distance | None = None,
        max_cost: float = math.inf,
    ) -> CostField:
        distance = distance or config.DEFAULT_DISTANCE
        valid = _valid_sources(sources, grid)
        key: _CacheKey = (id(grid), valid, distance, max_cost)

        entry = self._cache.get(key)
        if entry is not None and entry.grid is not grid:
            entry = None

        with record_time_live_variable("time.ai.cost_field_ms"):
            if entry is None:
                entry = self._full_solve(grid, valid, distance, max_cost)
            elif entry.revision != grid.structural_revision:
                self._refresh(entry, grid, valid, distance, max_cost)
            else:
                self.cache_hits += 1

            self._cache[key] = entry
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_entries:
                self._cache.popitem(last=False)

            cached = entry.fields.get(mode)
            if cached is None:
                costs = entry.attract.copy()
                if mode is CostFieldMode.REPEL:
                    costs = _derive_repel(costs, grid.walkable, distance)
                cached = CostField(_freeze(costs), valid, mode, distance, entry.revision)
                entry.fields[mode] = cached
        return cached

    def _full_solve(
        self,
        grid: GridField,
        sources: tuple[WorldTilePos, ...],
        distance: Distance,
        max_cost: float,
    ) -> _CacheEntry:
        self.full_solves += 1
        attract = _solve_attract(sources, grid.walkable, distance, max_cost)
        return _CacheEntry(grid, grid.structural_revision, attract)

    def _refresh(
        self,
        entry: _CacheEntry,
        grid: GridField,
        sources: tuple[WorldTilePos, ...],
        distance: Distance,
        max_cost: float,
    ) -> None:
        changed = grid.changes_since(entry.revision)
        source_set = set(sources)
        if (
            changed is None
            or len(changed) > config.COST_FIELD_INCREMENTAL_LIMIT
            or any(pos in source_set for pos in changed)
        ):
            logger.debug(
                "Full cost field recompute for %d sources (changes: %s)",
                len(sources),
                "unknown" if changed is None else len(changed),
            )
            fresh = self._full_solve(grid, sources, distance, max_cost)
            entry.attract = fresh.attract
        else:
            self.incremental_solves += 1
            _repair_attract(
                entry.attract, grid.walkable, sources, changed, distance, max_cost
            )
        entry.revision = grid.structural_revision
        entry.fields.clear()
