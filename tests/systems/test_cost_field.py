from __future__ import annotations

import logging
import math
import random
from unittest.mock import patch

import numpy as np
import pytest

from gloam import config
from gloam.environment.grid import GridField, OutOfBoundsError
from gloam.types import EAST, NORTHEAST, SOUTHEAST, ActorId
from gloam.util.coordinates import Distance
from gloam.util.cost_field import (
    CostFieldMode,
    CostFieldSolver,
    compute_cost_field,
)


def _random_grid(seed: int, size: int = 12, density: float = 0.2) -> GridField:
    rand = random.Random(seed)
    rows = [
        "".join("#" if rand.random() < density else "." for _ in range(size))
        for _ in range(size)
    ]
    return GridField.from_strings(rows)


def test_attract_costs_along_a_corridor() -> None:
    field = compute_cost_field([(0, 0)], GridField(5, 1))
    assert field.costs[:, 0].tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert field.sources == ((0, 0),)
    assert field.mode is CostFieldMode.ATTRACT


def test_euclidean_diagonals_cost_sqrt_two() -> None:
    field = compute_cost_field([(0, 0)], GridField(3, 3), distance=Distance.EUCLIDEAN)
    assert field.cost_at((1, 1)) == pytest.approx(math.sqrt(2))
    assert field.cost_at((2, 2)) == pytest.approx(2 * math.sqrt(2))
    assert field.cost_at((2, 1)) == pytest.approx(1 + math.sqrt(2))


def test_manhattan_has_no_diagonal_steps() -> None:
    field = compute_cost_field([(0, 0)], GridField(3, 3), distance=Distance.MANHATTAN)
    assert field.cost_at((2, 2)) == 4.0


def test_walls_and_sealed_cells_are_unreachable() -> None:
    field = compute_cost_field([(0, 0)], GridField.from_strings([".#."]))
    assert field.cost_at((0, 0)) == 0.0
    assert math.isinf(field.cost_at((1, 0)))
    assert not field.is_reachable((2, 0))
    assert field.reachable_mask().tolist() == [[True], [False], [False]]


def test_invalid_sources_are_skipped_with_warning(
    caplog: pytest.LogCaptureFixture,
) -> None:
    grid = GridField.from_strings([".#."])
    with caplog.at_level(logging.WARNING, logger="gloam.util.cost_field"):
        field = compute_cost_field([(9, 9), (1, 0)], grid)
    assert field.sources == ()
    assert not field.reachable_mask().any()
    assert caplog.text.count("skipped") == 2


def test_duplicate_sources_are_collapsed() -> None:
    field = compute_cost_field([(0, 0), (0, 0), (4, 0)], GridField(5, 1))
    assert field.sources == ((0, 0), (4, 0))
    assert field.costs[:, 0].tolist() == [0.0, 1.0, 2.0, 1.0, 0.0]


def test_max_cost_caps_the_search() -> None:
    field = compute_cost_field([(0, 0)], GridField(5, 1), max_cost=2)
    assert field.cost_at((2, 0)) == 2.0
    assert math.isinf(field.cost_at((3, 0)))


def test_cost_at_rejects_out_of_bounds() -> None:
    field = compute_cost_field([(0, 0)], GridField(3, 3))
    with pytest.raises(OutOfBoundsError):
        field.cost_at((3, 0))


def test_field_arrays_are_read_only() -> None:
    field = compute_cost_field([(0, 0)], GridField(3, 3))
    with pytest.raises(ValueError):
        field.costs[1, 1] = 0.0


def test_repel_field_increases_away_from_threat() -> None:
    field = compute_cost_field([(0, 0)], GridField(10, 1), CostFieldMode.REPEL)
    row = field.costs[:, 0]
    assert all(row[i] < row[i + 1] for i in range(9))
    assert field.best_direction((0, 0)) == EAST
    assert field.best_direction((5, 0)) == EAST
    assert field.best_direction((9, 0)) is None


def test_repel_field_prefers_open_space_over_dead_end() -> None:
    # Threat in the middle of a corridor; the right side opens into a room.
    grid = GridField.from_strings(
        [
            "######....",
            "..........",
            "######....",
        ]
    )
    field = compute_cost_field([(3, 1)], grid, CostFieldMode.REPEL)
    assert field.cost_at((6, 1)) > field.cost_at((0, 1))
    assert field.best_direction((3, 1)) == EAST


def test_repel_field_from_unreachable_cell_has_no_direction() -> None:
    field = compute_cost_field([(0, 0)], GridField.from_strings([".#."]), CostFieldMode.REPEL)
    assert field.best_direction((2, 0)) is None


def test_improves_follows_the_field_mode() -> None:
    grid = GridField(5, 1)
    attract = compute_cost_field([(0, 0)], grid)
    repel = compute_cost_field([(0, 0)], grid, CostFieldMode.REPEL)
    assert attract.improves(1.0, 2.0)
    assert not attract.improves(2.0, 2.0)
    assert repel.improves(2.0, 1.0)
    assert not repel.improves(1.0, 1.0)


def test_attract_best_direction_breaks_ties_clockwise() -> None:
    grid = GridField(5, 5)
    chebyshev = compute_cost_field([(4, 2)], grid)
    # NE, E and SE all cost 1; NE comes first clockwise from North.
    assert chebyshev.best_direction((2, 2)) == NORTHEAST

    euclidean = compute_cost_field([(4, 2)], grid, distance=Distance.EUCLIDEAN)
    assert euclidean.best_direction((2, 2)) == EAST


def test_attract_best_direction_at_source_is_none() -> None:
    field = compute_cost_field([(2, 2)], GridField(5, 5))
    assert field.best_direction((2, 2)) is None


def test_best_direction_respects_passable_mask() -> None:
    field = compute_cost_field([(4, 2)], GridField(5, 5))
    passable = np.ones((5, 5), dtype=np.bool_)
    passable[3, 1] = False
    passable[3, 2] = False
    assert field.best_direction((2, 2), passable=passable) == SOUTHEAST


def test_highest_position() -> None:
    corridor = compute_cost_field([(0, 0)], GridField(3, 1))
    assert corridor.highest_position() == (2, 0)

    # Every non-source cell costs 1; the first in coordinate order wins.
    room = compute_cost_field([(1, 1)], GridField(3, 3))
    assert room.highest_position() == (0, 0)

    sealed = compute_cost_field([(9, 9)], GridField(3, 3))
    assert sealed.highest_position() is None


def test_combine_adds_weighted_fields() -> None:
    grid = GridField(3, 1)
    left = compute_cost_field([(0, 0)], grid)
    right = compute_cost_field([(2, 0)], grid)

    assert left.combine(right).costs[:, 0].tolist() == [2.0, 2.0, 2.0]
    blended = left.combine(right, weight=-1.0)
    assert blended.costs[:, 0].tolist() == [-2.0, 0.0, 2.0]
    assert blended.sources == ((0, 0), (2, 0))


def test_combine_keeps_unreachable_cells_unreachable() -> None:
    grid = GridField.from_strings([".#."])
    left = compute_cost_field([(0, 0)], grid)
    right = compute_cost_field([(2, 0)], grid)
    assert not left.combine(right).reachable_mask().any()


def test_combine_rejects_mismatched_shapes() -> None:
    small = compute_cost_field([(0, 0)], GridField(3, 1))
    large = compute_cost_field([(0, 0)], GridField(4, 1))
    with pytest.raises(ValueError):
        small.combine(large)


def test_occupancy_can_block_the_field() -> None:
    grid = GridField(3, 1)
    grid.place_actor(ActorId(1), (1, 0))

    assert compute_cost_field([(0, 0)], grid).cost_at((2, 0)) == 2.0
    blocked = compute_cost_field([(0, 0)], grid, ignore_occupancy=False)
    assert math.isinf(blocked.cost_at((2, 0)))

    # An occupied source is still seeded.
    from_actor = compute_cost_field([(1, 0)], grid, ignore_occupancy=False)
    assert from_actor.cost_at((1, 0)) == 0.0
    assert from_actor.cost_at((2, 0)) == 1.0


# ---------------------------------------------------------------------------
# CostFieldSolver
# ---------------------------------------------------------------------------


def test_solver_reuses_cached_field() -> None:
    grid = GridField(6, 6)
    solver = CostFieldSolver()

    first = solver.solve(grid, [(0, 0)])
    second = solver.solve(grid, [(0, 0)])

    assert second is first
    assert solver.full_solves == 1
    assert solver.cache_hits == 1


def test_solver_repel_matches_full_compute() -> None:
    grid = _random_grid(11)
    sources = [(x, y) for x in range(12) for y in range(12) if not grid.is_blocking((x, y))][:2]
    solver = CostFieldSolver()

    cached = solver.solve(grid, sources, CostFieldMode.REPEL)
    expected = compute_cost_field(sources, grid, CostFieldMode.REPEL)
    assert np.array_equal(cached.costs, expected.costs)
    assert cached.mode is CostFieldMode.REPEL


@pytest.mark.parametrize("distance", [Distance.CHEBYSHEV, Distance.MANHATTAN])
def test_incremental_repair_matches_full_recompute(distance: Distance) -> None:
    grid = _random_grid(5)
    floor = [(x, y) for x in range(12) for y in range(12) if not grid.is_blocking((x, y))]
    sources = [floor[0], floor[-1]]
    solver = CostFieldSolver()
    solver.solve(grid, sources, distance=distance)

    rand = random.Random(9)
    for _ in range(6):
        candidates = [
            (x, y) for x in range(12) for y in range(12) if (x, y) not in sources
        ]
        for pos in rand.sample(candidates, 3):
            grid.set_blocking(pos, not grid.is_blocking(pos))

        repaired = solver.solve(grid, sources, distance=distance)
        expected = compute_cost_field(sources, grid, distance=distance)
        assert np.array_equal(repaired.costs, expected.costs)
        assert repaired.revision == grid.structural_revision

    assert solver.full_solves == 1
    assert solver.incremental_solves == 6


def test_incremental_repair_after_opening_a_wall() -> None:
    grid = GridField(10, 7)
    for y in range(7):
        grid.set_blocking((5, y), True)
    solver = CostFieldSolver()

    before = solver.solve(grid, [(0, 0)])
    assert math.isinf(before.cost_at((9, 3)))

    grid.set_blocking((5, 3), False)
    after = solver.solve(grid, [(0, 0)])

    assert solver.incremental_solves == 1
    assert after.cost_at((5, 3)) == 5.0
    assert after.cost_at((9, 3)) == 9.0
    assert np.array_equal(after.costs, compute_cost_field([(0, 0)], grid).costs)


def test_too_many_changes_fall_back_to_full_solve() -> None:
    grid = GridField(8, 8)
    solver = CostFieldSolver()
    solver.solve(grid, [(0, 0)])

    grid.set_blocking((3, 3), True)
    grid.set_blocking((4, 4), True)
    with patch.object(config, "COST_FIELD_INCREMENTAL_LIMIT", 1):
        field = solver.solve(grid, [(0, 0)])

    assert solver.full_solves == 2
    assert solver.incremental_solves == 0
    assert np.array_equal(field.costs, compute_cost_field([(0, 0)], grid).costs)


def test_cache_evicts_least_recently_used() -> None:
    grid = GridField(4, 4)
    solver = CostFieldSolver(max_entries=2)
    solver.solve(grid, [(0, 0)])
    solver.solve(grid, [(1, 1)])
    solver.solve(grid, [(2, 2)])

    solver.solve(grid, [(0, 0)])
    assert solver.full_solves == 4
    assert solver.cache_hits == 0
