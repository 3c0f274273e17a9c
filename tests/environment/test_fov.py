"""Tests for the symmetric shadowcasting FOV implementation."""

from __future__ import annotations

import logging
import random

import numpy as np
import pytest

from gloam.environment.fov import VisibilitySet, compute_fov, compute_visibility
from gloam.environment.grid import GridField


def _make_map(width: int, height: int, *, fill: bool = True) -> np.ndarray:
    """Create a transparent map. fill=True means all see-through (open field)."""
    return np.full((width, height), fill, dtype=np.bool_)


# ── 1. Open field ──────────────────────────────────────────────────────────


def test_open_field_everything_within_radius_visible() -> None:
    """Viewer in an open room sees every tile inside the radius disc."""
    transparent = _make_map(21, 21)
    origin = (10, 10)
    radius = 6

    visible = compute_fov(transparent, origin, radius)

    for x in range(21):
        for y in range(21):
            inside = (x - 10) ** 2 + (y - 10) ** 2 <= radius * radius
            assert visible[x, y] == inside, f"Tile ({x}, {y})"


def test_radius_is_a_euclidean_disc() -> None:
    transparent = _make_map(21, 21)
    visible = compute_fov(transparent, (10, 10), 5)

    assert visible[15, 10]  # 25 <= 25
    assert visible[13, 14]  # 9 + 16 = 25
    assert not visible[14, 14]  # 16 + 16 = 32


# ── 2. Single wall blocks tiles behind it ──────────────────────────────────


def test_single_wall_blocks_behind() -> None:
    transparent = _make_map(21, 21)
    origin = (10, 10)
    transparent[10, 8] = False

    visible = compute_fov(transparent, origin, radius=10)

    # The wall itself is visible (light walls).
    assert visible[10, 8]
    assert not visible[10, 7]


# ── 3. Corridor limits visibility ──────────────────────────────────────────


def test_corridor_limits_visibility() -> None:
    width, height = 20, 20
    transparent = _make_map(width, height, fill=False)
    for x in range(width):
        transparent[x, 10] = True

    visible = compute_fov(transparent, (0, 10), radius=19)

    for x in range(width):
        assert visible[x, 10], f"Corridor tile ({x}, 10) should be visible"
    # Walls lining the corridor are revealed, nothing beyond them.
    assert visible[5, 9]
    assert visible[5, 11]
    assert not visible[5, 8]
    assert not visible[5, 12]


# ── 4. Symmetry ────────────────────────────────────────────────────────────


def test_visibility_is_symmetric_between_floor_tiles() -> None:
    rand = random.Random(7)
    rows = [
        "".join("#" if rand.random() < 0.2 else "." for _ in range(15))
        for _ in range(15)
    ]
    grid = GridField.from_strings(rows)
    radius = 6
    floor = [
        (x, y)
        for x in range(grid.width)
        for y in range(grid.height)
        if not grid.is_blocking((x, y))
    ]
    views = {pos: compute_visibility(pos, radius, grid) for pos in floor}

    for a in floor:
        for b in views[a]:
            if grid.is_blocking(b):
                continue
            assert a in views[b], f"{a} sees {b} but not the reverse"


# ── 5. compute_visibility entry point ──────────────────────────────────────


def test_origin_on_blocking_terrain_sees_nothing() -> None:
    grid = GridField.from_strings(["...", ".#.", "..."])
    assert len(compute_visibility((1, 1), 5, grid)) == 0


def test_out_of_bounds_origin_logs_error(caplog: pytest.LogCaptureFixture) -> None:
    grid = GridField(3, 3)
    with caplog.at_level(logging.ERROR, logger="gloam.environment.fov"):
        visible = compute_visibility((7, 7), 5, grid)
    assert len(visible) == 0
    assert "outside" in caplog.text


def test_origin_is_always_visible() -> None:
    grid = GridField(3, 3)
    assert (1, 1) in compute_visibility((1, 1), 0, grid)


def test_visibility_set_behaves_like_a_set() -> None:
    mask = np.zeros((4, 4), dtype=np.bool_)
    mask[2, 1] = True
    mask[0, 3] = True
    mask[0, 1] = True
    visible = VisibilitySet(mask)

    assert (2, 1) in visible
    assert (1, 1) not in visible
    assert (9, 9) not in visible
    assert len(visible) == 3
    assert visible.positions() == [(0, 1), (0, 3), (2, 1)]

    # Mutating the source array does not leak into the set.
    mask[1, 1] = True
    assert (1, 1) not in visible
    with pytest.raises(ValueError):
        visible.mask[3, 3] = True
