from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

from gloam import config
from gloam.types import ActorId, TileCoord, WorldTilePos
from gloam.util.coordinates import is_valid_world_tile_pos

logger = logging.getLogger(__name__)

# Occupancy value for a cell with no actor in it.
EMPTY_OCCUPANCY = -1


class OutOfBoundsError(IndexError):
    """A coordinate outside the grid was used to index it.

    This is a programming error in the caller, never a gameplay condition.
    """


class CellState(Enum):
    PASSABLE = auto()
    BLOCKING = auto()
    OCCUPIED = auto()


class GridField:
    """Rectangular passability grid shared by every AI computation.

    Terrain and occupancy are kept in separate numpy arrays indexed ``[x, y]``:

    - ``blocking``: True where terrain blocks both movement and sight.
    - ``occupancy``: the ActorId standing on each cell, or ``EMPTY_OCCUPANCY``.

    Terrain is owned by the embedding engine and changed through
    ``set_blocking``. Every terrain change bumps ``structural_revision`` and is
    remembered (up to ``config.GRID_CHANGE_HISTORY_LIMIT`` entries) so cached
    cost fields can be repaired instead of recomputed. Occupancy is written
    only by actor spawn/despawn and by the director's move commit.
    """

    def __init__(
        self,
        width: TileCoord,
        height: TileCoord,
        blocking: NDArray[np.bool_] | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width: TileCoord = width
        self.height: TileCoord = height

        if blocking is None:
            blocking = np.zeros((width, height), dtype=np.bool_, order="F")
        elif blocking.shape != (width, height):
            raise ValueError(
                f"blocking array shape {blocking.shape} != ({width}, {height})"
            )
        self.blocking: NDArray[np.bool_] = np.asarray(blocking, dtype=np.bool_)
        self.occupancy: NDArray[np.int32] = np.full(
            (width, height), EMPTY_OCCUPANCY, dtype=np.int32, order="F"
        )

        self.structural_revision: int = 0
        self._change_log: deque[tuple[int, WorldTilePos]] = deque(
            maxlen=config.GRID_CHANGE_HISTORY_LIMIT
        )

        # Cached derived arrays, rebuilt on demand after terrain changes.
        self._walkable_map_cache: NDArray[np.bool_] | None = None
        self._transparent_map_cache: NDArray[np.bool_] | None = None

    @classmethod
    def from_strings(cls, rows: Sequence[str]) -> GridField:
        """Build a grid from ASCII rows: ``#`` blocks, anything else is open.

        ``rows[y][x]`` is the cell at ``(x, y)``. All rows must be the same
        length.
        """
        if not rows:
            raise ValueError("Grid needs at least one row")
        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise ValueError("All grid rows must have the same length")
        height = len(rows)
        blocking = np.zeros((width, height), dtype=np.bool_, order="F")
        for y, row in enumerate(rows):
            for x, ch in enumerate(row):
                blocking[x, y] = ch == "#"
        return cls(width, height, blocking)

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------
    def in_bounds(self, pos: WorldTilePos) -> bool:
        return is_valid_world_tile_pos(pos, self.width, self.height)

    def check_bounds(self, pos: WorldTilePos) -> None:
        """Raise OutOfBoundsError if ``pos`` is outside the grid."""
        if not self.in_bounds(pos):
            raise OutOfBoundsError(
                f"{pos} is outside the {self.width}x{self.height} grid"
            )

    # ------------------------------------------------------------------
    # Cell queries
    # ------------------------------------------------------------------
    def cell_state(self, pos: WorldTilePos) -> CellState:
        """Return the state of a cell. Terrain blocking wins over occupancy."""
        self.check_bounds(pos)
        x, y = pos
        if self.blocking[x, y]:
            return CellState.BLOCKING
        if self.occupancy[x, y] != EMPTY_OCCUPANCY:
            return CellState.OCCUPIED
        return CellState.PASSABLE

    def is_blocking(self, pos: WorldTilePos) -> bool:
        self.check_bounds(pos)
        return bool(self.blocking[pos[0], pos[1]])

    def occupant(self, pos: WorldTilePos) -> ActorId | None:
        self.check_bounds(pos)
        value = int(self.occupancy[pos[0], pos[1]])
        return None if value == EMPTY_OCCUPANCY else ActorId(value)

    def is_passable(self, pos: WorldTilePos, *, ignore: ActorId | None = None) -> bool:
        """True if terrain is open and no actor other than ``ignore`` stands here."""
        if self.is_blocking(pos):
            return False
        occupant = self.occupant(pos)
        return occupant is None or occupant == ignore

    @property
    def walkable(self) -> NDArray[np.bool_]:
        """Boolean array of shape (width, height), True where terrain is open."""
        if self._walkable_map_cache is None:
            self._walkable_map_cache = ~self.blocking
        return self._walkable_map_cache

    @property
    def transparent(self) -> NDArray[np.bool_]:
        """Boolean array of shape (width, height), True where sight passes.

        Actors never block sight; only Blocking terrain does.
        """
        if self._transparent_map_cache is None:
            self._transparent_map_cache = ~self.blocking
        return self._transparent_map_cache

    def passable_mask(self, *, ignore: ActorId | None = None) -> NDArray[np.bool_]:
        """Terrain walkability with every occupied cell except ``ignore``'s removed."""
        mask = self.walkable.copy()
        occupied = self.occupancy != EMPTY_OCCUPANCY
        if ignore is not None:
            occupied &= self.occupancy != ignore
        mask[occupied] = False
        return mask

    # ------------------------------------------------------------------
    # Terrain mutation
    # ------------------------------------------------------------------
    def set_blocking(self, pos: WorldTilePos, blocking: bool) -> None:
        """Change a cell's terrain. No-op if the value is unchanged."""
        self.check_bounds(pos)
        x, y = pos
        if bool(self.blocking[x, y]) == blocking:
            return
        self.blocking[x, y] = blocking
        self.invalidate_property_caches()
        self._change_log.append((self.structural_revision, pos))

    def invalidate_property_caches(self) -> None:
        """Call this whenever ``blocking`` changes to clear cached derived maps."""
        self._walkable_map_cache = None
        self._transparent_map_cache = None
        self.structural_revision += 1

    def changes_since(self, revision: int) -> list[WorldTilePos] | None:
        """Cells whose terrain changed after ``revision``, in change order.

        Returns None when the history no longer reaches back that far (or the
        array was edited directly through ``invalidate_property_caches``), in
        which case callers must treat the whole grid as changed.
        """
        if revision == self.structural_revision:
            return []
        if revision > self.structural_revision:
            return None

        newer = [(rev, pos) for rev, pos in self._change_log if rev > revision]
        # Every revision after ``revision`` must be accounted for by a logged
        # cell change, otherwise something was lost.
        if len(newer) != self.structural_revision - revision:
            return None

        seen: set[WorldTilePos] = set()
        changed: list[WorldTilePos] = []
        for _rev, pos in newer:
            if pos not in seen:
                seen.add(pos)
                changed.append(pos)
        return changed

    # ------------------------------------------------------------------
    # Occupancy (written by spawn/despawn and the move commit only)
    # ------------------------------------------------------------------
    def place_actor(self, actor_id: ActorId, pos: WorldTilePos) -> None:
        """Mark ``pos`` as occupied by ``actor_id``.

        Raises:
            OutOfBoundsError: ``pos`` is outside the grid.
            ValueError: the cell is Blocking or already occupied.
        """
        state = self.cell_state(pos)
        if state is not CellState.PASSABLE:
            raise ValueError(f"Cannot place actor {actor_id} on {state.name} cell {pos}")
        self.occupancy[pos[0], pos[1]] = actor_id

    def move_actor(
        self, actor_id: ActorId, src: WorldTilePos, dst: WorldTilePos
    ) -> None:
        """Transfer ``actor_id``'s occupancy from ``src`` to ``dst``."""
        self.check_bounds(src)
        if self.occupant(src) != actor_id:
            raise ValueError(f"Actor {actor_id} does not occupy {src}")
        self.place_actor(actor_id, dst)
        self.occupancy[src[0], src[1]] = EMPTY_OCCUPANCY

    def remove_actor(self, actor_id: ActorId, pos: WorldTilePos) -> None:
        """Release the occupancy held by ``actor_id`` at ``pos``."""
        if self.occupant(pos) != actor_id:
            logger.warning("Actor %s is not at %s; occupancy left untouched", actor_id, pos)
            return
        self.occupancy[pos[0], pos[1]] = EMPTY_OCCUPANCY
