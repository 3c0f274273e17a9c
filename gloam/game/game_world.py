from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from gloam.environment.grid import CellState, GridField, OutOfBoundsError
from gloam.events import ActorDespawnedEvent, ActorSpawnedEvent, publish_event
from gloam.game.actors.ai.director import ActionReport, AIDirector
from gloam.game.actors.core import Actor
from gloam.types import ActorId, DeltaTime, WorldTilePos
from gloam.util import rng
from gloam.util.cost_field import CostFieldSolver

if TYPE_CHECKING:
    from gloam.game.actors.ai.behavior import Behavior
    from gloam.game.actors.ai.intentions import Intention
    from gloam.types import RandomSeed
    from gloam.util.coordinates import Distance

logger = logging.getLogger(__name__)


class GameWorld:
    """
    Owns the grid, the actor registry and the AI director.

    The world is the single writer of simulation state: actors enter and
    leave through ``spawn_actor``/``despawn_actor``, and ``tick`` advances every
    AI-driven actor once, in a fixed order, so occupancy commits never race.

    Deciding and committing are interleaved, not split into two passes. Each
    actor decides and commits its move during its own turn, so later actors
    in the order see the cells earlier ones have already taken. When two
    actors want the same cell, the one that moves first (higher priority,
    then lower id) gets it, and the other's step fails and it replans.
    """

    def __init__(
        self,
        grid: GridField,
        *,
        solver: CostFieldSolver | None = None,
        distance: Distance | None = None,
        seed: RandomSeed = None,
    ) -> None:
        if seed is not None:
            rng.init(seed)
        self.grid = grid
        self._actors: dict[ActorId, Actor] = {}
        self._next_actor_id = 1
        self.director = AIDirector(
            self._actors, solver or CostFieldSolver(), distance=distance
        )

    @property
    def actors(self) -> Mapping[ActorId, Actor]:
        """Read-only view of the actor registry keyed by id."""
        return self._actors

    def get_actor(self, actor_id: ActorId) -> Actor | None:
        return self._actors.get(actor_id)

    def get_actor_at_location(self, pos: WorldTilePos) -> Actor | None:
        if not self.grid.in_bounds(pos):
            return None
        occupant = self.grid.occupant(pos)
        return None if occupant is None else self._actors.get(occupant)

    def spawn_actor(
        self,
        name: str,
        position: WorldTilePos,
        behavior: Behavior,
        intention: Intention | None = None,
    ) -> Actor:
        """Create an actor on a free cell and register it.

        Raises:
            OutOfBoundsError: ``position`` is outside the grid.
            ValueError: the cell is Blocking or already occupied.
        """
        if not self.grid.in_bounds(position):
            logger.error("Cannot spawn %r at %s: outside the grid", name, position)
            raise OutOfBoundsError(f"Spawn position {position} is outside the grid")
        state = self.grid.cell_state(position)
        if state is not CellState.PASSABLE:
            logger.error("Cannot spawn %r at %s: cell is %s", name, position, state.name)
            raise ValueError(f"Spawn position {position} is {state.name}")

        actor_id = ActorId(self._next_actor_id)
        self._next_actor_id += 1
        self.grid.place_actor(actor_id, position)
        actor = Actor(actor_id, name, position, behavior, intention)
        self._actors[actor_id] = actor
        logger.debug("Spawned %r", actor)
        publish_event(ActorSpawnedEvent(actor_id, name, position))
        return actor

    def despawn_actor(self, actor_id: ActorId) -> Actor | None:
        """Remove an actor and release its cell.

        Goals elsewhere that reference the id become impossible on their next
        check. Returns the removed actor, or None if the id was unknown.
        """
        actor = self._actors.pop(actor_id, None)
        if actor is None:
            logger.warning("Despawn requested for unknown actor %s", actor_id)
            return None
        self.grid.remove_actor(actor_id, actor.position)
        actor.clear_plan()
        logger.debug("Despawned %r", actor)
        publish_event(ActorDespawnedEvent(actor_id, actor.position))
        return actor

    def tick_order(self) -> list[Actor]:
        """AI-driven actors by Behavior priority (highest first), then id."""
        return sorted(
            (a for a in self._actors.values() if a.intention is not None),
            key=lambda a: (-a.behavior.priority, a.actor_id),
        )

    def tick(self, clock_delta: DeltaTime | float = 0.0) -> list[ActionReport]:
        """Advance every AI-driven actor by one tick."""
        reports: list[ActionReport] = []
        for actor in self.tick_order():
            if actor.actor_id not in self._actors:
                continue
            reports.append(self.director.tick_actor(actor, self.grid, clock_delta))
        return reports
