"""Per-tick world snapshot for one deciding actor.

WorldSnapshot bundles everything an Intention, Goal or Task may read while the
director ticks an actor: the grid, the actor registry, the shared cost-field
solver, and what the actor can currently see. Visibility is computed lazily,
so actors whose goals never ask about sight pay nothing for it.

Detection is omnidirectional (no facing or vision cones). An actor is
perceived when its cell is in the viewer's shadowcast visibility set, which
already limits it to ``Behavior.vision_radius``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from gloam import config
from gloam.environment.fov import VisibilitySet, compute_visibility
from gloam.util.cost_field import CostField, CostFieldMode, CostFieldSolver
from gloam.util.coordinates import Distance

if TYPE_CHECKING:
    from gloam.environment.grid import GridField
    from gloam.game.actors.core import Actor
    from gloam.types import ActorId, DeltaTime, WorldTilePos


@dataclass(frozen=True, slots=True)
class PerceivedActor:
    """An actor the viewer can currently see.

    Attributes:
        actor: The detected actor.
        distance: Distance from the viewer under the snapshot's metric.
    """

    actor: Actor
    distance: float


class WorldSnapshot:
    def __init__(
        self,
        actor: Actor,
        grid: GridField,
        actors: Mapping[ActorId, Actor],
        solver: CostFieldSolver,
        *,
        distance: Distance | None = None,
        clock_delta: DeltaTime | float = 0.0,
    ) -> None:
        self.actor = actor
        self.grid = grid
        self.actors = actors
        self.solver = solver
        self.distance = distance or config.DEFAULT_DISTANCE
        self.clock_delta = clock_delta

    @cached_property
    def visibility(self) -> VisibilitySet:
        return compute_visibility(
            self.actor.position, self.actor.behavior.vision_radius, self.grid
        )

    @cached_property
    def passable_mask(self) -> NDArray[np.bool_]:
        """Cells the deciding actor could step onto right now."""
        return self.grid.passable_mask(ignore=self.actor.actor_id)

    def get_actor(self, actor_id: ActorId) -> Actor | None:
        return self.actors.get(actor_id)

    def can_see(self, pos: WorldTilePos) -> bool:
        return pos in self.visibility

    def distance_to(self, pos: WorldTilePos) -> float:
        return self.distance.calculate(self.actor.position, pos)

    @cached_property
    def visible_hostiles(self) -> list[PerceivedActor]:
        """Visible actors the deciding actor is hostile toward, nearest first.

        Equal distances are ordered by actor id.
        """
        me = self.actor
        perceived = [
            PerceivedActor(other, self.distance_to(other.position))
            for other in self.actors.values()
            if other.actor_id != me.actor_id
            and me.behavior.is_hostile_toward(other.behavior)
            and other.position in self.visibility
        ]
        perceived.sort(key=lambda p: (p.distance, p.actor.actor_id))
        return perceived

    def nearest_hostile(self) -> PerceivedActor | None:
        hostiles = self.visible_hostiles
        return hostiles[0] if hostiles else None

    def cost_field(
        self,
        sources: Iterable[WorldTilePos],
        mode: CostFieldMode = CostFieldMode.ATTRACT,
    ) -> CostField:
        """Terrain-only cost field from the shared solver cache."""
        return self.solver.solve(self.grid, sources, mode, distance=self.distance)
