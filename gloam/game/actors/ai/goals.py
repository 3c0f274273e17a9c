"""
Goal system for multi-turn actor objectives.

A Goal is a standing objective that persists across ticks on the actor's goal
stack until it either finishes or becomes impossible. Every tick the director
asks the top goal to ``resolve``; while it stays ACTIVE the goal expands into
Tasks (see tasks.py) that do the mechanical work. Goals never move the actor
themselves.

Resolution tie-break: when a goal is both finished and impossible in the same
tick (a chase target that steps next to us and then despawns, say), finished
wins. Reaching the objective always counts as success.

Key classes:
    Goal: Abstract base with the resolve() protocol and stuck detection.
    AvoidTargetGoal: Follow a flee map away from a target until safe.
    ChaseTargetGoal: Follow an attract field toward a target until adjacent.
    RoamGoal: Walk to a random reachable cell near where the goal started.
    WaitGoal: Stand still for some turns or seconds.
    MoveToGoal: Walk an A* path to a fixed cell.
"""

from __future__ import annotations

import abc
import logging
import math
from typing import TYPE_CHECKING, ClassVar

import numpy as np

from gloam import config
from gloam.game.enums import GoalLabel, GoalResolution
from gloam.util import rng
from gloam.util.cost_field import CostField, CostFieldMode
from gloam.util.pathfinding import Unreachable, find_path

from .tasks import MoveInDirectionTask, MoveToCoordinateTask, Task, WaitTask

if TYPE_CHECKING:
    from gloam.game.actors.core import Actor
    from gloam.types import ActorId, WorldTilePos

    from .perception import WorldSnapshot

logger = logging.getLogger(__name__)

_roam_rng = rng.get("ai.roam")


def _field_step(actor: Actor, snapshot: WorldSnapshot, field: CostField) -> list[Task]:
    """One step along ``field`` toward its better values, if worth taking.

    The cost at the actor's cell is kept in ``navigation.last_cost``. A step
    whose cell does not improve on the value recorded at the previous consult
    is refused: the target gained ground, so the actor holds and re-reads the
    field next tick.
    """
    navigation = actor.navigation
    previous = navigation.last_cost
    navigation.last_cost = field.cost_at(actor.position)
    direction = field.best_direction(actor.position, passable=snapshot.passable_mask)
    if direction is None:
        return []
    x, y = actor.position
    step_cost = field.cost_at((x + direction[0], y + direction[1]))
    if previous is not None and not field.improves(step_cost, previous):
        logger.debug(
            "%r holds: step to %.2f does not beat %.2f", actor, step_cost, previous
        )
        return []
    return [MoveInDirectionTask(direction)]


class Goal(abc.ABC):
    """Abstract base class for multi-turn objectives.

    Subclasses must implement:
        finished: The objective has been reached.
        impossible: The objective can no longer be reached.
        generate_tasks: Expand the goal into the next Tasks to run.
    """

    label: ClassVar[GoalLabel] = GoalLabel.NONE

    def __init__(self) -> None:
        # Actor tick on which this goal was first evaluated.
        self.started_tick: int | None = None

    def on_start(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        """Hook run on the first evaluation, before any predicate."""
        return

    def resolve(self, actor: Actor, snapshot: WorldSnapshot) -> GoalResolution:
        """Evaluate both predicates. Finished wins over impossible."""
        if self.started_tick is None:
            self.started_tick = actor.ticks
            self.on_start(actor, snapshot)
        if self.finished(actor, snapshot):
            return GoalResolution.FINISHED
        if self.impossible(actor, snapshot):
            return GoalResolution.IMPOSSIBLE
        return GoalResolution.ACTIVE

    def turns_active(self, actor: Actor) -> int:
        """Ticks elapsed since this goal was first evaluated."""
        if self.started_tick is None:
            return 0
        return actor.ticks - self.started_tick

    def is_stuck(self, actor: Actor) -> bool:
        """The actor has not moved for STUCK_TURN_LIMIT ticks of this goal."""
        stationary = min(actor.navigation.stationary, self.turns_active(actor))
        return stationary >= config.STUCK_TURN_LIMIT

    @abc.abstractmethod
    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool: ...

    @abc.abstractmethod
    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool: ...

    @abc.abstractmethod
    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AvoidTargetGoal(Goal):
    """Move away from a target until at ``safe_distance`` or out of its reach.

    Each tick the actor steps to the neighbour with the highest flee-map
    value. A target that despawned, or that can no longer reach the actor at
    all, ends the goal as finished. A cornered actor that cannot improve its
    position for STUCK_TURN_LIMIT ticks gives up (impossible).
    """

    label = GoalLabel.AVOID

    def __init__(
        self, target_id: ActorId, safe_distance: int = config.DEFAULT_SAFE_DISTANCE
    ) -> None:
        super().__init__()
        self.target_id = target_id
        self.safe_distance = safe_distance

    def on_start(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        actor.navigation.last_cost = None

    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        target = snapshot.get_actor(self.target_id)
        if target is None:
            return True
        if snapshot.distance_to(target.position) >= self.safe_distance:
            return True
        flee = snapshot.cost_field([target.position], CostFieldMode.REPEL)
        return not flee.is_reachable(actor.position)

    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        return self.is_stuck(actor)

    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]:
        target = snapshot.get_actor(self.target_id)
        if target is None:
            return []
        flee = snapshot.cost_field([target.position], CostFieldMode.REPEL)
        return _field_step(actor, snapshot, flee)

    def __repr__(self) -> str:
        return f"AvoidTargetGoal(target={self.target_id}, safe={self.safe_distance})"


class ChaseTargetGoal(Goal):
    """Close in on a target until adjacent to it.

    Impossible once the target despawns or cannot be reached over terrain.
    With ``require_sight``, the chase is also abandoned after the target has
    been out of view for more than ``lost_sight_turns`` consecutive checks.
    """

    label = GoalLabel.CHASE

    def __init__(
        self,
        target_id: ActorId,
        require_sight: bool = False,
        lost_sight_turns: int = config.STUCK_TURN_LIMIT,
    ) -> None:
        super().__init__()
        self.target_id = target_id
        self.require_sight = require_sight
        self.lost_sight_turns = lost_sight_turns
        self._unseen_turns = 0

    def on_start(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        # A cost from another goal's field says nothing about this one.
        actor.navigation.last_cost = None

    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        target = snapshot.get_actor(self.target_id)
        return target is not None and snapshot.distance.is_adjacent(
            actor.position, target.position
        )

    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        target = snapshot.get_actor(self.target_id)
        if target is None:
            return True
        if self.require_sight:
            if snapshot.can_see(target.position):
                self._unseen_turns = 0
            else:
                self._unseen_turns += 1
                if self._unseen_turns > self.lost_sight_turns:
                    return True
        field = snapshot.cost_field([target.position])
        return not field.is_reachable(actor.position)

    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]:
        target = snapshot.get_actor(self.target_id)
        if target is None:
            return []
        return _field_step(actor, snapshot, snapshot.cost_field([target.position]))

    def __repr__(self) -> str:
        return f"ChaseTargetGoal(target={self.target_id}, sight={self.require_sight})"


class RoamGoal(Goal):
    """Wander to a random reachable cell near where the goal started.

    The anchor is the actor's position on first evaluation. The destination is
    drawn from cells whose travel cost from the anchor lies in
    ``[ceil(radius / 2), radius]``. The goal finishes on arrival, once the actor
    is ``radius`` away from the anchor, or after ``max_turns`` ticks. A radius
    of 0 therefore finishes immediately.
    """

    label = GoalLabel.ROAM

    def __init__(
        self, radius: int = config.DEFAULT_ROAM_RADIUS, max_turns: int | None = None
    ) -> None:
        super().__init__()
        self.radius = radius
        self.max_turns = max_turns
        self.anchor: WorldTilePos | None = None
        self.destination: WorldTilePos | None = None
        self._no_destination = False
        self._unreachable = False

    def on_start(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        self.anchor = actor.position

    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        if self.destination is not None and actor.position == self.destination:
            return True
        if self.max_turns is not None and self.turns_active(actor) >= self.max_turns:
            return True
        assert self.anchor is not None
        return snapshot.distance.calculate(self.anchor, actor.position) >= self.radius

    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        if self._unreachable or self.is_stuck(actor):
            return True
        if self.destination is None and not self._no_destination:
            self.destination = self._pick_destination(snapshot)
            self._no_destination = self.destination is None
        return self._no_destination

    def _pick_destination(self, snapshot: WorldSnapshot) -> WorldTilePos | None:
        assert self.anchor is not None
        field = snapshot.cost_field([self.anchor])
        lo = math.ceil(self.radius / 2)
        costs = field.costs
        candidates = (
            np.isfinite(costs)
            & (costs >= lo)
            & (costs <= self.radius)
            & snapshot.passable_mask
        )
        cells = [(int(x), int(y)) for x, y in np.argwhere(candidates)]
        if not cells:
            logger.debug("No roam destination within %d of %s", self.radius, self.anchor)
            return None
        return _roam_rng.choice(cells)

    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]:
        if self.destination is None:
            return []
        path = find_path(
            actor.position,
            self.destination,
            snapshot.grid,
            distance=snapshot.distance,
            ignore=actor.actor_id,
        )
        if isinstance(path, Unreachable):
            logger.debug("%r cannot reach roam destination: %s", actor, path.reason.name)
            self._unreachable = True
            return []
        return [MoveToCoordinateTask(self.destination, path)]

    def __repr__(self) -> str:
        return f"RoamGoal(radius={self.radius}, dest={self.destination})"


class WaitGoal(Goal):
    """Stand still for ``turns`` ticks and/or ``seconds`` of clock time.

    When both limits are given the goal finishes as soon as either is met.
    With neither, it waits a single turn.
    """

    label = GoalLabel.WAIT

    def __init__(self, turns: int | None = None, seconds: float | None = None) -> None:
        super().__init__()
        if turns is None and seconds is None:
            turns = 1
        self.turns = turns
        self.seconds = seconds
        self._started_elapsed = 0.0

    def on_start(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        self._started_elapsed = actor.elapsed

    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        if self.turns is not None and self.turns_active(actor) >= self.turns:
            return True
        if self.seconds is not None:
            return actor.elapsed - self._started_elapsed >= self.seconds
        return False

    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        return False

    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]:
        return [WaitTask(1)]

    def __repr__(self) -> str:
        return f"WaitGoal(turns={self.turns}, seconds={self.seconds})"


class MoveToGoal(Goal):
    """Walk to a fixed cell along an A* path."""

    label = GoalLabel.MOVE_TO

    def __init__(self, destination: WorldTilePos) -> None:
        super().__init__()
        self.destination = destination
        self.unreachable: Unreachable | None = None

    def finished(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        return actor.position == self.destination

    def impossible(self, actor: Actor, snapshot: WorldSnapshot) -> bool:
        return self.unreachable is not None or self.is_stuck(actor)

    def generate_tasks(self, actor: Actor, snapshot: WorldSnapshot) -> list[Task]:
        path = find_path(
            actor.position,
            self.destination,
            snapshot.grid,
            distance=snapshot.distance,
            ignore=actor.actor_id,
        )
        if isinstance(path, Unreachable):
            logger.debug(
                "%r cannot reach %s: %s", actor, self.destination, path.reason.name
            )
            self.unreachable = path
            return []
        return [MoveToCoordinateTask(self.destination, path)]

    def __repr__(self) -> str:
        return f"MoveToGoal({self.destination})"
