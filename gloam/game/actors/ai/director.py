"""AI director: advances one actor's goal/task machine by one tick.

Per actor per tick:

0. Bookkeeping and snapshot. While goals remain, the Intention may
   interrupt them, replacing (or stacking over) the current root batch.
1. An empty goal stack is refilled from ``Intention.generate_goals``.
2. The top goal is resolved and, unless ACTIVE, popped with its tasks. A
   finished goal hands over to the goal below it for free. An impossible
   goal, or a finished one that empties the stack, re-enters step 1; at most
   MAX_GOAL_REENTRIES_PER_TICK such re-entries happen per tick.
3. An empty task queue is refilled from ``Goal.generate_tasks``.
4. The front task executes once. COMPLETED drops it; FAILED drops the whole
   queue so the goal replans next tick; PROGRESSED keeps it.

Exactly one task executes per tick, so an actor moves at most one cell.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gloam import config
from gloam.events import GoalResolvedEvent, publish_event
from gloam.game.enums import ActionLabel, AIState, GoalLabel, GoalResolution, TaskOutcome
from gloam.util.cost_field import CostFieldSolver
from gloam.util.live_vars import record_time_live_variable

from .perception import WorldSnapshot

if TYPE_CHECKING:
    from gloam.environment.grid import GridField
    from gloam.game.actors.core import Actor
    from gloam.types import ActorId, DeltaTime, Direction, WorldTilePos
    from gloam.util.coordinates import Distance

    from .goals import Goal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActionReport:
    """What one actor did during one tick, for animation and debug UI."""

    actor_id: ActorId
    moved: tuple[WorldTilePos, WorldTilePos] | None
    action: ActionLabel
    goal: GoalLabel
    facing: Direction


class AIDirector:
    def __init__(
        self,
        actors: Mapping[ActorId, Actor],
        solver: CostFieldSolver | None = None,
        *,
        distance: Distance | None = None,
    ) -> None:
        self.actors = actors
        self.solver = solver or CostFieldSolver()
        self.distance = distance or config.DEFAULT_DISTANCE

    def tick_actor(
        self, actor: Actor, grid: GridField, clock_delta: DeltaTime | float
    ) -> ActionReport:
        with record_time_live_variable("time.ai.tick_ms"):
            return self._tick(actor, grid, clock_delta)

    def _tick(
        self, actor: Actor, grid: GridField, clock_delta: DeltaTime | float
    ) -> ActionReport:
        actor.ticks += 1
        actor.elapsed += clock_delta

        if not config.AI_ENABLED or actor.intention is None:
            actor.ai_state = AIState.IDLE
            return self._finish(actor, None, ActionLabel.IDLE, GoalLabel.NONE)

        snapshot = WorldSnapshot(
            actor,
            grid,
            self.actors,
            self.solver,
            distance=self.distance,
            clock_delta=clock_delta,
        )

        if actor.goals:
            self._reevaluate_intention(actor, snapshot)

        goal = self._select_goal(actor, snapshot)
        if goal is None:
            actor.ai_state = AIState.IDLE
            return self._finish(actor, None, ActionLabel.IDLE, GoalLabel.NONE)

        if not actor.tasks:
            actor.tasks.extend(goal.generate_tasks(actor, snapshot))
            if actor.tasks:
                logger.debug("%r planned %s for %r", actor, list(actor.tasks), goal)
        if not actor.tasks:
            actor.ai_state = AIState.PLANNING
            return self._finish(actor, None, ActionLabel.IDLE, goal.label)

        actor.ai_state = AIState.ACTING
        task = actor.tasks[0]
        origin = actor.position
        outcome = task.execute(actor, snapshot)
        match outcome:
            case TaskOutcome.COMPLETED:
                actor.tasks.popleft()
            case TaskOutcome.FAILED:
                logger.debug("%r dropping stale plan after %r", actor, task)
                actor.tasks.clear()
            case TaskOutcome.PROGRESSED:
                pass

        moved = (origin, actor.position) if actor.position != origin else None
        return self._finish(actor, moved, task.action, goal.label)

    def _reevaluate_intention(self, actor: Actor, snapshot: WorldSnapshot) -> None:
        assert actor.intention is not None
        interrupt = actor.intention.interrupt(actor.behavior, snapshot, actor.goals)
        if interrupt is None or not interrupt.goals:
            return
        if interrupt.replace:
            discarded = actor.discard_root_batch()
            logger.debug("%r abandoned %s", actor, discarded)
        actor.push_goal_batch(interrupt.goals)

    def _select_goal(self, actor: Actor, snapshot: WorldSnapshot) -> Goal | None:
        """Return the top ACTIVE goal, popping resolved goals on the way.

        Walking down through finished goals is bounded by the stack itself.
        Re-entries (after an impossible goal, or once the stack runs dry) are
        capped so an intention that keeps producing dead goals cannot spin.
        """
        assert actor.intention is not None
        reentries = 0
        while True:
            if not actor.goals:
                actor.push_goal_batch(
                    actor.intention.generate_goals(actor.behavior, snapshot)
                )
                if not actor.goals:
                    return None

            goal = actor.goals[-1]
            resolution = goal.resolve(actor, snapshot)
            if resolution is GoalResolution.ACTIVE:
                return goal

            actor.pop_goal()
            logger.debug("%r: %r %s", actor, goal, resolution.name.lower())
            publish_event(GoalResolvedEvent(actor.actor_id, goal.label, resolution))

            if resolution is GoalResolution.FINISHED and actor.goals:
                continue
            if reentries >= config.MAX_GOAL_REENTRIES_PER_TICK:
                logger.warning(
                    "%r re-entered goal selection more than %d time(s) in one tick; "
                    "idling",
                    actor,
                    config.MAX_GOAL_REENTRIES_PER_TICK,
                )
                return None
            reentries += 1

    def _finish(
        self,
        actor: Actor,
        moved: tuple[WorldTilePos, WorldTilePos] | None,
        action: ActionLabel,
        goal: GoalLabel,
    ) -> ActionReport:
        if moved is None:
            actor.navigation.stationary += 1
        else:
            actor.navigation.stationary = 0
        return ActionReport(actor.actor_id, moved, action, goal, actor.facing)
