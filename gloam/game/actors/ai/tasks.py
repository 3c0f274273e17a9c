"""Tasks: the concrete, tick-sized steps a Goal expands into.

A Goal decides *what to achieve*; its Tasks handle the mechanical *how*.
The director executes exactly one task per actor per tick. A task that
reports FAILED has found its plan stale (the next step is blocked or no
longer adjacent); the director then drops the rest of the queue and the goal
replans on a later tick.
"""

from __future__ import annotations

import abc
import logging
from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING

from gloam.events import ActorMovedEvent, publish_event
from gloam.game.enums import ActionLabel, StepBlock, TaskOutcome
from gloam.types import Direction, WorldTilePos
from gloam.util.coordinates import direction_between
from gloam.util.pathfinding import probe_step

if TYPE_CHECKING:
    from gloam.game.actors.ai.perception import WorldSnapshot
    from gloam.game.actors.core import Actor

logger = logging.getLogger(__name__)


def step_actor(actor: Actor, ctx: WorldSnapshot, target: WorldTilePos) -> StepBlock | None:
    """Move ``actor`` one cell to ``target`` if nothing blocks the step.

    This is the move commit: it is the only place outside spawn/despawn that
    writes occupancy. On success the actor's facing follows the step and an
    ActorMovedEvent is published.

    Returns:
        ``None`` if the actor moved, otherwise why it could not.
    """
    if not ctx.distance.is_adjacent(actor.position, target):
        return StepBlock.NOT_ADJACENT
    block = probe_step(ctx.grid, target, ignore=actor.actor_id)
    if block is not None:
        return block

    origin = actor.position
    ctx.grid.move_actor(actor.actor_id, origin, target)
    actor.position = target
    actor.facing = direction_between(origin, target)
    publish_event(ActorMovedEvent(actor.actor_id, origin, target, actor.facing))
    return None


class Task(abc.ABC):
    """Abstract base for one concrete step of a plan.

    Attributes:
        action: What the actor visibly did the last time this task ran.
        failure: Why the last execution failed, if it did.
    """

    def __init__(self) -> None:
        self.action = ActionLabel.IDLE
        self.failure: StepBlock | None = None

    @abc.abstractmethod
    def execute(self, actor: Actor, ctx: WorldSnapshot) -> TaskOutcome:
        """Run one tick of this task."""
        ...

    def _fail(self, actor: Actor, reason: StepBlock) -> TaskOutcome:
        self.failure = reason
        self.action = ActionLabel.BLOCKED
        logger.debug("%r: %s failed (%s)", actor, type(self).__name__, reason.name)
        return TaskOutcome.FAILED


class MoveInDirectionTask(Task):
    """Take a single step in a fixed direction."""

    def __init__(self, direction: Direction) -> None:
        super().__init__()
        self.direction = direction

    def execute(self, actor: Actor, ctx: WorldSnapshot) -> TaskOutcome:
        x, y = actor.position
        target = (x + self.direction[0], y + self.direction[1])
        block = step_actor(actor, ctx, target)
        if block is not None:
            return self._fail(actor, block)
        self.action = ActionLabel.MOVE
        return TaskOutcome.COMPLETED

    def __repr__(self) -> str:
        return f"MoveInDirectionTask({self.direction})"


class MoveToCoordinateTask(Task):
    """Follow a precomputed path, one cell per tick, until ``target``.

    The path excludes the actor's starting cell. Each tick the next cell must
    still be adjacent to the actor and unblocked; otherwise the task fails so
    the owning goal can replan.
    """

    def __init__(self, target: WorldTilePos, path: Iterable[WorldTilePos]) -> None:
        super().__init__()
        self.target = target
        self.path: deque[WorldTilePos] = deque(path)

    def execute(self, actor: Actor, ctx: WorldSnapshot) -> TaskOutcome:
        if not self.path:
            self.action = ActionLabel.IDLE
            return TaskOutcome.COMPLETED

        block = step_actor(actor, ctx, self.path[0])
        if block is not None:
            return self._fail(actor, block)

        self.path.popleft()
        self.action = ActionLabel.MOVE
        return TaskOutcome.PROGRESSED if self.path else TaskOutcome.COMPLETED

    def __repr__(self) -> str:
        return f"MoveToCoordinateTask({self.target}, {len(self.path)} steps left)"


class WaitTask(Task):
    """Stand still for a number of ticks."""

    def __init__(self, turns: int = 1) -> None:
        super().__init__()
        self.remaining = turns

    def execute(self, actor: Actor, ctx: WorldSnapshot) -> TaskOutcome:
        self.remaining -= 1
        self.action = ActionLabel.WAIT
        return TaskOutcome.COMPLETED if self.remaining <= 0 else TaskOutcome.PROGRESSED

    def __repr__(self) -> str:
        return f"WaitTask({self.remaining} left)"
