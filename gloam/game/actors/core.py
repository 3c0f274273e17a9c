from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gloam.game.enums import AIState
from gloam.types import SOUTH, ActorId, Direction, WorldTilePos

if TYPE_CHECKING:
    from gloam.game.actors.ai.behavior import Behavior
    from gloam.game.actors.ai.goals import Goal
    from gloam.game.actors.ai.intentions import Intention
    from gloam.game.actors.ai.tasks import Task


@dataclass
class ActorNavigation:
    """Movement bookkeeping shared by the director and movement goals."""

    # Cost-field value at the occupied cell when a field was last consulted.
    last_cost: float | None = None
    # Consecutive ticks the actor ended without changing cell.
    stationary: int = 0


class Actor:
    """An entity on the grid, optionally driven by the AI director.

    The goal stack grows at the end: ``goals[-1]`` is the goal being pursued.
    Each root batch pushed by an Intention records the stack depth it started
    at in ``intent_marks`` so the whole batch can be discarded at once when
    the intention is superseded. ``tasks`` holds the concrete steps for the
    current goal, front first.

    Actors without an ``intention`` (the player, for instance) occupy a cell
    and can be targeted but are never ticked by the director.
    """

    def __init__(
        self,
        actor_id: ActorId,
        name: str,
        position: WorldTilePos,
        behavior: Behavior,
        intention: Intention | None = None,
        facing: Direction = SOUTH,
    ) -> None:
        self.actor_id = actor_id
        self.name = name
        self.position = position
        self.facing = facing
        self.behavior = behavior
        self.intention = intention
        self.navigation = ActorNavigation()

        self.goals: list[Goal] = []
        self.intent_marks: list[int] = []
        self.tasks: deque[Task] = deque()

        self.ticks = 0
        self.elapsed = 0.0
        self.ai_state = AIState.IDLE

    @property
    def current_goal(self) -> Goal | None:
        return self.goals[-1] if self.goals else None

    def push_goal_batch(self, goals: Sequence[Goal]) -> None:
        """Push goals given in execution order as one root batch.

        The first goal of the sequence ends up on top of the stack. Queued
        tasks belong to the goal that was on top, so they are dropped.
        """
        if not goals:
            return
        self.tasks.clear()
        self.intent_marks.append(len(self.goals))
        self.goals.extend(reversed(goals))

    def pop_goal(self) -> Goal:
        """Remove the top goal along with any tasks queued for it."""
        goal = self.goals.pop()
        while self.intent_marks and self.intent_marks[-1] >= len(self.goals):
            self.intent_marks.pop()
        self.tasks.clear()
        return goal

    def discard_root_batch(self) -> list[Goal]:
        """Drop every goal of the most recent root batch and the task queue."""
        self.tasks.clear()
        if not self.intent_marks:
            discarded = list(self.goals)
            self.goals.clear()
            return discarded
        mark = self.intent_marks.pop()
        discarded = self.goals[mark:]
        del self.goals[mark:]
        return discarded

    def clear_plan(self) -> None:
        self.goals.clear()
        self.intent_marks.clear()
        self.tasks.clear()

    def __repr__(self) -> str:
        return f"Actor({self.actor_id}, {self.name!r}, at {self.position})"
