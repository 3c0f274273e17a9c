"""Intentions: per-archetype goal generators.

An Intention turns an actor's Behavior and what it currently perceives into a
batch of Goals, listed in the order they should run. The director calls
``generate_goals`` whenever the goal stack runs dry, and ``interrupt`` every
tick while goals remain so an archetype can abandon its current batch when
something more important shows up (a guard spotting an intruder while
standing watch, say).

Archetypes:
    WanderIntention: Roam around, pause, repeat.
    GuardIntention: Hold a post, chase visible hostiles within a leash, return.
    HuntIntention: Engage visible hostiles per the preferred combat style,
        otherwise roam.
    AvoidIntention: Keep away from visible hostiles, otherwise wait.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gloam import config
from gloam.util import rng

from .behavior import Behavior, CombatStyle
from .goals import AvoidTargetGoal, ChaseTargetGoal, Goal, MoveToGoal, RoamGoal, WaitGoal

if TYPE_CHECKING:
    from gloam.types import WorldTilePos

    from .perception import PerceivedActor, WorldSnapshot

_intention_rng = rng.get("ai.intentions")


@dataclass(frozen=True)
class Interrupt:
    """Request to supersede the actor's current goals.

    Attributes:
        goals: New root batch, in execution order.
        replace: Discard the current root batch (and its tasks) first. When
            False the new batch is stacked on top and the old one resumes
            once it is done.
    """

    goals: list[Goal]
    replace: bool = True


class Intention(abc.ABC):
    @abc.abstractmethod
    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        """Return the next goals to pursue, first element first."""
        ...

    def interrupt(
        self,
        behavior: Behavior,
        snapshot: WorldSnapshot,
        active_goals: Sequence[Goal],
    ) -> Interrupt | None:
        """Optionally supersede ``active_goals`` (bottom first, top last)."""
        return None


def _pursuing(active_goals: Sequence[Goal], target_id: int) -> bool:
    return any(
        isinstance(goal, ChaseTargetGoal | AvoidTargetGoal)
        and goal.target_id == target_id
        for goal in active_goals
    )


def _adjacent(snapshot: WorldSnapshot, pos: WorldTilePos) -> bool:
    return snapshot.distance.is_adjacent(snapshot.actor.position, pos)


class WanderIntention(Intention):
    def __init__(
        self,
        radius: int = config.DEFAULT_ROAM_RADIUS,
        max_pause_turns: int = 3,
        roam_turns: int | None = None,
    ) -> None:
        self.radius = radius
        self.max_pause_turns = max_pause_turns
        self.roam_turns = roam_turns

    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        goals: list[Goal] = [RoamGoal(self.radius, self.roam_turns)]
        if self.max_pause_turns > 0:
            goals.append(WaitGoal(turns=_intention_rng.randint(1, self.max_pause_turns)))
        return goals


class GuardIntention(Intention):
    """Hold ``post``; chase hostiles seen within ``leash_radius`` of it.

    A chase is called off as soon as its target strays beyond the leash, and
    the guard walks back to the post.
    """

    def __init__(self, post: WorldTilePos, leash_radius: int = 6) -> None:
        self.post = post
        self.leash_radius = leash_radius

    def _within_leash(self, snapshot: WorldSnapshot, pos: WorldTilePos) -> bool:
        return snapshot.distance.calculate(self.post, pos) <= self.leash_radius

    def _intruder(self, snapshot: WorldSnapshot) -> PerceivedActor | None:
        for perceived in snapshot.visible_hostiles:
            if self._within_leash(snapshot, perceived.actor.position):
                return perceived
        return None

    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        intruder = self._intruder(snapshot)
        if intruder is not None:
            if _adjacent(snapshot, intruder.actor.position):
                return [WaitGoal(turns=1)]
            return [ChaseTargetGoal(intruder.actor.actor_id, require_sight=True)]
        if snapshot.actor.position != self.post:
            return [MoveToGoal(self.post)]
        return [WaitGoal(turns=1)]

    def interrupt(
        self,
        behavior: Behavior,
        snapshot: WorldSnapshot,
        active_goals: Sequence[Goal],
    ) -> Interrupt | None:
        chasing = [g for g in active_goals if isinstance(g, ChaseTargetGoal)]
        if chasing:
            target = snapshot.get_actor(chasing[-1].target_id)
            if target is not None and not self._within_leash(snapshot, target.position):
                return Interrupt([MoveToGoal(self.post)])
            return None

        intruder = self._intruder(snapshot)
        if intruder is None or _adjacent(snapshot, intruder.actor.position):
            return None
        return Interrupt([ChaseTargetGoal(intruder.actor.actor_id, require_sight=True)])


class HuntIntention(Intention):
    """Engage the nearest visible hostile according to the preferred style.

    MELEE chases and then holds beside the target. EVASIVE keeps beyond
    ``safe_distance``. SKIRMISH backs off when closer than ``skirmish_range``
    and closes in otherwise. With nothing to engage the hunter roams.
    """

    def __init__(
        self,
        roam_radius: int = config.DEFAULT_ROAM_RADIUS,
        skirmish_range: int = 3,
        safe_distance: int = config.DEFAULT_SAFE_DISTANCE,
    ) -> None:
        self.roam_radius = roam_radius
        self.skirmish_range = skirmish_range
        self.safe_distance = safe_distance

    def _engage(
        self, behavior: Behavior, snapshot: WorldSnapshot, target: PerceivedActor
    ) -> list[Goal]:
        target_id = target.actor.actor_id
        match behavior.preferred_style:
            case CombatStyle.EVASIVE:
                if target.distance < self.safe_distance:
                    return [AvoidTargetGoal(target_id, self.safe_distance)]
                return []
            case CombatStyle.SKIRMISH if target.distance < self.skirmish_range:
                return [AvoidTargetGoal(target_id, self.skirmish_range)]
            case _:
                if _adjacent(snapshot, target.actor.position):
                    return [WaitGoal(turns=1)]
                return [ChaseTargetGoal(target_id)]

    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        target = snapshot.nearest_hostile()
        if target is not None:
            goals = self._engage(behavior, snapshot, target)
            if goals:
                return goals
        return [RoamGoal(self.roam_radius), WaitGoal(turns=1)]

    def interrupt(
        self,
        behavior: Behavior,
        snapshot: WorldSnapshot,
        active_goals: Sequence[Goal],
    ) -> Interrupt | None:
        target = snapshot.nearest_hostile()
        if target is None or _pursuing(active_goals, target.actor.actor_id):
            return None
        goals = self._engage(behavior, snapshot, target)
        if not _pursuing(goals, target.actor.actor_id):
            return None
        return Interrupt(goals)


class AvoidIntention(Intention):
    def __init__(self, safe_distance: int = config.DEFAULT_SAFE_DISTANCE) -> None:
        self.safe_distance = safe_distance

    def _threat(self, snapshot: WorldSnapshot) -> PerceivedActor | None:
        threat = snapshot.nearest_hostile()
        if threat is None or threat.distance >= self.safe_distance:
            return None
        return threat

    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        threat = self._threat(snapshot)
        if threat is not None:
            return [AvoidTargetGoal(threat.actor.actor_id, self.safe_distance)]
        return [WaitGoal(turns=1)]

    def interrupt(
        self,
        behavior: Behavior,
        snapshot: WorldSnapshot,
        active_goals: Sequence[Goal],
    ) -> Interrupt | None:
        threat = self._threat(snapshot)
        if threat is None or _pursuing(active_goals, threat.actor.actor_id):
            return None
        return Interrupt([AvoidTargetGoal(threat.actor.actor_id, self.safe_distance)])
