"""Tests for the built-in Intention archetypes.

Validates:
- Goal batches produced by each archetype in each situation.
- Interrupts fire only when they would change what the actor pursues.
"""

from __future__ import annotations

from gloam.game.actors.ai.behavior import Behavior, CombatStyle, Faction
from gloam.game.actors.ai.goals import (
    AvoidTargetGoal,
    ChaseTargetGoal,
    MoveToGoal,
    RoamGoal,
    WaitGoal,
)
from gloam.game.actors.ai.intentions import (
    AvoidIntention,
    GuardIntention,
    HuntIntention,
    WanderIntention,
)
from tests.helpers import COWARD, MONSTER, PLAYER, make_snapshot, make_world

GUARD = Behavior(faction=Faction.GUARD, hostile_to=Faction.MONSTER)
SKIRMISHER = Behavior(
    faction=Faction.MONSTER,
    hostile_to=Faction.PLAYER,
    combat_preferences=(CombatStyle.SKIRMISH, CombatStyle.MELEE),
)


# ---------------------------------------------------------------------------
# WanderIntention
# ---------------------------------------------------------------------------


def test_wander_roams_then_pauses() -> None:
    world = make_world()
    actor = world.spawn_actor("wanderer", (5, 5), MONSTER)
    intention = WanderIntention(radius=4, max_pause_turns=3)

    goals = intention.generate_goals(actor.behavior, make_snapshot(world, actor))

    assert len(goals) == 2
    roam, wait = goals
    assert isinstance(roam, RoamGoal) and roam.radius == 4
    assert isinstance(wait, WaitGoal)
    assert wait.turns is not None and 1 <= wait.turns <= 3


def test_wander_without_pause() -> None:
    world = make_world()
    actor = world.spawn_actor("wanderer", (5, 5), MONSTER)
    goals = WanderIntention(radius=2, max_pause_turns=0).generate_goals(
        actor.behavior, make_snapshot(world, actor)
    )
    assert [type(g) for g in goals] == [RoamGoal]


# ---------------------------------------------------------------------------
# GuardIntention
# ---------------------------------------------------------------------------


def test_guard_chases_intruder_inside_leash() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (5, 5), GUARD)
    intruder = world.spawn_actor("intruder", (7, 5), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)

    goals = intention.generate_goals(guard.behavior, make_snapshot(world, guard))

    assert len(goals) == 1
    chase = goals[0]
    assert isinstance(chase, ChaseTargetGoal)
    assert chase.target_id == intruder.actor_id
    assert chase.require_sight


def test_guard_ignores_intruder_beyond_leash() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (5, 5), GUARD)
    world.spawn_actor("intruder", (9, 5), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)

    goals = intention.generate_goals(guard.behavior, make_snapshot(world, guard))
    assert [type(g) for g in goals] == [WaitGoal]


def test_guard_holds_beside_adjacent_intruder() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (5, 5), GUARD)
    world.spawn_actor("intruder", (6, 6), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)

    goals = intention.generate_goals(guard.behavior, make_snapshot(world, guard))
    assert [type(g) for g in goals] == [WaitGoal]


def test_guard_returns_to_post() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (2, 2), GUARD)
    intention = GuardIntention((5, 5))

    goals = intention.generate_goals(guard.behavior, make_snapshot(world, guard))

    assert len(goals) == 1
    assert isinstance(goals[0], MoveToGoal)
    assert goals[0].destination == (5, 5)


def test_guard_interrupts_idling_to_chase() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (5, 5), GUARD)
    intruder = world.spawn_actor("intruder", (7, 5), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)

    interrupt = intention.interrupt(
        guard.behavior, make_snapshot(world, guard), [WaitGoal(turns=1)]
    )

    assert interrupt is not None
    assert interrupt.replace
    assert len(interrupt.goals) == 1
    chase = interrupt.goals[0]
    assert isinstance(chase, ChaseTargetGoal)
    assert chase.target_id == intruder.actor_id


def test_guard_calls_off_chase_beyond_leash() -> None:
    world = make_world(width=15, height=10)
    guard = world.spawn_actor("guard", (6, 5), GUARD)
    intruder = world.spawn_actor("intruder", (12, 5), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)
    active = [ChaseTargetGoal(intruder.actor_id, require_sight=True)]

    interrupt = intention.interrupt(guard.behavior, make_snapshot(world, guard), active)

    assert interrupt is not None
    assert len(interrupt.goals) == 1
    assert isinstance(interrupt.goals[0], MoveToGoal)
    assert interrupt.goals[0].destination == (5, 5)


def test_guard_keeps_chase_inside_leash() -> None:
    world = make_world()
    guard = world.spawn_actor("guard", (5, 5), GUARD)
    intruder = world.spawn_actor("intruder", (7, 5), MONSTER)
    intention = GuardIntention((5, 5), leash_radius=3)
    active = [ChaseTargetGoal(intruder.actor_id, require_sight=True)]

    assert intention.interrupt(guard.behavior, make_snapshot(world, guard), active) is None


# ---------------------------------------------------------------------------
# HuntIntention
# ---------------------------------------------------------------------------


def test_melee_hunter_chases_then_holds() -> None:
    world = make_world()
    hunter = world.spawn_actor("hunter", (1, 1), MONSTER)
    prey = world.spawn_actor("prey", (5, 1), PLAYER)
    intention = HuntIntention()

    goals = intention.generate_goals(hunter.behavior, make_snapshot(world, hunter))
    assert len(goals) == 1
    assert isinstance(goals[0], ChaseTargetGoal)
    assert goals[0].target_id == prey.actor_id

    world.despawn_actor(prey.actor_id)
    world.spawn_actor("prey", (2, 2), PLAYER)
    goals = intention.generate_goals(hunter.behavior, make_snapshot(world, hunter))
    assert [type(g) for g in goals] == [WaitGoal]


def test_hunter_roams_without_prey() -> None:
    world = make_world()
    hunter = world.spawn_actor("hunter", (1, 1), MONSTER)
    goals = HuntIntention(roam_radius=3).generate_goals(
        hunter.behavior, make_snapshot(world, hunter)
    )
    assert [type(g) for g in goals] == [RoamGoal, WaitGoal]
    assert goals[0].radius == 3


def test_evasive_hunter_keeps_away() -> None:
    world = make_world(width=20, height=3)
    coward = world.spawn_actor("coward", (5, 1), COWARD)
    threat = world.spawn_actor("monster", (7, 1), MONSTER)
    intention = HuntIntention(safe_distance=4)

    goals = intention.generate_goals(coward.behavior, make_snapshot(world, coward))
    assert len(goals) == 1
    assert isinstance(goals[0], AvoidTargetGoal)
    assert goals[0].target_id == threat.actor_id
    assert goals[0].safe_distance == 4


def test_evasive_hunter_beyond_safe_distance_roams() -> None:
    world = make_world(width=20, height=3)
    coward = world.spawn_actor("coward", (2, 1), COWARD)
    world.spawn_actor("monster", (8, 1), MONSTER)
    goals = HuntIntention(safe_distance=4).generate_goals(
        coward.behavior, make_snapshot(world, coward)
    )
    assert [type(g) for g in goals] == [RoamGoal, WaitGoal]


def test_skirmisher_backs_off_when_too_close() -> None:
    world = make_world()
    skirmisher = world.spawn_actor("skirmisher", (4, 4), SKIRMISHER)
    prey = world.spawn_actor("prey", (5, 4), PLAYER)
    intention = HuntIntention(skirmish_range=3)

    goals = intention.generate_goals(skirmisher.behavior, make_snapshot(world, skirmisher))
    assert len(goals) == 1
    assert isinstance(goals[0], AvoidTargetGoal)
    assert goals[0].safe_distance == 3

    world.despawn_actor(prey.actor_id)
    world.spawn_actor("prey", (8, 4), PLAYER)
    goals = intention.generate_goals(skirmisher.behavior, make_snapshot(world, skirmisher))
    assert [type(g) for g in goals] == [ChaseTargetGoal]


def test_hunter_interrupts_roaming_when_prey_appears() -> None:
    world = make_world()
    hunter = world.spawn_actor("hunter", (1, 1), MONSTER)
    prey = world.spawn_actor("prey", (5, 1), PLAYER)
    intention = HuntIntention()
    snapshot = make_snapshot(world, hunter)

    interrupt = intention.interrupt(hunter.behavior, snapshot, [WaitGoal(), RoamGoal()])
    assert interrupt is not None
    assert isinstance(interrupt.goals[0], ChaseTargetGoal)

    # Already on it: no interrupt.
    active = [ChaseTargetGoal(prey.actor_id)]
    assert intention.interrupt(hunter.behavior, snapshot, active) is None


def test_hunter_does_not_interrupt_for_adjacent_prey() -> None:
    world = make_world()
    hunter = world.spawn_actor("hunter", (1, 1), MONSTER)
    world.spawn_actor("prey", (2, 1), PLAYER)
    interrupt = HuntIntention().interrupt(
        hunter.behavior, make_snapshot(world, hunter), [WaitGoal()]
    )
    assert interrupt is None


# ---------------------------------------------------------------------------
# AvoidIntention
# ---------------------------------------------------------------------------


def test_avoid_intention_flees_close_threats() -> None:
    world = make_world()
    coward = world.spawn_actor("coward", (4, 4), COWARD)
    threat = world.spawn_actor("monster", (6, 4), MONSTER)
    intention = AvoidIntention(safe_distance=5)
    snapshot = make_snapshot(world, coward)

    goals = intention.generate_goals(coward.behavior, snapshot)
    assert len(goals) == 1
    assert isinstance(goals[0], AvoidTargetGoal)
    assert goals[0].target_id == threat.actor_id

    interrupt = intention.interrupt(coward.behavior, snapshot, [WaitGoal()])
    assert interrupt is not None
    assert isinstance(interrupt.goals[0], AvoidTargetGoal)
    assert intention.interrupt(coward.behavior, snapshot, goals) is None


def test_avoid_intention_waits_when_safe() -> None:
    world = make_world(width=20, height=3)
    coward = world.spawn_actor("coward", (1, 1), COWARD)
    world.spawn_actor("monster", (8, 1), MONSTER)
    intention = AvoidIntention(safe_distance=5)
    snapshot = make_snapshot(world, coward)

    assert [type(g) for g in intention.generate_goals(coward.behavior, snapshot)] == [WaitGoal]
    assert intention.interrupt(coward.behavior, snapshot, [WaitGoal()]) is None
