from __future__ import annotations

from collections.abc import Callable, Sequence

from gloam.environment.grid import GridField
from gloam.game.actors.ai.behavior import Behavior, CombatStyle, Faction
from gloam.game.actors.ai.goals import Goal
from gloam.game.actors.ai.intentions import Intention, Interrupt
from gloam.game.actors.ai.perception import WorldSnapshot
from gloam.game.actors.core import Actor
from gloam.game.game_world import GameWorld
from gloam.util.cost_field import CostFieldSolver

MONSTER = Behavior(
    faction=Faction.MONSTER,
    hostile_to=Faction.PLAYER,
    combat_preferences=(CombatStyle.MELEE,),
)
COWARD = Behavior(
    faction=Faction.VILLAGER,
    hostile_to=Faction.MONSTER | Faction.PLAYER,
    combat_preferences=(CombatStyle.EVASIVE,),
)
PLAYER = Behavior(faction=Faction.PLAYER)


def open_grid(width: int, height: int) -> GridField:
    return GridField(width, height)


def make_world(rows: Sequence[str] | None = None, *, width: int = 10, height: int = 10) -> GameWorld:
    """Build a GameWorld from ASCII rows (``#`` walls) or an open grid."""
    grid = GridField.from_strings(rows) if rows is not None else open_grid(width, height)
    return GameWorld(grid)


def make_snapshot(world: GameWorld, actor: Actor) -> WorldSnapshot:
    """Snapshot of ``world`` from ``actor``'s point of view."""
    return WorldSnapshot(actor, world.grid, world.actors, world.director.solver)


def standalone_snapshot(actor: Actor, grid: GridField) -> WorldSnapshot:
    return WorldSnapshot(actor, grid, {actor.actor_id: actor}, CostFieldSolver())


class ScriptedIntention(Intention):
    """Intention driven by test callables, counting how often it is asked."""

    def __init__(
        self,
        make_goals: Callable[[], list[Goal]],
        make_interrupt: Callable[[Sequence[Goal]], Interrupt | None] | None = None,
    ) -> None:
        self.make_goals = make_goals
        self.make_interrupt = make_interrupt
        self.generate_calls = 0

    def generate_goals(self, behavior: Behavior, snapshot: WorldSnapshot) -> list[Goal]:
        self.generate_calls += 1
        return self.make_goals()

    def interrupt(
        self,
        behavior: Behavior,
        snapshot: WorldSnapshot,
        active_goals: Sequence[Goal],
    ) -> Interrupt | None:
        if self.make_interrupt is None:
            return None
        return self.make_interrupt(active_goals)
