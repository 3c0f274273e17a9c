"""Behavior: the immutable personality record every actor carries.

A Behavior says who an actor is (its faction), whom it targets, how it prefers
to fight, and how far it sees. Intentions read it each tick; game logic swaps
it wholesale (``actor.behavior = replace(actor.behavior, ...)``) when an actor
changes allegiance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, Flag, auto

from gloam import config


class Faction(Flag):
    NONE = 0
    PLAYER = auto()
    VILLAGER = auto()
    GUARD = auto()
    WILDLIFE = auto()
    MONSTER = auto()


class CombatStyle(Enum):
    MELEE = auto()  # Close in and stay adjacent
    SKIRMISH = auto()  # Hover at a short distance
    EVASIVE = auto()  # Keep away entirely


@dataclass(frozen=True)
class Behavior:
    faction: Faction
    hostile_to: Faction = Faction.NONE
    # Priority ordering; the first entry wins.
    combat_preferences: tuple[CombatStyle, ...] = (CombatStyle.MELEE,)
    # Higher priorities commit their moves first within a tick.
    priority: int = 0
    vision_radius: int = config.DEFAULT_VISION_RADIUS

    def is_hostile_toward(self, other: Behavior) -> bool:
        return bool(other.faction & self.hostile_to)

    @property
    def preferred_style(self) -> CombatStyle | None:
        return self.combat_preferences[0] if self.combat_preferences else None
