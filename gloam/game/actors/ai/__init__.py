"""
AI system for autonomous actor behavior.

Decisions flow Behavior -> Intention -> Goal -> Task. A Behavior describes
who the actor is, its Intention turns that plus what it perceives into goals,
each goal expands into tick-sized tasks, and the director runs one task per
actor per tick.

Package structure:
    behavior    - Behavior, Faction, CombatStyle.
    intentions  - Intention ABC, Interrupt, and the built-in archetypes.
    goals       - Goal ABC and the goal variants.
    tasks       - Task ABC, the task variants, and the move commit.
    perception  - WorldSnapshot: the per-tick read view for one actor.
    director    - AIDirector and ActionReport.
"""

from .behavior import Behavior, CombatStyle, Faction
from .director import ActionReport, AIDirector
from .goals import (
    AvoidTargetGoal,
    ChaseTargetGoal,
    Goal,
    MoveToGoal,
    RoamGoal,
    WaitGoal,
)
from .intentions import (
    AvoidIntention,
    GuardIntention,
    HuntIntention,
    Intention,
    Interrupt,
    WanderIntention,
)
from .perception import PerceivedActor, WorldSnapshot
from .tasks import MoveInDirectionTask, MoveToCoordinateTask, Task, WaitTask

__all__ = [
    "AIDirector",
    "ActionReport",
    "AvoidIntention",
    "AvoidTargetGoal",
    "Behavior",
    "ChaseTargetGoal",
    "CombatStyle",
    "Faction",
    "Goal",
    "GuardIntention",
    "HuntIntention",
    "Intention",
    "Interrupt",
    "MoveInDirectionTask",
    "MoveToCoordinateTask",
    "MoveToGoal",
    "PerceivedActor",
    "RoamGoal",
    "Task",
    "WaitGoal",
    "WaitTask",
    "WanderIntention",
    "WorldSnapshot",
]
