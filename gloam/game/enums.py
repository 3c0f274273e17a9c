from enum import Enum, auto


class StepBlock(Enum):
    """Why a single step onto a cell is not possible.

    Returned by ``probe_step``; ``None`` there means the step is clear.
    """

    OUT_OF_BOUNDS = auto()
    WALL = auto()
    BLOCKED_BY_ACTOR = auto()
    NOT_ADJACENT = auto()  # Planned step no longer touches the actor's cell


class TaskOutcome(Enum):
    """Result of executing one tick of a Task."""

    PROGRESSED = auto()  # Made progress, keep the task queued
    COMPLETED = auto()  # Done, discard the task
    FAILED = auto()  # Plan is stale, discard the task and the rest of the queue


class GoalResolution(Enum):
    """Combined verdict of a goal's finished/impossible predicates."""

    ACTIVE = auto()
    FINISHED = auto()
    IMPOSSIBLE = auto()


class GoalLabel(Enum):
    """Goal kind reported to debug overlays and UI."""

    NONE = auto()
    AVOID = auto()
    CHASE = auto()
    ROAM = auto()
    WAIT = auto()
    MOVE_TO = auto()


class ActionLabel(Enum):
    """What the actor visibly did this tick, for animation hookup."""

    IDLE = auto()
    MOVE = auto()
    WAIT = auto()
    BLOCKED = auto()  # Tried to move but the step was refused


class AIState(Enum):
    """Coarse per-actor state of the goal/task machine."""

    IDLE = auto()  # No goal
    PLANNING = auto()  # Goal present, no task queued
    ACTING = auto()  # Task in flight
