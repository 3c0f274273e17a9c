"""Global event system for hooking renderers and debug UI onto the AI core.

This event bus is for notifications only. It uses a global instance so the
embedding engine can listen without threading a reference through every
system.

USE FOR:
- Animation hookup (an actor moved or turned)
- Debug overlays (a goal finished or was abandoned)
- Cross-system notifications (actor spawned or despawned)

DO NOT USE FOR:
- Core mechanics (move commits, goal selection, planning)
- Operations that need immediate return values or synchronous confirmation
- Error handling or exception propagation

The event bus is fire-and-forget: publish an event without expecting return
values. All handlers execute immediately (synchronously). A handler that
raises is logged and does not interrupt the tick.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass

from gloam.game.enums import GoalLabel, GoalResolution
from gloam.types import ActorId, Direction, WorldTilePos

logger = logging.getLogger(__name__)


@dataclass
class GameEvent:
    """Base class for all game events."""

    pass


@dataclass
class ActorMovedEvent(GameEvent):
    actor_id: ActorId
    from_pos: WorldTilePos
    to_pos: WorldTilePos
    facing: Direction


@dataclass
class ActorSpawnedEvent(GameEvent):
    actor_id: ActorId
    name: str
    position: WorldTilePos


@dataclass
class ActorDespawnedEvent(GameEvent):
    actor_id: ActorId
    position: WorldTilePos


@dataclass
class GoalResolvedEvent(GameEvent):
    """A goal left an actor's stack because it finished or became impossible."""

    actor_id: ActorId
    goal: GoalLabel
    resolution: GoalResolution


class EventBus:
    """Simple event bus for publish/subscribe pattern."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = {}

    def subscribe(self, event_type: type, handler: Callable) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

    def publish(self, event: GameEvent) -> None:
        """Publish an event to all subscribed handlers."""
        event_type = type(event)
        if event_type in self._handlers:
            # Copy the handler list to allow safe subscribe/unsubscribe during dispatch
            for handler in list(self._handlers[event_type]):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Error handling event {event_type.__name__}")


# Global event bus instance
_global_event_bus = EventBus()


def subscribe_to_event(event_type: type, handler: Callable) -> None:
    """Subscribe to an event type globally."""
    _global_event_bus.subscribe(event_type, handler)


def unsubscribe_from_event(event_type: type, handler: Callable) -> None:
    """Unsubscribe from an event type globally."""
    _global_event_bus.unsubscribe(event_type, handler)


def publish_event(event: GameEvent) -> None:
    """Publish an event globally."""
    _global_event_bus.publish(event)


def reset_event_bus_for_testing() -> None:
    """Reset the global event bus. Use only in tests."""
    global _global_event_bus
    _global_event_bus = EventBus()
