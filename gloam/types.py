from __future__ import annotations

from typing import Literal, NewType, TypeAlias

# =============================================================================
# SPATIAL TYPES
# =============================================================================

TileCoord: TypeAlias = int  # Always integer tile position

# World coordinates - absolute positions on the grid
WorldTileCoord: TypeAlias = TileCoord  # Example: x=5, y=3
WorldTilePos: TypeAlias = tuple[
    WorldTileCoord, WorldTileCoord
]  # Example: (5, 3) = cell 5,3 on the grid

# Directions - discrete grid steps
UnitStep: TypeAlias = Literal[-1, 0, 1]
Direction: TypeAlias = tuple[UnitStep, UnitStep]  # Example: (-1, 0) = westward step

# Compass directions in clockwise order starting at North. The order doubles
# as the deterministic tie-break order wherever neighbours are scanned.
NORTH: Direction = (0, -1)
NORTHEAST: Direction = (1, -1)
EAST: Direction = (1, 0)
SOUTHEAST: Direction = (1, 1)
SOUTH: Direction = (0, 1)
SOUTHWEST: Direction = (-1, 1)
WEST: Direction = (-1, 0)
NORTHWEST: Direction = (-1, -1)
NULL_DIRECTION: Direction = (0, 0)

DIRECTIONS: tuple[Direction, ...] = (
    NORTH,
    NORTHEAST,
    EAST,
    SOUTHEAST,
    SOUTH,
    SOUTHWEST,
    WEST,
    NORTHWEST,
)
CARDINAL_DIRECTIONS: tuple[Direction, ...] = (NORTH, EAST, SOUTH, WEST)

# =============================================================================
# TIME-RELATED TYPES
# =============================================================================

# Real-world time elapsed between two simulation ticks, supplied by the
# external clock. Accumulated per actor for time-boxed goals.
DeltaTime = NewType("DeltaTime", float)

# =============================================================================
# GAME-RELATED TYPES
# =============================================================================

# Unique identifier for an Actor in the world. Assigned sequentially and used
# as the occupancy value in GridField and as goal target references.
ActorId = NewType("ActorId", int)

# Random seed for deterministic simulation.
# Can be an int for numeric seeds or a descriptive string like "duskwood7".
RandomSeed: TypeAlias = int | str | None
