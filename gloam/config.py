"""
Configuration constants.

Centralizes the tuning values used by the AI core. Organized by functional
area for easy maintenance.
"""

from gloam.util.coordinates import Distance

# =============================================================================
# GENERAL
# =============================================================================

# RANDOM_SEED = None
RANDOM_SEED = "duskwood7"

# Master switch for NPC decision making. When False, the director reports
# every actor as idle without touching its goal stack.
AI_ENABLED = True

# =============================================================================
# GRID & MOVEMENT
# =============================================================================

# Movement metric shared by pathfinding, cost fields and goal adjacency checks.
# CHEBYSHEV = 8-way with uniform step cost.
DEFAULT_DISTANCE = Distance.CHEBYSHEV

# How many terrain changes a GridField remembers for incremental cost-field
# updates. Older history is dropped and forces a full recompute.
GRID_CHANGE_HISTORY_LIMIT = 256

# =============================================================================
# FIELD OF VIEW
# =============================================================================

DEFAULT_VISION_RADIUS = 8

# =============================================================================
# PATHFINDING & COST FIELDS
# =============================================================================

# Hard cap on A* node expansions per search. Overflow is reported as
# Unreachable(EXPANSION_LIMIT) rather than left to run unbounded.
PATHFINDING_MAX_EXPANSIONS = 10_000

# Weight of the optional bias field term added to each A* step cost.
PATHFINDING_BIAS_WEIGHT = 0.5

# Multiplier applied to attract costs when building a flee map. Values below
# -1 make actors prefer routes that lead past the threat toward open space.
# See roguebasin "The Incredible Power of Dijkstra Maps".
FLEE_MAP_MAGNITUDE = -1.2

# Maximum number of changed cells for which a cached cost field is repaired
# in place. Larger changes fall back to a full recompute.
COST_FIELD_INCREMENTAL_LIMIT = 32

# =============================================================================
# AI DIRECTOR
# =============================================================================

# Number of times a single tick may return to goal generation after popping a
# finished or impossible goal. Exceeding it ends the tick idle.
MAX_GOAL_REENTRIES_PER_TICK = 1

# Consecutive ticks without moving before a movement goal gives up.
STUCK_TURN_LIMIT = 3

# Distance at which an avoiding actor considers itself safe.
DEFAULT_SAFE_DISTANCE = 10

DEFAULT_ROAM_RADIUS = 5
