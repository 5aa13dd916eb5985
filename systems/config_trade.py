"""
Trade, navigation & tariff tuning knobs.
Safe to tweak without touching system code.
"""

import math

# Movement (tiles per tick)
UNIT_SPEED: float = 0.02
LEAVING_SPEED_MULTIPLIER: float = 2.0
ARRIVAL_EPSILON: float = 0.5      # snap to the berth inside this distance
DOCK_DWELL_TICKS: int = 300
OFFMAP_REMOVE_MARGIN: float = 2.0 # tiles beyond the grid before a leaving unit is dropped
SPAWN_EDGE_OFFSET: float = 2.0    # fallback spawn distance outside the map edge

# Obstacle probing
SHORT_PROBE_TILES: float = 1.5
LONG_PROBE_TILES: float = 3.0
PROBE_STEP: float = 0.25

# Avoidance search, in the exact order it is tried
AVOIDANCE_OFFSETS_DEG = (0, 30, -30, 60, -60, 90, -90, 120, -120, 150, -150, 180)
AVOIDANCE_OFFSETS = tuple(math.radians(d) for d in AVOIDANCE_OFFSETS_DEG)
AVOIDANCE_HOLD_TICKS: int = 30
AVOIDANCE_RECHECK_TICKS: int = 10

# Emergency step search when the next step itself would hit land
EMERGENCY_STEP_DEG: int = 15
STUCK_REMOVE_TICKS: int = 600

# Voyage budgets; a unit still short of its berth turns back, one still on
# the map while leaving is dropped
MAX_ARRIVING_TICKS: int = 12000
MAX_LEAVING_TICKS: int = 6000

# Economy
DEFAULT_TARIFFS = {
    "goods": 10,
    "materials": 5,
    "food": 0,
    "luxury": 25,
    "tech": 15,
    "oil": 10,
    "steel": 20,
    "cars": 25,
}
UNKNOWN_CATEGORY_RATE: float = 10.0
TARIFF_RANGE = (0.0, 100.0)
GLOBAL_MODIFIER_RANGE = (-20.0, 50.0)

# name -> (base value, icon)
CARGO_CATALOG = {
    "goods": (500, "box"),
    "materials": (300, "bricks"),
    "food": (200, "grain"),
    "luxury": (1000, "gem"),
    "tech": (800, "chip"),
    "oil": (600, "barrel"),
    "steel": (400, "girder"),
    "cars": (900, "car"),
}
CARGO_LINES_RANGE = (1, 3)
CARGO_QUANTITY_RANGE = (10, 59)   # inclusive
CARGO_VALUE_DIVISOR: float = 10.0

# Spawn interval model
SPAWN_BASE_TICKS: float = 300.0
SPAWN_TARIFF_WEIGHT: float = 5.0
SPAWN_RELATIONS_WEIGHT: float = 3.0
SPAWN_PORT_FACTOR: float = 0.5
SPAWN_MIN_TICKS: int = 200
WILLINGNESS_TARIFF_SCALE: float = 150.0
WILLINGNESS_FLOOR: float = 0.1

# Trade relations, 0-100
INITIAL_RELATIONS: float = 100.0
HIGH_TARIFF_THRESHOLD: float = 20.0
LOW_TARIFF_THRESHOLD: float = 10.0
RELATIONS_PENALTY: float = 0.5
RELATIONS_BONUS: float = 0.2

RECENT_EVENTS: int = 10
TURNED_AWAY_ANNOUNCE_CHANCE: float = 0.3
TURNED_AWAY_ANNOUNCE_MIN_TARIFF: float = 30.0
DOCKING_ANNOUNCE_CHANCE: float = 0.2
POLICY_ANNOUNCE_RATE: float = 30.0
POLICY_ANNOUNCE_GLOBAL: float = 20.0
SPAWN_POSITION_VARIANCE: float = 4.0
