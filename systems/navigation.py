"""
Steering for maritime trade units.

Units sail from the edge of the map to a berth next to a port, dwell there
while their cargo is taxed, and sail back out the way they came.  Movement
is continuous (fractional tile coordinates) and a unit never ends a step on
land: obstacles are avoided by probing ahead along the heading, falling
back to a widening fan of alternative headings, and as a last resort an
emergency search around the blocked step.

Positions use tile space: tile ``(x, y)`` covers ``[x, x+1) x [y, y+1)``.
Anything outside the grid counts as open sea.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from worldgen.tilegrid import Coord, TileGrid
from .config_trade import (
    ARRIVAL_EPSILON,
    AVOIDANCE_HOLD_TICKS,
    AVOIDANCE_OFFSETS,
    AVOIDANCE_RECHECK_TICKS,
    CARGO_CATALOG,
    CARGO_LINES_RANGE,
    CARGO_QUANTITY_RANGE,
    CARGO_VALUE_DIVISOR,
    DOCK_DWELL_TICKS,
    EMERGENCY_STEP_DEG,
    LEAVING_SPEED_MULTIPLIER,
    LONG_PROBE_TILES,
    MAX_ARRIVING_TICKS,
    MAX_LEAVING_TICKS,
    OFFMAP_REMOVE_MARGIN,
    PROBE_STEP,
    SHORT_PROBE_TILES,
    STUCK_REMOVE_TICKS,
    UNIT_SPEED,
)

logger = logging.getLogger(__name__)

EDGES = ("left", "right", "top", "bottom")


class UnitState(Enum):
    ARRIVING = "arriving"
    DOCKED = "docked"
    LEAVING = "leaving"


@dataclass
class CargoLine:
    category: str
    base_value: float
    quantity: int
    icon: str = ""

    @property
    def value(self) -> float:
        return self.base_value * self.quantity / CARGO_VALUE_DIVISOR


def generate_cargo(rng: random.Random) -> List[CargoLine]:
    """1-3 distinct categories, each with a quantity in 10..59."""
    lo, hi = CARGO_LINES_RANGE
    picked = rng.sample(sorted(CARGO_CATALOG), rng.randint(lo, hi))
    out = []
    for cat in picked:
        base, icon = CARGO_CATALOG[cat]
        out.append(CargoLine(cat, base, rng.randint(*CARGO_QUANTITY_RANGE), icon))
    return out


@dataclass
class TradeUnit:
    x: float
    y: float
    target: Coord                  # port origin
    berth: Tuple[float, float]     # where the unit docks (water)
    spawn_edge: str = "left"
    state: UnitState = UnitState.ARRIVING
    cargo: List[CargoLine] = field(default_factory=list)
    docked_ticks: int = 0
    # Deviation from the direct heading, in radians, while avoiding.
    avoidance_heading: Optional[float] = None
    avoidance_ticks_remaining: int = 0
    heading: float = 0.0
    stuck_ticks: int = 0
    travel_ticks: int = 0          # ticks spent in the current ARRIVING or LEAVING leg
    remove: bool = False
    frame: int = 0
    flag_color: int = 0

    @property
    def cargo_value(self) -> float:
        return sum(line.value for line in self.cargo)

    @property
    def direction(self) -> str:
        dx, dy = math.cos(self.heading), math.sin(self.heading)
        if abs(dx) > abs(dy):
            return "right" if dx > 0 else "left"
        return "down" if dy > 0 else "up"

    def distance_to(self, tx: float, ty: float) -> float:
        return math.hypot(tx - self.x, ty - self.y)


class TradeUnitNavigator:
    """Advances every trade unit one tick at a time."""

    def __init__(self, grid: TileGrid,
                 on_docked: Optional[Callable[[TradeUnit], None]] = None,
                 speed: float = UNIT_SPEED,
                 max_arriving_ticks: int = MAX_ARRIVING_TICKS,
                 max_leaving_ticks: int = MAX_LEAVING_TICKS):
        self.grid = grid
        self.on_docked = on_docked
        self.speed = speed
        self.max_arriving_ticks = max_arriving_ticks
        self.max_leaving_ticks = max_leaving_ticks
        self.units: List[TradeUnit] = []

    def add_unit(self, unit: TradeUnit) -> None:
        self.units.append(unit)

    def update(self) -> List[TradeUnit]:
        """Advance all units; returns the ones removed this tick."""
        for unit in self.units:
            self.update_unit(unit)
        removed = [u for u in self.units if u.remove]
        if removed:
            self.units = [u for u in self.units if not u.remove]
            logger.debug("removed %d trade units", len(removed))
        return removed

    def update_unit(self, unit: TradeUnit) -> None:
        if unit.state is UnitState.ARRIVING:
            unit.travel_ticks += 1
            if unit.travel_ticks > self.max_arriving_ticks:
                logger.info("trade unit bound for %s never reached its berth; turning back", unit.target)
                self.depart(unit)
            else:
                self.move_towards_target(unit)
        elif unit.state is UnitState.DOCKED:
            unit.docked_ticks += 1
            if unit.docked_ticks >= DOCK_DWELL_TICKS:
                self.depart(unit)
        elif unit.state is UnitState.LEAVING:
            unit.travel_ticks += 1
            if unit.travel_ticks > self.max_leaving_ticks:
                logger.info("trade unit at (%.2f, %.2f) could not leave the map; removing", unit.x, unit.y)
                unit.remove = True
            else:
                self.move_away(unit)
        unit.frame += 1

    def depart(self, unit: TradeUnit) -> None:
        unit.state = UnitState.LEAVING
        unit.travel_ticks = 0
        unit.stuck_ticks = 0
        unit.avoidance_heading = None
        unit.avoidance_ticks_remaining = 0

    # -- movement --------------------------------------------------------------
    def move_towards_target(self, unit: TradeUnit) -> None:
        bx, by = unit.berth
        if unit.distance_to(bx, by) < ARRIVAL_EPSILON:
            unit.x, unit.y = bx, by
            unit.state = UnitState.DOCKED
            unit.docked_ticks = 0
            unit.stuck_ticks = 0
            logger.debug("trade unit docked at port %s", unit.target)
            if self.on_docked is not None:
                try:
                    self.on_docked(unit)
                except Exception:
                    logger.warning("docking handler failed for port %s", unit.target, exc_info=True)
            return
        self.step(unit, self.choose_heading(unit, bx, by), self.speed)

    def move_away(self, unit: TradeUnit) -> None:
        gx, gy = self.exit_point(unit)
        self.step(unit, self.choose_heading(unit, gx, gy), self.speed * LEAVING_SPEED_MULTIPLIER)
        if self.is_off_map(unit.x, unit.y):
            unit.remove = True

    def exit_point(self, unit: TradeUnit) -> Tuple[float, float]:
        far = OFFMAP_REMOVE_MARGIN + 1.0
        if unit.spawn_edge == "right":
            return self.grid.width + far, unit.y
        if unit.spawn_edge == "top":
            return unit.x, -far
        if unit.spawn_edge == "bottom":
            return unit.x, self.grid.height + far
        return -far, unit.y

    def is_off_map(self, x: float, y: float) -> bool:
        m = OFFMAP_REMOVE_MARGIN
        return x < -m or y < -m or x > self.grid.width + m or y > self.grid.height + m

    # -- avoidance -------------------------------------------------------------
    def probe(self, x: float, y: float, heading: float, length: float) -> bool:
        """True when every sample along the ray is water."""
        dx, dy = math.cos(heading), math.sin(heading)
        d = PROBE_STEP
        while d <= length + 1e-9:
            if not self.grid.is_navigable(x + dx * d, y + dy * d):
                return False
            d += PROBE_STEP
        return True

    def find_clear_offset(self, x: float, y: float, direct: float) -> Optional[float]:
        for offset in AVOIDANCE_OFFSETS:
            if self.probe(x, y, direct + offset, LONG_PROBE_TILES):
                return offset
        return None

    def choose_heading(self, unit: TradeUnit, gx: float, gy: float) -> float:
        """Direct heading to ``(gx, gy)``, or a held avoidance deviation."""
        direct = math.atan2(gy - unit.y, gx - unit.x)
        short = min(SHORT_PROBE_TILES, unit.distance_to(gx, gy))

        if unit.avoidance_heading is not None and unit.avoidance_ticks_remaining > 0:
            unit.avoidance_ticks_remaining -= 1
            held = AVOIDANCE_HOLD_TICKS - unit.avoidance_ticks_remaining
            if held % AVOIDANCE_RECHECK_TICKS == 0 and self.probe(unit.x, unit.y, direct, short):
                unit.avoidance_heading = None
                unit.avoidance_ticks_remaining = 0
                return direct
            return direct + unit.avoidance_heading
        unit.avoidance_heading = None
        unit.avoidance_ticks_remaining = 0

        if self.probe(unit.x, unit.y, direct, short):
            return direct
        offset = self.find_clear_offset(unit.x, unit.y, direct)
        if offset is None:
            return direct
        if offset != 0:
            unit.avoidance_heading = offset
            unit.avoidance_ticks_remaining = AVOIDANCE_HOLD_TICKS
        return direct + offset

    def emergency_heading(self, x: float, y: float, heading: float, speed: float) -> Optional[float]:
        """Nearest deviation (15 degree steps, + before -) whose step lands on water."""
        for k in range(1, 180 // EMERGENCY_STEP_DEG + 1):
            dev = math.radians(k * EMERGENCY_STEP_DEG)
            signs = (1,) if k * EMERGENCY_STEP_DEG == 180 else (1, -1)
            for sign in signs:
                h = heading + sign * dev
                if self.grid.is_navigable(x + math.cos(h) * speed, y + math.sin(h) * speed):
                    return h
        return None

    def step(self, unit: TradeUnit, heading: float, speed: float) -> bool:
        """Move one step; returns ``False`` if the unit had to hold position."""
        nx, ny = unit.x + math.cos(heading) * speed, unit.y + math.sin(heading) * speed
        if not self.grid.is_navigable(nx, ny):
            alt = self.emergency_heading(unit.x, unit.y, heading, speed)
            if alt is None:
                unit.stuck_ticks += 1
                if unit.stuck_ticks >= STUCK_REMOVE_TICKS:
                    logger.info("trade unit bound for %s stuck at (%.2f, %.2f); removing",
                                unit.target, unit.x, unit.y)
                    unit.remove = True
                return False
            heading = alt
            nx, ny = unit.x + math.cos(heading) * speed, unit.y + math.sin(heading) * speed
        unit.x, unit.y = nx, ny
        unit.heading = heading
        unit.stuck_ticks = 0
        return True

    # -- descriptors -----------------------------------------------------------
    def render_descriptor(self, unit: TradeUnit) -> Dict:
        return {
            "x": unit.x,
            "y": unit.y,
            "state": unit.state.value,
            "direction": unit.direction,
            "heading": unit.heading,
            "bob": math.sin(unit.frame * 0.05) * 2,
            "flag_color": unit.flag_color,
            "target": list(unit.target),
            "cargo": [{"category": c.category, "icon": c.icon, "quantity": c.quantity}
                      for c in unit.cargo],
            "cargo_value": unit.cargo_value,
            "docked_ticks": unit.docked_ticks,
        }
