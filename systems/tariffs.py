"""
Tariff economy: when trade units come, and what they pay on arrival.

The economy closes a feedback loop with the navigator.  High tariffs and
poor trade relations stretch the interval between spawn attempts and make
each attempt less likely to succeed; every docking pays tariffs into the
treasury and nudges relations up or down depending on the effective rate
the unit paid.

Which port a unit heads for, where it appears and what it carries are
cosmetic choices drawn from an injectable, unseeded ``random.Random``.
"""

from __future__ import annotations

import logging
import math
import random
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from sim.hooks import NarrativeSink, TreasuryLedger, announce
from sim.infrastructure import PORT
from sim.safe_parse import clamp
from worldgen.tilegrid import NEIGHBORS4, Coord, SourceLandmass, TileGrid
from .config_trade import (
    DEFAULT_TARIFFS,
    DOCKING_ANNOUNCE_CHANCE,
    GLOBAL_MODIFIER_RANGE,
    HIGH_TARIFF_THRESHOLD,
    INITIAL_RELATIONS,
    LOW_TARIFF_THRESHOLD,
    POLICY_ANNOUNCE_GLOBAL,
    POLICY_ANNOUNCE_RATE,
    RECENT_EVENTS,
    RELATIONS_BONUS,
    RELATIONS_PENALTY,
    SPAWN_BASE_TICKS,
    SPAWN_EDGE_OFFSET,
    SPAWN_MIN_TICKS,
    SPAWN_PORT_FACTOR,
    SPAWN_POSITION_VARIANCE,
    SPAWN_RELATIONS_WEIGHT,
    SPAWN_TARIFF_WEIGHT,
    TARIFF_RANGE,
    TURNED_AWAY_ANNOUNCE_CHANCE,
    TURNED_AWAY_ANNOUNCE_MIN_TARIFF,
    UNKNOWN_CATEGORY_RATE,
    WILLINGNESS_FLOOR,
    WILLINGNESS_TARIFF_SCALE,
)
from .navigation import TradeUnit, TradeUnitNavigator, UnitState, generate_cargo

logger = logging.getLogger(__name__)

TRADE_MESSAGES = [
    "Just collected ${tariff} in tariffs. HUGE!",
    "Another boat paying their fair share. ${tariff}!",
    "${tariff} from tariffs. Other countries are paying US now!",
    "Beautiful boat just docked. Beautiful tariffs. ${tariff}!",
    "Trade is BOOMING. Just made ${tariff} from one boat!",
]

TURNED_AWAY_MESSAGES = [
    "A boat just turned around. They couldn't handle our WINNING!",
    "Some boats are too scared to come here. SAD!",
    "Boats turning away means our tariffs are WORKING!",
    "They'll come crawling back. They always do!",
]


@dataclass
class TradeStats:
    total_tariff_revenue: float = 0.0
    total_trade_value: float = 0.0
    units_processed: int = 0
    units_turned_away: int = 0
    monthly_revenue: float = 0.0
    monthly_trade: float = 0.0


@dataclass
class TradeEvent:
    port: Coord
    cargo: List[Tuple[str, int]]
    tariff: float
    value: float
    tick: int = 0


@dataclass
class DockingResult:
    tariff: float
    value: float
    paid: int = 0
    lines: List[Tuple[str, float, float]] = field(default_factory=list)  # category, value, tariff

    @property
    def effective_rate(self) -> Optional[float]:
        if self.value <= 0:
            return None
        return self.tariff / self.value * 100.0


class TariffEconomy:
    """Spawn-rate model, docking revenue and trade relations for one world."""

    def __init__(self, grid: TileGrid, reachability=None,
                 treasury: Optional[TreasuryLedger] = None,
                 narrative: Optional[NarrativeSink] = None,
                 rng: Optional[random.Random] = None,
                 port_requires_supply_chain: bool = True):
        self.grid = grid
        self.reachability = reachability
        self.treasury = treasury
        self.narrative = narrative
        self.rng = rng or random.Random()
        self.port_requires_supply_chain = port_requires_supply_chain

        self.rates: Dict[str, float] = dict(DEFAULT_TARIFFS)
        self.global_modifier = 0.0
        self.relations = INITIAL_RELATIONS
        self.stats = TradeStats()
        self.recent_events: Deque[TradeEvent] = deque(maxlen=RECENT_EVENTS)
        self.spawn_timer = 0
        self.ticks = 0
        self.navigator = TradeUnitNavigator(grid, on_docked=self.process_docking)

    @property
    def units(self) -> List[TradeUnit]:
        return self.navigator.units

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def tick(self) -> None:
        self.ticks += 1
        self.spawn_timer += 1
        if self.spawn_timer >= self.spawn_interval():
            self.spawn_timer = 0
            self.try_spawn()
        for unit in self.navigator.units:
            if unit.state is UnitState.ARRIVING and not self._is_port(*unit.target):
                logger.debug("port %s vanished; trade unit turning back", unit.target)
                self.navigator.depart(unit)
        self.navigator.update()

    # ------------------------------------------------------------------
    # Spawn model
    # ------------------------------------------------------------------
    def average_tariff(self) -> float:
        """Mean configured rate plus the global modifier."""
        return sum(self.rates.values()) / len(self.rates) + self.global_modifier

    def port_count(self) -> int:
        return self.grid.count_structures(PORT)

    def spawn_interval(self) -> float:
        avg = self.average_tariff()
        numerator = (SPAWN_BASE_TICKS + avg * SPAWN_TARIFF_WEIGHT
                     + (100 - self.relations) * SPAWN_RELATIONS_WEIGHT)
        return max(SPAWN_MIN_TICKS, numerator / (max(1, self.port_count()) * SPAWN_PORT_FACTOR))

    def willingness(self) -> float:
        return max(WILLINGNESS_FLOOR, 1 - self.average_tariff() / WILLINGNESS_TARIFF_SCALE)

    def _is_port(self, x: int, y: int) -> bool:
        ref = self.grid.building_at(x, y)
        return ref is not None and ref.kind == PORT

    def port_is_operational(self, x: int, y: int) -> bool:
        if self.reachability is None:
            return True
        try:
            if self.port_requires_supply_chain and hasattr(self.reachability, "can_port_operate"):
                return bool(self.reachability.can_port_operate(x, y))
            return bool(self.reachability.has_road_access(x, y))
        except Exception:
            logger.warning("reachability query failed for port (%d, %d)", x, y, exc_info=True)
            return False

    def operational_ports(self) -> List[Coord]:
        return [(x, y) for x, y, _ in self.grid.structures(PORT) if self.port_is_operational(x, y)]

    def try_spawn(self) -> Optional[TradeUnit]:
        ports = self.operational_ports()
        if not ports:
            logger.debug("no operational ports; nothing spawned")
            return None
        port = self.rng.choice(ports)

        avg = self.average_tariff()
        if self.rng.random() > self.willingness():
            self.stats.units_turned_away += 1
            logger.debug("trade unit turned away (average tariff %.1f%%)", avg)
            if avg > TURNED_AWAY_ANNOUNCE_MIN_TARIFF and self.rng.random() < TURNED_AWAY_ANNOUNCE_CHANCE:
                announce(self.narrative, self.rng.choice(TURNED_AWAY_MESSAGES))
            return None

        (sx, sy), edge = self.spawn_origin(port)
        berth = self.find_berth(port, (sx, sy))
        if berth is None:
            logger.debug("port %s has no water berth; nothing spawned", port)
            return None
        unit = TradeUnit(x=sx, y=sy, target=port, berth=berth, spawn_edge=edge,
                         cargo=generate_cargo(self.rng), flag_color=self.rng.randrange(6))
        self.navigator.add_unit(unit)
        logger.debug("trade unit spawned at (%.1f, %.1f) for port %s", sx, sy, port)
        return unit

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def find_berth(self, port: Coord, near: Tuple[float, float]) -> Optional[Tuple[float, float]]:
        """Water tile beside the port footprint closest to ``near``, as a tile centre."""
        footprint = set(self.grid.structure_tiles(port))
        candidates = set()
        for fx, fy in footprint:
            for dx, dy in NEIGHBORS4:
                nx, ny = fx + dx, fy + dy
                if (nx, ny) not in footprint and self.grid.is_water(nx, ny):
                    candidates.add((nx, ny))
        if not candidates:
            return None
        bx, by = min(candidates, key=lambda c: (math.hypot(c[0] + 0.5 - near[0], c[1] + 0.5 - near[1]),
                                                c[1], c[0]))
        return bx + 0.5, by + 0.5

    def nearest_edge(self, port: Coord) -> str:
        px, py = port
        dists = {
            "left": px,
            "right": self.grid.width - px,
            "top": py,
            "bottom": self.grid.height - py,
        }
        return min(("left", "right", "top", "bottom"), key=lambda e: dists[e])

    def _nearest_landmass(self, port: Coord) -> Optional[SourceLandmass]:
        usable = [s for s in self.grid.source_landmasses if s.spawn_tiles]
        if not usable:
            return None
        px, py = port
        return min(usable, key=lambda s: math.hypot(s.center_x - px, s.center_y - py))

    def spawn_origin(self, port: Coord) -> Tuple[Tuple[float, float], str]:
        """Start position and exit edge for a unit bound for ``port``."""
        island = self._nearest_landmass(port)
        if island is not None:
            water = []
            for tx, ty in island.spawn_tiles:
                for dx, dy in NEIGHBORS4:
                    if self.grid.is_water(tx + dx, ty + dy):
                        water.append((tx + dx, ty + dy))
            if water:
                wx, wy = self.rng.choice(water)
                edge = "left" if island.center_x < self.grid.width / 2 else "right"
                return (wx + 0.5, wy + 0.5), edge

        edge = self.nearest_edge(port)
        px, py = port
        variance = (self.rng.random() - 0.5) * SPAWN_POSITION_VARIANCE
        if edge == "left":
            return (-SPAWN_EDGE_OFFSET, py + variance), edge
        if edge == "right":
            return (self.grid.width + SPAWN_EDGE_OFFSET, py + variance), edge
        if edge == "top":
            return (px + variance, -SPAWN_EDGE_OFFSET), edge
        return (px + variance, self.grid.height + SPAWN_EDGE_OFFSET), edge

    # ------------------------------------------------------------------
    # Docking
    # ------------------------------------------------------------------
    def rate_for(self, category: str) -> float:
        return self.rates.get(category, UNKNOWN_CATEGORY_RATE) + self.global_modifier

    def assess(self, unit: TradeUnit) -> DockingResult:
        result = DockingResult(tariff=0.0, value=0.0)
        for line in unit.cargo:
            value = line.value
            tariff = value * self.rate_for(line.category) / 100.0
            result.value += value
            result.tariff += tariff
            result.lines.append((line.category, value, tariff))
        return result

    def process_docking(self, unit: TradeUnit) -> DockingResult:
        result = self.assess(unit)
        result.paid = math.floor(result.tariff)
        if self.treasury is not None:
            try:
                self.treasury.add(result.paid)
            except Exception:
                logger.warning("treasury rejected %d in tariffs from port %s", result.paid, unit.target,
                               exc_info=True)

        s = self.stats
        s.total_tariff_revenue += result.tariff
        s.total_trade_value += result.value
        s.units_processed += 1
        s.monthly_revenue += result.tariff
        s.monthly_trade += result.value

        rate = result.effective_rate
        if rate is not None:
            if rate > HIGH_TARIFF_THRESHOLD:
                self.relations = clamp(self.relations - RELATIONS_PENALTY, 0.0, 100.0)
            elif rate < LOW_TARIFF_THRESHOLD:
                self.relations = clamp(self.relations + RELATIONS_BONUS, 0.0, 100.0)

        self.recent_events.append(TradeEvent(
            port=unit.target,
            cargo=[(c.category, c.quantity) for c in unit.cargo],
            tariff=result.tariff,
            value=result.value,
            tick=self.ticks,
        ))
        logger.debug("docking at %s paid %d on %.0f of cargo", unit.target, result.paid, result.value)
        if self.rng.random() < DOCKING_ANNOUNCE_CHANCE:
            msg = self.rng.choice(TRADE_MESSAGES).replace("{tariff}", str(result.paid))
            announce(self.narrative, msg)
        return result

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    def set_rate(self, category: str, percent: float) -> bool:
        if category not in self.rates:
            logger.debug("ignoring tariff for unknown category %r", category)
            return False
        self.rates[category] = clamp(float(percent), *TARIFF_RANGE)
        if percent > POLICY_ANNOUNCE_RATE:
            announce(self.narrative, f"Just set {category} tariffs to {self.rates[category]:g}%. They'll pay!")
        return True

    def set_global_modifier(self, percent: float) -> None:
        self.global_modifier = clamp(float(percent), *GLOBAL_MODIFIER_RANGE)
        if percent > POLICY_ANNOUNCE_GLOBAL:
            announce(self.narrative, f"MASSIVE tariffs on EVERYONE! {self.global_modifier:g}% extra on ALL imports!")

    def reset_monthly_stats(self) -> None:
        self.stats.monthly_revenue = 0.0
        self.stats.monthly_trade = 0.0

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------
    def unit_descriptors(self) -> List[Dict]:
        return [self.navigator.render_descriptor(u) for u in self.navigator.units]

    def summary(self) -> Dict:
        return {
            "rates": dict(self.rates),
            "global_modifier": self.global_modifier,
            "average_tariff": self.average_tariff(),
            "relations": self.relations,
            "spawn_interval": self.spawn_interval(),
            "units_active": len(self.navigator.units),
            "stats": asdict(self.stats),
            "recent_events": [asdict(e) for e in self.recent_events],
        }
