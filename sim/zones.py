"""Commercial and industrial 3x3 zones.

Both zone types follow the same eight-step growth path as residential
parcels and reuse their placement, gating and persistence machinery; what
differs is captured in a :class:`ZoneProfile`:

    commercial: shops -> strip malls -> shopping centre -> mall complex
    industrial: workshops -> factories -> heavy industry -> industrial complex

Instead of residents a zone yields per-phase outputs (jobs and tax income
for commerce; jobs, production and pollution for industry).  Growth gets a
demand bonus from an optional callable: commerce follows population,
industry follows commercial jobs.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from modifiers import GameModifiers
from worldgen.tilegrid import TileGrid

from .cells import (
    Complex,
    Factory,
    HeavyIndustry,
    Mall,
    Parking,
    Shop,
    ShoppingCenter,
    Smokestack,
    StripMall,
    Warehouse,
    Workshop,
    cell_to_dict,
    empty_cells,
)
from .hooks import NarrativeSink, Reachability
from .infrastructure import COMMERCIAL, INDUSTRIAL
from .parcels import Lot, ParcelGrowthEngine, read_cells
from .safe_parse import clamp, to_bool, to_float, to_int

logger = logging.getLogger(__name__)


class CommercialPhase(IntEnum):
    EMPTY = 0
    SHOPS_1 = 1
    SHOPS_2 = 2
    SHOPS_FULL = 3
    STRIP_MALL_1 = 4
    STRIP_MALL_2 = 5
    SHOPPING_CENTER = 6
    MALL_COMPLEX = 7


class IndustrialPhase(IntEnum):
    EMPTY = 0
    WORKSHOPS_1 = 1
    WORKSHOPS_2 = 2
    WORKSHOPS_FULL = 3
    FACTORIES_1 = 4
    FACTORIES_2 = 5
    HEAVY_INDUSTRY = 6
    INDUSTRIAL_COMPLEX = 7


ROW_MAJOR = tuple((r, c) for r in range(3) for c in range(3))

Layout = Tuple[Tuple[Any, ...], ...]


@dataclass(frozen=True)
class ZoneProfile:
    kind: str
    phases: Type[IntEnum]
    small_cell: type
    large_cell: type
    base_growth_rate: float
    large_growth_factor: float      # from phase 4 on
    top_growth_factor: float        # in the final phase
    demand_divisor: float
    demand_cap: float
    outputs: Dict[str, Tuple[int, ...]]   # output name -> value per phase index
    layouts: Dict[int, Layout]            # fixed cells for phases 6 and 7
    messages: Dict[int, List[str]] = field(default_factory=dict)
    conversion_order: Tuple[Tuple[int, int], ...] = ROW_MAJOR


COMMERCIAL_ZONE = ZoneProfile(
    kind=COMMERCIAL,
    phases=CommercialPhase,
    small_cell=Shop,
    large_cell=StripMall,
    base_growth_rate=4.0,
    large_growth_factor=0.6,
    top_growth_factor=0.4,
    demand_divisor=100.0,
    demand_cap=5.0,
    outputs={
        "jobs": (0, 6, 12, 18, 30, 60, 100, 200),
        "tax_income": (0, 10, 20, 30, 50, 100, 200, 500),
    },
    layouts={
        6: (
            (ShoppingCenter("nw"), ShoppingCenter("n"), ShoppingCenter("ne")),
            (ShoppingCenter("w"), ShoppingCenter("center"), ShoppingCenter("e")),
            (ShoppingCenter("sw"), ShoppingCenter("s"), ShoppingCenter("se")),
        ),
        7: (
            (Mall("main"), Mall("main"), Mall("main")),
            (Mall("main"), Mall("atrium"), Mall("main")),
            (Parking(), Parking(), Parking()),
        ),
    },
    messages={
        CommercialPhase.SHOPS_1: [
            "Shops opening! The economy is BOOMING!",
            "Small businesses! The backbone of the kingdom!",
        ],
        CommercialPhase.SHOPS_FULL: [
            "Nine shops! A thriving marketplace!",
            "TREMENDOUS business growth!",
        ],
        CommercialPhase.STRIP_MALL_1: [
            "Strip malls! Bigger stores, more taxes!",
            "The retail revolution begins!",
        ],
        CommercialPhase.SHOPPING_CENTER: [
            "A SHOPPING CENTER! So classy!",
            "The people love to shop! And I love their taxes!",
        ],
        CommercialPhase.MALL_COMPLEX: [
            "A MEGA MALL! The biggest! The best!",
            "Parking included! Very thoughtful!",
        ],
    },
)

INDUSTRIAL_ZONE = ZoneProfile(
    kind=INDUSTRIAL,
    phases=IndustrialPhase,
    small_cell=Workshop,
    large_cell=Factory,
    base_growth_rate=3.0,
    large_growth_factor=0.7,
    top_growth_factor=0.5,
    demand_divisor=50.0,
    demand_cap=3.0,
    outputs={
        "jobs": (0, 9, 18, 27, 45, 90, 150, 300),
        "production": (0, 5, 10, 15, 30, 60, 120, 250),
        "pollution": (0, 2, 4, 6, 12, 24, 40, 80),
    },
    layouts={
        6: (
            (HeavyIndustry("nw"), HeavyIndustry("n"), HeavyIndustry("ne")),
            (HeavyIndustry("w"), Smokestack(), HeavyIndustry("e")),
            (HeavyIndustry("sw"), HeavyIndustry("s"), HeavyIndustry("se")),
        ),
        7: (
            (Complex("factory1"), Smokestack(tall=True), Complex("factory2")),
            (Complex("main"), Complex("main"), Complex("main")),
            (Warehouse(), Warehouse(), Warehouse()),
        ),
    },
    messages={
        IndustrialPhase.WORKSHOPS_1: [
            "Workshops! Making things again!",
            "Manufacturing is BACK!",
        ],
        IndustrialPhase.WORKSHOPS_FULL: [
            "Nine workshops! We're building an empire!",
            "Made in the Kingdom! The best quality!",
        ],
        IndustrialPhase.FACTORIES_1: [
            "FACTORIES! Real industry!",
            "Jobs jobs jobs! I created those!",
        ],
        IndustrialPhase.HEAVY_INDUSTRY: [
            "HEAVY INDUSTRY! Now we're talking!",
            "Smokestacks! Beautiful smokestacks!",
        ],
        IndustrialPhase.INDUSTRIAL_COMPLEX: [
            "An INDUSTRIAL COMPLEX! Tremendous!",
            "Warehouses full of goods! So much winning!",
        ],
    },
)

ZONE_PROFILES = {p.kind: p for p in (COMMERCIAL_ZONE, INDUSTRIAL_ZONE)}


@dataclass
class ZoneLot(Lot):
    origin_x: int
    origin_y: int
    profile: ZoneProfile
    phase: IntEnum = None
    progress: float = 0.0
    cells: List[List[Any]] = field(default_factory=empty_cells)
    small_built: int = 0
    large_built: int = 0
    outputs: Dict[str, int] = field(default_factory=dict)
    has_road: bool = False
    has_power: bool = False

    def __post_init__(self):
        if self.phase is None:
            self.phase = self.profile.phases(0)
        if not self.outputs:
            self.outputs = {name: 0 for name in self.profile.outputs}

    def reset(self) -> None:
        self.phase = self.profile.phases(0)
        self.cells = empty_cells()
        self.small_built = 0
        self.large_built = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.origin_x,
            "y": self.origin_y,
            "phase": int(self.phase),
            "progress": self.progress,
            "cells": [[cell_to_dict(c) for c in row] for row in self.cells],
            "small_built": self.small_built,
            "large_built": self.large_built,
            "outputs": dict(self.outputs),
            "has_road": self.has_road,
            "has_power": self.has_power,
        }

    @classmethod
    def from_dict(cls, x: int, y: int, data: Dict[str, Any], profile: ZoneProfile) -> "ZoneLot":
        last = len(profile.phases) - 1
        lot = cls(origin_x=x, origin_y=y, profile=profile,
                  phase=profile.phases(int(clamp(to_int(data.get("phase"), 0), 0, last))),
                  progress=clamp(to_float(data.get("progress"), 0.0), 0.0, 100.0),
                  cells=read_cells(data.get("cells")),
                  has_road=to_bool(data.get("has_road")),
                  has_power=to_bool(data.get("has_power")))
        lot.small_built = lot.count(profile.small_cell.kind)
        lot.large_built = lot.count(profile.large_cell.kind)
        lot.outputs = {name: values[lot.phase] for name, values in profile.outputs.items()}
        return lot


class ZoneGrowthEngine(ParcelGrowthEngine):
    """All lots of one zone type in a world."""

    def __init__(self, profile: ZoneProfile, grid: TileGrid,
                 reachability: Optional[Reachability] = None,
                 demand: Optional[Callable[[], float]] = None,
                 narrative: Optional[NarrativeSink] = None,
                 modifiers: Optional[GameModifiers] = None,
                 rng: Optional[random.Random] = None):
        super().__init__(grid, reachability, None, narrative, modifiers, rng)
        self.profile = profile
        self.kind = profile.kind
        self.phases = profile.phases
        self.small_cell = profile.small_cell
        self.large_cell = profile.large_cell
        self.messages = profile.messages
        self.demand = demand

    def _new_parcel(self, x: int, y: int) -> ZoneLot:
        return ZoneLot(x, y, self.profile)

    def _parcel_from_dict(self, x: int, y: int, data: Dict[str, Any]) -> ZoneLot:
        return ZoneLot.from_dict(x, y, data, self.profile)

    def _refresh_outputs(self, lot: ZoneLot) -> None:
        lot.outputs = {name: values[lot.phase] for name, values in self.profile.outputs.items()}

    def tick(self) -> Dict[str, int]:
        """Advance every lot one step; returns the summed outputs."""
        self.advance_all()
        return self.totals()

    def _demand_bonus(self) -> float:
        if self.demand is None:
            return 0.0
        try:
            level = float(self.demand())
        except Exception:
            logger.warning("%s demand signal unavailable", self.kind, exc_info=True)
            return 0.0
        return min(max(0.0, level) / self.profile.demand_divisor, self.profile.demand_cap)

    def growth_rate(self, lot: ZoneLot) -> float:
        p = self.profile
        rate = p.base_growth_rate + self.modifiers.infrastructure_bonus + self._demand_bonus()
        if lot.phase >= 4:
            rate *= p.large_growth_factor
        if lot.phase >= len(p.phases) - 1:
            rate *= p.top_growth_factor
        rate += (self.rng.random() - 0.5) * self.modifiers.growth_jitter
        return max(0.0, rate)

    def advance_phase(self, lot: ZoneLot, announce_change: bool = True) -> None:
        level = int(lot.phase)
        if level == 0:
            self.build_next(lot)
            level = 1
        elif level == 1:
            self.build_next(lot)
            if lot.small_built >= 3:
                self.build_next(lot)
                level = 2
        elif level == 2:
            self.build_next(lot)
            if lot.small_built >= 6:
                while self.build_next(lot):
                    pass
                level = 3
        elif level == 3:
            self.convert_next(lot)
            level = 4
        elif level == 4:
            self.convert_next(lot)
            if lot.large_built >= 3:
                level = 5
        elif level == 5:
            self.convert_next(lot)
            if lot.large_built >= 6:
                self.apply_layout(lot, 6)
                level = 6
        elif level == 6:
            self.apply_layout(lot, 7)
            level = 7
        else:
            return

        if level != lot.phase:
            lot.phase = self.phases(level)
            if announce_change:
                self.announce_progress(lot)

    def build_next(self, lot: ZoneLot) -> bool:
        for row in lot.cells:
            for col, cell in enumerate(row):
                if cell is None:
                    row[col] = self.small_cell(variant=self.rng.randrange(3))
                    lot.small_built += 1
                    return True
        return False

    def convert_next(self, lot: ZoneLot) -> bool:
        for r, c in self.profile.conversion_order:
            if isinstance(lot.cells[r][c], self.small_cell):
                lot.cells[r][c] = self.large_cell(variant=self.rng.randrange(2))
                lot.large_built += 1
                lot.small_built -= 1
                return True
        return False

    def apply_layout(self, lot: ZoneLot, level: int) -> None:
        lot.cells = [list(row) for row in self.profile.layouts[level]]
        lot.small_built = 0
        lot.large_built = 0

    # -- queries ---------------------------------------------------------------
    def total(self, output: str) -> int:
        return sum(lot.outputs.get(output, 0) for lot in self.parcels.values())

    def totals(self) -> Dict[str, int]:
        return {name: self.total(name) for name in self.profile.outputs}

    def total_population(self) -> int:
        return 0


__all__ = [
    "COMMERCIAL_ZONE",
    "INDUSTRIAL_ZONE",
    "ZONE_PROFILES",
    "CommercialPhase",
    "IndustrialPhase",
    "ZoneGrowthEngine",
    "ZoneLot",
    "ZoneProfile",
]
