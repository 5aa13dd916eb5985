from __future__ import annotations
from typing import Dict, List, Optional
import json
import logging
import random

from modifiers import GameModifiers
from sim.hooks import Mood, NarrativeLog, Treasury
from sim.infrastructure import COMMERCIAL, INDUSTRIAL, PORT, STRUCTURE_SIZES, InfrastructureReachability
from sim.parcels import PARCEL_KIND, ParcelGrowthEngine
from sim.safe_parse import clamp, to_float, to_int
from sim.zones import COMMERCIAL_ZONE, INDUSTRIAL_ZONE, ZoneGrowthEngine
from systems.config_trade import GLOBAL_MODIFIER_RANGE, TARIFF_RANGE
from systems.tariffs import TariffEconomy
from time_model import TICKS_PER_MONTH, Calendar
from worldgen import TileGrid, generate

logger = logging.getLogger(__name__)

STARTING_TREASURY = 10000.0

# Terrain a port may stand on; at least one footprint tile must touch water.
PORT_TERRAIN = {"sand", "beach"}


class SimulationEngine:
    """One island world: terrain, structures, parcels and trade.

    Pure-sim API usable by the CLI and tests.  Terrain comes from the seeded
    generator; everything cosmetic (growth jitter, cargo, flavour text) uses
    ``rng``, which is unseeded unless one is passed in.
    """

    def __init__(self, width: int = 96, height: int = 72, seed: int = 12345,
                 rng: Optional[random.Random] = None,
                 modifiers: Optional[GameModifiers] = None,
                 ticks_per_month: int = TICKS_PER_MONTH):
        self.seed = seed
        self.grid: TileGrid = generate(width, height, seed)
        self.rng = rng or random.Random()
        self.modifiers = modifiers or GameModifiers()
        self.ticks_per_month = max(1, int(ticks_per_month))
        self.tick_count = 0
        self.calendar = Calendar()
        self.population = 0
        self.jobs = 0
        self.commerce: Dict[str, int] = {}
        self.industry: Dict[str, int] = {}

        self.treasury = Treasury(STARTING_TREASURY)
        self.mood = Mood()
        self.narrative = NarrativeLog()
        self.infrastructure = InfrastructureReachability(self.grid)
        self.parcels = ParcelGrowthEngine(self.grid, self.infrastructure, self.mood,
                                          self.narrative, self.modifiers, self.rng)
        self.commercial = ZoneGrowthEngine(COMMERCIAL_ZONE, self.grid, self.infrastructure,
                                           lambda: self.population, self.narrative,
                                           self.modifiers, self.rng)
        self.industrial = ZoneGrowthEngine(INDUSTRIAL_ZONE, self.grid, self.infrastructure,
                                           lambda: self.commercial.total("jobs"), self.narrative,
                                           self.modifiers, self.rng)
        self.zones = {PARCEL_KIND: self.parcels, COMMERCIAL: self.commercial,
                      INDUSTRIAL: self.industrial}
        self.economy = TariffEconomy(self.grid, self.infrastructure, self.treasury,
                                     self.narrative, self.rng)
        logger.info("new world %dx%d seed=%d landmark=%s", width, height, seed, self.grid.landmark)

    # ------------------------------------------------------------------
    # Building tools
    # ------------------------------------------------------------------
    def can_place(self, kind: str, x: int, y: int) -> bool:
        if kind in self.zones:
            return self.zones[kind].can_place_parcel(x, y)
        size = STRUCTURE_SIZES.get(kind, 1)
        if not self.grid.can_place(x, y, size):
            return False
        if kind == PORT:
            tiles = list(self.grid.footprint(x, y, size))
            if any(self.grid.terrain_at(cx, cy).name.lower() not in PORT_TERRAIN for cx, cy in tiles):
                return False
            return any(self.grid.is_coastal(cx, cy) for cx, cy in tiles)
        return all(self.grid.is_buildable(cx, cy) for cx, cy in self.grid.footprint(x, y, size))

    def place(self, kind: str, x: int, y: int) -> bool:
        """Zone a lot or place a structure with its top-left at ``(x, y)``."""
        if kind in self.zones:
            return self.zones[kind].create_parcel(x, y)
        if not self.can_place(kind, x, y):
            logger.debug("cannot place %s at (%d, %d)", kind, x, y)
            return False
        return self.grid.place_structure(kind, x, y, STRUCTURE_SIZES.get(kind, 1))

    def demolish(self, x: int, y: int) -> bool:
        for zone in self.zones.values():
            if zone.parcel_at(x, y) is not None:
                return zone.remove_parcel(x, y)
        return self.grid.remove_structure(x, y)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------
    def tick(self, n: int = 1) -> None:
        for _ in range(n):
            self._step()

    def _step(self) -> None:
        self.tick_count += 1
        self.population = self.parcels.tick()
        self.commerce = self.commercial.tick()
        self.industry = self.industrial.tick()
        self.jobs = self.commerce.get("jobs", 0) + self.industry.get("jobs", 0)
        self.economy.tick()
        if self.tick_count % self.ticks_per_month == 0:
            self.advance_month()

    def advance_month(self) -> None:
        """Roll the calendar, pay commercial taxes and reset monthly trade stats."""
        self.calendar.advance_month()
        self.treasury.add(self.commercial.total("tax_income"))
        logger.debug("%s: treasury %.0f, monthly tariff revenue %.0f",
                     self.calendar.label(), self.treasury.balance,
                     self.economy.stats.monthly_revenue)
        self.economy.reset_monthly_stats()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def tile_descriptor(self, x: int, y: int) -> Optional[Dict]:
        desc = self.grid.render_descriptor(x, y)
        if desc is not None:
            desc["parcel"] = None
            for zone in self.zones.values():
                data = zone.cell_render_data(x, y)
                if data is not None:
                    desc["parcel"] = data
                    break
        return desc

    def unit_descriptors(self) -> List[Dict]:
        return self.economy.unit_descriptors()

    def summary(self) -> Dict:
        return {
            "tick": self.tick_count,
            "date": self.calendar.label(),
            "width": self.grid.width, "height": self.grid.height,
            "seed": self.seed,
            "landmark": self.grid.landmark,
            "population": self.population,
            "jobs": self.jobs,
            "commerce": self.commercial.totals(),
            "industry": self.industrial.totals(),
            "treasury": self.treasury.balance,
            "parcels": self.parcels.phase_counts(),
            "zones": {COMMERCIAL: self.commercial.phase_counts(),
                      INDUSTRIAL: self.industrial.phase_counts()},
            "infrastructure": self.infrastructure.status(),
            "trade": self.economy.summary(),
            "announcements": self.narrative.recent(),
        }

    # ------------------------------------------------------------------
    # Persisted layout
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict:
        """World state without terrain (regenerated from the seed) or trade units."""
        structures = []
        for x, y, ref in self.grid.structures():
            if ref.kind in self.zones:
                continue
            structures.append({"kind": ref.kind, "x": x, "y": y})
        return {
            "seed": self.seed,
            "width": self.grid.width,
            "height": self.grid.height,
            "tick": self.tick_count,
            "calendar": {"year": self.calendar.year, "month": self.calendar.month},
            "treasury": self.treasury.balance,
            "mood": self.mood.value,
            "structures": structures,
            "parcels": self.parcels.to_dict(),
            "zones": {COMMERCIAL: self.commercial.to_dict(), INDUSTRIAL: self.industrial.to_dict()},
            "tariffs": {
                "rates": dict(self.economy.rates),
                "global_modifier": self.economy.global_modifier,
                "relations": self.economy.relations,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict, rng: Optional[random.Random] = None) -> "SimulationEngine":
        eng = cls(width=to_int(data.get("width"), 96), height=to_int(data.get("height"), 72),
                  seed=to_int(data.get("seed"), 12345), rng=rng)
        eng.tick_count = to_int(data.get("tick"), 0)
        cal = data.get("calendar") or {}
        eng.calendar = Calendar(year=to_int(cal.get("year"), 1), month=to_int(cal.get("month"), 1))
        eng.treasury.balance = to_float(data.get("treasury"), STARTING_TREASURY)
        eng.mood.value = to_float(data.get("mood"), 50.0)
        for s in data.get("structures") or []:
            kind = s.get("kind")
            x, y = to_int(s.get("x"), -1), to_int(s.get("y"), -1)
            if not kind or not eng.grid.place_structure(kind, x, y, STRUCTURE_SIZES.get(kind, 1)):
                logger.warning("could not restore %r at (%d, %d)", kind, x, y)
        eng.parcels.load_dict(data.get("parcels") or {})
        zones = data.get("zones") or {}
        eng.commercial.load_dict(zones.get(COMMERCIAL) or {})
        eng.industrial.load_dict(zones.get(INDUSTRIAL) or {})
        tariffs = data.get("tariffs") or {}
        # Restored quietly; the setters would announce high rates again.
        for cat, rate in (tariffs.get("rates") or {}).items():
            if cat in eng.economy.rates:
                eng.economy.rates[cat] = clamp(to_float(rate, 0.0), *TARIFF_RANGE)
        eng.economy.global_modifier = clamp(to_float(tariffs.get("global_modifier"), 0.0),
                                            *GLOBAL_MODIFIER_RANGE)
        eng.economy.relations = clamp(to_float(tariffs.get("relations"), 100.0), 0.0, 100.0)
        return eng

    def save_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_json(cls, path: str, rng: Optional[random.Random] = None) -> "SimulationEngine":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data, rng=rng)
