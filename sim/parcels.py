"""Zoned 3x3 residential parcels and their growth state machine.

A parcel is created on a free 3x3 patch of buildable land and then
develops in strict phase order, one step each time its progress bar fills:

    EMPTY -> HOUSES_1 -> HOUSES_2 -> HOUSES_FULL
          -> APARTMENTS_1 -> APARTMENTS_2 -> APARTMENTS_RING -> HIGHRISE

Progress only accumulates while the parcel has both road access and
power.  Without them an EMPTY lot shows a slow "site preparation" trickle
that is capped at 100 and never advances the phase, and any later phase
is frozen where it stands.

Cell contents are plain data (see :mod:`sim.cells`); renderers decide how
to draw them.  Randomness here is cosmetic only (house variants, growth
jitter, flavour text) and comes from an injectable :class:`random.Random`,
separate from the seeded terrain stream.

:class:`ParcelGrowthEngine` also carries the placement, gating and
persistence machinery the commercial and industrial zones reuse (see
:mod:`sim.zones`).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from modifiers import GameModifiers
from worldgen.tilegrid import BuildingRef, Coord, TileGrid

from .cells import (
    CELL_TYPES,
    LOT_SIZE,
    Apartment,
    Courtyard,
    House,
    Plaza,
    Tower,
    cell_from_dict,
    cell_kinds,
    cell_to_dict,
    empty_cells,
)
from .hooks import MoodSignal, NarrativeSink, Reachability, announce
from .safe_parse import clamp, coord_key, parse_coord_key, to_bool, to_float, to_int

logger = logging.getLogger(__name__)

PARCEL_SIZE = LOT_SIZE
PARCEL_KIND = "residential"


class Phase(IntEnum):
    EMPTY = 0
    HOUSES_1 = 1
    HOUSES_2 = 2
    HOUSES_FULL = 3
    APARTMENTS_1 = 4
    APARTMENTS_2 = 5
    APARTMENTS_RING = 6
    HIGHRISE = 7


# Residents per phase; not derived from the cells.
PHASE_POPULATION = {
    Phase.EMPTY: 0,
    Phase.HOUSES_1: 6,
    Phase.HOUSES_2: 12,
    Phase.HOUSES_FULL: 18,
    Phase.APARTMENTS_1: 36,
    Phase.APARTMENTS_2: 72,
    Phase.APARTMENTS_RING: 96,
    Phase.HIGHRISE: 200,
}

# Phase index -> ((min, max) small buildings, (min, max) converted buildings)
# a lot may hold.  The last two phases use fixed layouts instead.
STAGE_CELL_COUNTS = {
    0: ((0, 0), (0, 0)),
    1: ((1, 2), (0, 0)),
    2: ((4, 5), (0, 0)),
    3: ((9, 9), (0, 0)),
    4: ((7, 8), (1, 2)),
    5: ((4, 6), (3, 5)),
}

CellContent = Union[House, Apartment, Courtyard, Tower, Plaza]

# (row, col): corners, then edges, then the centre
CONVERSION_ORDER = (
    (0, 0), (0, 2), (2, 0), (2, 2),
    (0, 1), (1, 0), (1, 2), (2, 1),
    (1, 1),
)


def _empty_cells() -> List[List[Optional[CellContent]]]:
    return empty_cells()


# =============================== PARCEL =======================================

class Lot:
    """Footprint helpers shared by every 3x3 zoned lot."""

    origin_x: int
    origin_y: int
    cells: List[List[Any]]

    @property
    def origin(self) -> Coord:
        return (self.origin_x, self.origin_y)

    def footprint(self) -> List[Coord]:
        return [(self.origin_x + dx, self.origin_y + dy)
                for dy in range(LOT_SIZE) for dx in range(LOT_SIZE)]

    def count(self, kind: str) -> int:
        return sum(1 for row in self.cells for c in row if c is not None and c.kind == kind)

    def filled(self) -> int:
        return sum(1 for row in self.cells for c in row if c is not None)


@dataclass
class Parcel(Lot):
    origin_x: int
    origin_y: int
    phase: Phase = Phase.EMPTY
    progress: float = 0.0
    cells: List[List[Optional[CellContent]]] = field(default_factory=_empty_cells)
    houses_built: int = 0
    apartments_built: int = 0
    has_highrises: bool = False
    population: int = 0
    has_road: bool = False
    has_power: bool = False

    def reset(self) -> None:
        self.phase = Phase.EMPTY
        self.cells = _empty_cells()
        self.houses_built = 0
        self.apartments_built = 0
        self.has_highrises = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.origin_x,
            "y": self.origin_y,
            "phase": int(self.phase),
            "progress": self.progress,
            "cells": [[cell_to_dict(c) for c in row] for row in self.cells],
            "houses_built": self.houses_built,
            "apartments_built": self.apartments_built,
            "has_highrises": self.has_highrises,
            "population": self.population,
            "has_road": self.has_road,
            "has_power": self.has_power,
        }

    @classmethod
    def from_dict(cls, x: int, y: int, data: Dict[str, Any]) -> "Parcel":
        """Rebuild a parcel from saved data.

        Counters and population are recomputed from the cells and phase
        rather than trusted.  Whether the cells fit the phase is checked by
        the engine on load (see :meth:`ParcelGrowthEngine.load_dict`).
        """
        phase = Phase(int(clamp(to_int(data.get("phase"), 0), Phase.EMPTY, Phase.HIGHRISE)))
        p = cls(origin_x=x, origin_y=y, phase=phase,
                progress=clamp(to_float(data.get("progress"), 0.0), 0.0, 100.0),
                cells=read_cells(data.get("cells")),
                has_road=to_bool(data.get("has_road")),
                has_power=to_bool(data.get("has_power")))
        p.houses_built = p.count(House.kind)
        p.apartments_built = p.count(Apartment.kind)
        p.has_highrises = phase == Phase.HIGHRISE
        p.population = PHASE_POPULATION[phase]
        return p


def read_cells(raw: Any) -> List[List[Any]]:
    cells = empty_cells()
    if isinstance(raw, list):
        for r, row in enumerate(raw[:LOT_SIZE]):
            if isinstance(row, list):
                for c, cell in enumerate(row[:LOT_SIZE]):
                    cells[r][c] = cell_from_dict(cell)
    return cells


MILESTONE_MESSAGES = {
    Phase.HOUSES_1: [
        "Beautiful houses going up. The best houses!",
        "People are moving in. They love their king!",
    ],
    Phase.HOUSES_FULL: [
        "The neighbourhood is full. Tremendous growth!",
        "Nine houses on one block. Nobody builds like us!",
    ],
    Phase.APARTMENTS_1: [
        "Apartments! The kingdom is going vertical.",
        "Bigger buildings, more subjects, more taxes!",
    ],
    Phase.APARTMENTS_RING: [
        "Look at that courtyard. Very sophisticated.",
        "The finest urban planning anyone has seen.",
    ],
    Phase.HIGHRISE: [
        "High-rises! Now that is a skyline.",
        "Two hundred people on one block. Efficiency!",
    ],
}


# =============================== ENGINE =======================================

class ParcelGrowthEngine:
    """Owns every residential parcel of one world and advances them per tick."""

    kind: str = PARCEL_KIND
    phases: Type[IntEnum] = Phase
    small_cell: type = House
    large_cell: type = Apartment
    messages: Dict[Any, List[str]] = MILESTONE_MESSAGES

    def __init__(self, grid: TileGrid,
                 reachability: Optional[Reachability] = None,
                 mood: Optional[MoodSignal] = None,
                 narrative: Optional[NarrativeSink] = None,
                 modifiers: Optional[GameModifiers] = None,
                 rng: Optional[random.Random] = None):
        self.grid = grid
        self.reachability = reachability
        self.mood = mood
        self.narrative = narrative
        self.modifiers = modifiers or GameModifiers()
        # Cosmetic randomness only; see module docstring.
        self.rng = rng or random.Random()
        self.parcels: Dict[Coord, Any] = {}

    def _new_parcel(self, x: int, y: int):
        return Parcel(x, y)

    def _parcel_from_dict(self, x: int, y: int, data: Dict[str, Any]):
        return Parcel.from_dict(x, y, data)

    # -- placement -------------------------------------------------------------
    def can_place_parcel(self, x: int, y: int) -> bool:
        for cx, cy in self._new_parcel(x, y).footprint():
            if not self.grid.in_bounds(cx, cy):
                return False
            if self.grid.has_building(cx, cy):
                return False
            if not self.grid.is_buildable(cx, cy):
                return False
        return True

    def create_parcel(self, x: int, y: int) -> bool:
        if not self.can_place_parcel(x, y):
            logger.debug("%s lot placement refused at (%d, %d)", self.kind, x, y)
            return False
        parcel = self._new_parcel(x, y)
        for cx, cy in parcel.footprint():
            self.grid.set_building(cx, cy, BuildingRef(self.kind, x, y, cx - x, cy - y))
        self.parcels[parcel.origin] = parcel
        return True

    def parcel_at(self, x: int, y: int):
        """Lot covering tile ``(x, y)``, if any."""
        ref = self.grid.building_at(x, y)
        if ref is None or ref.kind != self.kind:
            return None
        return self.parcels.get(ref.origin)

    def remove_parcel(self, x: int, y: int) -> bool:
        parcel = self.parcel_at(x, y)
        if parcel is None:
            return False
        self._release(parcel)
        return True

    def _release(self, parcel) -> None:
        for cx, cy in parcel.footprint():
            if self._backs(parcel, cx, cy):
                self.grid.clear_building(cx, cy)
        del self.parcels[parcel.origin]

    def _backs(self, parcel, x: int, y: int) -> bool:
        ref = self.grid.building_at(x, y)
        return ref is not None and ref.kind == self.kind and ref.origin == parcel.origin

    def prune_detached(self) -> List[Coord]:
        """Forget lots that lost any backing tile since the last tick.

        Bulldozing one cell from outside demolishes the whole lot; the
        remaining cells are cleared here so no half-lot survives.
        """
        dropped = []
        for parcel in list(self.parcels.values()):
            if all(self._backs(parcel, cx, cy) for cx, cy in parcel.footprint()):
                continue
            logger.info("%s lot at %s was demolished externally", self.kind, parcel.origin)
            self._release(parcel)
            dropped.append(parcel.origin)
        return dropped

    # -- simulation ------------------------------------------------------------
    def tick(self) -> int:
        """Advance every parcel one step; returns the total population."""
        self.advance_all()
        return self.total_population()

    def advance_all(self) -> None:
        self.prune_detached()
        for parcel in list(self.parcels.values()):
            self.update_parcel(parcel)

    def update_parcel(self, parcel) -> None:
        parcel.has_road, parcel.has_power = self._query_infrastructure(parcel)
        if parcel.has_road and parcel.has_power:
            parcel.progress += self.growth_rate(parcel)
            if parcel.progress >= 100.0:
                parcel.progress = 0.0
                self.advance_phase(parcel)
        elif parcel.phase == 0:
            parcel.progress = min(100.0, parcel.progress + self.modifiers.empty_trickle_rate)
        self._refresh_outputs(parcel)

    def _refresh_outputs(self, parcel: Parcel) -> None:
        parcel.population = PHASE_POPULATION[parcel.phase]

    def _query_infrastructure(self, parcel) -> Tuple[bool, bool]:
        if self.reachability is None:
            return False, False
        x, y = parcel.origin
        try:
            return bool(self.reachability.has_road_access(x, y)), bool(self.reachability.has_power(x, y))
        except Exception:
            logger.warning("reachability query failed for %s lot %s", self.kind, parcel.origin,
                           exc_info=True)
            return False, False

    def _mood_adjustment(self) -> float:
        if self.mood is None:
            return 0.0
        m = self.modifiers
        try:
            return (float(self.mood.current_mood) - m.mood_neutral) / m.mood_divisor
        except Exception:
            logger.warning("mood signal unavailable", exc_info=True)
            return 0.0

    def growth_rate(self, parcel: Parcel) -> float:
        """Progress points gained this tick by a fully connected parcel."""
        m = self.modifiers
        rate = m.base_growth_rate + m.infrastructure_bonus + self._mood_adjustment()
        if parcel.phase >= Phase.APARTMENTS_1:
            rate *= m.apartment_growth_factor
        if parcel.phase >= Phase.HIGHRISE:
            rate *= m.highrise_growth_factor
        rate += (self.rng.random() - 0.5) * m.growth_jitter
        return max(0.0, rate)

    def advance_phase(self, parcel: Parcel, announce_change: bool = True) -> None:
        phase = parcel.phase
        if phase == Phase.EMPTY:
            self.build_next_house(parcel)
            parcel.phase = Phase.HOUSES_1
        elif phase == Phase.HOUSES_1:
            self.build_next_house(parcel)
            if parcel.houses_built >= 3:
                self.build_next_house(parcel)
                parcel.phase = Phase.HOUSES_2
        elif phase == Phase.HOUSES_2:
            self.build_next_house(parcel)
            if parcel.houses_built >= 6:
                while self.build_next_house(parcel):
                    pass
                parcel.phase = Phase.HOUSES_FULL
        elif phase == Phase.HOUSES_FULL:
            self.convert_to_apartment(parcel)
            parcel.phase = Phase.APARTMENTS_1
        elif phase == Phase.APARTMENTS_1:
            self.convert_to_apartment(parcel)
            if parcel.apartments_built >= 3:
                parcel.phase = Phase.APARTMENTS_2
        elif phase == Phase.APARTMENTS_2:
            self.convert_to_apartment(parcel)
            if parcel.apartments_built >= 6:
                self.complete_apartment_ring(parcel)
                parcel.phase = Phase.APARTMENTS_RING
        elif phase == Phase.APARTMENTS_RING:
            self.build_highrises(parcel)
            parcel.phase = Phase.HIGHRISE
        else:
            return  # HIGHRISE is terminal

        if announce_change and parcel.phase != phase:
            self.announce_progress(parcel)

    def build_next_house(self, parcel: Parcel) -> bool:
        """Fill the first empty cell in row-major order."""
        for row in parcel.cells:
            for col, cell in enumerate(row):
                if cell is None:
                    row[col] = House(variant=self.rng.randrange(3))
                    parcel.houses_built += 1
                    return True
        return False

    def convert_to_apartment(self, parcel: Parcel) -> bool:
        for r, c in CONVERSION_ORDER:
            cell = parcel.cells[r][c]
            if isinstance(cell, House):
                parcel.cells[r][c] = Apartment(variant=self.rng.randrange(2))
                parcel.apartments_built += 1
                parcel.houses_built -= 1
                return True
        return False

    def complete_apartment_ring(self, parcel: Parcel) -> None:
        """Eight apartments around the edge, courtyard in the middle."""
        for r in range(PARCEL_SIZE):
            for c in range(PARCEL_SIZE):
                if (r, c) == (1, 1):
                    parcel.cells[r][c] = Courtyard()
                elif not isinstance(parcel.cells[r][c], Apartment):
                    parcel.cells[r][c] = Apartment(variant=self.rng.randrange(2))
        parcel.houses_built = 0
        parcel.apartments_built = 8

    def build_highrises(self, parcel: Parcel) -> None:
        parcel.cells = [
            [Tower(1, 0), Tower(1, 1), Tower(1, 2)],
            [Plaza(), Plaza(), Plaza()],
            [Tower(2, 0), Tower(2, 1), Tower(2, 2)],
        ]
        parcel.has_highrises = True
        parcel.houses_built = 0
        parcel.apartments_built = 0

    def announce_progress(self, parcel) -> None:
        lines = self.messages.get(parcel.phase)
        if not lines or self.narrative is None:
            return
        if self.rng.random() >= self.modifiers.announce_chance:
            return
        announce(self.narrative, self.rng.choice(lines))

    # -- layout checks ---------------------------------------------------------
    def layout_fits_phase(self, parcel) -> bool:
        """Whether the cells are ones the growth sequence can produce for the phase."""
        level = int(parcel.phase)
        if level in STAGE_CELL_COUNTS:
            (slo, shi), (llo, lhi) = STAGE_CELL_COUNTS[level]
            small = parcel.count(self.small_cell.kind)
            large = parcel.count(self.large_cell.kind)
            return slo <= small <= shi and llo <= large <= lhi and small + large == parcel.filled()
        reference = self._new_parcel(parcel.origin_x, parcel.origin_y)
        self.grow_to(reference, parcel.phase)
        return cell_kinds(reference.cells) == cell_kinds(parcel.cells)

    def grow_to(self, parcel, phase) -> None:
        """Reset ``parcel`` and replay growth until it enters ``phase``."""
        parcel.reset()
        while parcel.phase < phase:
            self.advance_phase(parcel, announce_change=False)
        self._refresh_outputs(parcel)

    # -- queries ---------------------------------------------------------------
    def total_population(self) -> int:
        return sum(p.population for p in self.parcels.values())

    def phase_counts(self) -> Dict[str, int]:
        counts = {ph.name.lower(): 0 for ph in self.phases}
        for p in self.parcels.values():
            counts[p.phase.name.lower()] += 1
        return counts

    def cell_render_data(self, x: int, y: int) -> Optional[Dict[str, Any]]:
        """Render descriptor for one tile of a lot."""
        parcel = self.parcel_at(x, y)
        if parcel is None:
            return None
        cx, cy = x - parcel.origin_x, y - parcel.origin_y
        return {
            "zone": self.kind,
            "origin": list(parcel.origin),
            "cell_x": cx,
            "cell_y": cy,
            "cell": cell_to_dict(parcel.cells[cy][cx]),
            "phase": parcel.phase.name.lower(),
            "progress": parcel.progress,
            "has_road": parcel.has_road,
            "has_power": parcel.has_power,
        }

    # -- persisted layout ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {coord_key(*origin): p.to_dict() for origin, p in self.parcels.items()}

    def load_dict(self, data: Dict[str, Any]) -> int:
        """Replace all lots with ``data``; returns how many were restored.

        A lot whose saved cells do not fit its phase is rebuilt as it looks
        on entering that phase, keeping phase and progress.
        """
        for parcel in list(self.parcels.values()):
            self._release(parcel)
        restored = 0
        for key, entry in (data or {}).items():
            origin = parse_coord_key(key)
            if origin is None or not isinstance(entry, dict):
                continue
            if not self.create_parcel(*origin):
                logger.warning("saved %s lot at %s no longer fits; skipped", self.kind, key)
                continue
            parcel = self._parcel_from_dict(origin[0], origin[1], entry)
            if not self.layout_fits_phase(parcel):
                logger.warning("saved %s lot at %s has cells that do not match phase %s; rebuilt",
                               self.kind, key, parcel.phase.name)
                progress = parcel.progress
                self.grow_to(parcel, parcel.phase)
                parcel.progress = progress
            self.parcels[origin] = parcel
            restored += 1
        return restored


__all__ = [
    "CELL_TYPES",
    "CONVERSION_ORDER",
    "Apartment",
    "Courtyard",
    "House",
    "Lot",
    "MILESTONE_MESSAGES",
    "PARCEL_KIND",
    "PARCEL_SIZE",
    "PHASE_POPULATION",
    "Parcel",
    "ParcelGrowthEngine",
    "Phase",
    "Plaza",
    "Tower",
    "cell_from_dict",
    "cell_to_dict",
    "read_cells",
]
