"""Authoritative terrain and building state for one world.

Terrain lives in a dense ``uint8`` matrix indexed ``[y, x]``; buildings
are sparse and keyed by ``(x, y)``.  Every other component reads this
grid, and only zoning and the building-placement tools write to it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .terrain import Terrain, UNBUILDABLE_TERRAIN, WATER_TERRAIN

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]  # (x, y)

NEIGHBORS4 = ((-1, 0), (1, 0), (0, -1), (0, 1))


@dataclass(frozen=True)
class BuildingRef:
    """Reference stored on every tile covered by a structure."""

    kind: str
    origin_x: int
    origin_y: int
    cell_x: int = 0
    cell_y: int = 0

    @property
    def is_main_tile(self) -> bool:
        return self.cell_x == 0 and self.cell_y == 0

    @property
    def origin(self) -> Coord:
        return (self.origin_x, self.origin_y)


@dataclass
class Tile:
    terrain: Terrain
    building: Optional[BuildingRef] = None


@dataclass
class SourceLandmass:
    """An edge island that trade units sail from."""

    name: str
    center_x: float
    center_y: float
    radius_x: float
    radius_y: float
    spawn_tiles: List[Coord] = field(default_factory=list)


class TileGrid:
    def __init__(self, width: int, height: int, terrain: Optional[np.ndarray] = None):
        if width <= 0 or height <= 0:
            raise ValueError("grid dimensions must be positive")
        self.width = int(width)
        self.height = int(height)
        if terrain is None:
            terrain = np.full((self.height, self.width), Terrain.WATER, dtype=np.uint8)
        elif terrain.shape != (self.height, self.width):
            raise ValueError(f"terrain shape {terrain.shape} != {(self.height, self.width)}")
        self.terrain = terrain.astype(np.uint8, copy=False)
        self.buildings: Dict[Coord, BuildingRef] = {}
        # Bumped on every building mutation so caches can tell when to rebuild.
        self.revision = 0
        self.landmark: Optional[Coord] = None
        self.source_landmasses: List[SourceLandmass] = []

    # -- terrain ---------------------------------------------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def terrain_at(self, x: int, y: int) -> Optional[Terrain]:
        if not self.in_bounds(x, y):
            return None
        return Terrain(int(self.terrain[y, x]))

    def set_terrain(self, x: int, y: int, code: Terrain) -> None:
        if self.in_bounds(x, y):
            self.terrain[y, x] = int(code)

    def is_water(self, x: int, y: int) -> bool:
        return self.terrain_at(x, y) in WATER_TERRAIN

    def is_navigable(self, fx: float, fy: float) -> bool:
        """Water test for a continuous position; off-grid counts as open sea."""
        x, y = math.floor(fx), math.floor(fy)
        if not self.in_bounds(x, y):
            return True
        return int(self.terrain[y, x]) in WATER_TERRAIN

    def is_coastal(self, x: int, y: int) -> bool:
        """Land tile with at least one 4-neighbour of water."""
        t = self.terrain_at(x, y)
        if t is None or t in WATER_TERRAIN:
            return False
        return any(self.is_water(x + dx, y + dy) for dx, dy in NEIGHBORS4)

    def is_buildable(self, x: int, y: int) -> bool:
        t = self.terrain_at(x, y)
        return t is not None and t not in UNBUILDABLE_TERRAIN

    def tile(self, x: int, y: int) -> Optional[Tile]:
        t = self.terrain_at(x, y)
        if t is None:
            return None
        return Tile(terrain=t, building=self.buildings.get((x, y)))

    # -- buildings -------------------------------------------------------------
    def building_at(self, x: int, y: int) -> Optional[BuildingRef]:
        return self.buildings.get((x, y))

    def has_building(self, x: int, y: int) -> bool:
        return (x, y) in self.buildings

    def set_building(self, x: int, y: int, ref: BuildingRef) -> None:
        if not self.in_bounds(x, y):
            return
        self.buildings[(x, y)] = ref
        self.revision += 1

    def clear_building(self, x: int, y: int) -> None:
        if self.buildings.pop((x, y), None) is not None:
            self.revision += 1

    def footprint(self, x: int, y: int, size: int) -> Iterator[Coord]:
        for dy in range(size):
            for dx in range(size):
                yield x + dx, y + dy

    def can_place(self, x: int, y: int, size: int = 1, allow_water: bool = False) -> bool:
        for cx, cy in self.footprint(x, y, size):
            if not self.in_bounds(cx, cy) or self.has_building(cx, cy):
                return False
            t = self.terrain_at(cx, cy)
            if t is Terrain.PALACE:
                return False
            if t in WATER_TERRAIN and not allow_water:
                return False
        return True

    def place_structure(self, kind: str, x: int, y: int, size: int = 1,
                        allow_water: bool = False) -> bool:
        """Claim a ``size`` x ``size`` footprint for a structure.

        Returns ``False`` without touching the grid when any cell is out of
        bounds, occupied or unsuitable.
        """
        if not self.can_place(x, y, size, allow_water):
            logger.debug("cannot place %s at (%d, %d)", kind, x, y)
            return False
        for cx, cy in self.footprint(x, y, size):
            self.buildings[(cx, cy)] = BuildingRef(kind, x, y, cx - x, cy - y)
        self.revision += 1
        return True

    def remove_structure(self, x: int, y: int) -> bool:
        """Demolish the structure covering ``(x, y)``, whatever its size."""
        ref = self.building_at(x, y)
        if ref is None:
            return False
        for coord in [c for c, r in self.buildings.items() if r.origin == ref.origin]:
            del self.buildings[coord]
        self.revision += 1
        return True

    def structures(self, kind: Optional[str] = None) -> List[Tuple[int, int, BuildingRef]]:
        """Main tiles of every structure (optionally of one kind), row-major."""
        out = [(x, y, ref) for (x, y), ref in self.buildings.items()
               if ref.is_main_tile and (kind is None or ref.kind == kind)]
        out.sort(key=lambda item: (item[1], item[0]))
        return out

    def count_structures(self, kind: str) -> int:
        return sum(1 for ref in self.buildings.values() if ref.kind == kind and ref.is_main_tile)

    def structure_tiles(self, origin: Coord) -> List[Coord]:
        return [c for c, r in self.buildings.items() if r.origin == origin]

    # -- descriptors -----------------------------------------------------------
    def render_descriptor(self, x: int, y: int) -> Optional[Dict]:
        t = self.tile(x, y)
        if t is None:
            return None
        b = t.building
        return {
            "terrain": t.terrain.name.lower(),
            "building": None if b is None else {
                "kind": b.kind,
                "origin": list(b.origin),
                "cell": [b.cell_x, b.cell_y],
                "main": b.is_main_tile,
            },
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, TileGrid):
            return NotImplemented
        return (self.width == other.width and self.height == other.height
                and np.array_equal(self.terrain, other.terrain)
                and self.buildings == other.buildings
                and self.landmark == other.landmark
                and self.source_landmasses == other.source_landmasses)
