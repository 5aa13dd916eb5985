"""Road and power connectivity for structures on a :class:`TileGrid`.

Road tiles are grouped into networks by 4-way flood fill; every structure
touching a network edge-wise is "connected" to it.  Power lines and plants
form grids the same way, and a structure touching a grid with a positive
power output is powered.  Results are keyed by structure origin and are
rebuilt lazily whenever the grid revision changes, so a query never sees
occupancy from before the latest demolition or placement.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from worldgen.tilegrid import Coord, NEIGHBORS4, TileGrid

logger = logging.getLogger(__name__)

ROAD = "road"
POWER_LINE = "power_line"
PORT = "port"
COMMERCIAL = "commercial"
INDUSTRIAL = "industrial"

POWER_OUTPUT = {
    "coal_plant": 100,
    "nuclear_plant": 500,
    "solar_farm": 30,
    "wind_turbine": 20,
    "oil_derrick": 50,
}

# Footprint edge length per structure kind; unknown kinds are 1x1.
# Commercial and industrial zones are 3x3 lots placed through sim.zones.
STRUCTURE_SIZES = {
    ROAD: 1,
    POWER_LINE: 1,
    PORT: 2,
    "coal_plant": 2,
    "nuclear_plant": 3,
    "solar_farm": 2,
    "wind_turbine": 1,
    "oil_derrick": 1,
}


def is_power_source(kind: str) -> bool:
    return kind in POWER_OUTPUT


def is_power_conductor(kind: str) -> bool:
    return kind == POWER_LINE or is_power_source(kind)


@dataclass
class RoadNetwork:
    roads: List[Coord] = field(default_factory=list)
    connected: Set[Coord] = field(default_factory=set)  # structure origins
    kinds: Set[str] = field(default_factory=set)


@dataclass
class PowerGrid:
    sources: List[Coord] = field(default_factory=list)
    lines: List[Coord] = field(default_factory=list)
    total_power: int = 0
    powered: Set[Coord] = field(default_factory=set)


@dataclass
class Connection:
    has_road: bool = False
    has_power: bool = False
    road_network: Optional[RoadNetwork] = None
    power_grid: Optional[PowerGrid] = None


class InfrastructureReachability:
    """Implements the ``has_road_access`` / ``has_power`` queries."""

    def __init__(self, grid: TileGrid):
        self.grid = grid
        self.road_networks: List[RoadNetwork] = []
        self.power_grids: List[PowerGrid] = []
        self.connections: Dict[Coord, Connection] = {}
        self._revision: Optional[int] = None

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------
    def refresh(self) -> bool:
        """Recalculate if the grid changed since the last pass."""
        if self._revision == self.grid.revision:
            return False
        self.recalculate()
        return True

    def recalculate(self) -> None:
        self.road_networks = self._find_road_networks()
        self.power_grids = self._find_power_grids()
        self._index_connections()
        self._revision = self.grid.revision
        logger.debug("infrastructure: %d road networks, %d power grids, %d connected structures",
                     len(self.road_networks), len(self.power_grids), len(self.connections))

    def _kind_at(self, x: int, y: int) -> Optional[str]:
        ref = self.grid.building_at(x, y)
        return None if ref is None else ref.kind

    def _find_road_networks(self) -> List[RoadNetwork]:
        visited: Set[Coord] = set()
        networks = []
        for (x, y), ref in sorted(self.grid.buildings.items(), key=lambda kv: (kv[0][1], kv[0][0])):
            if ref.kind == ROAD and (x, y) not in visited:
                networks.append(self._flood_roads((x, y), visited))
        return networks

    def _flood_roads(self, start: Coord, visited: Set[Coord]) -> RoadNetwork:
        net = RoadNetwork()
        queue = deque([start])
        while queue:
            x, y = queue.popleft()
            if (x, y) in visited:
                continue
            visited.add((x, y))
            net.roads.append((x, y))
            for dx, dy in NEIGHBORS4:
                nx, ny = x + dx, y + dy
                ref = self.grid.building_at(nx, ny)
                if ref is None:
                    continue
                if ref.kind == ROAD:
                    if (nx, ny) not in visited:
                        queue.append((nx, ny))
                else:
                    net.connected.add(ref.origin)
                    net.kinds.add(ref.kind)
        return net

    def _find_power_grids(self) -> List[PowerGrid]:
        visited: Set[Coord] = set()
        grids = []
        for (x, y), ref in sorted(self.grid.buildings.items(), key=lambda kv: (kv[0][1], kv[0][0])):
            if is_power_conductor(ref.kind) and (x, y) not in visited:
                grids.append(self._flood_power((x, y), visited))
        return grids

    def _flood_power(self, start: Coord, visited: Set[Coord]) -> PowerGrid:
        pg = PowerGrid()
        counted: Set[Coord] = set()
        queue = deque([start])
        while queue:
            x, y = queue.popleft()
            if (x, y) in visited:
                continue
            visited.add((x, y))
            ref = self.grid.building_at(x, y)
            if ref.kind == POWER_LINE:
                pg.lines.append((x, y))
            elif ref.origin not in counted:
                # Multi-tile plants count once.
                counted.add(ref.origin)
                pg.sources.append(ref.origin)
                pg.total_power += POWER_OUTPUT.get(ref.kind, 0)
            for dx, dy in NEIGHBORS4:
                nx, ny = x + dx, y + dy
                nref = self.grid.building_at(nx, ny)
                if nref is None:
                    continue
                if is_power_conductor(nref.kind):
                    if (nx, ny) not in visited:
                        queue.append((nx, ny))
                elif nref.kind != ROAD:
                    pg.powered.add(nref.origin)
        return pg

    def _index_connections(self) -> None:
        self.connections = {}
        for net in self.road_networks:
            for origin in net.connected:
                conn = self.connections.setdefault(origin, Connection())
                conn.has_road = True
                conn.road_network = net
        for pg in self.power_grids:
            if pg.total_power <= 0:
                continue
            for origin in pg.powered:
                conn = self.connections.setdefault(origin, Connection())
                conn.has_power = True
                conn.power_grid = pg

    # ------------------------------------------------------------------
    # Queries (by structure origin)
    # ------------------------------------------------------------------
    def connection(self, x: int, y: int) -> Connection:
        self.refresh()
        return self.connections.get((x, y)) or Connection()

    def has_road_access(self, x: int, y: int) -> bool:
        return self.connection(x, y).has_road

    def has_power(self, x: int, y: int) -> bool:
        return self.connection(x, y).has_power

    def is_fully_connected(self, x: int, y: int) -> bool:
        conn = self.connection(x, y)
        return conn.has_road and conn.has_power

    def can_port_operate(self, x: int, y: int) -> bool:
        """A port trades only when its road network reaches powered
        commercial and industrial structures."""
        conn = self.connection(x, y)
        if not conn.has_road or conn.road_network is None:
            return False
        found = set()
        for origin in conn.road_network.connected:
            other = self.connections.get(origin)
            if other is None or not other.has_power:
                continue
            kind = self._kind_at(*origin)
            if kind in (COMMERCIAL, INDUSTRIAL):
                found.add(kind)
        return found == {COMMERCIAL, INDUSTRIAL}

    def status(self) -> Dict[str, int]:
        self.refresh()
        return {
            "road_networks": len(self.road_networks),
            "power_grids": len(self.power_grids),
            "total_power": sum(g.total_power for g in self.power_grids),
            "connected_structures": len(self.connections),
        }
