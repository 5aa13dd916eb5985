import numpy as np

from sim.infrastructure import InfrastructureReachability
from worldgen import Terrain, TileGrid


def build_town():
    grid = TileGrid(16, 12, np.full((12, 16), Terrain.GRASS, dtype=np.uint8))
    for y in range(5, 9):
        grid.place_structure("road", 5, y)
    grid.place_structure("commercial", 6, 5)
    grid.place_structure("industrial", 6, 6)
    grid.place_structure("port", 3, 7, size=2)
    grid.place_structure("power_line", 7, 5)
    grid.place_structure("power_line", 7, 6)
    grid.place_structure("coal_plant", 8, 5, size=2)
    return grid


def test_road_network_connects_adjacent_structures():
    grid = build_town()
    infra = InfrastructureReachability(grid)
    assert infra.has_road_access(6, 5)
    assert infra.has_road_access(6, 6)
    assert infra.has_road_access(3, 7)
    assert not infra.has_road_access(8, 5)
    assert len(infra.road_networks) == 1


def test_power_flows_through_lines():
    grid = build_town()
    infra = InfrastructureReachability(grid)
    assert infra.has_power(6, 5)
    assert infra.has_power(6, 6)
    assert not infra.has_power(3, 7)
    assert infra.status()["total_power"] == 100
    assert infra.is_fully_connected(6, 5)


def test_port_needs_powered_supply_chain():
    grid = build_town()
    infra = InfrastructureReachability(grid)
    assert infra.can_port_operate(3, 7)

    grid.remove_structure(9, 6)  # the plant
    assert not infra.has_power(6, 5)
    assert not infra.can_port_operate(3, 7)


def test_cache_follows_grid_revision():
    grid = build_town()
    infra = InfrastructureReachability(grid)
    assert infra.has_road_access(6, 5)
    grid.remove_structure(5, 5)
    grid.remove_structure(5, 6)
    assert not infra.has_road_access(6, 5)
    assert not infra.refresh()


def test_lines_without_source_give_no_power():
    grid = TileGrid(8, 8, np.full((8, 8), Terrain.GRASS, dtype=np.uint8))
    grid.place_structure("commercial", 2, 2)
    grid.place_structure("power_line", 3, 2)
    infra = InfrastructureReachability(grid)
    assert not infra.has_power(2, 2)
    assert infra.status()["power_grids"] == 1
