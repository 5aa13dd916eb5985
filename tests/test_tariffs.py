import random

import numpy as np
import pytest

from sim.hooks import NarrativeLog, Treasury
from sim.infrastructure import InfrastructureReachability
from systems.navigation import CargoLine, TradeUnit, UnitState
from systems.tariffs import TariffEconomy
from worldgen import SourceLandmass, Terrain, TileGrid


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def harbour(ports=1):
    """Sea on the left, a sandy shore, grass inland; ports on the shore."""
    terrain = np.full((20, 30), Terrain.GRASS, dtype=np.uint8)
    terrain[:, :10] = Terrain.WATER
    terrain[:, 10:12] = Terrain.SAND
    grid = TileGrid(30, 20, terrain)
    for i in range(ports):
        assert grid.place_structure("port", 10, 2 + 4 * i, size=2)
    return grid


def unit_with(*lines):
    return TradeUnit(x=9.5, y=2.5, target=(10, 2), berth=(9.5, 2.5), cargo=list(lines))


def flat_rates(econ, rate):
    for cat in list(econ.rates):
        econ.set_rate(cat, rate)


def test_docking_revenue_example():
    treasury = Treasury(0)
    econ = TariffEconomy(harbour(), treasury=treasury)
    result = econ.process_docking(unit_with(CargoLine("goods", 500, 20)))
    assert result.value == pytest.approx(1000.0)
    assert result.tariff == pytest.approx(100.0)
    assert treasury.balance == 100
    assert econ.stats.units_processed == 1
    assert econ.stats.total_trade_value == pytest.approx(1000.0)
    assert econ.stats.monthly_revenue == pytest.approx(100.0)
    assert econ.relations == 100


def test_treasury_gets_floored_total():
    treasury = Treasury(0)
    econ = TariffEconomy(harbour(), treasury=treasury)
    econ.set_rate("materials", 7)
    econ.process_docking(unit_with(CargoLine("materials", 300, 13), CargoLine("food", 200, 11)))
    # 390 * 7% + 220 * 0% = 27.3
    assert treasury.balance == 27
    assert econ.stats.total_tariff_revenue == pytest.approx(27.3)


def test_unknown_category_uses_default_rate():
    econ = TariffEconomy(harbour())
    result = econ.process_docking(unit_with(CargoLine("spices", 1000, 10)))
    assert result.tariff == pytest.approx(100.0)


def test_relations_move_with_effective_rate():
    econ = TariffEconomy(harbour())
    econ.process_docking(unit_with(CargoLine("luxury", 1000, 10)))
    assert econ.relations == pytest.approx(99.5)

    econ.relations = 50
    econ.process_docking(unit_with(CargoLine("food", 200, 10)))
    assert econ.relations == pytest.approx(50.2)

    econ.relations = 100
    econ.process_docking(unit_with(CargoLine("food", 200, 10)))
    assert econ.relations == 100

    econ.relations = 0.2
    econ.set_rate("cars", 100)
    econ.process_docking(unit_with(CargoLine("cars", 900, 10)))
    assert econ.relations == 0


def test_spawn_interval_example_and_floor():
    econ = TariffEconomy(harbour(ports=2))
    flat_rates(econ, 10)
    assert econ.average_tariff() == pytest.approx(10.0)
    assert econ.spawn_interval() == pytest.approx(350.0)

    econ = TariffEconomy(harbour(ports=4))
    flat_rates(econ, 10)
    assert econ.spawn_interval() == 200


def test_spawn_interval_grows_with_tariffs_and_poor_relations():
    econ = TariffEconomy(harbour())
    base = econ.spawn_interval()
    econ.set_global_modifier(30)
    higher = econ.spawn_interval()
    econ.relations = 20
    assert base < higher < econ.spawn_interval()


def test_willingness_floor():
    econ = TariffEconomy(harbour())
    flat_rates(econ, 0)
    assert econ.willingness() == pytest.approx(1.0)
    flat_rates(econ, 100)
    econ.set_global_modifier(50)
    assert econ.willingness() == pytest.approx(0.1)


def test_setters_clamp_and_ignore_unknown():
    log = NarrativeLog()
    econ = TariffEconomy(harbour(), narrative=log)
    econ.set_rate("goods", 150)
    assert econ.rates["goods"] == 100
    econ.set_rate("goods", -5)
    assert econ.rates["goods"] == 0
    assert not econ.set_rate("unobtainium", 40)
    assert "unobtainium" not in econ.rates
    econ.set_global_modifier(99)
    assert econ.global_modifier == 50
    econ.set_global_modifier(-99)
    assert econ.global_modifier == -20
    assert log.messages


def test_policy_announcements_quote_the_stored_values():
    log = NarrativeLog()
    econ = TariffEconomy(harbour(), narrative=log)
    econ.set_rate("goods", 500)
    econ.set_global_modifier(90)
    assert list(log.messages) == [
        "Just set goods tariffs to 100%. They'll pay!",
        "MASSIVE tariffs on EVERYONE! 50% extra on ALL imports!",
    ]


def test_negative_effective_rate_is_a_subsidy():
    treasury = Treasury(0)
    econ = TariffEconomy(harbour(), treasury=treasury)
    econ.set_global_modifier(-20)
    econ.process_docking(unit_with(CargoLine("food", 200, 10)))
    assert treasury.balance == -40


def test_recent_events_window_and_monthly_reset():
    econ = TariffEconomy(harbour())
    for _ in range(15):
        econ.process_docking(unit_with(CargoLine("goods", 500, 10)))
    assert len(econ.recent_events) == 10
    econ.reset_monthly_stats()
    assert econ.stats.monthly_revenue == 0
    assert econ.stats.monthly_trade == 0
    assert econ.stats.total_tariff_revenue > 0


def test_spawn_without_reachability_uses_any_port():
    econ = TariffEconomy(harbour(), rng=FixedRandom(0.5))
    flat_rates(econ, 0)
    unit = econ.try_spawn()
    assert unit is not None
    assert unit.target == (10, 2)
    assert econ.grid.is_water(int(unit.berth[0]), int(unit.berth[1]))
    # (10, 2) is closest to the top edge
    assert unit.spawn_edge == "top"
    assert unit.y == pytest.approx(-2.0)
    assert unit.berth == (9.5, 2.5)
    assert 1 <= len(unit.cargo) <= 3


def test_spawn_near_source_landmass():
    grid = harbour()
    grid.set_terrain(3, 10, Terrain.SAND)
    grid.source_landmasses = [SourceLandmass("left", 3.0, 10.0, 2.0, 2.0, spawn_tiles=[(3, 10)])]
    econ = TariffEconomy(grid, rng=FixedRandom(0.5))
    flat_rates(econ, 0)
    unit = econ.try_spawn()
    assert unit is not None
    assert grid.is_water(int(unit.x), int(unit.y))
    assert abs(unit.x - 3.5) + abs(unit.y - 10.5) == pytest.approx(1.0)
    assert unit.spawn_edge == "left"


def test_turned_away_counts():
    econ = TariffEconomy(harbour(), rng=FixedRandom(0.9))
    flat_rates(econ, 100)
    econ.set_global_modifier(50)
    assert econ.try_spawn() is None
    assert econ.stats.units_turned_away == 1
    assert econ.units == []


def test_port_without_supply_chain_spawns_nothing():
    grid = harbour()
    econ = TariffEconomy(grid, reachability=InfrastructureReachability(grid), rng=FixedRandom(0.0))
    assert econ.operational_ports() == []
    assert econ.try_spawn() is None


def test_tick_spawns_and_docks_a_unit():
    treasury = Treasury(0)
    econ = TariffEconomy(harbour(), treasury=treasury, rng=random.Random(2))
    flat_rates(econ, 10)
    for _ in range(4000):
        econ.tick()
        if econ.stats.units_processed:
            break
    assert econ.stats.units_processed == 1
    assert treasury.balance > 0
    for unit in econ.units:
        assert econ.grid.is_navigable(unit.x, unit.y)


def test_unit_turns_back_when_port_is_demolished():
    grid = harbour()
    econ = TariffEconomy(grid, rng=FixedRandom(0.5))
    flat_rates(econ, 0)
    unit = econ.try_spawn()
    grid.remove_structure(10, 2)
    econ.tick()
    assert unit.state.value == "leaving"


def test_failing_treasury_does_not_stop_the_tick():
    class BrokenTreasury:
        def add(self, amount):
            raise RuntimeError("ledger offline")

    econ = TariffEconomy(harbour(), treasury=BrokenTreasury())
    arriving = unit_with(CargoLine("goods", 500, 20))
    finished = TradeUnit(x=-5.0, y=2.5, target=(10, 2), berth=(9.5, 2.5), remove=True)
    econ.navigator.add_unit(arriving)
    econ.navigator.add_unit(finished)
    econ.tick()
    assert arriving.state is UnitState.DOCKED
    assert econ.stats.units_processed == 1
    assert econ.units == [arriving]


def test_failing_reachability_closes_ports():
    class BrokenReach:
        def can_port_operate(self, x, y):
            raise RuntimeError("grid offline")

        def has_road_access(self, x, y):
            raise RuntimeError("grid offline")

    econ = TariffEconomy(harbour(), reachability=BrokenReach())
    assert econ.operational_ports() == []
    assert econ.try_spawn() is None
    econ.port_requires_supply_chain = False
    assert not econ.port_is_operational(10, 2)
