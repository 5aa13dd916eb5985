"""
Systems package: maritime trade and the tariff economy.
"""

from . import config_trade
from .navigation import CargoLine, TradeUnit, TradeUnitNavigator, UnitState
from .tariffs import TariffEconomy, TradeStats

__all__ = [
    "config_trade",
    "CargoLine",
    "TradeUnit",
    "TradeUnitNavigator",
    "UnitState",
    "TariffEconomy",
    "TradeStats",
]
