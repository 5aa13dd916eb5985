"""Simulation clock: ticks roll up into months and years."""
from __future__ import annotations
from dataclasses import dataclass

# Simulation ticks in one in-game month
TICKS_PER_MONTH = 1500

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass
class Calendar:
    year: int = 1
    month: int = 1

    def advance_month(self) -> None:
        self.month += 1
        if self.month > 12:
            self.month = 1
            self.year += 1

    def label(self) -> str:
        return f"Year {self.year}, {MONTH_NAMES[self.month - 1]}"
