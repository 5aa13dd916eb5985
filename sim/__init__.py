"""
Simulation core: zoned lot growth, infrastructure reachability and the
collaborator interfaces they share.
"""

from .hooks import Mood, MoodSignal, NarrativeLog, NarrativeSink, Reachability, Treasury, TreasuryLedger
from .infrastructure import InfrastructureReachability
from .parcels import PHASE_POPULATION, Parcel, ParcelGrowthEngine, Phase
from .zones import (
    COMMERCIAL_ZONE,
    INDUSTRIAL_ZONE,
    CommercialPhase,
    IndustrialPhase,
    ZoneGrowthEngine,
    ZoneLot,
    ZoneProfile,
)

__all__ = [
    "Mood",
    "MoodSignal",
    "NarrativeLog",
    "NarrativeSink",
    "Reachability",
    "Treasury",
    "TreasuryLedger",
    "InfrastructureReachability",
    "PHASE_POPULATION",
    "Parcel",
    "ParcelGrowthEngine",
    "Phase",
    "COMMERCIAL_ZONE",
    "INDUSTRIAL_ZONE",
    "CommercialPhase",
    "IndustrialPhase",
    "ZoneGrowthEngine",
    "ZoneLot",
    "ZoneProfile",
]
