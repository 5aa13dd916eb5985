"""Interfaces of the collaborators the simulation core talks to.

The growth engine and the tariff economy only depend on these small
protocols.  Any of them may be missing (``None``); callers then fall back
to "no access" or a no-op instead of failing the tick.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Reachability(Protocol):
    def has_road_access(self, x: int, y: int) -> bool: ...

    def has_power(self, x: int, y: int) -> bool: ...


@runtime_checkable
class MoodSignal(Protocol):
    @property
    def current_mood(self) -> float: ...


@runtime_checkable
class NarrativeSink(Protocol):
    def announce(self, message: str) -> None: ...


@runtime_checkable
class TreasuryLedger(Protocol):
    def add(self, amount: float) -> None: ...


def announce(sink: Optional[NarrativeSink], message: str) -> None:
    """Fire-and-forget delivery; a failing sink never reaches the caller."""
    if sink is None:
        return
    try:
        sink.announce(message)
    except Exception:
        logger.warning("narrative sink rejected message %r", message, exc_info=True)


class Treasury:
    """Plain running balance implementing :class:`TreasuryLedger`."""

    def __init__(self, balance: float = 0.0):
        self.balance = balance

    def add(self, amount: float) -> None:
        self.balance += amount


class Mood:
    """Fixed or externally updated mood value in ``[0, 100]``."""

    def __init__(self, value: float = 50.0):
        self.value = value

    @property
    def current_mood(self) -> float:
        return max(0.0, min(100.0, float(self.value)))


class NarrativeLog:
    """Keeps the most recent announcements and mirrors them to the log."""

    def __init__(self, maxlen: int = 50):
        self.messages: Deque[str] = deque(maxlen=maxlen)

    def announce(self, message: str) -> None:
        logger.info("royal announcement: %s", message)
        self.messages.append(message)

    def recent(self, n: int = 5) -> List[str]:
        return list(self.messages)[-n:]
