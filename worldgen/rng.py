# rng.py - mulberry32 stream used for reproducible map generation
from __future__ import annotations

from typing import List, MutableSequence, Sequence, TypeVar

T = TypeVar("T")

MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & MASK32


class SeededRandom:
    """Deterministic pseudo-random stream (mulberry32).

    Every value is a pure function of ``seed`` and the number of draws made
    so far, so two streams created with the same seed produce identical
    sequences.  Terrain and layout generation must draw from this stream;
    cosmetic randomness elsewhere uses :mod:`random` instead.
    """

    def __init__(self, seed: int = 0):
        self.seed = int(seed) & MASK32
        self.current = self.seed

    def next(self) -> float:
        """Return a float in ``[0, 1)``."""
        self.current = (self.current + 0x6D2B79F5) & MASK32
        t = self.current
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / 4294967296.0

    def next_int(self, lo: int, hi: int) -> int:
        """Integer in ``[lo, hi]`` inclusive."""
        return int(self.next() * (hi - lo + 1)) + lo

    def next_float(self, lo: float, hi: float) -> float:
        return self.next() * (hi - lo) + lo

    def chance(self, probability: float = 0.5) -> bool:
        return self.next() < probability

    def pick(self, items: Sequence[T]) -> T:
        return items[self.next_int(0, len(items) - 1)]

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        for i in range(len(items) - 1, 0, -1):
            j = self.next_int(0, i)
            items[i], items[j] = items[j], items[i]
        return items

    def draws(self, count: int) -> List[float]:
        """Return ``count`` consecutive values from the stream."""
        return [self.next() for _ in range(count)]
