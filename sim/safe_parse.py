"""Helpers for reading values back from persisted parcel state.

Saved parcels travel through JSON and external tools, so numbers may come
back as strings, ``None`` or garbage.  These helpers coerce what they can
and fall back to a default otherwise, logging a warning so malformed data
can be traced without breaking a load.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple
import math
import logging

logger = logging.getLogger(__name__)


def to_int(value: Any, default: int = 0) -> int:
    """Coerce ``value`` to ``int``; ``bool`` is rejected as a number."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if s and (s.isdigit() or (s[0] in "+-" and s[1:].isdigit())):
            return int(s)
    if value is None:
        return default
    logger.warning("to_int: coercing %r to default %r", value, default)
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite ``float``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        f = float(value)
        if math.isfinite(f):
            return f
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            f = math.nan
        if math.isfinite(f):
            return f
    elif value is None:
        return default
    logger.warning("to_float: coercing %r to default %r", value, default)
    return default


def to_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        s = value.strip().lower()
        if s in {"true", "1", "yes"}:
            return True
        if s in {"false", "0", "no", ""}:
            return False
    if value is not None:
        logger.warning("to_bool: coercing %r to default %r", value, default)
    return default


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def parse_coord_key(key: Any) -> Optional[Tuple[int, int]]:
    """Parse an ``"x,y"`` map key; returns ``None`` for anything else."""
    if not isinstance(key, str) or key.count(",") != 1:
        logger.warning("parse_coord_key: ignoring malformed key %r", key)
        return None
    xs, ys = key.split(",")
    x, y = to_int(xs, default=-1), to_int(ys, default=-1)
    if x < 0 or y < 0:
        logger.warning("parse_coord_key: ignoring malformed key %r", key)
        return None
    return x, y


def coord_key(x: int, y: int) -> str:
    return f"{x},{y}"
