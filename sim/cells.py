"""Cell contents of 3x3 zoned lots.

Every variant is a frozen dataclass tagged with a ``kind`` string; the tag
is what gets persisted and what renderers switch on.  Residential,
commercial and industrial lots share the registry so a saved cell can be
rebuilt without knowing which zone it came from.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, List, Optional

from .safe_parse import to_bool, to_int

logger = logging.getLogger(__name__)

LOT_SIZE = 3


# -- residential ------------------------------------------------------------
@dataclass(frozen=True)
class House:
    variant: int = 0
    kind: ClassVar[str] = "house"


@dataclass(frozen=True)
class Apartment:
    variant: int = 0
    kind: ClassVar[str] = "apartment"


@dataclass(frozen=True)
class Courtyard:
    kind: ClassVar[str] = "courtyard"


@dataclass(frozen=True)
class Tower:
    tower: int = 1
    section: int = 0
    kind: ClassVar[str] = "tower"


@dataclass(frozen=True)
class Plaza:
    kind: ClassVar[str] = "plaza"


# -- commercial -------------------------------------------------------------
@dataclass(frozen=True)
class Shop:
    variant: int = 0
    kind: ClassVar[str] = "shop"


@dataclass(frozen=True)
class StripMall:
    variant: int = 0
    kind: ClassVar[str] = "strip_mall"


@dataclass(frozen=True)
class ShoppingCenter:
    section: str = "center"
    kind: ClassVar[str] = "shopping_center"


@dataclass(frozen=True)
class Mall:
    section: str = "main"
    kind: ClassVar[str] = "mall"


@dataclass(frozen=True)
class Parking:
    kind: ClassVar[str] = "parking"


# -- industrial -------------------------------------------------------------
@dataclass(frozen=True)
class Workshop:
    variant: int = 0
    kind: ClassVar[str] = "workshop"


@dataclass(frozen=True)
class Factory:
    variant: int = 0
    kind: ClassVar[str] = "factory"


@dataclass(frozen=True)
class HeavyIndustry:
    section: str = "center"
    kind: ClassVar[str] = "heavy_industry"


@dataclass(frozen=True)
class Smokestack:
    tall: bool = False
    kind: ClassVar[str] = "smokestack"


@dataclass(frozen=True)
class Complex:
    section: str = "main"
    kind: ClassVar[str] = "complex"


@dataclass(frozen=True)
class Warehouse:
    kind: ClassVar[str] = "warehouse"


CELL_TYPES = {cls.kind: cls for cls in (
    House, Apartment, Courtyard, Tower, Plaza,
    Shop, StripMall, ShoppingCenter, Mall, Parking,
    Workshop, Factory, HeavyIndustry, Smokestack, Complex, Warehouse,
)}

_COERCE = {"int": lambda v: to_int(v, 0), "bool": to_bool, "str": str}


def cell_to_dict(cell) -> Optional[Dict[str, Any]]:
    if cell is None:
        return None
    return {"type": cell.kind, **asdict(cell)}


def cell_from_dict(data: Any):
    if not isinstance(data, dict):
        return None
    cls = CELL_TYPES.get(data.get("type"))
    if cls is None:
        logger.warning("unknown cell type %r in saved lot", data.get("type"))
        return None
    kwargs = {}
    for f in fields(cls):
        if f.name in data and data[f.name] is not None:
            kwargs[f.name] = _COERCE.get(f.type, str)(data[f.name])
    return cls(**kwargs)


def empty_cells() -> List[List[Any]]:
    return [[None] * LOT_SIZE for _ in range(LOT_SIZE)]


def cell_kinds(cells) -> List[Optional[str]]:
    return [c.kind if c is not None else None for row in cells for c in row]
