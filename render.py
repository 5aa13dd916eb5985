from __future__ import annotations

import os
from typing import Tuple

import numpy as np
from PIL import Image, ImageDraw

from sim.parcels import Phase
from worldgen.terrain import TERRAIN_COLORS, Terrain

# Structure colours by kind; anything unlisted falls back to grey.
STRUCTURE_COLORS = {
    "road": (70, 70, 70),
    "power_line": (200, 190, 60),
    "port": (0, 188, 212),
    "commercial": (52, 152, 219),
    "industrial": (230, 126, 34),
    "coal_plant": (60, 60, 60),
    "nuclear_plant": (155, 89, 182),
    "solar_farm": (41, 98, 255),
    "wind_turbine": (236, 240, 241),
    "oil_derrick": (20, 20, 20),
}
DEFAULT_STRUCTURE_COLOR = (160, 160, 160)

# Residential parcels darken from pale green to brick red as they densify
PHASE_COLORS = {
    Phase.EMPTY: (196, 224, 170),
    Phase.HOUSES_1: (205, 190, 150),
    Phase.HOUSES_2: (210, 170, 130),
    Phase.HOUSES_FULL: (205, 150, 110),
    Phase.APARTMENTS_1: (190, 120, 95),
    Phase.APARTMENTS_2: (175, 100, 85),
    Phase.APARTMENTS_RING: (160, 80, 70),
    Phase.HIGHRISE: (130, 60, 60),
}

UNIT_COLOR = (255, 255, 255)


def terrain_image(terrain: np.ndarray) -> np.ndarray:
    """``(H, W, 3)`` uint8 image of a terrain code matrix."""
    lut = np.zeros((256, 3), dtype=np.uint8)
    for code, rgb in TERRAIN_COLORS.items():
        lut[int(code)] = rgb
    return lut[terrain]


def _structure_color(kind: str, parcels, x: int, y: int) -> Tuple[int, int, int]:
    parcel = parcels.parcel_at(x, y) if parcels is not None else None
    if parcel is not None:
        return PHASE_COLORS[parcel.phase]
    return STRUCTURE_COLORS.get(kind, DEFAULT_STRUCTURE_COLOR)


def render_topdown(engine, path_png: str, scale: int = 4) -> Image.Image:
    """Flat-colour preview of terrain, structures, parcels and trade units."""
    grid = engine.grid
    rgb = terrain_image(grid.terrain)
    for (x, y), ref in grid.buildings.items():
        rgb[y, x] = _structure_color(ref.kind, engine.parcels, x, y)

    img = Image.fromarray(rgb)
    if scale > 1:
        img = img.resize((grid.width * scale, grid.height * scale), Image.NEAREST)

    draw = ImageDraw.Draw(img)
    r = max(1, scale // 2)
    for unit in engine.economy.units:
        cx, cy = unit.x * scale, unit.y * scale
        if -r <= cx <= img.width + r and -r <= cy <= img.height + r:
            draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=UNIT_COLOR, outline=(0, 0, 0))
    if grid.landmark is not None:
        lx, ly = grid.landmark
        draw.rectangle([lx * scale, ly * scale, (lx + 1) * scale - 1, (ly + 1) * scale - 1],
                       outline=TERRAIN_COLORS[Terrain.WALL])

    os.makedirs(os.path.dirname(path_png) or ".", exist_ok=True)
    img.save(path_png)
    return img


__all__ = ["render_topdown", "terrain_image"]
