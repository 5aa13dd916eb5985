from __future__ import annotations

from enum import IntEnum

import numpy as np


class Terrain(IntEnum):
    DEEP_WATER = 0
    WATER = 1
    SAND = 2
    BEACH = 3
    GRASS = 4
    DIRT = 5
    FOREST = 6
    ROCK = 7
    MOUNTAIN = 8
    PALACE = 9      # fixed landmark
    WALL = 10


WATER_TERRAIN = frozenset({Terrain.DEEP_WATER, Terrain.WATER})
# Zoning is refused on these; everything else is buildable land.
UNBUILDABLE_TERRAIN = frozenset({
    Terrain.DEEP_WATER, Terrain.WATER, Terrain.MOUNTAIN, Terrain.ROCK, Terrain.PALACE,
})

# Height quantisation, checked in ascending order. Anything above the last
# bound is mountain.
HEIGHT_THRESHOLDS = (
    (0.15, Terrain.DEEP_WATER),
    (0.25, Terrain.WATER),
    (0.32, Terrain.SAND),
    (0.70, Terrain.GRASS),
    (0.85, Terrain.ROCK),
)

TERRAIN_COLORS = {
    Terrain.DEEP_WATER: (26, 82, 118),
    Terrain.WATER: (41, 128, 185),
    Terrain.SAND: (244, 208, 63),
    Terrain.BEACH: (249, 231, 159),
    Terrain.GRASS: (39, 174, 96),
    Terrain.DIRT: (139, 115, 85),
    Terrain.FOREST: (30, 132, 73),
    Terrain.ROCK: (127, 140, 141),
    Terrain.MOUNTAIN: (93, 109, 126),
    Terrain.PALACE: (255, 215, 0),
    Terrain.WALL: (139, 69, 19),
}


def terrain_name(code) -> str:
    try:
        return Terrain(int(code)).name.lower()
    except ValueError:
        return "unknown"


def quantize_heights(height: np.ndarray) -> np.ndarray:
    """Map a height field to terrain codes using :data:`HEIGHT_THRESHOLDS`."""
    out = np.full(height.shape, Terrain.MOUNTAIN, dtype=np.uint8)
    # Walk from the highest bound down so lower categories overwrite.
    for bound, code in reversed(HEIGHT_THRESHOLDS):
        out[height < bound] = code
    return out


def water_mask(terrain: np.ndarray) -> np.ndarray:
    return (terrain == Terrain.DEEP_WATER) | (terrain == Terrain.WATER)
