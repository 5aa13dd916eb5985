# worldgen.py - one-shot pipeline to build the island height field & terrain
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .noise import fbm, noise2d
from .rng import SeededRandom
from .terrain import Terrain, quantize_heights, water_mask
from .tilegrid import Coord, SourceLandmass, TileGrid

logger = logging.getLogger(__name__)

# Main island mask
MAIN_ISLAND_RADIUS = 0.32     # fraction of min(width, height)
MASK_CORE = 0.7               # full weight inside this share of the radius
COAST_JITTER_FREQ = 0.1
COAST_JITTER_AMP = 0.15
COAST_JITTER_BIAS = 0.1

# Source landmasses
SOURCE_EDGE_INSET = 8
SOURCE_RADIUS_X = 8.0
SOURCE_RADIUS_Y = 11.0
SOURCE_Y_RANGE = (0.15, 0.85)
SPAWN_SEARCH_SCALE = 1.5

# Post-processing
BEACH_CHANCE = 0.7
FOREST_NOISE_FREQ = 0.08
FOREST_NOISE_MIN = 0.55
FOREST_CHANCE = 0.6
SMOOTH_PASSES = 3
PALACE_SEARCH_RADIUS = 20


def _smoothstep(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def _coords(width: int, height: int):
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    return xs, ys


def generate_height(width: int, height: int, seed: int) -> np.ndarray:
    """Return the raw 4-octave value-noise height field in ``[0, 1]``."""
    return fbm(width, height, seed, octaves=4, persistence=0.5, frequency=0.02)


def apply_island_mask(height_map: np.ndarray, seed: int) -> None:
    """Fade the height field towards the map edges around a central island.

    Heights keep full weight inside 70% of the threshold radius, taper with
    a smoothstep to zero at the radius, and a low-frequency noise term
    roughens the boundary so the coastline is not a perfect circle.
    """
    h, w = height_map.shape
    xs, ys = _coords(w, h)
    radius = min(w, h) * MAIN_ISLAND_RADIUS
    dist = np.sqrt(((xs - w / 2.0) / radius) ** 2 + ((ys - h / 2.0) / radius) ** 2)

    taper = _smoothstep(np.clip(1.0 - (dist - MASK_CORE) / (1.0 - MASK_CORE), 0.0, 1.0))
    falloff = np.where(dist < MASK_CORE, 1.0, np.where(dist < 1.0, taper, 0.0))

    jitter = noise2d(xs * COAST_JITTER_FREQ, ys * COAST_JITTER_FREQ, seed) * COAST_JITTER_AMP
    falloff = np.clip(falloff + jitter - COAST_JITTER_BIAS, 0.0, 1.0)
    height_map *= falloff


def stamp_landmass(height_map: np.ndarray, island: SourceLandmass, seed: int) -> None:
    """Raise an elliptical island into ``height_map`` (max-combined)."""
    h, w = height_map.shape
    xs, ys = _coords(w, h)
    dx = (xs - island.center_x) / island.radius_x
    dy = (ys - island.center_y) / island.radius_y

    # Angular noise varies the radius by up to 30% for a ragged outline.
    angle = np.arctan2(dy, dx)
    angular = noise2d(np.cos(angle) * 3 + island.center_x * 0.1,
                      np.sin(angle) * 3 + island.center_y * 0.1, seed) * 0.3
    dist = np.sqrt(dx * dx + dy * dy) * (1.0 - angular)

    profile = np.where(
        dist < 0.5, 0.5,
        np.where(dist < 0.9, 0.5 * (1.0 - (dist - 0.5) / 0.4),
                 0.32 * (1.0 - (dist - 0.9) / 0.4)))
    profile = profile + noise2d(xs * 0.2, ys * 0.2, seed) * 0.15
    profile = profile + noise2d(xs * 0.5, ys * 0.5, seed) * 0.08
    profile = np.maximum(profile, 0.0)

    inside = dist < 1.3
    height_map[inside] = np.maximum(height_map[inside], profile[inside])


def stamp_source_landmasses(height_map: np.ndarray, rng: SeededRandom,
                            seed: int) -> List[SourceLandmass]:
    h, w = height_map.shape
    lo, hi = h * SOURCE_Y_RANGE[0], h * SOURCE_Y_RANGE[1]
    left_y = lo + rng.next() * (hi - lo)
    right_y = lo + rng.next() * (hi - lo)
    islands = [
        SourceLandmass("left", float(SOURCE_EDGE_INSET), left_y, SOURCE_RADIUS_X, SOURCE_RADIUS_Y),
        SourceLandmass("right", float(w - SOURCE_EDGE_INSET), right_y, SOURCE_RADIUS_X, SOURCE_RADIUS_Y),
    ]
    for island in islands:
        stamp_landmass(height_map, island, seed)
    return islands


def coastal_mask(terrain: np.ndarray) -> np.ndarray:
    """Land tiles with a 4-neighbour of water (edges do not count)."""
    water = water_mask(terrain)
    padded = np.pad(water, 1, constant_values=False)
    near = (padded[:-2, 1:-1] | padded[2:, 1:-1] | padded[1:-1, :-2] | padded[1:-1, 2:])
    return near & ~water


def add_beaches(grid: TileGrid, rng: SeededRandom) -> int:
    """Turn a random share of coastal grass into sand."""
    t = grid.terrain
    candidates = np.argwhere((t == Terrain.GRASS) & coastal_mask(t))
    changed = 0
    for y, x in candidates:
        if rng.chance(BEACH_CHANCE):
            t[y, x] = Terrain.SAND
            changed += 1
    return changed


def smooth_coastlines(grid: TileGrid, passes: int = SMOOTH_PASSES) -> None:
    """Remove one-tile spits and fill pinholes along the shore.

    Each pass looks at the 8 neighbours of every interior tile and applies
    all changes at once: land mostly surrounded by water sinks, water mostly
    surrounded by land silts up to sand.
    """
    t = grid.terrain
    h, w = t.shape
    if h < 3 or w < 3:
        return
    for _ in range(passes):
        water = water_mask(t).astype(np.int8)
        count = np.zeros((h - 2, w - 2), dtype=np.int8)
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                count += water[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
        inner_water = water[1:-1, 1:-1].astype(bool)
        sink = ~inner_water & (count >= 6)
        silt = inner_water & (8 - count >= 6)
        inner = t[1:-1, 1:-1]
        inner[sink] = Terrain.WATER
        inner[silt] = Terrain.SAND


def add_forests(grid: TileGrid, rng: SeededRandom, seed: int) -> int:
    t = grid.terrain
    xs, ys = _coords(grid.width, grid.height)
    density = noise2d(xs * FOREST_NOISE_FREQ, ys * FOREST_NOISE_FREQ, seed)
    candidates = np.argwhere((t == Terrain.GRASS) & (density > FOREST_NOISE_MIN))
    planted = 0
    for y, x in candidates:
        if rng.chance(FOREST_CHANCE):
            t[y, x] = Terrain.FOREST
            planted += 1
    return planted


def place_palace(grid: TileGrid, search_radius: int = PALACE_SEARCH_RADIUS) -> Optional[Coord]:
    """Put the palace on the first grass tile found spiralling out from the centre."""
    cx, cy = grid.width // 2, grid.height // 2
    for r in range(search_radius):
        for dy in range(-r, r + 1):
            for dx in range(-r, r + 1):
                x, y = cx + dx, cy + dy
                if grid.terrain_at(x, y) is not Terrain.GRASS:
                    continue
                for py in (-1, 0, 1):
                    for px in (-1, 0, 1):
                        grid.set_terrain(x + px, y + py, Terrain.GRASS)
                grid.set_terrain(x, y, Terrain.PALACE)
                grid.landmark = (x, y)
                return grid.landmark
    logger.info("no grass within %d tiles of the centre; palace skipped", search_radius)
    return None


def mark_source_landmasses(grid: TileGrid, islands: List[SourceLandmass]) -> None:
    """Record coastal sand/grass tiles around each source landmass."""
    t = grid.terrain
    xs, ys = _coords(grid.width, grid.height)
    shore = coastal_mask(t) & ((t == Terrain.SAND) | (t == Terrain.GRASS))
    for island in islands:
        dx = (xs - island.center_x) / (island.radius_x * SPAWN_SEARCH_SCALE)
        dy = (ys - island.center_y) / (island.radius_y * SPAWN_SEARCH_SCALE)
        near = np.sqrt(dx * dx + dy * dy) < SPAWN_SEARCH_SCALE
        island.spawn_tiles = [(int(x), int(y)) for y, x in np.argwhere(shore & near)]
        logger.debug("source landmass %s has %d spawn tiles", island.name, len(island.spawn_tiles))
    grid.source_landmasses = islands


def generate(width: int, height: int, seed: int,
             smooth_passes: int = SMOOTH_PASSES) -> TileGrid:
    """Build a complete island map.

    The result depends only on the arguments: all random choices come from
    a :class:`SeededRandom` created from ``seed`` and consumed in a fixed
    order, and the noise lattice is hashed with the same seed.
    """
    rng = SeededRandom(seed)
    noise_seed = rng.seed

    height_map = generate_height(width, height, noise_seed)
    apply_island_mask(height_map, noise_seed)
    islands = stamp_source_landmasses(height_map, rng, noise_seed)

    grid = TileGrid(width, height, quantize_heights(height_map))
    del height_map

    add_beaches(grid, rng)
    smooth_coastlines(grid, smooth_passes)
    add_forests(grid, rng, noise_seed)
    place_palace(grid)
    mark_source_landmasses(grid, islands)
    return grid
