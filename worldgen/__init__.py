# worldgen/__init__.py
# Package init for world generation modules

from .rng import SeededRandom
from .noise import noise2d, fbm, lattice_hash
from .terrain import (
    Terrain, WATER_TERRAIN, UNBUILDABLE_TERRAIN, HEIGHT_THRESHOLDS,
    quantize_heights, terrain_name, water_mask,
)
from .tilegrid import TileGrid, Tile, BuildingRef, SourceLandmass, Coord
from .worldgen import (
    generate,
    generate_height,
    apply_island_mask,
    stamp_source_landmasses,
    coastal_mask,
    place_palace,
)

__all__ = [
    "SeededRandom",
    "noise2d", "fbm", "lattice_hash",
    "Terrain", "WATER_TERRAIN", "UNBUILDABLE_TERRAIN", "HEIGHT_THRESHOLDS",
    "quantize_heights", "terrain_name", "water_mask",
    "TileGrid", "Tile", "BuildingRef", "SourceLandmass", "Coord",
    "generate", "generate_height", "apply_island_mask", "stamp_source_landmasses",
    "coastal_mask", "place_palace",
]
