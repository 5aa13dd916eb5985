import numpy as np

from worldgen import Terrain, TileGrid, generate, place_palace
from worldgen.noise import fbm, noise2d
from worldgen.terrain import quantize_heights


def test_generate_is_deterministic():
    g1 = generate(64, 48, seed=123)
    g2 = generate(64, 48, seed=123)
    assert g1 == g2
    assert np.array_equal(g1.terrain, g2.terrain)

    g3 = generate(64, 48, seed=456)
    assert not np.array_equal(g1.terrain, g3.terrain)


def test_generated_island_has_land_and_sea():
    g = generate(96, 72, seed=2024)
    codes = set(np.unique(g.terrain).tolist())
    assert codes <= {int(t) for t in Terrain}
    assert int(Terrain.DEEP_WATER) in codes or int(Terrain.WATER) in codes
    assert codes & {int(Terrain.GRASS), int(Terrain.FOREST), int(Terrain.SAND)}
    # top edge midway between the source landmasses is open sea
    assert g.is_water(g.width // 2, 0)


def test_palace_surroundings_are_grass():
    worlds = [generate(64, 48, seed=s) for s in range(1, 6)]
    placed = [g for g in worlds if g.landmark is not None]
    assert placed
    g = placed[0]
    x, y = g.landmark
    assert g.terrain_at(x, y) is Terrain.PALACE
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if (dx or dy) and g.in_bounds(x + dx, y + dy):
                assert g.terrain_at(x + dx, y + dy) is Terrain.GRASS


def test_source_landmasses_recorded():
    g = generate(96, 72, seed=5)
    assert [s.name for s in g.source_landmasses] == ["left", "right"]
    for s in g.source_landmasses:
        assert 72 * 0.15 <= s.center_y <= 72 * 0.85
        for x, y in s.spawn_tiles:
            assert g.terrain_at(x, y) in (Terrain.SAND, Terrain.GRASS)
            assert g.is_coastal(x, y)


def test_place_palace_spirals_to_nearest_grass():
    terrain = np.full((21, 21), Terrain.WATER, dtype=np.uint8)
    terrain[10, 13] = Terrain.GRASS
    grid = TileGrid(21, 21, terrain)
    assert place_palace(grid) == (13, 10)
    assert grid.terrain_at(13, 10) is Terrain.PALACE
    assert grid.terrain_at(12, 9) is Terrain.GRASS


def test_place_palace_skipped_without_grass():
    grid = TileGrid(10, 10)
    assert place_palace(grid) is None
    assert grid.landmark is None


def test_noise_range_and_determinism():
    xs = np.linspace(0, 20, 50)
    a = noise2d(xs, xs * 0.5, 99)
    b = noise2d(xs, xs * 0.5, 99)
    assert np.array_equal(a, b)
    assert a.min() >= 0.0 and a.max() <= 1.0
    h = fbm(32, 16, 3)
    assert h.shape == (16, 32)
    assert h.min() >= 0.0 and h.max() <= 1.0 + 1e-9


def test_quantize_thresholds():
    h = np.array([[0.1, 0.2, 0.3, 0.5, 0.8, 0.9]])
    q = quantize_heights(h)
    assert q.tolist() == [[Terrain.DEEP_WATER, Terrain.WATER, Terrain.SAND,
                           Terrain.GRASS, Terrain.ROCK, Terrain.MOUNTAIN]]
