# noise.py - hashed-lattice value noise and FBM for terrain
from __future__ import annotations

import numpy as np

MASK32 = 0xFFFFFFFF
_PRIME_X = 374761393
_PRIME_Y = 668265263
_PRIME_MIX = 1274126177


def lattice_hash(xi: np.ndarray, yi: np.ndarray, seed: int) -> np.ndarray:
    """Hash integer lattice coordinates to floats in ``[0, 1]``.

    Works on int64 arrays; every intermediate is reduced to 32 bits so the
    result is identical across platforms.
    """
    xi = np.asarray(xi, dtype=np.int64)
    yi = np.asarray(yi, dtype=np.int64)
    h = (np.int64(int(seed) & MASK32) + xi * _PRIME_X + yi * _PRIME_Y) & MASK32
    h = ((h ^ (h >> 13)) * _PRIME_MIX) & MASK32
    return ((h ^ (h >> 16)) & 0xFFFFFF).astype(np.float64) / float(0xFFFFFF)


def noise2d(x, y, seed: int) -> np.ndarray:
    """Smoothstep-eased bilinear value noise sampled at ``(x, y)``.

    ``x`` and ``y`` may be scalars or broadcastable arrays of float
    coordinates in lattice space.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    x0 = np.floor(x)
    y0 = np.floor(y)
    xf = x - x0
    yf = y - y0
    u = xf * xf * (3.0 - 2.0 * xf)
    v = yf * yf * (3.0 - 2.0 * yf)

    xi = x0.astype(np.int64)
    yi = y0.astype(np.int64)
    aa = lattice_hash(xi, yi, seed)
    ab = lattice_hash(xi, yi + 1, seed)
    ba = lattice_hash(xi + 1, yi, seed)
    bb = lattice_hash(xi + 1, yi + 1, seed)

    x1 = aa + u * (ba - aa)
    x2 = ab + u * (bb - ab)
    return x1 + v * (x2 - x1)


def fbm(width: int, height: int, seed: int, octaves: int = 4,
        persistence: float = 0.5, frequency: float = 0.02,
        lacunarity: float = 2.0) -> np.ndarray:
    """Fractal sum of :func:`noise2d` over a ``(height, width)`` grid.

    The result is normalised by the total amplitude so it stays in
    ``[0, 1]``.
    """
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    out = np.zeros((height, width), dtype=np.float64)
    amp = 1.0
    freq = frequency
    total = 0.0
    for _ in range(octaves):
        out += noise2d(xs * freq, ys * freq, seed) * amp
        total += amp
        amp *= persistence
        freq *= lacunarity
    if total > 0:
        out /= total
    return out
