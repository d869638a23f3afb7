from __future__ import annotations

from typing import Protocol

import numpy as np

from .core import F2, G2, grad3_from_hash, make_permutation


class Noise2D(Protocol):
    def noise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:  # pragma: no cover
        ...


class Simplex2D:
    """Seeded 2D simplex gradient noise, roughly in [-1, 1]."""

    def __init__(self, *, seed: int = 0):
        self.reseed(seed)

    def reseed(self, seed: int) -> None:
        self.seed = int(seed)
        self.perm = make_permutation(self.seed)

    def noise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        s = (x + y) * F2
        i = np.floor(x + s)
        j = np.floor(y + s)

        t = (i + j) * G2
        x0 = x - (i - t)
        y0 = y - (j - t)

        # Lower or upper triangle of the skewed cell.
        i1 = (x0 > y0).astype(np.int64)
        j1 = 1 - i1

        x1 = x0 - i1 + G2
        y1 = y0 - j1 + G2
        x2 = x0 - 1.0 + 2.0 * G2
        y2 = y0 - 1.0 + 2.0 * G2

        ii = i.astype(np.int64) & 255
        jj = j.astype(np.int64) & 255

        p = self.perm
        h0 = p[ii + p[jj]]
        h1 = p[ii + i1 + p[jj + j1]]
        h2 = p[ii + 1 + p[jj + 1]]

        return 70.0 * (
            _corner(h0, x0, y0) + _corner(h1, x1, y1) + _corner(h2, x2, y2)
        )

    def noise2d(self, x: float, y: float) -> float:
        return float(self.noise(np.array(float(x)), np.array(float(y))))


def _corner(h: np.ndarray, dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    gx, gy = grad3_from_hash(h)
    t = 0.5 - dx * dx - dy * dy
    t = np.where(t >= 0.0, t, 0.0)
    t *= t
    return t * t * (gx * dx + gy * dy)


def fbm2(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int = 4,
    lacunarity: float = 2.0,
    persistence: float = 0.5,
) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    octaves = int(octaves)
    lacunarity = float(lacunarity)
    persistence = float(persistence)

    amp = 1.0
    freq = 1.0
    total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    amp_sum = 0.0

    for _ in range(max(octaves, 1)):
        total += amp * noise.noise(x * freq, y * freq)
        amp_sum += amp
        amp *= persistence
        freq *= lacunarity

    if amp_sum == 0.0:
        return total
    return total / amp_sum


def ridged2(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int = 4,
    lacunarity: float = 2.0,
    persistence: float = 0.5,
    power: float = 2.0,
) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    octaves = int(octaves)
    lacunarity = float(lacunarity)
    persistence = float(persistence)
    power = float(power)

    amp = 1.0
    freq = 1.0
    total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    amp_sum = 0.0

    for _ in range(max(octaves, 1)):
        signal = 1.0 - np.abs(noise.noise(x * freq, y * freq))
        total += amp * np.power(np.maximum(signal, 0.0), power)
        amp_sum += amp
        amp *= persistence
        freq *= lacunarity

    if amp_sum == 0.0:
        return total
    return total / amp_sum
