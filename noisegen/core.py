from __future__ import annotations

import math

import numpy as np

# Simplex skew/unskew factors for 2D.
F2 = 0.5 * (math.sqrt(3.0) - 1.0)
G2 = (3.0 - math.sqrt(3.0)) / 6.0


def lcg_stream(seed: int):
    """Yield floats in [0, 1) from the 9301/49297/233280 linear congruence."""
    s = int(seed) % 233280
    while True:
        s = (s * 9301 + 49297) % 233280
        yield s / 233280.0


def make_permutation(seed: int) -> np.ndarray:
    """Fisher-Yates shuffle of 0..255 driven by `lcg_stream`, doubled to 512."""
    rand = lcg_stream(seed)
    p = list(range(256))
    for i in range(255, 0, -1):
        j = int(next(rand) * (i + 1))
        p[i], p[j] = p[j], p[i]
    perm = np.asarray(p, dtype=np.int32)
    return np.concatenate([perm, perm])


# Unnormalized on purpose: the 70x output scale of simplex noise assumes
# these magnitudes.
_GRAD3 = np.array(
    [
        [1.0, 1.0, 0.0],
        [-1.0, 1.0, 0.0],
        [1.0, -1.0, 0.0],
        [-1.0, -1.0, 0.0],
        [1.0, 0.0, 1.0],
        [-1.0, 0.0, 1.0],
        [1.0, 0.0, -1.0],
        [-1.0, 0.0, -1.0],
        [0.0, 1.0, 1.0],
        [0.0, -1.0, 1.0],
        [0.0, 1.0, -1.0],
        [0.0, -1.0, -1.0],
    ],
    dtype=np.float64,
)


def grad3_from_hash(h: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return the (x, y) components of the gradient picked by `h % 12`."""
    idx = (np.asarray(h) % 12).astype(np.int32)
    g = _GRAD3[idx]
    return g[..., 0], g[..., 1]


def hash01(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Deterministic sine hash of integer cell coordinates into [0, 1)."""
    n = np.sin(np.asarray(x, dtype=np.float64) * 12.9898 + np.asarray(y, dtype=np.float64) * 78.233)
    n = n * 43758.5453
    return n - np.floor(n)
