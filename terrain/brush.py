from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from noisegen import Simplex2D, fbm2
from terrain.config import BrushSettings, TerrainConfig
from terrain.heightmap import HeightmapData

SMOOTH_RADIUS = 3


def falloff_weight(distance: np.ndarray, kind: str) -> np.ndarray:
    """Map a normalized distance in [0, 1] to a brush intensity."""

    d = np.clip(np.asarray(distance, dtype=np.float64), 0.0, 1.0)
    if kind == "linear":
        return 1.0 - d
    if kind == "smooth":
        return 1.0 - d * d * (3.0 - 2.0 * d)
    if kind == "sphere":
        return np.sqrt(1.0 - d * d)
    if kind == "tip":
        return (1.0 - d) ** 2
    raise ValueError(f"unknown falloff: {kind}")


def box_mean2d(a: np.ndarray, *, radius: int) -> np.ndarray:
    """Mean over the in-range (2r+1)^2 window around every cell.

    Summed-area tables over the values and over a ones mask, so windows
    clipped by the border average only the samples they contain.
    """

    x = np.asarray(a, dtype=np.float64)
    if x.ndim != 2:
        raise ValueError("a must be a 2D array")

    r = int(radius)
    if r <= 0:
        return x.copy()

    H, W = x.shape

    def window_sums(v: np.ndarray) -> np.ndarray:
        p = np.pad(v, ((r, r), (r, r)), mode="constant", constant_values=0.0)
        s = np.pad(p, ((1, 0), (1, 0)), mode="constant", constant_values=0.0)
        s = np.cumsum(np.cumsum(s, axis=0), axis=1)
        y0 = np.arange(H, dtype=np.int32)
        x0 = np.arange(W, dtype=np.int32)
        y1 = y0 + 2 * r + 1
        x1 = x0 + 2 * r + 1
        A = s[y1[:, None], x1[None, :]]
        B = s[y0[:, None], x1[None, :]]
        C = s[y1[:, None], x0[None, :]]
        D = s[y0[:, None], x0[None, :]]
        return A - B - C + D

    return window_sums(x) / window_sums(np.ones_like(x))


@dataclass(frozen=True)
class BrushFootprint:
    """Cells touched by one dab: slices into the grid plus per-cell weight."""

    rows: slice
    cols: slice
    weight: np.ndarray
    inside: np.ndarray
    center: tuple[int, int]


def brush_footprint(
    config: TerrainConfig,
    grid_width: int,
    grid_height: int,
    world_x: float,
    world_z: float,
    brush: BrushSettings,
) -> BrushFootprint | None:
    """Resolve a dab at a world position; None if it misses the grid entirely."""

    if float(brush.size) <= 0.0:
        raise ValueError("brush size must be > 0")
    radius = config.pixel_radius(brush.size, grid_width)
    if radius < 1:
        raise ValueError(
            f"brush size {brush.size} is smaller than one heightmap cell "
            f"({config.width / grid_width:.4f} world units)"
        )

    hx, hz = config.world_to_cell(world_x, world_z, grid_width, grid_height)

    x0 = max(hx - radius, 0)
    x1 = min(hx + radius, grid_width - 1)
    z0 = max(hz - radius, 0)
    z1 = min(hz + radius, grid_height - 1)
    if x0 > x1 or z0 > z1:
        return None

    dx = np.arange(x0, x1 + 1, dtype=np.float64) - hx
    dz = np.arange(z0, z1 + 1, dtype=np.float64) - hz
    dist = np.sqrt(dx[None, :] ** 2 + dz[:, None] ** 2) / float(radius)
    inside = dist <= 1.0
    weight = np.where(
        inside, float(brush.strength) * falloff_weight(dist, brush.falloff), 0.0
    )
    return BrushFootprint(
        rows=slice(z0, z1 + 1),
        cols=slice(x0, x1 + 1),
        weight=weight,
        inside=inside,
        center=(hx, hz),
    )


def apply_brush(
    heightmap: HeightmapData,
    config: TerrainConfig,
    world_x: float,
    world_z: float,
    brush: BrushSettings,
    *,
    noise: Simplex2D | None = None,
) -> bool:
    """Apply one sculpting dab in place and recompute bounds.

    Returns False when the dab lies completely outside the heightmap.
    """

    if brush.type == "paint":
        raise ValueError("paint brushes edit splat maps, not heights")

    fp = brush_footprint(
        config, heightmap.width, heightmap.height, world_x, world_z, brush
    )
    if fp is None:
        return False

    g = heightmap.grid
    window = g[fp.rows, fp.cols]
    w = fp.weight

    if brush.type == "raise":
        window += w
    elif brush.type == "lower":
        window -= w
    elif brush.type == "smooth":
        avg = box_mean2d(g, radius=SMOOTH_RADIUS)[fp.rows, fp.cols]
        window += (avg - window) * w
    elif brush.type == "flatten":
        if brush.target_height is not None:
            target = float(brush.target_height)
        else:
            cx = min(max(fp.center[0], 0), heightmap.width - 1)
            cz = min(max(fp.center[1], 0), heightmap.height - 1)
            target = float(g[cz, cx])
        window += (target - window) * w
    elif brush.type == "noise":
        if noise is None:
            noise = Simplex2D(seed=0)
        scale = float(brush.noise_scale)
        xs = np.arange(fp.cols.start, fp.cols.stop, dtype=np.float64) * scale
        zs = np.arange(fp.rows.start, fp.rows.stop, dtype=np.float64) * scale
        xg, zg = np.meshgrid(xs, zs)
        n = fbm2(noise, xg, zg, octaves=max(int(brush.noise_octaves), 1))
        window += n * w

    heightmap.update_bounds()
    return True


def stroke_points(
    path: list[tuple[float, float]],
    brush: BrushSettings,
    *,
    rng: np.random.Generator | None = None,
) -> list[tuple[float, float]]:
    """Dab centers along a world-space polyline.

    Dabs are `spacing * size` apart (measured along the path) and each is
    displaced by up to `jitter * size` in a random direction.
    """

    pts = [(float(x), float(z)) for x, z in path]
    if not pts:
        return []

    step = max(float(brush.spacing) * float(brush.size), 1e-6)
    jitter = max(float(brush.jitter), 0.0) * float(brush.size)
    if jitter > 0.0 and rng is None:
        rng = np.random.default_rng()

    out: list[tuple[float, float]] = [pts[0]]
    carry = 0.0
    for (ax, az), (bx, bz) in zip(pts[:-1], pts[1:]):
        seg = math.hypot(bx - ax, bz - az)
        if seg == 0.0:
            continue
        t = step - carry
        while t <= seg:
            f = t / seg
            out.append((ax + (bx - ax) * f, az + (bz - az) * f))
            t += step
        carry = seg - (t - step)

    if jitter > 0.0:
        jittered = []
        for x, z in out:
            ang = float(rng.random()) * 2.0 * math.pi
            r = float(rng.random()) * jitter
            jittered.append((x + math.cos(ang) * r, z + math.sin(ang) * r))
        out = jittered
    return out
