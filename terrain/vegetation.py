from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from noisegen import Simplex2D
from terrain.config import (
    DetailLayer,
    ScatterFilters,
    TerrainConfig,
    TreePrototype,
)
from terrain.heightmap import HeightmapData, slope_degrees


@dataclass(frozen=True)
class TreeInstance:
    prototype_id: str
    position: tuple[float, float, float]
    rotation: float
    scale: tuple[float, float, float]


@dataclass(frozen=True)
class DetailInstance:
    layer_id: str
    prototype_id: str
    position: tuple[float, float, float]
    rotation: float
    scale: float
    normal: tuple[float, float, float] = (0.0, 1.0, 0.0)


@dataclass(frozen=True)
class Probes:
    """Accepted probe points: grid coords, jittered grid coords, world coords."""

    ix: np.ndarray
    iy: np.ndarray
    gx: np.ndarray
    gy: np.ndarray
    world_x: np.ndarray
    world_y: np.ndarray
    world_z: np.ndarray


def filtered_probes(
    heightmap: HeightmapData,
    config: TerrainConfig,
    density: float,
    filters: ScatterFilters,
    *,
    noise: Simplex2D,
    rng: np.random.Generator,
) -> Probes:
    """Probe a regular grid at spacing `sqrt(1/density)` and keep the survivors.

    Probes are rejected by height percent, slope angle and the noise mask;
    survivors are jittered within one spacing (clamped to the grid) and
    converted to world space. Elevation comes from the unjittered cell.
    """

    density = float(density)
    if density <= 0.0:
        raise ValueError("density must be > 0")
    spacing = math.sqrt(1.0 / density)

    W = heightmap.width
    H = heightmap.height
    xs = np.arange(0.0, float(W), spacing, dtype=np.float64)
    ys = np.arange(0.0, float(H), spacing, dtype=np.float64)
    px, py = np.meshgrid(xs, ys)
    px = px.reshape(-1)
    py = py.reshape(-1)
    ix = np.minimum(np.floor(px).astype(np.int64), W - 1)
    iy = np.minimum(np.floor(py).astype(np.int64), H - 1)

    g = heightmap.grid
    lo = float(np.min(g))
    span = float(np.max(g)) - lo
    if span == 0.0:
        span = 1.0
    h_pct = (g[iy, ix] - lo) / span * 100.0
    h_min, h_max = filters.height_range
    keep = (h_pct >= float(h_min)) & (h_pct <= float(h_max))

    slope = slope_degrees(
        heightmap, spacing_x=config.grid_spacing(W), spacing_z=config.grid_spacing_z(H)
    )
    keep &= slope[iy, ix] <= float(filters.slope_limit)

    ns = float(filters.noise_scale)
    keep &= noise.noise(px * ns, py * ns) >= float(filters.noise_threshold)

    px = px[keep]
    py = py[keep]
    ix = ix[keep]
    iy = iy[keep]

    jx = (rng.random(px.size) - 0.5) * spacing
    jy = (rng.random(py.size) - 0.5) * spacing
    gx = np.clip(px + jx, 0.0, float(W - 1))
    gy = np.clip(py + jy, 0.0, float(H - 1))

    ox, oy, oz = config.position
    world_x = (gx / W - 0.5) * float(config.width) + float(ox)
    world_z = (gy / H - 0.5) * float(config.depth) + float(oz)
    world_y = g[iy, ix] + float(oy)
    return Probes(
        ix=ix, iy=iy, gx=gx, gy=gy, world_x=world_x, world_y=world_y, world_z=world_z
    )


def scatter_trees(
    heightmap: HeightmapData,
    config: TerrainConfig,
    prototype: TreePrototype,
    density: float,
    filters: ScatterFilters | None = None,
    *,
    noise: Simplex2D,
    rng: np.random.Generator | None = None,
) -> list[TreeInstance]:
    if filters is None:
        filters = ScatterFilters()
    if rng is None:
        rng = np.random.default_rng()

    p = filtered_probes(heightmap, config, density, filters, noise=noise, rng=rng)
    n = int(p.world_x.size)
    yaw = rng.random(n) * 2.0 * math.pi
    sw = prototype.min_width + rng.random(n) * (prototype.max_width - prototype.min_width)
    sh = prototype.min_height + rng.random(n) * (prototype.max_height - prototype.min_height)

    return [
        TreeInstance(
            prototype_id=prototype.id,
            position=(float(p.world_x[i]), float(p.world_y[i]), float(p.world_z[i])),
            rotation=float(yaw[i]),
            scale=(float(sw[i]), float(sh[i]), float(sw[i])),
        )
        for i in range(n)
    ]


def ground_normals(
    heightmap: HeightmapData, config: TerrainConfig, ix: np.ndarray, iy: np.ndarray
) -> np.ndarray:
    """Unit surface normals at the given cells, `(n, 3)`."""

    g = heightmap.grid
    W = heightmap.width
    H = heightmap.height
    sx = float(config.width) / max(W - 1, 1)
    sz = float(config.depth) / max(H - 1, 1)
    h_l = g[iy, np.maximum(ix - 1, 0)]
    h_r = g[iy, np.minimum(ix + 1, W - 1)]
    h_d = g[np.maximum(iy - 1, 0), ix]
    h_u = g[np.minimum(iy + 1, H - 1), ix]
    n = np.stack(
        [(h_l - h_r) / (2.0 * sx), np.ones(ix.shape, dtype=np.float64), (h_d - h_u) / (2.0 * sz)],
        axis=-1,
    )
    return n / np.linalg.norm(n, axis=-1, keepdims=True)


def scatter_details(
    heightmap: HeightmapData,
    config: TerrainConfig,
    layer: DetailLayer,
    *,
    noise: Simplex2D,
    rng: np.random.Generator | None = None,
) -> list[DetailInstance]:
    if rng is None:
        rng = np.random.default_rng()

    p = filtered_probes(
        heightmap, config, layer.density, layer.filters, noise=noise, rng=rng
    )
    n = int(p.world_x.size)
    if layer.random_rotation:
        yaw = rng.random(n) * 2.0 * math.pi
    else:
        yaw = np.zeros(n, dtype=np.float64)
    scale = layer.min_scale + rng.random(n) * (layer.max_scale - layer.min_scale)

    if layer.align_to_ground:
        normals = ground_normals(heightmap, config, p.ix, p.iy)
    else:
        normals = np.tile(np.array([0.0, 1.0, 0.0]), (n, 1))

    return [
        DetailInstance(
            layer_id=layer.id,
            prototype_id=layer.prototype,
            position=(float(p.world_x[i]), float(p.world_y[i]), float(p.world_z[i])),
            rotation=float(yaw[i]),
            scale=float(scale[i]),
            normal=(float(normals[i, 0]), float(normals[i, 1]), float(normals[i, 2])),
        )
        for i in range(n)
    ]
