from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from terrain.brush import brush_footprint
from terrain.config import BlendBand, BrushSettings, TerrainConfig, TerrainLayer
from terrain.heightmap import HeightmapData, slope_degrees

log = logging.getLogger(__name__)

CHANNELS = 4


@dataclass
class SplatMap:
    """Per-texel blend weights for up to four layers, flat row-major."""

    width: int
    height: int
    channels: int
    data: np.ndarray

    @property
    def texels(self) -> np.ndarray:
        """`(height, width, channels)` view onto `data`."""
        return self.data.reshape(self.height, self.width, self.channels)


def create_splat_map(width: int, height: int, *, channels: int = CHANNELS) -> SplatMap:
    w = int(width)
    h = int(height)
    c = int(channels)
    if w <= 0 or h <= 0:
        raise ValueError("splat map width and height must be > 0")
    if not (1 <= c <= CHANNELS):
        raise ValueError(f"channels must be in [1, {CHANNELS}]")
    return SplatMap(width=w, height=h, channels=c, data=np.zeros(w * h * c, dtype=np.float64))


def splat_maps_needed(layer_count: int) -> int:
    return math.ceil(int(layer_count) / CHANNELS)


def paint_layer(
    splat_maps: list[SplatMap],
    config: TerrainConfig,
    world_x: float,
    world_z: float,
    layer_index: int,
    brush: BrushSettings,
) -> bool:
    """Add `strength * falloff` to one layer's channel and renormalize texels.

    Renormalization spans every splat map, so a painted texel's weights sum
    to 1 across all layers. All maps must share one resolution.
    Returns False when `layer_index` has no splat map or the dab misses it.
    """

    layer_index = int(layer_index)
    map_index = layer_index // CHANNELS
    channel = layer_index % CHANNELS
    if layer_index < 0 or map_index >= len(splat_maps):
        return False

    splat = splat_maps[map_index]
    if channel >= splat.channels:
        return False
    for other in splat_maps:
        if other.width != splat.width or other.height != splat.height:
            raise ValueError("splat maps must share one resolution")

    fp = brush_footprint(config, splat.width, splat.height, world_x, world_z, brush)
    if fp is None:
        return False

    windows = [s.texels[fp.rows, fp.cols, :] for s in splat_maps]
    windows[map_index][..., channel] += np.where(fp.inside, fp.weight, 0.0)

    total = sum(np.sum(w, axis=-1) for w in windows)
    norm = fp.inside & (total > 0.0)
    for w in windows:
        w[norm] /= total[norm][:, None]
    return True


def band_weight(values: np.ndarray, band: BlendBand) -> np.ndarray:
    """1 inside [min, max], linear ramp to 0 over `falloff` outside."""

    v = np.asarray(values, dtype=np.float64)
    lo = float(band.min)
    hi = float(band.max)
    falloff = float(band.falloff)

    outside = np.maximum(lo - v, 0.0) + np.maximum(v - hi, 0.0)
    if falloff <= 0.0:
        return np.where(outside > 0.0, 0.0, 1.0)
    return np.clip(1.0 - outside / falloff, 0.0, 1.0)


def band_distance(values: np.ndarray, band: BlendBand) -> np.ndarray:
    v = np.asarray(values, dtype=np.float64)
    return np.maximum(float(band.min) - v, 0.0) + np.maximum(v - float(band.max), 0.0)


def layer_weights(
    heightmap: HeightmapData,
    layers: list[TerrainLayer],
    *,
    spacing_x: float = 1.0,
    spacing_z: float = 1.0,
) -> np.ndarray:
    """Normalized `(layers, height, width)` weights from height/slope bands.

    Texels no band reaches go entirely to the layer with the nearest band;
    they stay zero only when no layer carries a band at all.
    """

    g = heightmap.grid
    lo = float(np.min(g))
    span = float(np.max(g)) - lo
    if span == 0.0:
        span = 1.0
    height_pct = (g - lo) / span * 100.0
    slope = slope_degrees(heightmap, spacing_x=spacing_x, spacing_z=spacing_z)

    n = len(layers)
    weights = np.zeros((n,) + g.shape, dtype=np.float64)
    distance = np.full((n,) + g.shape, np.inf, dtype=np.float64)
    for i, layer in enumerate(layers):
        band = layer.band
        if band is None:
            continue
        values = height_pct if layer.blend == "height" else slope
        weights[i] = band_weight(values, band)
        distance[i] = band_distance(values, band)

    total = np.sum(weights, axis=0)
    covered = total > 0.0
    weights[:, covered] /= total[covered]

    uncovered = ~covered & np.isfinite(np.min(distance, axis=0))
    if bool(np.any(uncovered)):
        nearest = np.argmin(distance, axis=0)
        ys, xs = np.nonzero(uncovered)
        weights[nearest[ys, xs], ys, xs] = 1.0
        log.debug(
            "%d of %d texels matched no layer band; assigned to nearest band",
            int(ys.size),
            int(g.size),
        )
    return weights


def auto_generate_splat_maps(
    heightmap: HeightmapData,
    layers: list[TerrainLayer],
    splat_maps: list[SplatMap],
    *,
    spacing_x: float = 1.0,
    spacing_z: float = 1.0,
) -> list[SplatMap]:
    """Rebuild `splat_maps` in place from the layers' height/slope bands."""

    while len(splat_maps) < splat_maps_needed(len(layers)):
        splat_maps.append(create_splat_map(heightmap.width, heightmap.height))
    for splat in splat_maps:
        if splat.width != heightmap.width or splat.height != heightmap.height:
            raise ValueError("splat maps must match the heightmap resolution")
        splat.data.fill(0.0)

    if not layers:
        return splat_maps

    weights = layer_weights(heightmap, layers, spacing_x=spacing_x, spacing_z=spacing_z)
    for i in range(len(layers)):
        splat = splat_maps[i // CHANNELS]
        channel = i % CHANNELS
        if channel < splat.channels:
            splat.texels[..., channel] = weights[i]
    return splat_maps
