from __future__ import annotations

import logging
import math

import numpy as np

from terrain.config import ErosionSettings
from terrain.heightmap import HeightmapData

log = logging.getLogger(__name__)

MAX_DROPLET_STEPS = 100
_MIN_DIRECTION = 0.01
_MIN_WATER = 0.01


def thermal_erosion(
    heightmap: HeightmapData,
    *,
    strength: float = 0.5,
    talus_angle: float = 30.0,
) -> HeightmapData:
    """One thermal (talus) pass over the interior cells, in place.

    Each interior cell whose steepest downhill 4-neighbor drop exceeds
    `tan(talus_angle)` moves `(drop - tan) * strength * 0.5` onto that
    neighbor. Transfers accumulate in a separate buffer so the scan order
    does not matter. Bounds are not updated here.
    """

    g = heightmap.grid
    H, W = g.shape
    if H < 3 or W < 3:
        return heightmap

    tan_angle = math.tan(math.radians(float(talus_angle)))
    strength = float(strength)

    c = g[1:-1, 1:-1]
    # Same neighbor order as the scalar scan: west, east, north, south.
    neighbors = np.stack(
        [
            g[1:-1, :-2],
            g[1:-1, 2:],
            g[:-2, 1:-1],
            g[2:, 1:-1],
        ],
        axis=0,
    )
    drops = c[None, :, :] - neighbors
    steepest = np.argmax(drops, axis=0)
    max_drop = np.max(drops, axis=0)

    move = max_drop > tan_angle
    if not bool(np.any(move)):
        return heightmap

    transfer = (max_drop - tan_angle) * strength * 0.5

    iy, ix = np.nonzero(move)
    amount = transfer[iy, ix]
    src_y = iy + 1
    src_x = ix + 1
    offsets_y = np.array([0, 0, -1, 1], dtype=np.int64)
    offsets_x = np.array([-1, 1, 0, 0], dtype=np.int64)
    k = steepest[iy, ix]
    dst_y = src_y + offsets_y[k]
    dst_x = src_x + offsets_x[k]

    delta = np.zeros_like(g)
    np.add.at(delta, (src_y, src_x), -amount)
    np.add.at(delta, (dst_y, dst_x), amount)
    g += delta
    return heightmap


def hydraulic_erosion(
    heightmap: HeightmapData,
    settings: ErosionSettings,
    *,
    rng: np.random.Generator | None = None,
) -> HeightmapData:
    """Droplet hydraulic erosion, in place, followed by an optional thermal pass.

    Droplets only read neighbors while sitting on an interior cell and stop
    as soon as they leave the grid, run dry, or their flow direction
    degenerates.
    """

    iterations = int(settings.iterations)
    if iterations < 0:
        raise ValueError("iterations must be >= 0")

    if rng is None:
        rng = np.random.default_rng(settings.seed)

    data = heightmap.data
    W = heightmap.width
    H = heightmap.height

    capacity_k = float(settings.sediment_capacity)
    min_slope = float(settings.min_slope)
    erosion_k = float(settings.erosion_strength)
    deposition_k = float(settings.deposition_strength)
    gravity = float(settings.gravity)
    keep_water = 1.0 - float(settings.evaporation_rate)

    stalled = 0
    for _ in range(iterations):
        x = float(rng.random()) * (W - 1)
        y = float(rng.random()) * (H - 1)
        dir_x = 0.0
        dir_y = 0.0
        speed = 1.0
        water = float(settings.rain_amount)
        sediment = 0.0

        for _step in range(MAX_DROPLET_STEPS):
            ix = int(x)
            iy = int(y)
            if ix < 1 or ix >= W - 1 or iy < 1 or iy >= H - 1:
                break

            idx = iy * W + ix
            grad_x = data[idx + 1] - data[idx - 1]
            grad_y = data[idx + W] - data[idx - W]

            dir_x = dir_x * 0.5 - grad_x * 0.5
            dir_y = dir_y * 0.5 - grad_y * 0.5
            length = math.sqrt(dir_x * dir_x + dir_y * dir_y)
            if length < _MIN_DIRECTION:
                stalled += 1
                break
            dir_x /= length
            dir_y /= length

            new_x = x + dir_x
            new_y = y + dir_y
            nx = math.floor(new_x)
            ny = math.floor(new_y)
            if nx < 0 or nx >= W or ny < 0 or ny >= H:
                break
            new_idx = ny * W + nx

            delta_h = float(data[new_idx] - data[idx])
            capacity = max(-delta_h * speed * water * capacity_k, min_slope)

            if sediment > capacity or delta_h > 0.0:
                if delta_h > 0.0:
                    deposit = min(delta_h, sediment)
                else:
                    deposit = (sediment - capacity) * deposition_k
                sediment -= deposit
                data[idx] += deposit
            else:
                erode = min((capacity - sediment) * erosion_k, -delta_h)
                sediment += erode
                data[idx] -= erode

            speed = math.sqrt(max(0.0, speed * speed + delta_h * gravity))
            water *= keep_water

            x = new_x
            y = new_y

            if water < _MIN_WATER:
                break

    if stalled:
        log.debug("%d of %d droplets stopped on flat ground", stalled, iterations)

    if bool(settings.thermal_erosion):
        thermal_erosion(
            heightmap,
            strength=float(settings.thermal_strength),
            talus_angle=float(settings.thermal_angle),
        )

    heightmap.update_bounds()
    log.info(
        "Hydraulic erosion: %d droplets on %dx%d heightmap (thermal=%s)",
        iterations,
        W,
        H,
        bool(settings.thermal_erosion),
    )
    return heightmap
