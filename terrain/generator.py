from __future__ import annotations

import logging

import numpy as np

from noisegen import Simplex2D, cellular2, fbm2, ridged2
from terrain.config import ErosionSettings, GeneratorParams
from terrain.erosion import hydraulic_erosion
from terrain.heightmap import HeightmapData

log = logging.getLogger(__name__)

GENERATORS = ("perlin", "fbm", "ridged", "voronoi", "hydraulic")


def _check_params(params: GeneratorParams) -> None:
    if float(params.scale) <= 0.0:
        raise ValueError("scale must be > 0")
    if int(params.octaves) < 1:
        raise ValueError("octaves must be >= 1")
    if int(params.erosion_iterations) < 0:
        raise ValueError("erosion_iterations must be >= 0")


def height_field(
    generator: str,
    width: int,
    height: int,
    params: GeneratorParams,
    *,
    noise: Simplex2D,
) -> np.ndarray:
    """Evaluate one generator over a `(height, width)` grid of cell indices."""

    generator = str(generator)
    if generator not in GENERATORS:
        raise ValueError(f"unknown generator: {generator}")
    _check_params(params)

    scale = float(params.scale)
    amplitude = float(params.amplitude)

    xs = np.arange(int(width), dtype=np.float64)
    ys = np.arange(int(height), dtype=np.float64)
    xg, yg = np.meshgrid(xs, ys)

    if generator == "ridged":
        z = ridged2(
            noise,
            xg / scale,
            yg / scale,
            octaves=int(params.octaves),
            persistence=float(params.persistence),
            power=float(params.ridge_power),
        )
        return z * amplitude

    if generator == "voronoi":
        d = cellular2(xg / scale, yg / scale)
        return np.power(1.0 - np.minimum(d, 1.0), float(params.falloff)) * amplitude

    # perlin, fbm and the hydraulic base share the layered fractal.
    z = fbm2(
        noise,
        xg / scale,
        yg / scale,
        octaves=int(params.octaves),
        persistence=float(params.persistence),
    )
    return (z + 1.0) * 0.5 * amplitude


def generate_heightmap(
    heightmap: HeightmapData,
    generator: str,
    params: GeneratorParams,
    *,
    noise: Simplex2D | None = None,
) -> HeightmapData:
    """Overwrite every cell of `heightmap` and recompute its bounds.

    A noise generator passed in is reseeded from `params.seed` when one is
    given; otherwise a fresh `Simplex2D` is built from that seed (0 if unset).
    """

    seed = 0 if params.seed is None else int(params.seed)
    if noise is None:
        noise = Simplex2D(seed=seed)
    elif params.seed is not None:
        noise.reseed(seed)

    z = height_field(
        generator, heightmap.width, heightmap.height, params, noise=noise
    )
    heightmap.grid[:, :] = z

    if generator == "hydraulic" and int(params.erosion_iterations) > 0:
        hydraulic_erosion(
            heightmap,
            ErosionSettings(iterations=int(params.erosion_iterations), seed=seed),
        )

    heightmap.update_bounds()
    log.info(
        "Generated %dx%d heightmap with %s (seed %d), range [%.3f, %.3f]",
        heightmap.width,
        heightmap.height,
        generator,
        noise.seed,
        heightmap.min_height,
        heightmap.max_height,
    )
    return heightmap
