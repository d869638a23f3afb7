from __future__ import annotations

import logging
import time

from terrain import (
    BrushSettings,
    ErosionSettings,
    GeneratorParams,
    TerrainConfig,
    TerrainService,
)


def _timeit(label: str, fn) -> float:
    t0 = time.perf_counter()
    fn()
    t1 = time.perf_counter()
    ms = (t1 - t0) * 1000.0
    print(f"{label}: {ms:.2f} ms")
    return ms


def main() -> None:
    """Quick CPU benchmark on a default 257x257 terrain.

    Intended targets (laptop-class CPU):
    - fbm heightmap: < ~50ms
    - 1000 erosion droplets: dominated by the per-step Python loop
    - full mesh + LOD chain: < ~100ms
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    service = TerrainService(seed=0)
    terrain = service.create_terrain(TerrainConfig(resolution=257))
    tid = terrain.id

    _timeit(
        "Generate: fbm 257x257",
        lambda: service.generate_heightmap(
            tid, "fbm", GeneratorParams(scale=50, octaves=6, amplitude=60, seed=0)
        ),
    )
    _timeit(
        "Generate: ridged 257x257",
        lambda: service.generate_heightmap(
            tid, "ridged", GeneratorParams(scale=30, octaves=6, amplitude=100, seed=0)
        ),
    )
    _timeit(
        "Erosion: 1000 droplets + thermal",
        lambda: service.apply_hydraulic_erosion(
            tid, ErosionSettings(iterations=1000, thermal_erosion=True, seed=0)
        ),
    )
    brush = BrushSettings(type="smooth", size=20, strength=0.5)
    _timeit(
        "Brush: 41-dab smooth stroke",
        lambda: service.apply_brush_stroke(
            tid, [(-100.0, 0.0), (100.0, 0.0)], brush
        ),
    )

    preset = service.generate_from_preset("mountains", TerrainConfig(resolution=257))
    _timeit(
        "Splat: 3-layer auto weights",
        lambda: service.auto_generate_splat_maps(preset.id),
    )
    _timeit("Mesh: full resolution", lambda: service.generate_terrain_mesh(tid))
    _timeit("Mesh: LOD chain", lambda: service.generate_all_lod_levels(tid))


if __name__ == "__main__":
    main()
