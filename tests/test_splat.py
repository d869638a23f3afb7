from __future__ import annotations

import numpy as np
import pytest

from terrain.config import (
    BlendBand,
    BrushSettings,
    GeneratorParams,
    TerrainConfig,
    TerrainLayer,
)
from terrain.generator import generate_heightmap
from terrain.heightmap import create_heightmap, from_grid
from terrain.presets import get_preset
from terrain.splat import (
    auto_generate_splat_maps,
    band_weight,
    create_splat_map,
    paint_layer,
    splat_maps_needed,
)

CONFIG = TerrainConfig(width=16, depth=16, resolution=16)


def _height_layer(name: str, lo: float, hi: float, falloff: float) -> TerrainLayer:
    return TerrainLayer(
        id=name, name=name, texture=name, blend="height", height_blend=BlendBand(lo, hi, falloff)
    )


def _channel_sum(splat_maps) -> np.ndarray:
    return sum(np.sum(s.texels, axis=-1) for s in splat_maps)


def test_band_weight_ramp_and_hard_edge() -> None:
    band = BlendBand(10.0, 20.0, 5.0)
    w = band_weight(np.array([0.0, 7.5, 10.0, 15.0, 20.0, 22.5, 30.0]), band)
    assert np.allclose(w, [0.0, 0.5, 1.0, 1.0, 1.0, 0.5, 0.0])

    hard = band_weight(np.array([9.9, 10.0, 20.0, 20.1]), BlendBand(10.0, 20.0, 0.0))
    assert np.array_equal(hard, [0.0, 1.0, 1.0, 0.0])


def test_splat_maps_needed() -> None:
    assert splat_maps_needed(0) == 0
    assert splat_maps_needed(4) == 1
    assert splat_maps_needed(5) == 2


def test_auto_splat_weights_sum_to_one() -> None:
    hm = generate_heightmap(
        create_heightmap(40, 40), "ridged", GeneratorParams(scale=10, amplitude=100, seed=0)
    )
    layers = list(get_preset("mountains").default_layers)
    maps = auto_generate_splat_maps(hm, layers, [], spacing_x=2.0, spacing_z=2.0)
    assert len(maps) == 1
    total = _channel_sum(maps)
    assert np.allclose(total, 1.0, atol=1e-6)
    # The fourth channel has no layer behind it.
    assert float(np.max(maps[0].texels[..., 3])) == 0.0


def test_auto_splat_spreads_over_multiple_maps() -> None:
    xs = np.arange(11, dtype=np.float64) * 10.0
    hm = from_grid(np.tile(xs, (3, 1)))
    layers = [_height_layer(f"l{i}", i * 20.0, i * 20.0 + 20.0, 5.0) for i in range(5)]
    maps = auto_generate_splat_maps(hm, layers, [])
    assert len(maps) == 2
    assert np.allclose(_channel_sum(maps), 1.0)
    # Column at 100% only falls in the last band, which lives on the second map.
    assert maps[1].texels[0, 10, 0] == pytest.approx(1.0)


def test_unmatched_texels_go_to_nearest_band() -> None:
    xs = np.arange(11, dtype=np.float64) * 10.0
    hm = from_grid(np.tile(xs, (2, 1)))
    layers = [_height_layer("low", 0.0, 10.0, 0.0), _height_layer("high", 90.0, 100.0, 0.0)]
    maps = auto_generate_splat_maps(hm, layers, [])
    t = maps[0].texels
    assert t[0, 3, 0] == 1.0 and t[0, 3, 1] == 0.0
    assert t[0, 7, 0] == 0.0 and t[0, 7, 1] == 1.0
    assert np.allclose(_channel_sum(maps), 1.0)


def test_custom_layers_get_no_automatic_weight() -> None:
    hm = from_grid(np.arange(16, dtype=np.float64).reshape(4, 4))
    custom = TerrainLayer(id="c", name="c", texture="c", blend="custom")
    layers = [_height_layer("all", 0.0, 100.0, 1.0), custom]
    maps = auto_generate_splat_maps(hm, layers, [])
    assert np.allclose(maps[0].texels[..., 0], 1.0)
    assert float(np.max(maps[0].texels[..., 1])) == 0.0


def test_auto_splat_clears_previous_paint() -> None:
    hm = create_heightmap(16, 16)
    layers = [_height_layer("a", 0.0, 100.0, 1.0), _height_layer("b", 200.0, 300.0, 1.0)]
    maps = [create_splat_map(16, 16)]
    maps[0].texels[..., 1] = 0.7
    auto_generate_splat_maps(hm, layers, maps)
    assert float(np.max(maps[0].texels[..., 1])) == 0.0


def test_auto_splat_rejects_mismatched_maps() -> None:
    hm = create_heightmap(16, 16)
    with pytest.raises(ValueError):
        auto_generate_splat_maps(hm, [_height_layer("a", 0, 100, 1)], [create_splat_map(8, 8)])


def test_paint_layer_adds_and_renormalizes() -> None:
    maps = [create_splat_map(16, 16)]
    brush = BrushSettings(type="paint", size=3, strength=1.0, falloff="linear")

    assert paint_layer(maps, CONFIG, 0.0, 0.0, 1, brush)
    t = maps[0].texels
    assert t[8, 8, 1] == pytest.approx(1.0)
    assert t[8, 9, 1] == pytest.approx(1.0)
    assert float(np.max(t[0:4, 0:4])) == 0.0

    assert paint_layer(maps, CONFIG, 0.0, 0.0, 0, brush)
    assert t[8, 8, 0] == pytest.approx(0.5)
    assert t[8, 8, 1] == pytest.approx(0.5)
    assert np.sum(t[8, 8]) == pytest.approx(1.0)


def test_paint_layer_misses() -> None:
    maps = [create_splat_map(16, 16)]
    brush = BrushSettings(type="paint", size=3)
    assert not paint_layer(maps, CONFIG, 0.0, 0.0, 4, brush)
    assert not paint_layer(maps, CONFIG, 0.0, 0.0, -1, brush)
    assert not paint_layer(maps, CONFIG, 500.0, 500.0, 0, brush)


def test_paint_layer_renormalizes_across_maps() -> None:
    maps = [create_splat_map(16, 16), create_splat_map(16, 16)]
    brush = BrushSettings(type="paint", size=3, strength=1.0, falloff="linear")

    assert paint_layer(maps, CONFIG, 0.0, 0.0, 5, brush)
    assert maps[1].texels[8, 8, 1] == pytest.approx(1.0)
    assert paint_layer(maps, CONFIG, 0.0, 0.0, 0, brush)

    assert maps[0].texels[8, 8, 0] == pytest.approx(0.5)
    assert maps[1].texels[8, 8, 1] == pytest.approx(0.5)
    assert _channel_sum(maps)[8, 8] == pytest.approx(1.0)
    assert float(np.max(_channel_sum(maps)[0:4, 0:4])) == 0.0


def test_paint_layer_rejects_mismatched_maps() -> None:
    maps = [create_splat_map(16, 16), create_splat_map(8, 8)]
    with pytest.raises(ValueError):
        paint_layer(maps, CONFIG, 0.0, 0.0, 0, BrushSettings(type="paint", size=3))


def test_slope_layers_use_depth_spacing() -> None:
    # 2 units of rise per 4-unit row: 30 degrees everywhere.
    zs = np.arange(101, dtype=np.float64) * 2.0
    hm = from_grid(np.tile(zs[:, None], (1, 101)))
    layers = [
        TerrainLayer(id=n, name=n, texture=n, blend="slope", slope_blend=BlendBand(lo, hi, 0))
        for n, lo, hi in [("gentle", 0, 40), ("cliff", 40, 90)]
    ]
    cfg = TerrainConfig(width=100, depth=400, resolution=101)
    maps = auto_generate_splat_maps(
        hm,
        layers,
        [],
        spacing_x=cfg.grid_spacing(101),
        spacing_z=cfg.grid_spacing_z(101),
    )
    assert np.allclose(maps[0].texels[..., 0], 1.0)
    assert np.allclose(maps[0].texels[..., 1], 0.0)
