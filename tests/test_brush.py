from __future__ import annotations

import numpy as np
import pytest

from noisegen import Simplex2D
from terrain.brush import apply_brush, box_mean2d, falloff_weight, stroke_points
from terrain.config import BrushSettings, TerrainConfig
from terrain.heightmap import create_heightmap, from_grid

# 16 world units over 16 cells: one cell per unit, world origin maps to cell 8.
CONFIG = TerrainConfig(width=16, depth=16, resolution=16)


def _random_map(seed: int = 0):
    rng = np.random.default_rng(seed)
    return from_grid(rng.random((16, 16)) * 10.0)


def test_falloff_endpoints() -> None:
    d = np.array([0.0, 1.0])
    for kind in ("linear", "smooth", "sphere", "tip"):
        w = falloff_weight(d, kind)
        assert w[0] == pytest.approx(1.0)
        assert w[1] == pytest.approx(0.0)
    assert falloff_weight(np.array([0.5]), "linear")[0] == pytest.approx(0.5)
    with pytest.raises(ValueError):
        falloff_weight(d, "cubic")


def test_raise_center_by_strength_and_leave_rim() -> None:
    hm = create_heightmap(16, 16)
    brush = BrushSettings(type="raise", size=3, strength=10, falloff="linear")
    assert apply_brush(hm, CONFIG, 0.0, 0.0, brush)

    g = hm.grid
    assert g[8, 8] == 10.0
    # Distance exactly 3 (ratio 1.0) and beyond are untouched.
    assert g[8, 11] == 0.0
    assert g[11, 8] == 0.0
    assert g[8, 12] == 0.0
    assert g[0, 0] == 0.0
    assert g[8, 9] == pytest.approx(10.0 * (2.0 / 3.0))
    assert hm.max_height == 10.0
    assert hm.min_height == 0.0


def test_lower_mirrors_raise() -> None:
    hm = create_heightmap(16, 16)
    brush = BrushSettings(type="lower", size=3, strength=2, falloff="linear")
    apply_brush(hm, CONFIG, 0.0, 0.0, brush)
    assert hm.grid[8, 8] == -2.0
    assert hm.min_height == -2.0


def test_flatten_converges_to_target() -> None:
    hm = _random_map()
    before = hm.grid.copy()
    brush = BrushSettings(
        type="flatten", size=4, strength=1.0, falloff="smooth", target_height=5.0
    )
    for _ in range(3):
        apply_brush(hm, CONFIG, 0.0, 0.0, brush)

    g = hm.grid
    assert abs(g[8, 8] - 5.0) < 1e-4
    assert np.all(np.abs(g - 5.0) <= np.abs(before - 5.0) + 1e-12)


def test_flatten_without_target_uses_center_height() -> None:
    hm = _random_map(1)
    center = float(hm.grid[8, 8])
    brush = BrushSettings(type="flatten", size=4, strength=1.0, falloff="linear")
    apply_brush(hm, CONFIG, 0.0, 0.0, brush)
    assert hm.grid[8, 8] == pytest.approx(center)
    assert hm.grid[8, 9] != pytest.approx(_random_map(1).grid[8, 9])


def test_smooth_pulls_spike_to_local_mean() -> None:
    hm = create_heightmap(16, 16)
    hm.grid[8, 8] = 49.0
    hm.update_bounds()
    brush = BrushSettings(type="smooth", size=3, strength=1.0, falloff="linear")
    apply_brush(hm, CONFIG, 0.0, 0.0, brush)
    assert hm.grid[8, 8] == pytest.approx(1.0)
    assert hm.max_height < 49.0


def test_box_mean_keeps_constant_field_at_borders() -> None:
    a = np.full((6, 9), 3.0)
    assert np.allclose(box_mean2d(a, radius=3), 3.0)


def test_noise_brush_is_deterministic_and_local() -> None:
    brush = BrushSettings(type="noise", size=3, strength=4.0, noise_scale=0.37, noise_octaves=2)
    a = create_heightmap(16, 16)
    b = create_heightmap(16, 16)
    apply_brush(a, CONFIG, 0.0, 0.0, brush, noise=Simplex2D(seed=9))
    apply_brush(b, CONFIG, 0.0, 0.0, brush, noise=Simplex2D(seed=9))
    assert np.allclose(a.data, b.data)
    assert float(np.max(np.abs(a.grid[8:12, 8:12]))) > 0.0
    assert a.grid[0, 0] == 0.0
    assert a.min_height == float(np.min(a.data))
    assert a.max_height == float(np.max(a.data))


def test_dab_outside_grid_is_a_noop() -> None:
    hm = _random_map()
    before = hm.data.copy()
    brush = BrushSettings(type="raise", size=3)
    assert not apply_brush(hm, CONFIG, 1000.0, 1000.0, brush)
    assert np.array_equal(hm.data, before)


def test_dab_near_edge_is_clipped() -> None:
    hm = create_heightmap(16, 16)
    brush = BrushSettings(type="raise", size=3, strength=1.0, falloff="linear")
    assert apply_brush(hm, CONFIG, -8.0, -8.0, brush)
    assert hm.grid[0, 0] == 1.0


def test_brush_smaller_than_a_cell_is_rejected() -> None:
    hm = create_heightmap(16, 16)
    with pytest.raises(ValueError):
        apply_brush(hm, CONFIG, 0.0, 0.0, BrushSettings(size=0.5))
    with pytest.raises(ValueError):
        apply_brush(hm, CONFIG, 0.0, 0.0, BrushSettings(size=0))


def test_paint_is_not_a_sculpt_brush() -> None:
    hm = create_heightmap(16, 16)
    with pytest.raises(ValueError):
        apply_brush(hm, CONFIG, 0.0, 0.0, BrushSettings(type="paint", size=3))


def test_unknown_brush_settings_rejected() -> None:
    with pytest.raises(ValueError):
        BrushSettings(type="carve")
    with pytest.raises(ValueError):
        BrushSettings(falloff="gaussian")


def test_stroke_points_spacing() -> None:
    brush = BrushSettings(size=4, spacing=0.5)
    pts = stroke_points([(0.0, 0.0), (10.0, 0.0)], brush)
    assert [x for x, _ in pts] == pytest.approx([0.0, 2.0, 4.0, 6.0, 8.0, 10.0])
    assert all(z == 0.0 for _, z in pts)


def test_stroke_points_carry_across_segments() -> None:
    brush = BrushSettings(size=2, spacing=1.5)
    pts = stroke_points([(0.0, 0.0), (2.0, 0.0), (2.0, 4.0)], brush)
    # 3-unit steps: (0,0), then 1 unit into the second segment, then 4 units.
    assert len(pts) == 3
    assert pts[1] == pytest.approx((2.0, 1.0))
    assert pts[2] == pytest.approx((2.0, 4.0))


def test_stroke_jitter_stays_within_radius() -> None:
    brush = BrushSettings(size=4, spacing=0.5, jitter=0.25)
    rng = np.random.default_rng(0)
    pts = stroke_points([(0.0, 0.0), (10.0, 0.0)], brush, rng=rng)
    base = [0.0, 2.0, 4.0, 6.0, 8.0, 10.0]
    assert len(pts) == len(base)
    for (x, z), bx in zip(pts, base):
        assert np.hypot(x - bx, z) <= 1.0 + 1e-12


def test_empty_stroke() -> None:
    assert stroke_points([], BrushSettings()) == []
