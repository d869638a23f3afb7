from __future__ import annotations

import numpy as np
import pytest

from noisegen import Simplex2D
from terrain.config import DetailLayer, ScatterFilters, TerrainConfig, TreePrototype
from terrain.heightmap import create_heightmap, from_grid
from terrain.vegetation import scatter_details, scatter_trees

CONFIG = TerrainConfig(width=100, depth=100, resolution=100)
ACCEPT_ALL = ScatterFilters(slope_limit=30, height_range=(0, 100), noise_threshold=-1)
OAK = TreePrototype(
    id="tree_1", name="Oak", prefab="oak", min_width=1, max_width=2, min_height=3, max_height=5
)


def test_flat_map_places_one_tree_per_probe() -> None:
    hm = create_heightmap(100, 100)
    trees = scatter_trees(
        hm,
        CONFIG,
        OAK,
        1.0 / 100.0,
        ACCEPT_ALL,
        noise=Simplex2D(seed=0),
        rng=np.random.default_rng(0),
    )
    assert len(trees) == 100
    for t in trees:
        x, y, z = t.position
        assert -50.0 <= x <= 50.0
        assert -50.0 <= z <= 50.0
        assert y == 0.0
        assert t.prototype_id == "tree_1"
        assert 0.0 <= t.rotation < 2.0 * np.pi
        assert 1.0 <= t.scale[0] <= 2.0
        assert 3.0 <= t.scale[1] <= 5.0
        assert t.scale[0] == t.scale[2]


def test_positions_follow_terrain_offset() -> None:
    cfg = TerrainConfig(width=100, depth=100, resolution=100, position=(1000.0, 5.0, -300.0))
    trees = scatter_trees(
        create_heightmap(100, 100),
        cfg,
        OAK,
        0.01,
        ACCEPT_ALL,
        noise=Simplex2D(seed=0),
        rng=np.random.default_rng(1),
    )
    xs = np.array([t.position[0] for t in trees])
    zs = np.array([t.position[2] for t in trees])
    assert float(np.min(xs)) >= 950.0 and float(np.max(xs)) <= 1050.0
    assert float(np.min(zs)) >= -350.0 and float(np.max(zs)) <= -250.0
    assert all(t.position[1] == 5.0 for t in trees)


def test_slope_filter_rejects_cliffs() -> None:
    # 10 units of rise per 1-unit cell is far past any sensible limit.
    xs = np.arange(100, dtype=np.float64) * 10.0
    hm = from_grid(np.tile(xs, (100, 1)))
    trees = scatter_trees(
        hm, CONFIG, OAK, 0.01, ACCEPT_ALL, noise=Simplex2D(seed=0), rng=np.random.default_rng(0)
    )
    assert trees == []


def test_height_filter_limits_band() -> None:
    xs = np.arange(100, dtype=np.float64) * 0.01
    hm = from_grid(np.tile(xs, (100, 1)))
    filters = ScatterFilters(slope_limit=90, height_range=(0, 50), noise_threshold=-1)
    trees = scatter_trees(
        hm, CONFIG, OAK, 0.01, filters, noise=Simplex2D(seed=0), rng=np.random.default_rng(0)
    )
    assert 0 < len(trees) < 100
    assert all(t.position[1] <= 0.5 * 0.99 + 1e-12 for t in trees)


def test_noise_threshold_above_range_rejects_everything() -> None:
    filters = ScatterFilters(noise_threshold=1.5)
    trees = scatter_trees(
        create_heightmap(100, 100), CONFIG, OAK, 0.01, filters, noise=Simplex2D(seed=0)
    )
    assert trees == []


def test_density_must_be_positive() -> None:
    with pytest.raises(ValueError):
        scatter_trees(create_heightmap(10, 10), CONFIG, OAK, 0.0, noise=Simplex2D(seed=0))


def test_scatter_details_scales_and_normals() -> None:
    layer = DetailLayer(
        id="detail_1",
        prototype="grass_1",
        density=0.04,
        min_scale=0.5,
        max_scale=1.5,
        align_to_ground=True,
        random_rotation=False,
        filters=ACCEPT_ALL,
    )
    details = scatter_details(
        create_heightmap(100, 100), CONFIG, layer, noise=Simplex2D(seed=0),
        rng=np.random.default_rng(2),
    )
    assert len(details) == 400
    for d in details:
        assert d.layer_id == "detail_1"
        assert d.prototype_id == "grass_1"
        assert d.rotation == 0.0
        assert 0.5 <= d.scale <= 1.5
        assert d.normal == pytest.approx((0.0, 1.0, 0.0))


def test_aligned_normals_tilt_with_slope() -> None:
    xs = np.arange(100, dtype=np.float64) * 0.2
    hm = from_grid(np.tile(xs, (100, 1)))
    layer = DetailLayer(
        id="d", prototype="p", density=0.01, align_to_ground=True,
        filters=ScatterFilters(slope_limit=90, noise_threshold=-1),
    )
    details = scatter_details(hm, CONFIG, layer, noise=Simplex2D(seed=0))
    assert details
    for d in details:
        nx, ny, nz = d.normal
        assert nx < 0.0
        assert ny > 0.0
        assert nz == pytest.approx(0.0)
        assert nx * nx + ny * ny + nz * nz == pytest.approx(1.0)


def test_slope_filter_uses_depth_spacing_on_non_square_terrain() -> None:
    # 2 units of rise per row over 4-unit rows is a 30 degree slope.
    cfg = TerrainConfig(width=100, depth=400, resolution=101)
    zs = np.arange(101, dtype=np.float64) * 2.0
    hm = from_grid(np.tile(zs[:, None], (1, 101)))
    filters = ScatterFilters(slope_limit=45, height_range=(0, 100), noise_threshold=-1)
    trees = scatter_trees(
        hm, cfg, OAK, 0.01, filters, noise=Simplex2D(seed=0), rng=np.random.default_rng(0)
    )
    assert len(trees) == 11 * 11

    steep = ScatterFilters(slope_limit=25, height_range=(0, 100), noise_threshold=-1)
    assert scatter_trees(
        hm, cfg, OAK, 0.01, steep, noise=Simplex2D(seed=0), rng=np.random.default_rng(0)
    ) == []
