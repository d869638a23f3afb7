from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field, replace

import numpy as np

from noisegen import Simplex2D
from terrain.brush import apply_brush, stroke_points
from terrain.config import (
    BrushSettings,
    DetailLayer,
    ErosionSettings,
    GeneratorParams,
    GrassPrototype,
    ScatterFilters,
    TerrainConfig,
    TerrainLayer,
    TreePrototype,
)
from terrain.erosion import hydraulic_erosion
from terrain.generator import generate_heightmap
from terrain.heightmap import HeightmapData, create_heightmap, sample_bilinear
from terrain.mesh import (
    DEFAULT_LOD_DISTANCES,
    DEFAULT_LOD_LEVELS,
    MeshData,
    build_lod_meshes,
    build_mesh,
    downsample,
    get_chunk,
    lod_for_distance,
)
from terrain.presets import PRESETS, TerrainPreset
from terrain.raster import (
    gray_to_heights,
    gray_to_png_bytes,
    heightmap_to_gray,
    mesh_to_obj_bytes,
    png_bytes_to_gray,
)
from terrain.splat import (
    CHANNELS,
    SplatMap,
    auto_generate_splat_maps,
    create_splat_map,
    paint_layer,
)
from terrain.vegetation import (
    DetailInstance,
    TreeInstance,
    scatter_details,
    scatter_trees,
)

log = logging.getLogger(__name__)


@dataclass
class TerrainInstance:
    """One editable terrain and everything it owns."""

    id: str
    config: TerrainConfig
    heightmap: HeightmapData
    layers: list[TerrainLayer] = field(default_factory=list)
    splat_maps: list[SplatMap] = field(default_factory=list)
    trees: list[TreePrototype] = field(default_factory=list)
    grass: list[GrassPrototype] = field(default_factory=list)
    details: list[DetailLayer] = field(default_factory=list)
    tree_instances: list[TreeInstance] = field(default_factory=list)
    detail_instances: list[DetailInstance] = field(default_factory=list)


class TerrainService:
    """Registry of terrain instances plus the editing operations on them.

    Unknown ids are not errors here: lookups that miss return None, False,
    0 or an empty container.
    """

    def __init__(self, *, seed: int | None = None):
        self._rng = np.random.default_rng(seed)
        self._ids = itertools.count(1)
        self.terrains: dict[str, TerrainInstance] = {}
        self.presets: list[TerrainPreset] = list(PRESETS)
        self.noise = Simplex2D(seed=self._draw_seed())

    def _draw_seed(self) -> int:
        return int(self._rng.integers(0, 2**31 - 1))

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_terrain(self, config: TerrainConfig | None = None) -> TerrainInstance:
        if config is None:
            config = TerrainConfig()
        if config.id is None:
            config = replace(config, id=self._next_id("terrain"))

        res = int(config.resolution)
        terrain = TerrainInstance(
            id=str(config.id), config=config, heightmap=create_heightmap(res, res)
        )
        self.terrains[terrain.id] = terrain
        log.info("Created terrain %s (%dx%d)", terrain.id, res, res)
        return terrain

    def generate_from_preset(
        self, preset_id: str, config: TerrainConfig | None = None
    ) -> TerrainInstance | None:
        preset = self.get_preset(preset_id)
        if preset is None:
            return None

        terrain = self.create_terrain(config)
        self.generate_heightmap(terrain.id, preset.generator, preset.generator_params)
        for i, layer in enumerate(preset.default_layers):
            self.add_layer(terrain.id, replace(layer, id=f"layer_{i}"))
        return terrain

    def get_terrain(self, terrain_id: str) -> TerrainInstance | None:
        return self.terrains.get(terrain_id)

    def get_all_terrains(self) -> list[TerrainInstance]:
        return list(self.terrains.values())

    def delete_terrain(self, terrain_id: str) -> bool:
        if self.terrains.pop(terrain_id, None) is None:
            return False
        log.info("Deleted terrain %s", terrain_id)
        return True

    def get_presets(self, category: str | None = None) -> list[TerrainPreset]:
        if category is None:
            return list(self.presets)
        return [p for p in self.presets if p.category == category]

    def get_preset(self, preset_id: str) -> TerrainPreset | None:
        for preset in self.presets:
            if preset.id == preset_id:
                return preset
        return None

    # ------------------------------------------------------------------
    # Heights
    # ------------------------------------------------------------------

    def generate_heightmap(
        self, terrain_id: str, generator: str, params: GeneratorParams
    ) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        if params.seed is None:
            params = replace(params, seed=self._draw_seed())
        generate_heightmap(terrain.heightmap, generator, params, noise=self.noise)
        return True

    def apply_brush(
        self, terrain_id: str, x: float, z: float, brush: BrushSettings
    ) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        if brush.type == "paint":
            if brush.paint_layer_index is None:
                return False
            return self.paint_layer(terrain_id, x, z, brush.paint_layer_index, brush)
        return apply_brush(
            terrain.heightmap, terrain.config, x, z, brush, noise=self.noise
        )

    def apply_brush_stroke(
        self, terrain_id: str, path: list[tuple[float, float]], brush: BrushSettings
    ) -> bool:
        """One dab per stroke point; True if any dab touched the terrain."""
        if terrain_id not in self.terrains:
            return False
        touched = False
        for x, z in stroke_points(path, brush, rng=self._rng):
            touched = self.apply_brush(terrain_id, x, z, brush) or touched
        return touched

    def apply_hydraulic_erosion(self, terrain_id: str, settings: ErosionSettings) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        rng = None if settings.seed is not None else self._rng
        hydraulic_erosion(terrain.heightmap, settings, rng=rng)
        return True

    def get_height_at_position(self, terrain_id: str, x: float, z: float) -> float | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        hm = terrain.heightmap
        gx, gz = terrain.config.world_to_grid(x, z, hm.width, hm.height)
        h = sample_bilinear(hm, gx, gz)
        if h is None:
            return None
        return h + float(terrain.config.position[1])

    # ------------------------------------------------------------------
    # Texture layers
    # ------------------------------------------------------------------

    def add_layer(self, terrain_id: str, layer: TerrainLayer) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        terrain.layers.append(layer)
        if len(terrain.layers) > len(terrain.splat_maps) * CHANNELS:
            hm = terrain.heightmap
            terrain.splat_maps.append(create_splat_map(hm.width, hm.height))
        return True

    def paint_layer(
        self,
        terrain_id: str,
        x: float,
        z: float,
        layer_index: int,
        brush: BrushSettings,
    ) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None or not (0 <= int(layer_index) < len(terrain.layers)):
            return False
        return paint_layer(terrain.splat_maps, terrain.config, x, z, layer_index, brush)

    def auto_generate_splat_maps(self, terrain_id: str) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None or not terrain.layers:
            return False
        hm = terrain.heightmap
        auto_generate_splat_maps(
            hm,
            terrain.layers,
            terrain.splat_maps,
            spacing_x=terrain.config.grid_spacing(hm.width),
            spacing_z=terrain.config.grid_spacing_z(hm.height),
        )
        return True

    # ------------------------------------------------------------------
    # Vegetation
    # ------------------------------------------------------------------

    def add_tree_prototype(self, terrain_id: str, tree: TreePrototype) -> TreePrototype | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        prototype = replace(tree, id=self._next_id("tree"))
        terrain.trees.append(prototype)
        return prototype

    def add_grass_prototype(
        self, terrain_id: str, grass: GrassPrototype
    ) -> GrassPrototype | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        prototype = replace(grass, id=self._next_id("grass"))
        terrain.grass.append(prototype)
        return prototype

    def add_detail_layer(self, terrain_id: str, layer: DetailLayer) -> DetailLayer | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        detail = replace(layer, id=self._next_id("detail"))
        terrain.details.append(detail)
        return detail

    def auto_place_trees(
        self,
        terrain_id: str,
        prototype_id: str,
        density: float,
        filters: ScatterFilters | None = None,
    ) -> int:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return 0
        prototype = next((t for t in terrain.trees if t.id == prototype_id), None)
        if prototype is None:
            return 0

        placed = scatter_trees(
            terrain.heightmap,
            terrain.config,
            prototype,
            density,
            filters,
            noise=self.noise,
            rng=self._rng,
        )
        terrain.tree_instances.extend(placed)
        log.info("Placed %d %s trees on %s", len(placed), prototype_id, terrain_id)
        return len(placed)

    def scatter_details(self, terrain_id: str, layer_id: str) -> int:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return 0
        layer = next((d for d in terrain.details if d.id == layer_id), None)
        if layer is None:
            return 0

        placed = scatter_details(
            terrain.heightmap, terrain.config, layer, noise=self.noise, rng=self._rng
        )
        terrain.detail_instances.extend(placed)
        return len(placed)

    # ------------------------------------------------------------------
    # Raster exchange
    # ------------------------------------------------------------------

    def export_heightmap_samples(self, terrain_id: str) -> np.ndarray | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        return heightmap_to_gray(terrain.heightmap)

    def export_heightmap_image(self, terrain_id: str) -> bytes | None:
        samples = self.export_heightmap_samples(terrain_id)
        if samples is None:
            return None
        return gray_to_png_bytes(samples)

    def import_heightmap_samples(self, terrain_id: str, samples: np.ndarray) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        hm = terrain.heightmap
        s = np.asarray(samples)
        if s.shape != (hm.height, hm.width):
            raise ValueError(
                f"samples have shape {s.shape}, expected {(hm.height, hm.width)}"
            )
        hm.grid[:, :] = gray_to_heights(s, terrain.config.height)
        hm.update_bounds()
        return True

    def import_heightmap_image(self, terrain_id: str, data: bytes) -> bool:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return False
        hm = terrain.heightmap
        try:
            samples = png_bytes_to_gray(data, hm.width, hm.height)
        except OSError as exc:
            log.warning("Could not decode heightmap image for %s: %s", terrain_id, exc)
            return False
        return self.import_heightmap_samples(terrain_id, samples)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def generate_lod_heightmap(self, terrain_id: str, lod_level: int) -> HeightmapData | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        return downsample(terrain.heightmap, lod_level)

    def generate_terrain_mesh(self, terrain_id: str, lod_level: int = 1) -> MeshData | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        hm = terrain.heightmap if int(lod_level) == 1 else downsample(terrain.heightmap, lod_level)
        return build_mesh(hm, terrain.config)

    def generate_all_lod_levels(
        self, terrain_id: str, levels: tuple[int, ...] | list[int] = DEFAULT_LOD_LEVELS
    ) -> dict[int, MeshData]:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return {}
        return build_lod_meshes(terrain.heightmap, terrain.config, levels)

    def get_terrain_chunk(
        self,
        terrain_id: str,
        chunk_x: int,
        chunk_z: int,
        chunk_size: int,
        lod_level: int = 1,
    ) -> MeshData | None:
        terrain = self.terrains.get(terrain_id)
        if terrain is None:
            return None
        return get_chunk(
            terrain.heightmap, terrain.config, chunk_x, chunk_z, chunk_size, lod_level
        )

    def export_terrain_obj(self, terrain_id: str, lod_level: int = 1) -> bytes | None:
        """Wavefront OBJ of the terrain mesh at the given LOD."""
        mesh = self.generate_terrain_mesh(terrain_id, lod_level)
        if mesh is None:
            return None
        return mesh_to_obj_bytes(mesh)

    @staticmethod
    def calculate_lod_level(
        distance: float,
        thresholds: tuple[float, ...] | list[float] = DEFAULT_LOD_DISTANCES,
    ) -> int:
        return lod_for_distance(distance, thresholds)
