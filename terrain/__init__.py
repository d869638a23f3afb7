from __future__ import annotations

from terrain.brush import apply_brush, brush_footprint, falloff_weight, stroke_points
from terrain.config import (
    BlendBand,
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
from terrain.erosion import hydraulic_erosion, thermal_erosion
from terrain.generator import GENERATORS, generate_heightmap, height_field
from terrain.heightmap import HeightmapData, create_heightmap, sample_bilinear
from terrain.mesh import (
    MeshData,
    build_lod_meshes,
    build_mesh,
    downsample,
    get_chunk,
    lod_for_distance,
)
from terrain.presets import PRESETS, TerrainPreset, get_preset, presets_by_category
from terrain.service import TerrainInstance, TerrainService
from terrain.splat import SplatMap, auto_generate_splat_maps, paint_layer
from terrain.vegetation import DetailInstance, TreeInstance, scatter_details, scatter_trees

__all__ = [
    "BlendBand",
    "BrushSettings",
    "DetailInstance",
    "DetailLayer",
    "ErosionSettings",
    "GENERATORS",
    "GeneratorParams",
    "GrassPrototype",
    "HeightmapData",
    "MeshData",
    "PRESETS",
    "ScatterFilters",
    "SplatMap",
    "TerrainConfig",
    "TerrainInstance",
    "TerrainLayer",
    "TerrainPreset",
    "TerrainService",
    "TreeInstance",
    "TreePrototype",
    "apply_brush",
    "auto_generate_splat_maps",
    "brush_footprint",
    "build_lod_meshes",
    "build_mesh",
    "create_heightmap",
    "downsample",
    "falloff_weight",
    "generate_heightmap",
    "get_chunk",
    "get_preset",
    "height_field",
    "hydraulic_erosion",
    "lod_for_distance",
    "paint_layer",
    "presets_by_category",
    "sample_bilinear",
    "scatter_details",
    "scatter_trees",
    "stroke_points",
    "thermal_erosion",
]
