from __future__ import annotations

from dataclasses import dataclass

from terrain.config import BlendBand, GeneratorParams, TerrainLayer

CATEGORIES = ("flat", "hills", "mountains", "desert", "islands", "canyon", "custom")


@dataclass(frozen=True)
class TerrainPreset:
    """Named recipe: generator, its parameters and the layers to attach.

    `default_layers` carry an empty id; one is assigned when the preset is
    applied to a terrain.
    """

    id: str
    name: str
    category: str
    generator: str
    generator_params: GeneratorParams
    default_layers: tuple[TerrainLayer, ...] = ()
    description: str = ""


def _slope_layer(name: str, texture: str, tiling: float, metallic: float,
                 smoothness: float, band: tuple[float, float, float]) -> TerrainLayer:
    return TerrainLayer(
        id="",
        name=name,
        texture=texture,
        tiling=(tiling, tiling),
        metallic=metallic,
        smoothness=smoothness,
        blend="slope",
        slope_blend=BlendBand(*band),
    )


def _height_layer(name: str, texture: str, tiling: float, metallic: float,
                  smoothness: float, band: tuple[float, float, float]) -> TerrainLayer:
    return TerrainLayer(
        id="",
        name=name,
        texture=texture,
        tiling=(tiling, tiling),
        metallic=metallic,
        smoothness=smoothness,
        blend="height",
        height_blend=BlendBand(*band),
    )


PRESETS: tuple[TerrainPreset, ...] = (
    TerrainPreset(
        id="flat",
        name="Flat Plains",
        category="flat",
        description="Mostly flat terrain with gentle variations",
        generator="perlin",
        generator_params=GeneratorParams(scale=100, octaves=2, persistence=0.3, amplitude=5),
        default_layers=(
            _slope_layer("Grass", "grass_diffuse", 10, 0.0, 0.3, (0, 30, 5)),
        ),
    ),
    TerrainPreset(
        id="rolling-hills",
        name="Rolling Hills",
        category="hills",
        description="Gentle rolling hills",
        generator="fbm",
        generator_params=GeneratorParams(scale=50, octaves=4, persistence=0.5, amplitude=30),
        default_layers=(
            _slope_layer("Grass", "grass_diffuse", 15, 0.0, 0.3, (0, 45, 10)),
            _slope_layer("Rock", "rock_diffuse", 8, 0.1, 0.4, (35, 90, 10)),
        ),
    ),
    TerrainPreset(
        id="mountains",
        name="Mountain Range",
        category="mountains",
        description="Dramatic mountain peaks",
        generator="ridged",
        generator_params=GeneratorParams(
            scale=30, octaves=6, persistence=0.6, amplitude=100, ridge_power=2
        ),
        default_layers=(
            _height_layer("Grass", "grass_diffuse", 20, 0.0, 0.3, (0, 40, 10)),
            _height_layer("Rock", "rock_diffuse", 10, 0.1, 0.4, (30, 70, 15)),
            _height_layer("Snow", "snow_diffuse", 15, 0.0, 0.6, (60, 100, 10)),
        ),
    ),
    TerrainPreset(
        id="desert-dunes",
        name="Desert Dunes",
        category="desert",
        description="Sandy desert with dunes",
        generator="fbm",
        generator_params=GeneratorParams(scale=40, octaves=3, persistence=0.4, amplitude=20),
        default_layers=(
            _slope_layer("Sand", "sand_diffuse", 20, 0.0, 0.1, (0, 90, 5)),
        ),
    ),
    TerrainPreset(
        id="islands",
        name="Island Archipelago",
        category="islands",
        description="Islands rising from water",
        generator="voronoi",
        generator_params=GeneratorParams(scale=20, amplitude=50, falloff=2),
        default_layers=(
            _height_layer("Sand", "sand_diffuse", 20, 0.0, 0.2, (0, 20, 5)),
            _height_layer("Grass", "grass_diffuse", 15, 0.0, 0.3, (15, 80, 10)),
        ),
    ),
    TerrainPreset(
        id="canyon",
        name="Canyon Lands",
        category="canyon",
        description="Deep canyons and plateaus",
        generator="hydraulic",
        generator_params=GeneratorParams(
            scale=35, octaves=5, persistence=0.55, amplitude=60, erosion_iterations=1000
        ),
        default_layers=(
            _slope_layer("Red Rock", "redrock_diffuse", 12, 0.0, 0.3, (0, 60, 15)),
            _slope_layer("Cliff", "cliff_diffuse", 8, 0.1, 0.4, (50, 90, 10)),
        ),
    ),
)


def get_preset(preset_id: str) -> TerrainPreset | None:
    for preset in PRESETS:
        if preset.id == preset_id:
            return preset
    return None


def presets_by_category(category: str) -> list[TerrainPreset]:
    return [p for p in PRESETS if p.category == category]
