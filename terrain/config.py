from __future__ import annotations

import math
from dataclasses import dataclass, field

BRUSH_TYPES = ("raise", "lower", "smooth", "flatten", "noise", "paint")
FALLOFF_TYPES = ("linear", "smooth", "sphere", "tip")
BLEND_MODES = ("height", "slope", "custom")


@dataclass(frozen=True)
class TerrainConfig:
    """Logical terrain size, heightmap resolution and world placement."""

    id: str | None = None
    name: str = "New Terrain"
    width: float = 256.0
    depth: float = 256.0
    height: float = 100.0
    resolution: int = 257
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.depth <= 0:
            raise ValueError("terrain width and depth must be > 0")
        if self.height <= 0:
            raise ValueError("terrain height must be > 0")
        if int(self.resolution) <= 0:
            raise ValueError("terrain resolution must be > 0")
        if len(self.position) != 3:
            raise ValueError("position must be an (x, y, z) triple")

    def world_to_cell(
        self, x: float, z: float, grid_width: int, grid_height: int
    ) -> tuple[int, int]:
        px, _, pz = self.position
        cx = math.floor(((float(x) - px) / self.width + 0.5) * grid_width)
        cz = math.floor(((float(z) - pz) / self.depth + 0.5) * grid_height)
        return cx, cz

    def world_to_grid(
        self, x: float, z: float, grid_width: int, grid_height: int
    ) -> tuple[float, float]:
        """Continuous grid coordinates where vertex (W-1, H-1) is the far corner."""
        px, _, pz = self.position
        gx = ((float(x) - px) / self.width + 0.5) * (grid_width - 1)
        gz = ((float(z) - pz) / self.depth + 0.5) * (grid_height - 1)
        return gx, gz

    def pixel_radius(self, size: float, grid_width: int) -> int:
        return math.floor(float(size) / self.width * grid_width)

    def grid_spacing(self, grid_width: int) -> float:
        """World distance between neighboring vertices along x."""
        return self.width / max(int(grid_width) - 1, 1)

    def grid_spacing_z(self, grid_height: int) -> float:
        return self.depth / max(int(grid_height) - 1, 1)


@dataclass(frozen=True)
class BlendBand:
    min: float
    max: float
    falloff: float


@dataclass(frozen=True)
class TerrainLayer:
    """A texture layer and the rule used to weight it automatically.

    Height bands are in percent of the heightmap range, slope bands in
    degrees. `custom` layers only receive weight from painting.
    """

    id: str
    name: str
    texture: str
    tiling: tuple[float, float] = (1.0, 1.0)
    metallic: float = 0.0
    smoothness: float = 0.5
    blend: str = "height"
    height_blend: BlendBand | None = None
    slope_blend: BlendBand | None = None
    normal_map: str | None = None
    mask_map: str | None = None

    def __post_init__(self) -> None:
        if self.blend not in BLEND_MODES:
            raise ValueError(f"unknown blend mode: {self.blend}")

    @property
    def band(self) -> BlendBand | None:
        if self.blend == "height":
            return self.height_blend
        if self.blend == "slope":
            return self.slope_blend
        return None


@dataclass(frozen=True)
class BrushSettings:
    type: str = "raise"
    size: float = 10.0
    strength: float = 0.5
    falloff: str = "smooth"
    rotation: float = 0.0
    spacing: float = 0.25
    jitter: float = 0.0
    noise_scale: float = 0.1
    noise_octaves: int = 1
    target_height: float | None = None
    paint_layer_index: int | None = None

    def __post_init__(self) -> None:
        if self.type not in BRUSH_TYPES:
            raise ValueError(f"unknown brush type: {self.type}")
        if self.falloff not in FALLOFF_TYPES:
            raise ValueError(f"unknown falloff: {self.falloff}")


@dataclass(frozen=True)
class ErosionSettings:
    iterations: int = 1000
    erosion_strength: float = 0.3
    deposition_strength: float = 0.3
    sediment_capacity: float = 4.0
    evaporation_rate: float = 0.02
    min_slope: float = 0.01
    gravity: float = 4.0
    rain_amount: float = 1.0
    thermal_erosion: bool = False
    thermal_strength: float = 0.5
    thermal_angle: float = 30.0
    seed: int | None = None


@dataclass(frozen=True)
class GeneratorParams:
    scale: float = 50.0
    octaves: int = 4
    persistence: float = 0.5
    amplitude: float = 50.0
    ridge_power: float = 2.0
    falloff: float = 2.0
    erosion_iterations: int = 0
    seed: int | None = None


@dataclass(frozen=True)
class ScatterFilters:
    slope_limit: float = 30.0
    height_range: tuple[float, float] = (0.0, 100.0)
    noise_scale: float = 0.1
    noise_threshold: float = 0.5


@dataclass(frozen=True)
class TreePrototype:
    id: str
    name: str
    prefab: str
    min_width: float = 1.0
    max_width: float = 1.0
    min_height: float = 1.0
    max_height: float = 1.0
    bend_factor: float = 0.0
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    lightmap_color: tuple[float, float, float] = (1.0, 1.0, 1.0)


@dataclass(frozen=True)
class GrassPrototype:
    id: str
    name: str
    texture: str
    min_width: float = 1.0
    max_width: float = 1.0
    min_height: float = 1.0
    max_height: float = 1.0
    noise_spread: float = 0.1
    healthy_color: tuple[float, float, float] = (0.26, 0.62, 0.20)
    dry_color: tuple[float, float, float] = (0.70, 0.62, 0.32)
    render_mode: str = "billboard"


@dataclass(frozen=True)
class DetailLayer:
    id: str
    prototype: str
    density: float
    min_scale: float = 1.0
    max_scale: float = 1.0
    align_to_ground: bool = False
    random_rotation: bool = True
    filters: ScatterFilters = field(default_factory=ScatterFilters)
