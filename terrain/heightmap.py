from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class HeightmapData:
    """Row-major elevation grid.

    `data` is the flat buffer (`idx(x, y) = y * width + x`); `grid` is a
    `(height, width)` view onto the same memory. Mutating operations must
    call `update_bounds()` before returning.
    """

    width: int
    height: int
    data: np.ndarray
    min_height: float = 0.0
    max_height: float = 0.0

    def __post_init__(self) -> None:
        self.width = int(self.width)
        self.height = int(self.height)
        if self.width <= 0 or self.height <= 0:
            raise ValueError("heightmap width and height must be > 0")
        self.data = np.asarray(self.data, dtype=np.float64).reshape(-1)
        if self.data.size != self.width * self.height:
            raise ValueError(
                f"heightmap data has {self.data.size} samples, "
                f"expected {self.width * self.height}"
            )

    @property
    def grid(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width)

    def idx(self, x: int, y: int) -> int:
        return int(y) * self.width + int(x)

    def update_bounds(self) -> None:
        self.min_height = float(np.min(self.data))
        self.max_height = float(np.max(self.data))

    @property
    def height_range(self) -> float:
        """Bounds span, or 1.0 for a flat map so callers can divide by it."""
        r = self.max_height - self.min_height
        return r if r != 0.0 else 1.0

    def copy(self) -> HeightmapData:
        return HeightmapData(
            width=self.width,
            height=self.height,
            data=self.data.copy(),
            min_height=self.min_height,
            max_height=self.max_height,
        )


def create_heightmap(width: int, height: int) -> HeightmapData:
    """Flat heightmap at elevation 0."""
    w = int(width)
    h = int(height)
    if w <= 0 or h <= 0:
        raise ValueError("heightmap width and height must be > 0")
    return HeightmapData(width=w, height=h, data=np.zeros(w * h, dtype=np.float64))


def from_grid(grid: np.ndarray) -> HeightmapData:
    g = np.asarray(grid, dtype=np.float64)
    if g.ndim != 2:
        raise ValueError("grid must be a 2D array")
    hm = HeightmapData(width=g.shape[1], height=g.shape[0], data=g.reshape(-1).copy())
    hm.update_bounds()
    return hm


def slope_degrees(
    heightmap: HeightmapData, *, spacing_x: float = 1.0, spacing_z: float = 1.0
) -> np.ndarray:
    """Per-cell slope angle in degrees, `(height, width)`.

    Gradients are central differences (one-sided at the border) divided by
    the vertex spacing along each axis; magnitudes above 1 clamp to 90
    degrees.
    """

    g = heightmap.grid
    spacing_x = float(spacing_x)
    spacing_z = float(spacing_z)
    if spacing_x <= 0.0 or spacing_z <= 0.0:
        raise ValueError("spacing_x and spacing_z must be > 0")
    if g.shape[0] < 2 or g.shape[1] < 2:
        return np.zeros_like(g)
    dzdy, dzdx = np.gradient(g, spacing_z, spacing_x)
    mag = np.sqrt(dzdx * dzdx + dzdy * dzdy)
    return np.degrees(np.arcsin(np.clip(mag, 0.0, 1.0)))


def sample_bilinear(heightmap: HeightmapData, gx: float, gy: float) -> float | None:
    """Bilinear height at continuous grid coordinates, None outside the grid."""

    w = heightmap.width
    h = heightmap.height
    gx = float(gx)
    gy = float(gy)
    if gx < 0.0 or gy < 0.0 or gx > w - 1 or gy > h - 1:
        return None

    x0 = min(math.floor(gx), max(w - 2, 0))
    y0 = min(math.floor(gy), max(h - 2, 0))
    x1 = min(x0 + 1, w - 1)
    y1 = min(y0 + 1, h - 1)
    fx = gx - x0
    fy = gy - y0

    g = heightmap.grid
    h0 = g[y0, x0] * (1.0 - fx) + g[y0, x1] * fx
    h1 = g[y1, x0] * (1.0 - fx) + g[y1, x1] * fx
    return float(h0 * (1.0 - fy) + h1 * fy)
