from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from terrain.config import TerrainConfig
from terrain.heightmap import HeightmapData

log = logging.getLogger(__name__)

DEFAULT_LOD_DISTANCES = (0.0, 100.0, 200.0, 400.0, 800.0)
DEFAULT_LOD_LEVELS = (1, 2, 4, 8, 16)


@dataclass(frozen=True)
class MeshData:
    """Renderer-agnostic triangle mesh as flat buffers.

    positions/normals hold xyz triples, uvs hold uv pairs and indices hold
    one vertex triple per triangle.
    """

    positions: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.positions.size // 3)

    @property
    def triangle_count(self) -> int:
        return int(self.indices.size // 3)


def _check_lod(lod_level: int) -> int:
    lod = int(lod_level)
    if lod < 1:
        raise ValueError("lod_level must be >= 1")
    return lod


def downsample(heightmap: HeightmapData, lod_level: int) -> HeightmapData:
    """Block-average the grid by `lod_level`; edge blocks use in-range samples."""

    lod = _check_lod(lod_level)
    if lod == 1:
        return heightmap.copy()

    H = heightmap.height
    W = heightmap.width
    oh = math.ceil(H / lod)
    ow = math.ceil(W / lod)

    padded = np.full((oh * lod, ow * lod), np.nan, dtype=np.float64)
    padded[:H, :W] = heightmap.grid
    blocks = padded.reshape(oh, lod, ow, lod)
    out = np.nanmean(blocks, axis=(1, 3))

    lod_map = HeightmapData(width=ow, height=oh, data=out.reshape(-1))
    lod_map.update_bounds()
    return lod_map


def triangle_indices(width: int, height: int) -> np.ndarray:
    """Two triangles per quad: (tl, bl, tr) and (tr, bl, br)."""

    W = int(width)
    H = int(height)
    zs, xs = np.meshgrid(
        np.arange(H - 1, dtype=np.uint32), np.arange(W - 1, dtype=np.uint32), indexing="ij"
    )
    tl = (zs * W + xs).reshape(-1)
    tr = tl + 1
    bl = tl + W
    br = bl + 1
    tris = np.stack([tl, bl, tr, tr, bl, br], axis=-1)
    return tris.reshape(-1).astype(np.uint32)


def _normals(
    full: np.ndarray,
    src_z: np.ndarray,
    src_x: np.ndarray,
    step_x: float,
    step_z: float,
) -> np.ndarray:
    H, W = full.shape
    h_l = full[src_z, np.maximum(src_x - 1, 0)]
    h_r = full[src_z, np.minimum(src_x + 1, W - 1)]
    h_d = full[np.maximum(src_z - 1, 0), src_x]
    h_u = full[np.minimum(src_z + 1, H - 1), src_x]

    nx = (h_l - h_r) / (2.0 * step_x)
    nz = (h_d - h_u) / (2.0 * step_z)
    ny = np.ones_like(nx)
    n = np.stack([nx, ny, nz], axis=-1)
    return n / np.linalg.norm(n, axis=-1, keepdims=True)


def _assemble(
    full: np.ndarray,
    src_x: np.ndarray,
    src_z: np.ndarray,
    config: TerrainConfig,
) -> MeshData:
    """Mesh over the lattice `src_z x src_x` of cells of the `full` grid."""

    H, W = full.shape
    zz, xx = np.meshgrid(src_z, src_x, indexing="ij")
    u = xx / float(W - 1)
    v = zz / float(H - 1)

    ox, oy, oz = config.position
    positions = np.stack(
        [
            (u - 0.5) * float(config.width) + float(ox),
            full[zz, xx] + float(oy),
            (v - 0.5) * float(config.depth) + float(oz),
        ],
        axis=-1,
    )
    normals = _normals(
        full,
        zz,
        xx,
        float(config.width) / float(W - 1),
        float(config.depth) / float(H - 1),
    )
    uvs = np.stack([u, v], axis=-1)

    return MeshData(
        positions=positions.reshape(-1).astype(np.float32),
        normals=normals.reshape(-1).astype(np.float32),
        uvs=uvs.reshape(-1).astype(np.float32),
        indices=triangle_indices(src_x.size, src_z.size),
    )


def build_mesh(heightmap: HeightmapData, config: TerrainConfig) -> MeshData:
    """Full-grid mesh: W*H vertices and (W-1)*(H-1)*2 triangles."""

    if heightmap.width < 2 or heightmap.height < 2:
        raise ValueError("a mesh needs at least a 2x2 heightmap")
    return _assemble(
        heightmap.grid,
        np.arange(heightmap.width, dtype=np.int64),
        np.arange(heightmap.height, dtype=np.int64),
        config,
    )


def get_chunk(
    heightmap: HeightmapData,
    config: TerrainConfig,
    chunk_x: int,
    chunk_z: int,
    chunk_size: int,
    lod_level: int = 1,
) -> MeshData | None:
    """Mesh for one chunk, sampled every `lod_level` cells.

    The chunk spans cells `start .. start + chunk_size` inclusive. Chunks at
    the same LOD share their border vertices only when `chunk_size` is a
    multiple of `lod_level`; otherwise the last sampled column falls short of
    the next chunk's first. UVs stay in full-terrain space. Returns None
    when the chunk is off the heightmap or degenerate.
    """

    lod = _check_lod(lod_level)
    size = int(chunk_size)
    if size < 1:
        raise ValueError("chunk_size must be >= 1")

    W = heightmap.width
    H = heightmap.height
    start_x = int(chunk_x) * size
    start_z = int(chunk_z) * size
    if start_x < 0 or start_z < 0 or start_x >= W or start_z >= H:
        return None
    end_x = min(start_x + size + 1, W)
    end_z = min(start_z + size + 1, H)

    src_x = np.arange(start_x, end_x, lod, dtype=np.int64)
    src_z = np.arange(start_z, end_z, lod, dtype=np.int64)
    if src_x.size < 2 or src_z.size < 2:
        return None
    return _assemble(heightmap.grid, src_x, src_z, config)


def lod_for_distance(
    distance: float, thresholds: tuple[float, ...] | list[float] = DEFAULT_LOD_DISTANCES
) -> int:
    """`2**i` for the last threshold the distance reaches, else 1."""

    d = float(distance)
    for i in range(len(thresholds) - 1, -1, -1):
        if d >= float(thresholds[i]):
            return 2**i
    return 1


def build_lod_meshes(
    heightmap: HeightmapData,
    config: TerrainConfig,
    levels: tuple[int, ...] | list[int] = DEFAULT_LOD_LEVELS,
) -> dict[int, MeshData]:
    meshes: dict[int, MeshData] = {}
    for level in levels:
        lod_map = downsample(heightmap, int(level))
        if lod_map.width < 2 or lod_map.height < 2:
            log.debug(
                "Skipping LOD %d: %dx%d grid is too small for a mesh",
                int(level),
                lod_map.width,
                lod_map.height,
            )
            continue
        meshes[int(level)] = build_mesh(lod_map, config)
    return meshes
