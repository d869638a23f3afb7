from __future__ import annotations

import io

import numpy as np
from PIL import Image

from terrain.heightmap import HeightmapData
from terrain.mesh import MeshData


def heightmap_to_gray(heightmap: HeightmapData) -> np.ndarray:
    """Normalize heights to an 8-bit `(height, width)` grayscale array.

    Uses the heightmap bounds and rounds to the nearest level; a flat
    heightmap becomes all zeros.
    """

    z = heightmap.grid
    zmin = float(heightmap.min_height)
    zmax = float(heightmap.max_height)
    if zmax == zmin:
        return np.zeros(z.shape, dtype=np.uint8)
    zn = (z - zmin) / (zmax - zmin)
    return np.clip(np.rint(zn * 255.0), 0.0, 255.0).astype(np.uint8)


def gray_to_heights(samples: np.ndarray, max_height: float) -> np.ndarray:
    """Map 0..255 samples back to `[0, max_height]` as float64."""

    s = np.asarray(samples)
    if s.ndim != 2:
        raise ValueError("expected a 2D sample array")
    return s.astype(np.float64) / 255.0 * float(max_height)


def gray_to_png_bytes(samples: np.ndarray) -> bytes:
    s = np.asarray(samples, dtype=np.uint8)
    if s.ndim != 2:
        raise ValueError("expected a 2D sample array")
    out = io.BytesIO()
    Image.fromarray(s).save(out, format="PNG")
    return out.getvalue()


def png_bytes_to_gray(data: bytes, width: int, height: int) -> np.ndarray:
    """Decode an image, resample it to `width x height` and return its red channel.

    Raises `PIL.UnidentifiedImageError` (an `OSError`) for undecodable input.
    """

    with Image.open(io.BytesIO(data)) as img:
        rgb = img.convert("RGB")
    if rgb.size != (int(width), int(height)):
        rgb = rgb.resize((int(width), int(height)), resample=Image.BILINEAR)
    return np.asarray(rgb, dtype=np.uint8)[:, :, 0].copy()


def mesh_to_obj_bytes(mesh: MeshData) -> bytes:
    """Wavefront OBJ with positions, normals, UVs and faces."""

    pos = np.asarray(mesh.positions, dtype=np.float64).reshape(-1, 3)
    nrm = np.asarray(mesh.normals, dtype=np.float64).reshape(-1, 3)
    uv = np.asarray(mesh.uvs, dtype=np.float64).reshape(-1, 2)
    tris = np.asarray(mesh.indices, dtype=np.int64).reshape(-1, 3) + 1

    lines: list[str] = []
    lines.append("# terrain mesh\n")
    lines.append(f"# vertices={mesh.vertex_count} triangles={mesh.triangle_count}\n")
    for x, y, z in pos:
        lines.append(f"v {x:.6f} {y:.6f} {z:.6f}\n")
    for u, v in uv:
        lines.append(f"vt {u:.6f} {v:.6f}\n")
    for x, y, z in nrm:
        lines.append(f"vn {x:.6f} {y:.6f} {z:.6f}\n")
    for a, b, c in tris:
        lines.append(f"f {a}/{a}/{a} {b}/{b}/{b} {c}/{c}/{c}\n")

    return "".join(lines).encode("utf-8")
