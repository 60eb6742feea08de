from __future__ import annotations

from pathlib import Path

import numpy as np
import trimesh

from ..blob import COLOR_FIELDS, Blob
from ..errors import BlobIOError, FormatError, InvalidArgument


def _to_point_cloud(blob: Blob) -> trimesh.PointCloud:
    """Blob -> trimesh.PointCloud, padding D < 3 with zeros."""
    if blob.dimension > 3:
        raise InvalidArgument(f"PLY export supports at most 3 dimensions, blob has {blob.dimension}.")
    data = blob.points.as_array(dtype=np.float64)
    xyz = np.zeros((data.shape[0], 3), dtype=np.float64)
    xyz[:, : blob.dimension] = data[:, : blob.dimension]

    colors = None
    if blob.aux_fields == COLOR_FIELDS and data.shape[0] > 0:
        rgba = data[:, blob.dimension : blob.dimension + 4]
        colors = np.clip(np.rint(rgba * 255.0), 0, 255).astype(np.uint8)
    return trimesh.PointCloud(vertices=xyz, colors=colors)


def export_ply(blob: Blob, path: str | Path) -> None:
    """
    Save a blob's points as a PLY point cloud.
    RGBA auxiliary fields in [0, 1] become 8-bit vertex colours.
    """
    path = Path(path)
    cloud = _to_point_cloud(blob)
    try:
        if path.parent and path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)
        cloud.export(str(path), file_type="ply")
    except OSError as e:
        raise BlobIOError(e.errno, f"Cannot write PLY file {path}: {e.strerror or e}", str(path)) from e


def load_ply(path: str | Path) -> Blob:
    """
    Load the vertices of a PLY file into a 3-D MET_FLOAT blob.
    Vertex colours, when present, are mapped back to RGBA in [0, 1].
    """
    path = Path(path)
    if not path.exists():
        raise BlobIOError(2, f"PLY file not found: {path}", str(path))
    obj = trimesh.load(str(path), file_type="ply")
    vertices = np.asarray(getattr(obj, "vertices", None), dtype=np.float64)
    if vertices.ndim != 2 or vertices.shape[1] != 3:
        raise FormatError(f"No (N,3) vertex data found in {path}")

    colors = getattr(obj, "colors", None)
    if colors is None and hasattr(obj, "visual"):
        colors = getattr(obj.visual, "vertex_colors", None)
    colors = np.asarray(colors) if colors is not None else np.empty((0, 4))

    blob = Blob(dimension=3)
    blob.name = path.stem
    for i, p in enumerate(vertices):
        aux = None
        if colors.shape == (vertices.shape[0], 4):
            aux = colors[i].astype(np.float64) / 255.0
        blob.add_point(p, aux)
    return blob


__all__ = ["export_ply", "load_ply"]
