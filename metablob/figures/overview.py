from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg", force=True)
matplotlib.rcParams["figure.facecolor"] = "white"
matplotlib.rcParams["savefig.facecolor"] = "white"

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (required for 3D projection)

from ..blob import COLOR_FIELDS, Blob, coordinate_names


def _resolve_blob(resource: Any) -> Blob:
    if isinstance(resource, Blob):
        return resource
    if isinstance(resource, (str, os.PathLike)):
        return Blob.from_file(resource)
    raise TypeError(f"Expected a Blob or a path, got {type(resource).__name__}")


def _point_colors(blob: Blob, data: np.ndarray) -> np.ndarray | None:
    if blob.aux_fields != COLOR_FIELDS or data.shape[0] == 0:
        return None
    rgba = data[:, blob.dimension : blob.dimension + 4]
    return np.clip(rgba, 0.0, 1.0)


def make_blob_overview(resource: Any, out: str | os.PathLike[str], dpi: int = 200, point_size: float = 12.0) -> None:
    """
    Scatter plot of a blob's points.

    D >= 3 uses the first three coordinates in a 3D axis, D == 2 a plane and
    D == 1 plots the value against the point index. Points are coloured with
    their RGBA fields when the blob carries them.
    """
    blob = _resolve_blob(resource)
    data = blob.points.as_array(dtype=np.float64)
    colors = _point_colors(blob, data)
    names = coordinate_names(blob.dimension)

    fig = plt.figure(figsize=(6.0, 5.0))
    if blob.dimension >= 3:
        ax = fig.add_subplot(111, projection="3d")
        ax.scatter(data[:, 0], data[:, 1], data[:, 2], c=colors, s=point_size, depthshade=False)
        ax.set_xlabel(names[0])
        ax.set_ylabel(names[1])
        ax.set_zlabel(names[2])
    elif blob.dimension == 2:
        ax = fig.add_subplot(111)
        ax.scatter(data[:, 0], data[:, 1], c=colors, s=point_size)
        ax.set_xlabel(names[0])
        ax.set_ylabel(names[1])
        ax.set_aspect("equal", adjustable="datalim")
    else:
        ax = fig.add_subplot(111)
        ax.scatter(np.arange(data.shape[0]), data[:, 0], c=colors, s=point_size)
        ax.set_xlabel("point index")
        ax.set_ylabel(names[0])

    title = blob.name or f"Blob {blob.identifier}"
    ax.set_title(f"{title}  ({blob.point_count} points, {blob.element_type.tag})")

    out = Path(out)
    if out.parent != Path("."):
        out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out, dpi=dpi, bbox_inches="tight")
    plt.close(fig)


__all__ = ["make_blob_overview"]
