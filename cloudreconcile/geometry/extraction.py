"""Mini README: Copy displayed geometry into owned coordinate storage.

Structure:
    * read_coordinates - full-precision (N, 3) copy of any displayed geometry.
    * extract_points - unorganised float32 ``PointCloud`` of the same points.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..point_cloud import PointCloud
from .adapters import as_rendered_geometry


def read_coordinates(geometry: Any) -> np.ndarray:
    """Return the coordinates of ``geometry`` as a new float64 (N, 3) array."""

    rendered = as_rendered_geometry(geometry)
    to_array = getattr(rendered, "to_array", None)
    if callable(to_array):
        return np.array(to_array(), dtype=np.float64).reshape(-1, 3)

    count = rendered.number_of_points()
    coordinates = np.empty((count, 3), dtype=np.float64)
    for index in range(count):
        coordinates[index] = rendered.point(index)
    return coordinates


def extract_points(geometry: Any) -> PointCloud:
    """Copy every displayed point, narrowed to float32, without validity filtering.

    The result has ``height == 1``, ``width`` equal to the point count and
    ``is_dense`` set to ``False`` since no NaN check is performed.
    """

    coordinates = read_coordinates(geometry).astype(np.float32)
    return PointCloud.from_xyz(coordinates, is_dense=False)
