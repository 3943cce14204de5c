"""Mini README: In-memory point cloud model shared by every pipeline stage.

Structure:
    * PointCloud - structured-array container with organisation metadata.
    * XYZ_DTYPE - dtype of clouds that carry coordinates only.

Points are stored as a numpy structured array so that arbitrary per-point
fields (colour, intensity, normals, labels) travel with the coordinates when a
subset is extracted. ``width``/``height`` follow the usual organised cloud
convention: an unorganised cloud has ``height == 1`` and ``width`` equal to the
number of points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

XYZ_DTYPE = np.dtype([("x", np.float32), ("y", np.float32), ("z", np.float32)])
DEFAULT_VIEWPOINT: Tuple[float, ...] = (0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0)
COORDINATE_FIELDS = ("x", "y", "z")


@dataclass(slots=True)
class PointCloud:
    """Ordered points plus shape metadata.

    ``data`` must be a one-dimensional structured array with at least the
    ``x``, ``y`` and ``z`` fields. ``viewpoint`` holds the sensor origin
    (tx, ty, tz) followed by its orientation quaternion (qw, qx, qy, qz).
    """

    data: np.ndarray
    width: Optional[int] = None
    height: int = 1
    is_dense: bool = True
    viewpoint: Tuple[float, ...] = DEFAULT_VIEWPOINT

    def __post_init__(self) -> None:
        if self.data.dtype.names is None or self.data.ndim != 1:
            raise ValueError("Point cloud data must be a one-dimensional structured array")
        missing = [name for name in COORDINATE_FIELDS if name not in self.data.dtype.names]
        if missing:
            raise ValueError(f"Point cloud data is missing coordinate fields: {missing}")
        if self.height < 1:
            raise ValueError("Point cloud height must be at least 1")
        if self.width is None:
            self.width = len(self.data) // self.height
        if self.width * self.height != len(self.data):
            raise ValueError(
                f"Point cloud shape {self.width}x{self.height} does not match {len(self.data)} points"
            )
        if len(self.viewpoint) != 7:
            raise ValueError("Viewpoint must contain 7 values (translation + quaternion)")
        self.viewpoint = tuple(float(value) for value in self.viewpoint)

    @classmethod
    def from_xyz(cls, points: np.ndarray, *, is_dense: bool = True) -> "PointCloud":
        """Build an unorganised, coordinates-only cloud from an (N, 3) array."""

        points = np.asarray(points)
        if points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("Point cloud must be of shape (N, 3)")
        data = np.empty(points.shape[0], dtype=XYZ_DTYPE)
        data["x"] = points[:, 0]
        data["y"] = points[:, 1]
        data["z"] = points[:, 2]
        return cls(data=data, width=points.shape[0], height=1, is_dense=is_dense)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self.data.dtype.names or ())

    def xyz(self) -> np.ndarray:
        """Return the coordinates as a freshly allocated (N, 3) float32 array."""

        return np.stack([self.data[name] for name in COORDINATE_FIELDS], axis=1).astype(
            np.float32, copy=False
        )

    def take(self, indices: Sequence[int]) -> "PointCloud":
        """Copy the points at ``indices``, with every field, into a new unorganised cloud."""

        selection = np.asarray(indices, dtype=np.intp)
        subset = self.data[selection].copy()
        return PointCloud(
            data=subset,
            width=len(subset),
            height=1,
            is_dense=self.is_dense,
            viewpoint=self.viewpoint,
        )


def has_nan(data: np.ndarray) -> bool:
    """Whether any floating point field of the structured ``data`` holds NaN."""

    for name in data.dtype.names or ():
        if data.dtype[name].base.kind == "f" and np.isnan(data[name]).any():
            return True
    return False
