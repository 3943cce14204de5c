"""Mini README: Read-only adapters over displayed geometry.

Structure:
    * RenderedGeometry - protocol every displayed geometry backend satisfies.
    * ArrayGeometry - adapter over numpy coordinates or a ``PointCloud``.
    * VtkGeometryAdapter - adapter over objects exposing the VTK point accessors.
    * as_rendered_geometry - coerce supported inputs into a ``RenderedGeometry``.

The pipeline never mutates displayed geometry. It only needs a point count and
indexed coordinate access, so each rendering backend plugs in through a small
adapter instead of the pipeline depending on a concrete viewer type.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

import numpy as np

from ..point_cloud import COORDINATE_FIELDS, PointCloud


@runtime_checkable
class RenderedGeometry(Protocol):
    """Minimal capability interface of displayed geometry."""

    def number_of_points(self) -> int:
        ...

    def point(self, index: int) -> Sequence[float]:
        ...


class ArrayGeometry:
    """Displayed geometry backed by an (N, 3) coordinate array."""

    def __init__(self, points: np.ndarray | PointCloud) -> None:
        if isinstance(points, PointCloud):
            coordinates = np.stack(
                [points.data[name] for name in COORDINATE_FIELDS], axis=1
            ).astype(np.float64)
        else:
            coordinates = np.asarray(points, dtype=np.float64)
            if coordinates.size == 0:
                coordinates = coordinates.reshape(0, 3)
        if coordinates.ndim != 2 or coordinates.shape[1] != 3:
            raise ValueError("Displayed geometry must be of shape (N, 3)")
        coordinates.setflags(write=False)
        self._coordinates = coordinates

    def number_of_points(self) -> int:
        return int(self._coordinates.shape[0])

    def point(self, index: int) -> Sequence[float]:
        return tuple(float(value) for value in self._coordinates[index])

    def to_array(self) -> np.ndarray:
        """Expose the read-only coordinate block for vectorised readers."""

        return self._coordinates


class VtkGeometryAdapter:
    """Adapter for ``vtkPolyData``-like objects (``GetNumberOfPoints``/``GetPoint``)."""

    def __init__(self, polydata: Any) -> None:
        self._polydata = polydata

    def number_of_points(self) -> int:
        return int(self._polydata.GetNumberOfPoints())

    def point(self, index: int) -> Sequence[float]:
        return tuple(self._polydata.GetPoint(index))


def as_rendered_geometry(geometry: Any) -> RenderedGeometry:
    """Return ``geometry`` wrapped in the adapter matching its shape."""

    if isinstance(geometry, RenderedGeometry):
        return geometry
    if isinstance(geometry, (np.ndarray, PointCloud)):
        return ArrayGeometry(geometry)
    if hasattr(geometry, "GetNumberOfPoints") and hasattr(geometry, "GetPoint"):
        return VtkGeometryAdapter(geometry)
    raise TypeError(f"Unsupported displayed geometry type: {type(geometry).__name__}")
