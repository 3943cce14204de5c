"""Mini README: Merge coincident displayed points before matching.

Structure:
    * DeduplicationResult - the reduced geometry and how many points were pruned.
    * GeometryDeduplicator - tolerance-based point merging.

Merging keeps the first point seen in index order and drops every later point
within the tolerance of a kept point, so identical input always yields the same
survivors in their original order. A tolerance of zero merges only points whose
coordinates are bit-identical. Points with a NaN or infinite coordinate have no
position to merge or match and are always pruned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from sklearn.neighbors import KDTree

from ..configuration import get_settings
from ..logging_utils import get_logger
from ..point_cloud import PointCloud
from .extraction import read_coordinates

LOGGER = get_logger(__name__)

_FLOAT64_XYZ = np.dtype([("x", np.float64), ("y", np.float64), ("z", np.float64)])


@dataclass(slots=True)
class DeduplicationResult:
    """Deduplicated geometry plus bookkeeping for reporting."""

    geometry: PointCloud
    pruned_count: int
    kept_indices: np.ndarray

    @property
    def original_count(self) -> int:
        return len(self.geometry) + self.pruned_count


class GeometryDeduplicator:
    """Collapse points closer than a tolerance to one representative."""

    def __init__(
        self,
        tolerance: Optional[float] = None,
        *,
        relative: Optional[bool] = None,
        leaf_size: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.tolerance = settings.merge_tolerance if tolerance is None else float(tolerance)
        self.relative = settings.relative_tolerance if relative is None else relative
        self.leaf_size = settings.leaf_size if leaf_size is None else leaf_size
        if not self.tolerance >= 0.0:
            raise ValueError(f"Merge tolerance must be non-negative, got {self.tolerance}")

    def effective_tolerance(self, coordinates: np.ndarray) -> float:
        """Absolute merge distance for ``coordinates``."""

        if not self.relative or len(coordinates) == 0:
            return self.tolerance
        diagonal = float(np.linalg.norm(coordinates.max(axis=0) - coordinates.min(axis=0)))
        return self.tolerance * diagonal

    def deduplicate(self, geometry: Any) -> DeduplicationResult:
        """Return the merged geometry; ``geometry`` itself is left untouched."""

        coordinates = read_coordinates(geometry)
        finite = np.flatnonzero(np.isfinite(coordinates).all(axis=1)).astype(np.intp)
        tolerance = self.effective_tolerance(coordinates[finite])
        if len(finite) == 0:
            kept = np.empty(0, dtype=np.intp)
        elif tolerance == 0.0:
            kept = finite[_first_unique_rows(coordinates[finite])]
        else:
            kept = finite[self._merge_within(coordinates[finite], tolerance)]

        reduced = np.empty(len(kept), dtype=_FLOAT64_XYZ)
        for axis, name in enumerate(("x", "y", "z")):
            reduced[name] = coordinates[kept, axis]
        pruned = len(coordinates) - len(kept)
        LOGGER.debug(
            "Deduplicated %s displayed points to %s (tolerance %s)",
            len(coordinates),
            len(kept),
            tolerance,
        )
        return DeduplicationResult(
            geometry=PointCloud(data=reduced, is_dense=False),
            pruned_count=pruned,
            kept_indices=kept,
        )

    def _merge_within(self, coordinates: np.ndarray, tolerance: float) -> np.ndarray:
        tree = KDTree(coordinates, leaf_size=self.leaf_size)
        neighbourhoods = tree.query_radius(coordinates, r=tolerance)
        merged = np.zeros(len(coordinates), dtype=bool)
        kept = []
        for index, neighbours in enumerate(neighbourhoods):
            if merged[index]:
                continue
            kept.append(index)
            merged[neighbours] = True
        return np.asarray(kept, dtype=np.intp)


def _first_unique_rows(coordinates: np.ndarray) -> np.ndarray:
    """Indices of the first occurrence of every bit-identical row, ascending."""

    block = np.ascontiguousarray(coordinates)
    rows = block.view(np.dtype((np.void, block.dtype.itemsize * block.shape[1]))).ravel()
    _, first = np.unique(rows, return_index=True)
    return np.sort(first).astype(np.intp)
