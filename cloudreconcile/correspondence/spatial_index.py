"""Mini README: Single nearest neighbour search over a reference cloud.

Structure:
    * EmptyReferenceCloudError - raised when an index is built over no finite points.
    * SpatialIndex - abstract interface shared by all search backends.
    * KDTreeIndex - scikit-learn k-d tree backend for large clouds.
    * BruteForceIndex - linear scan backend for small clouds.
    * build_spatial_index - picks a backend from the cloud size.

Both backends report squared Euclidean distances and break ties between
equidistant reference points by returning the lowest index, so either backend
gives the same answer for the same input. Reference points with a NaN or
infinite coordinate (invalid points of non-dense clouds) are left out of the
search; returned indices always refer to positions in the full cloud.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np
from sklearn.neighbors import KDTree

from ..configuration import get_settings
from ..logging_utils import get_logger
from ..point_cloud import PointCloud

LOGGER = get_logger(__name__)

# Bytes of pairwise difference data a brute-force batch may allocate at once.
_BRUTE_FORCE_BLOCK_BYTES = 64 * 1024 * 1024
_TIE_RTOL = 1e-9


class EmptyReferenceCloudError(ValueError):
    """A spatial index was requested over a cloud without finite points."""


def _as_coordinates(points: np.ndarray | PointCloud) -> np.ndarray:
    if isinstance(points, PointCloud):
        coordinates = points.xyz()
    else:
        coordinates = np.asarray(points, dtype=np.float32)
        if coordinates.size == 0:
            coordinates = coordinates.reshape(0, 3)
    if coordinates.ndim != 2 or coordinates.shape[1] != 3:
        raise ValueError("Points must be of shape (N, 3)")
    return coordinates


def _squared_distances(reference: np.ndarray, query: np.ndarray) -> np.ndarray:
    difference = reference - query
    return np.einsum("ij,ij->i", difference, difference)


class SpatialIndex(ABC):
    """Nearest neighbour lookups against a fixed, non-empty reference cloud."""

    backend_name: str = "generic"

    def __init__(self, reference: np.ndarray | PointCloud) -> None:
        coordinates = _as_coordinates(reference)
        finite = np.isfinite(coordinates).all(axis=1)
        if not finite.any():
            raise EmptyReferenceCloudError(
                "Cannot build a spatial index over a reference cloud without finite points"
                f" ({len(coordinates)} points given)"
            )
        self._positions = np.flatnonzero(finite).astype(np.intp)
        self._reference = coordinates[finite].astype(np.float64)
        LOGGER.debug(
            "Built %s index over %s of %s reference points",
            self.backend_name,
            len(self._reference),
            len(coordinates),
        )

    def __len__(self) -> int:
        return len(self._reference)

    def nearest(self, query) -> Tuple[int, float]:
        """Return ``(index, squared_distance)`` of the reference point closest to ``query``."""

        indices, distances = self.nearest_batch(np.asarray(query, dtype=np.float64).reshape(1, 3))
        return int(indices[0]), float(distances[0])

    def nearest_batch(self, queries: np.ndarray | PointCloud) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorised ``nearest``: one ``(index, squared_distance)`` pair per query row.

        Queries must be finite.
        """

        coordinates = _as_coordinates(queries).astype(np.float64)
        if len(coordinates) == 0:
            return np.empty(0, dtype=np.intp), np.empty(0, dtype=np.float64)
        if not np.isfinite(coordinates).all():
            raise ValueError("Nearest neighbour queries must have finite coordinates")
        indices, squared = self._query(coordinates)
        return self._positions[indices], squared

    @abstractmethod
    def _query(self, queries: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Backend search over a non-empty float64 (M, 3) query block."""


class BruteForceIndex(SpatialIndex):
    """Exhaustive scan; ``argmin`` keeps the first (lowest) index on ties."""

    backend_name = "brute-force"

    def _query(self, queries: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        block = max(1, _BRUTE_FORCE_BLOCK_BYTES // (self._reference.nbytes or 1))
        indices = np.empty(len(queries), dtype=np.intp)
        distances = np.empty(len(queries), dtype=np.float64)
        for start in range(0, len(queries), block):
            chunk = queries[start : start + block]
            difference = chunk[:, np.newaxis, :] - self._reference[np.newaxis, :, :]
            squared = np.einsum("mnk,mnk->mn", difference, difference)
            best = np.argmin(squared, axis=1)
            indices[start : start + block] = best
            distances[start : start + block] = squared[np.arange(len(chunk)), best]
        return indices, distances


class KDTreeIndex(SpatialIndex):
    """k-d tree search with deterministic lowest-index tie resolution."""

    backend_name = "kd-tree"

    def __init__(self, reference: np.ndarray | PointCloud, *, leaf_size: Optional[int] = None) -> None:
        super().__init__(reference)
        self.leaf_size = get_settings().leaf_size if leaf_size is None else leaf_size
        self._tree = KDTree(self._reference, leaf_size=self.leaf_size)

    def _query(self, queries: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        neighbours = min(2, len(self._reference))
        distances, candidates = self._tree.query(queries, k=neighbours, return_distance=True)
        indices = candidates[:, 0].astype(np.intp)
        difference = self._reference[indices] - queries
        squared = np.einsum("ij,ij->i", difference, difference)
        if neighbours < 2:
            return indices, squared

        # The tree orders equidistant neighbours arbitrarily; rescan those rows.
        tied = np.flatnonzero(np.isclose(distances[:, 0], distances[:, 1], rtol=_TIE_RTOL, atol=0.0))
        if len(tied):
            radii = distances[tied, 0] * (1.0 + 1e-6) + 1e-12
            neighbourhoods = self._tree.query_radius(queries[tied], r=radii)
            for row, neighbourhood in zip(tied, neighbourhoods):
                neighbourhood = np.sort(neighbourhood)
                exact = _squared_distances(self._reference[neighbourhood], queries[row])
                winner = int(np.argmin(exact))
                indices[row] = neighbourhood[winner]
                squared[row] = exact[winner]
        return indices, squared


def build_spatial_index(
    reference: np.ndarray | PointCloud,
    *,
    brute_force_threshold: Optional[int] = None,
    leaf_size: Optional[int] = None,
) -> SpatialIndex:
    """Return a brute-force index for small clouds and a k-d tree otherwise."""

    settings = get_settings()
    threshold = settings.brute_force_threshold if brute_force_threshold is None else brute_force_threshold
    coordinates = _as_coordinates(reference)
    if len(coordinates) <= threshold:
        return BruteForceIndex(coordinates)
    return KDTreeIndex(coordinates, leaf_size=leaf_size)
