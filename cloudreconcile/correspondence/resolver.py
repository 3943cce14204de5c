"""Mini README: Map displayed points back to source cloud indices.

Structure:
    * CorrespondenceResolver - builds one spatial index per reference cloud and
      resolves the sorted, duplicate-free set of matched indices.
    * resolve_correspondence - functional entry point using default settings.

Each displayed point contributes the index of its nearest reference point.
Several displayed points may land on the same reference point; the returned
index set lists every matched reference index exactly once, ascending.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ..geometry.extraction import extract_points
from ..logging_utils import get_logger
from ..point_cloud import PointCloud
from .spatial_index import build_spatial_index

LOGGER = get_logger(__name__)


def _displayed_coordinates(displayed: Any) -> np.ndarray:
    if isinstance(displayed, PointCloud):
        return displayed.xyz()
    if isinstance(displayed, np.ndarray):
        coordinates = displayed.astype(np.float32)
        return coordinates.reshape(0, 3) if coordinates.size == 0 else coordinates
    return extract_points(displayed).xyz()


class CorrespondenceResolver:
    """Resolve correspondence index sets with configurable index tuning."""

    def __init__(
        self,
        *,
        brute_force_threshold: Optional[int] = None,
        leaf_size: Optional[int] = None,
    ) -> None:
        self.brute_force_threshold = brute_force_threshold
        self.leaf_size = leaf_size

    def resolve(self, displayed: Any, reference: np.ndarray | PointCloud) -> np.ndarray:
        """Return the ascending unique reference indices matched by ``displayed``.

        ``displayed`` may be a ``PointCloud``, an (N, 3) array, or any displayed
        geometry accepted by ``extract_points``; displayed points with non-finite
        coordinates match nothing. ``reference`` must hold at least one finite
        point.
        """

        index = build_spatial_index(
            reference,
            brute_force_threshold=self.brute_force_threshold,
            leaf_size=self.leaf_size,
        )
        queries = _displayed_coordinates(displayed)
        queries = queries[np.isfinite(queries).all(axis=1)]
        matches, _ = index.nearest_batch(queries)
        correspondence = np.unique(matches).astype(np.intp)
        LOGGER.debug(
            "Matched %s displayed points to %s of %s reference points",
            len(queries),
            len(correspondence),
            len(index),
        )
        return correspondence


def resolve_correspondence(displayed: Any, reference: np.ndarray | PointCloud) -> np.ndarray:
    """Resolve the correspondence index set using the configured defaults."""

    return CorrespondenceResolver().resolve(displayed, reference)
