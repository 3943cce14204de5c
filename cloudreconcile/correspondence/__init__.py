"""Mini README: Correspondence between displayed and source points.

Re-exports the spatial index backends and the resolver that turns a displayed
point set into a sorted, duplicate-free index set over a source cloud.
"""

from .resolver import CorrespondenceResolver, resolve_correspondence
from .spatial_index import (
    BruteForceIndex,
    EmptyReferenceCloudError,
    KDTreeIndex,
    SpatialIndex,
    build_spatial_index,
)

__all__ = [
    "BruteForceIndex",
    "CorrespondenceResolver",
    "EmptyReferenceCloudError",
    "KDTreeIndex",
    "SpatialIndex",
    "build_spatial_index",
    "resolve_correspondence",
]
