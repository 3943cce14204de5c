"""Mini README: Displayed geometry handling.

Exposes the adapters that make any viewer geometry readable, the float32
point extraction used for matching, and the tolerance-based deduplicator run
once per export.
"""

from .adapters import ArrayGeometry, RenderedGeometry, VtkGeometryAdapter, as_rendered_geometry
from .deduplication import DeduplicationResult, GeometryDeduplicator
from .extraction import extract_points, read_coordinates

__all__ = [
    "ArrayGeometry",
    "DeduplicationResult",
    "GeometryDeduplicator",
    "RenderedGeometry",
    "VtkGeometryAdapter",
    "as_rendered_geometry",
    "extract_points",
    "read_coordinates",
]
