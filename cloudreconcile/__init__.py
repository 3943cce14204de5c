"""Mini README: Core package initializer for cloudreconcile.

cloudreconcile recovers which points of one or more source point clouds are
still shown by a viewer, and exports those subsets. The heavy lifting lives in
subpackages:

    * ``geometry`` - displayed geometry adapters, extraction, deduplication.
    * ``correspondence`` - spatial indexes and the index set resolver.
    * ``io`` - point cloud file formats behind an extension registry.
    * ``sources`` - display name parsing and the source registry.
    * ``export`` - the fail-fast export orchestrator.
"""

from .correspondence import resolve_correspondence
from .export import ExportOrchestrator, ExportResult, export_filtered_sources
from .logging_utils import get_logger
from .point_cloud import PointCloud

__all__ = [
    "ExportOrchestrator",
    "ExportResult",
    "PointCloud",
    "export_filtered_sources",
    "get_logger",
    "resolve_correspondence",
]
