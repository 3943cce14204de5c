"""Mini README: Point cloud file input/output.

Re-exports the format interface, its error hierarchy, and the registry
helpers. Importing the package registers the built-in PCD and PLY formats.
"""

from .base import (
    PointCloudFormat,
    PointCloudFormatError,
    PointCloudIOError,
    PointCloudLoadError,
    PointCloudSaveError,
    UnsupportedFormatError,
)
from .registry import REGISTRY, FormatRegistry, load_point_cloud, save_point_cloud
from . import formats  # noqa: F401  # ensure built-in formats register on import

__all__ = [
    "FormatRegistry",
    "PointCloudFormat",
    "PointCloudFormatError",
    "PointCloudIOError",
    "PointCloudLoadError",
    "PointCloudSaveError",
    "REGISTRY",
    "UnsupportedFormatError",
    "load_point_cloud",
    "save_point_cloud",
]
