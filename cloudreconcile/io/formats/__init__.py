"""Mini README: Built-in point cloud file formats.

Each module registers its format with ``io.registry.REGISTRY`` on import.
New formats subclass ``PointCloudFormat`` and call ``REGISTRY.register``.
"""

from .pcd import PcdFormat
from .ply import PlyFormat

__all__ = ["PcdFormat", "PlyFormat"]
