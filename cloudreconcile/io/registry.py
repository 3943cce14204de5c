"""Mini README: Extension registry dispatching loads and saves to formats.

Structure:
    * FormatRegistry - maps file extensions to ``PointCloudFormat`` classes.
    * REGISTRY - process-wide registry populated by ``io.formats``.
    * load_point_cloud / save_point_cloud - path based helpers.

Additional formats register themselves on import, or are discovered through
the ``cloudreconcile.formats`` entry point group.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Type, Union

from ..logging_utils import get_logger
from ..point_cloud import PointCloud
from ..utils.plugin_loader import load_entry_point_plugins
from .base import PointCloudFormat, UnsupportedFormatError

LOGGER = get_logger(__name__)

PathLike = Union[str, Path]


def _normalise(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


class FormatRegistry:
    """Simple registry for mapping extensions to format classes."""

    def __init__(self) -> None:
        self._formats: Dict[str, Type[PointCloudFormat]] = {}

    def register(self, format_cls: Type[PointCloudFormat]) -> Type[PointCloudFormat]:
        """Register a format class under its declared extension."""

        identifier = _normalise(format_cls.extension)
        if not identifier:
            raise ValueError(f"{format_cls.__name__} does not declare an extension")
        LOGGER.debug("Registering point cloud format '%s'", identifier)
        self._formats[identifier] = format_cls
        return format_cls

    def available_formats(self) -> Iterable[str]:
        """Return the registered extensions, sorted for display."""

        return sorted(self._formats.keys())

    def create(self, extension: str) -> PointCloudFormat:
        """Instantiate the format registered for ``extension``."""

        format_cls = self._formats.get(_normalise(extension))
        if not format_cls:
            raise UnsupportedFormatError(f"No point cloud format registered for '{extension}'")
        return format_cls()

    def for_path(self, path: PathLike) -> PointCloudFormat:
        """Instantiate the format matching the suffix of ``path``."""

        return self.create(Path(path).suffix)

    def load_plugins(self, group: str = "cloudreconcile.formats") -> int:
        """Register every format class exposed through ``group``; return how many."""

        registered = 0
        for plugin in load_entry_point_plugins(group):
            if isinstance(plugin, type) and issubclass(plugin, PointCloudFormat):
                self.register(plugin)
                registered += 1
            else:
                LOGGER.warning("Ignoring entry point %r: not a PointCloudFormat subclass", plugin)
        return registered


REGISTRY = FormatRegistry()


def load_point_cloud(path: PathLike, *, registry: Optional[FormatRegistry] = None) -> PointCloud:
    """Load the cloud at ``path`` using the format matching its extension."""

    return (registry or REGISTRY).for_path(path).load(Path(path))


def save_point_cloud(
    path: PathLike,
    cloud: PointCloud,
    *,
    binary: bool = True,
    registry: Optional[FormatRegistry] = None,
) -> Path:
    """Save ``cloud`` to ``path`` using the format matching its extension."""

    return (registry or REGISTRY).for_path(path).save(Path(path), cloud, binary=binary)
