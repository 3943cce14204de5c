"""Mini README: Ordered registry of rendered objects and their display names.

Structure:
    * SourceRegistry - insertion ordered mapping of display names to handles.
    * iter_source_references - turn a registry or plain mapping into
      ``SourceReference`` entries.

``add_cloud`` names entries the way point cloud viewers do, appending a
per-instance counter to the file path so the same file can be shown twice.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..configuration import get_settings
from ..logging_utils import get_logger
from .references import SourceReference

LOGGER = get_logger(__name__)


class SourceRegistry:
    """Display name to renderable handle mapping preserving insertion order."""

    def __init__(self, *, extension: Optional[str] = None) -> None:
        self.extension = (extension or get_settings().source_extension).lstrip(".")
        self._entries: Dict[str, Any] = {}
        self._counter = 0

    def register(self, display_name: str, handle: Any = None) -> str:
        """Register ``handle`` under ``display_name``; re-registering replaces the handle."""

        LOGGER.debug("Registering display entry '%s'", display_name)
        self._entries[display_name] = handle
        return display_name

    def add_cloud(self, path: Union[str, Path], handle: Any = None) -> str:
        """Register a cloud loaded from ``path`` under a ``<path>-<n>`` display name."""

        display_name = f"{path}-{self._counter}"
        self._counter += 1
        return self.register(display_name, handle)

    def remove(self, display_name: str) -> None:
        """Forget ``display_name``."""

        if display_name not in self._entries:
            raise KeyError(f"Unknown display entry '{display_name}'")
        del self._entries[display_name]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, display_name: object) -> bool:
        return display_name in self._entries

    def items(self):
        return self._entries.items()

    def references(self) -> List[SourceReference]:
        """Return every entry, sources and non-sources alike, in registration order."""

        return list(iter_source_references(self, extension=self.extension))


def iter_source_references(
    registry: Union[SourceRegistry, Mapping[str, Any]],
    *,
    extension: Optional[str] = None,
) -> Iterator[SourceReference]:
    """Yield a ``SourceReference`` per entry of ``registry`` in iteration order."""

    if extension is None and isinstance(registry, SourceRegistry):
        extension = registry.extension
    for display_name, handle in registry.items():
        yield SourceReference.from_display_name(display_name, handle, extension=extension)
