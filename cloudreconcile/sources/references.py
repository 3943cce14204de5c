"""Mini README: Source references and display name parsing.

Structure:
    * SourceReference - display name, renderable handle and recovered path.
    * parse_source_path - recover a source file path from a display name.

Viewers name rendered clouds ``<path>.<ext>[-<disambiguator>]``. Everything
from the first ``.<ext>`` onwards is dropped and ``.<ext>`` re-appended, so
``scans/room.pcd-2`` resolves to ``scans/room.pcd``. The match is
case-sensitive; names without the marker are not point cloud sources.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..configuration import get_settings


def parse_source_path(display_name: str, extension: Optional[str] = None) -> Optional[Path]:
    """Return the canonical source path encoded in ``display_name``, or ``None``."""

    if extension is None:
        extension = get_settings().source_extension
    marker = "." + extension.lstrip(".")
    position = display_name.find(marker)
    if position == -1:
        return None
    return Path(display_name[:position] + marker)


@dataclass(slots=True)
class SourceReference:
    """A registry entry together with the source path its name encodes."""

    display_name: str
    handle: Any = None
    source_path: Optional[Path] = None

    @classmethod
    def from_display_name(
        cls, display_name: str, handle: Any = None, *, extension: Optional[str] = None
    ) -> "SourceReference":
        return cls(
            display_name=display_name,
            handle=handle,
            source_path=parse_source_path(display_name, extension),
        )

    @property
    def is_source(self) -> bool:
        return self.source_path is not None
