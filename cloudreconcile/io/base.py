"""Mini README: Abstract point cloud file format and its error types.

Structure:
    * PointCloudIOError - base class of every load/save failure.
    * PointCloudLoadError / PointCloudSaveError - failure direction.
    * PointCloudFormatError - a file that cannot be parsed.
    * UnsupportedFormatError - no format registered for an extension.
    * PointCloudFormat - interface implemented by concrete file formats.
    * parse_ascii_column - typed conversion of ascii data columns.

Formats raise these errors instead of returning status codes so the export
orchestrator can tell I/O failures apart from programming errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

import numpy as np

from ..logging_utils import get_logger
from ..point_cloud import PointCloud

LOGGER = get_logger(__name__)


class PointCloudIOError(OSError):
    """A point cloud could not be read from or written to disk."""


class PointCloudLoadError(PointCloudIOError):
    """Reading a point cloud file failed."""


class PointCloudSaveError(PointCloudIOError):
    """Writing a point cloud file failed."""


class PointCloudFormatError(PointCloudLoadError, ValueError):
    """The file exists but its contents are not a valid cloud."""


class UnsupportedFormatError(KeyError):
    """No registered format handles the requested extension."""


class PointCloudFormat(ABC):
    """Base interface for point cloud file formats."""

    extension: str = ""
    supports_binary: bool = False

    def load(self, path: Path) -> PointCloud:
        """Read ``path``; OS level failures surface as ``PointCloudLoadError``."""

        path = Path(path)
        try:
            with path.open("rb") as stream:
                return self.read(stream, source=path)
        except PointCloudIOError:
            raise
        except OSError as error:
            raise PointCloudLoadError(f"Unable to read {path}: {error}") from error

    def save(self, path: Path, cloud: PointCloud, *, binary: bool = True) -> Path:
        """Write ``cloud`` to ``path``; OS level failures surface as ``PointCloudSaveError``."""

        path = Path(path)
        try:
            with path.open("wb") as stream:
                self.write(stream, cloud, binary=binary and self.supports_binary)
        except PointCloudIOError:
            raise
        except (OSError, ValueError) as error:
            raise PointCloudSaveError(f"Unable to write {path}: {error}") from error
        return path

    @abstractmethod
    def read(self, stream, *, source: Path) -> PointCloud:
        """Parse a cloud from an open binary stream."""

    @abstractmethod
    def write(self, stream, cloud: PointCloud, *, binary: bool) -> None:
        """Serialise ``cloud`` into an open binary stream."""

    def metadata(self) -> Dict[str, str]:
        """Return a short description for command line listings."""

        return {
            "extension": self.extension,
            "binary": "yes" if self.supports_binary else "no",
        }


def parse_ascii_column(tokens: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Convert ascii tokens to ``dtype``; integers are parsed without a float detour.

    Integer tokens written in float notation (``"7.0"``) are still accepted.
    """

    dtype = np.dtype(dtype)
    if dtype.kind in "iu":
        try:
            return tokens.astype(dtype)
        except (ValueError, OverflowError):
            return tokens.astype(np.float64).astype(dtype)
    return tokens.astype(dtype)
