"""Mini README: Export the on-screen subset of every source point cloud.

Structure:
    * ExportResult - outcome of one export run.
    * ExportOrchestrator - deduplicates the displayed geometry once, then loads,
      matches, filters and saves each source in registry order.
    * export_filtered_sources - boolean convenience wrapper.

Processing is sequential and fail-fast: the first load or save failure is
logged and ends the run, leaving earlier outputs on disk. Output files are
named ``<prefix><n>.<ext>`` where ``n`` counts successfully exported sources
starting at 1; registry entries that are not sources never consume a number.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import numpy as np

from ..configuration import get_settings
from ..correspondence import CorrespondenceResolver
from ..geometry import GeometryDeduplicator, extract_points
from ..io import REGISTRY, FormatRegistry, PointCloudIOError, UnsupportedFormatError
from ..logging_utils import get_logger
from ..point_cloud import PointCloud
from ..sources import SourceReference, SourceRegistry, iter_source_references

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ExportResult:
    """What an export run produced and where it stopped, if it failed."""

    succeeded: bool = True
    pruned_count: int = 0
    written: List[Path] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_source: Optional[Path] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.succeeded


class ExportOrchestrator:
    """Run the deduplicate, match and filter pipeline over registered sources."""

    def __init__(
        self,
        *,
        output_prefix: Optional[str] = None,
        extension: Optional[str] = None,
        tolerance: Optional[float] = None,
        relative_tolerance: Optional[bool] = None,
        binary: Optional[bool] = None,
        resolver: Optional[CorrespondenceResolver] = None,
        formats: Optional[FormatRegistry] = None,
    ) -> None:
        settings = get_settings()
        self.output_prefix = settings.output_prefix if output_prefix is None else str(output_prefix)
        self.extension = (extension or settings.source_extension).lstrip(".")
        self.binary = settings.binary_output if binary is None else binary
        self.deduplicator = GeometryDeduplicator(tolerance, relative=relative_tolerance)
        self.resolver = resolver or CorrespondenceResolver()
        self.formats = formats or REGISTRY

    def output_path(self, sequence: int) -> Path:
        """Destination of the ``sequence``-th exported source."""

        return Path(f"{self.output_prefix}{sequence}.{self.extension}")

    def run(
        self,
        displayed_geometry: Any,
        sources: Union[SourceRegistry, Mapping[str, Any]],
    ) -> ExportResult:
        """Export every source in ``sources`` against ``displayed_geometry``."""

        deduplicated = self.deduplicator.deduplicate(displayed_geometry)
        if deduplicated.pruned_count:
            LOGGER.info("Number of points pruned: %d", deduplicated.pruned_count)
        displayed = extract_points(deduplicated.geometry)
        result = ExportResult(pruned_count=deduplicated.pruned_count)

        sequence = 1
        for reference in iter_source_references(sources, extension=self.extension):
            if not reference.is_source:
                LOGGER.debug("Skipping '%s': not a .%s source", reference.display_name, self.extension)
                result.skipped.append(reference.display_name)
                continue
            try:
                written = self._export_source(reference, displayed, sequence)
            except (PointCloudIOError, UnsupportedFormatError) as error:
                result.succeeded = False
                result.failed_source = reference.source_path
                result.error = str(error)
                return result
            result.written.append(written)
            sequence += 1
        return result

    def _export_source(self, reference: SourceReference, displayed: PointCloud, sequence: int) -> Path:
        source_path = reference.source_path
        try:
            cloud = self.formats.for_path(source_path).load(source_path)
        except (PointCloudIOError, UnsupportedFormatError) as error:
            LOGGER.error("Load: %s ... [failed] %s", source_path, error)
            raise
        LOGGER.debug("Load: %s ... [success]", source_path)

        reference = cloud.xyz()
        if not np.isfinite(reference).all(axis=1).any():
            LOGGER.warning(
                "Source %s has no finite points; exporting an empty selection", source_path
            )
            indices = np.empty(0, dtype=np.intp)
        else:
            indices = self.resolver.resolve(displayed, reference)
        selection = cloud.take(indices)

        destination = self.output_path(sequence)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self.formats.for_path(destination).save(destination, selection, binary=self.binary)
        except (OSError, UnsupportedFormatError) as error:
            LOGGER.error("Save: %s ... [failed] %s", destination, error)
            if isinstance(error, (PointCloudIOError, UnsupportedFormatError)):
                raise
            raise PointCloudIOError(f"Unable to write {destination}: {error}") from error
        LOGGER.debug("Save: %s ... [success] (%s of %s points)", destination, len(selection), len(cloud))
        return destination


def export_filtered_sources(
    displayed_geometry: Any,
    source_registry: Union[SourceRegistry, Mapping[str, Any]],
    output_prefix: Optional[str] = None,
    **options: Any,
) -> bool:
    """Export every source's on-screen subset; ``True`` only if all succeeded."""

    orchestrator = ExportOrchestrator(output_prefix=output_prefix, **options)
    return orchestrator.run(displayed_geometry, source_registry).succeeded
