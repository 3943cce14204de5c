"""Mini README: Tests for the fail-fast export orchestrator.

Structure:
    * Happy path - matched subsets keep every field and are numbered from 1.
    * Skipping - non-source registry entries never load, save, or consume a number.
    * Fail-fast - the first load or save failure stops the run.
    * Non-dense sources - invalid points are never matched by either backend.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from cloudreconcile.correspondence import CorrespondenceResolver
from cloudreconcile.export import ExportOrchestrator, export_filtered_sources
from cloudreconcile.io import (
    REGISTRY,
    FormatRegistry,
    UnsupportedFormatError,
    load_point_cloud,
    save_point_cloud,
)
from cloudreconcile.io.formats import PcdFormat
from cloudreconcile.point_cloud import PointCloud
from cloudreconcile.sources import SourceRegistry

DISPLAYED = np.array([(0.01, 0.0, 0.0), (5.0, 5.0, 5.01)])


def _write_source(path: Path) -> Path:
    data = np.zeros(
        4, dtype=[("x", "f4"), ("y", "f4"), ("z", "f4"), ("intensity", "f4"), ("label", "u2")]
    )
    data["x"] = [0.0, 1.0, 0.0, 5.0]
    data["y"] = [0.0, 0.0, 1.0, 5.0]
    data["z"] = [0.0, 0.0, 0.0, 5.0]
    data["intensity"] = [10.0, 11.0, 12.0, 13.0]
    data["label"] = [1, 2, 3, 4]
    save_point_cloud(path, PointCloud(data=data))
    return path


@pytest.fixture
def record_loads(monkeypatch):
    loaded = []
    original_load = PcdFormat.load

    def recording_load(self, path):
        loaded.append(Path(path))
        return original_load(self, path)

    monkeypatch.setattr(PcdFormat, "load", recording_load)
    return loaded


def test_export_writes_matched_subset_with_all_fields(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    registry = SourceRegistry()
    registry.add_cloud(source)

    result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(DISPLAYED, registry)

    assert result.succeeded
    assert result.written == [tmp_path / "out_1.pcd"]
    exported = load_point_cloud(tmp_path / "out_1.pcd")
    assert exported.xyz().tolist() == [[0.0, 0.0, 0.0], [5.0, 5.0, 5.0]]
    assert exported.data["intensity"].tolist() == [10.0, 13.0]
    assert exported.data["label"].tolist() == [1, 4]
    assert (exported.width, exported.height) == (2, 1)


def test_duplicate_displayed_points_are_pruned_once(tmp_path: Path, caplog) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    displayed = np.vstack([DISPLAYED, DISPLAYED, [(0.0, 1.0, 0.0)]])
    registry = SourceRegistry()
    registry.add_cloud(source)

    with caplog.at_level("INFO"):
        result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(displayed, registry)

    assert result.pruned_count == 2
    assert "Number of points pruned: 2" in caplog.text
    exported = load_point_cloud(result.written[0])
    assert exported.data["label"].tolist() == [1, 3, 4]


def test_non_source_entries_are_skipped(tmp_path: Path, record_loads) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    registry = SourceRegistry()
    registry.register("axes")
    registry.register("notes.txt-0")
    registry.add_cloud(source)

    result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(DISPLAYED, registry)

    assert result.succeeded
    assert result.skipped == ["axes", "notes.txt-0"]
    assert result.written == [tmp_path / "out_1.pcd"]
    assert record_loads == [source]
    assert sorted(path.name for path in tmp_path.glob("out_*")) == ["out_1.pcd"]


def test_second_source_failing_to_load_stops_the_run(tmp_path: Path, record_loads) -> None:
    first = _write_source(tmp_path / "first.pcd")
    missing = tmp_path / "missing.pcd"
    third = _write_source(tmp_path / "third.pcd")
    registry = SourceRegistry()
    for path in (first, missing, third):
        registry.add_cloud(path)

    result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(DISPLAYED, registry)

    assert not result
    assert result.failed_source == missing
    assert result.written == [tmp_path / "out_1.pcd"]
    assert record_loads == [first, missing]
    assert sorted(path.name for path in tmp_path.glob("out_*")) == ["out_1.pcd"]


def test_save_failure_aborts(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    registry = SourceRegistry()
    registry.add_cloud(source)
    registry.add_cloud(source)

    result = ExportOrchestrator(output_prefix=str(blocker / "out_")).run(DISPLAYED, registry)

    assert not result.succeeded
    assert result.written == []
    assert result.failed_source == source
    assert result.error


def test_empty_source_exports_empty_selection(tmp_path: Path) -> None:
    source = tmp_path / "empty.pcd"
    save_point_cloud(source, PointCloud.from_xyz(np.empty((0, 3))))

    result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(DISPLAYED, {f"{source}-0": None})

    assert result.succeeded
    assert len(load_point_cloud(result.written[0])) == 0


def test_export_filtered_sources_reports_boolean(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    prefix = str(tmp_path / "sel_")

    assert export_filtered_sources(DISPLAYED, {f"{source}-0": None}, prefix, binary=False) is True
    assert "DATA ascii" in (tmp_path / "sel_1.pcd").read_text()
    assert export_filtered_sources(DISPLAYED, {f"{tmp_path / 'gone.pcd'}-0": None}, prefix) is False


class SaveRejectingRegistry(FormatRegistry):
    """Loads sources normally but knows no format for the export destinations."""

    def for_path(self, path):
        if Path(path).name.startswith("out_"):
            raise UnsupportedFormatError(f"No point cloud format registered for '{path}'")
        return REGISTRY.for_path(path)


def test_unsupported_output_format_is_logged_as_save_failure(tmp_path: Path, caplog) -> None:
    source = _write_source(tmp_path / "scan.pcd")
    orchestrator = ExportOrchestrator(output_prefix=str(tmp_path / "out_"), formats=SaveRejectingRegistry())

    with caplog.at_level("ERROR"):
        result = orchestrator.run(DISPLAYED, {f"{source}-0": None})

    assert not result.succeeded
    assert result.failed_source == source
    assert "Save:" in caplog.text
    assert "[failed]" in caplog.text
    assert "Load:" not in caplog.text


def _write_non_dense_source(path: Path) -> Path:
    data = np.zeros(5, dtype=[("x", "f4"), ("y", "f4"), ("z", "f4"), ("label", "u2")])
    data["x"] = [np.nan, 0.0, 1.0, np.nan, 5.0]
    data["y"] = [np.nan, 0.0, 0.0, np.nan, 5.0]
    data["z"] = [np.nan, 0.0, 0.0, np.nan, 5.0]
    data["label"] = [10, 11, 12, 13, 14]
    save_point_cloud(path, PointCloud(data=data, is_dense=False))
    return path


@pytest.mark.parametrize("threshold", [0, 64])
def test_non_dense_source_exports_only_valid_matches(tmp_path: Path, threshold: int) -> None:
    source = _write_non_dense_source(tmp_path / "scan.pcd")
    displayed = np.vstack([DISPLAYED, [(np.nan, np.nan, np.nan)]])
    orchestrator = ExportOrchestrator(
        output_prefix=str(tmp_path / "out_"),
        resolver=CorrespondenceResolver(brute_force_threshold=threshold),
    )

    result = orchestrator.run(displayed, {f"{source}-0": None})

    assert result.succeeded
    assert result.pruned_count == 1
    exported = load_point_cloud(result.written[0])
    assert exported.data["label"].tolist() == [11, 14]
    assert exported.is_dense


def test_source_without_finite_points_exports_empty_selection(tmp_path: Path, caplog) -> None:
    source = tmp_path / "invalid.pcd"
    save_point_cloud(source, PointCloud.from_xyz(np.full((3, 3), np.nan), is_dense=False))

    with caplog.at_level("WARNING"):
        result = ExportOrchestrator(output_prefix=str(tmp_path / "out_")).run(DISPLAYED, {f"{source}-0": None})

    assert result.succeeded
    assert len(load_point_cloud(result.written[0])) == 0
    assert "no finite points" in caplog.text
