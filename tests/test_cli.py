"""Mini README: Tests for the Typer command line interface."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from typer.testing import CliRunner

from cloudreconcile.io import REGISTRY, load_point_cloud, save_point_cloud
from cloudreconcile.io.formats import PcdFormat
from cloudreconcile.point_cloud import PointCloud
from reconcile_cli import cli

runner = CliRunner()

REFERENCE = np.array([(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (5.0, 5.0, 5.0)])


def _prepare(tmp_path: Path) -> tuple[Path, Path]:
    displayed = save_point_cloud(tmp_path / "screen.pcd", PointCloud.from_xyz(REFERENCE[[1, 1, 3]]))
    source = save_point_cloud(tmp_path / "source.pcd", PointCloud.from_xyz(REFERENCE))
    return displayed, source


def test_export_command_writes_numbered_outputs(tmp_path: Path) -> None:
    displayed, source = _prepare(tmp_path)
    prefix = str(tmp_path / "picked_")

    result = runner.invoke(cli, ["export", str(displayed), str(source), "--output-prefix", prefix, "--ascii"])

    assert result.exit_code == 0, result.output
    assert "Number of points pruned: 1" in result.output
    exported = load_point_cloud(tmp_path / "picked_1.pcd")
    assert exported.xyz().tolist() == [[1.0, 0.0, 0.0], [5.0, 5.0, 5.0]]


def test_export_command_fails_on_missing_source(tmp_path: Path) -> None:
    displayed, _ = _prepare(tmp_path)

    result = runner.invoke(
        cli,
        ["export", str(displayed), str(tmp_path / "missing.pcd"), "--output-prefix", str(tmp_path / "x_")],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "x_1.pcd").exists()


def test_inspect_and_formats_commands(tmp_path: Path) -> None:
    _, source = _prepare(tmp_path)

    inspected = runner.invoke(cli, ["inspect", str(source)])
    listed = runner.invoke(cli, ["formats"])

    assert inspected.exit_code == 0
    assert "points: 4" in inspected.output
    assert "fields: x y z" in inspected.output
    assert "pcd" in listed.output and "ply" in listed.output


class FakeEntryPoint:
    name = "xyz-format"

    def load(self):
        class XyzFormat(PcdFormat):
            extension = "xyz"

        return XyzFormat


def test_plugin_formats_are_registered_at_start_up(monkeypatch) -> None:
    """Formats published under the entry point group show up in every command."""

    from cloudreconcile.utils import plugin_loader

    requested = []

    def fake_entry_points(group):
        requested.append(group)
        return [FakeEntryPoint()]

    monkeypatch.setattr(plugin_loader, "entry_points", fake_entry_points)
    monkeypatch.setattr(REGISTRY, "_formats", dict(REGISTRY._formats))

    result = runner.invoke(cli, ["formats"])

    assert result.exit_code == 0, result.output
    assert requested == ["cloudreconcile.formats"]
    assert "xyz\tbinary=yes" in result.output
    assert "pcd\tbinary=yes" in result.output
