"""Mini README: Tests for display name parsing and the source registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from cloudreconcile.sources import SourceRegistry, iter_source_references, parse_source_path


@pytest.mark.parametrize(
    "display_name, expected",
    [
        ("scans/room.pcd", Path("scans/room.pcd")),
        ("scans/room.pcd-3", Path("scans/room.pcd")),
        ("room.pcd.pcd-0", Path("room.pcd")),
        ("room.pcd_backup", Path("room.pcd")),
    ],
)
def test_parse_source_path_strips_disambiguator(display_name: str, expected: Path) -> None:
    assert parse_source_path(display_name) == expected


@pytest.mark.parametrize("display_name", ["axes", "room.ply-0", "room.PCD", ""])
def test_parse_source_path_without_marker(display_name: str) -> None:
    assert parse_source_path(display_name) is None


def test_parse_source_path_uses_configured_extension() -> None:
    assert parse_source_path("mesh.ply-1", extension=".ply") == Path("mesh.ply")
    assert parse_source_path("mesh.pcd-1", extension="ply") is None


def test_add_cloud_numbers_instances_in_order() -> None:
    registry = SourceRegistry()
    handle = object()

    first = registry.add_cloud("a.pcd", handle)
    registry.register("axes")
    second = registry.add_cloud(Path("a.pcd"))

    assert (first, second) == ("a.pcd-0", "a.pcd-1")
    assert list(registry) == ["a.pcd-0", "axes", "a.pcd-1"]
    references = registry.references()
    assert [reference.is_source for reference in references] == [True, False, True]
    assert references[0].handle is handle
    assert references[2].source_path == Path("a.pcd")


def test_remove_unknown_entry_raises() -> None:
    registry = SourceRegistry()
    registry.register("a.pcd-0")
    registry.remove("a.pcd-0")
    assert "a.pcd-0" not in registry
    with pytest.raises(KeyError):
        registry.remove("a.pcd-0")


def test_plain_mappings_are_accepted() -> None:
    references = list(iter_source_references({"b.pcd-2": 1, "grid": 2}))
    assert [reference.source_path for reference in references] == [Path("b.pcd"), None]
