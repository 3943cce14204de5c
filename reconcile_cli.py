"""Mini README: Command line entry point for cloudreconcile.

This script exposes a Typer CLI that exports, for every source cloud, the
points still present in a displayed point set saved from a viewer. Defaults
come from ``CLOUDRECONCILE_*`` environment variables and can be overridden per
invocation.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from cloudreconcile.configuration import get_settings
from cloudreconcile.export import ExportOrchestrator
from cloudreconcile.io import REGISTRY, PointCloudIOError, UnsupportedFormatError, load_point_cloud
from cloudreconcile.logging_utils import configure_root_logger
from cloudreconcile.sources import SourceRegistry

cli = typer.Typer(help="Export the on-screen subset of source point clouds.")


@cli.callback()
def main() -> None:
    """Register point cloud formats published by installed plugins."""

    REGISTRY.load_plugins()


@cli.command()
def export(
    displayed: Path = typer.Argument(..., help="Point cloud file holding the displayed points."),
    sources: List[Path] = typer.Argument(..., help="Source clouds, in display order."),
    output_prefix: Optional[str] = typer.Option(None, help="Prefix for numbered output files."),
    tolerance: Optional[float] = typer.Option(None, min=0.0, help="Merge distance for displayed points."),
    relative: Optional[bool] = typer.Option(
        None, "--relative/--absolute", help="Interpret the tolerance relative to the bounding box."
    ),
    ascii_output: bool = typer.Option(False, "--ascii", help="Write ascii instead of binary files."),
    extension: Optional[str] = typer.Option(None, help="Source file extension marker."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log per-source progress."),
) -> None:
    """Match every source cloud against DISPLAYED and write the filtered copies."""

    settings = get_settings()
    configure_root_logger("DEBUG" if verbose else settings.log_level)

    try:
        displayed_cloud = load_point_cloud(displayed)
    except (PointCloudIOError, UnsupportedFormatError) as error:
        typer.echo(f"Unable to load displayed points: {error}", err=True)
        raise typer.Exit(code=1)

    registry = SourceRegistry(extension=extension)
    for source in sources:
        registry.add_cloud(source)

    orchestrator = ExportOrchestrator(
        output_prefix=output_prefix,
        extension=extension,
        tolerance=tolerance,
        relative_tolerance=relative,
        binary=False if ascii_output else None,
    )
    result = orchestrator.run(displayed_cloud, registry)
    if result.pruned_count:
        typer.echo(f"Number of points pruned: {result.pruned_count}")
    for path in result.written:
        typer.echo(f"Wrote {path}")
    for name in result.skipped:
        typer.echo(f"Skipped {name}")
    if not result.succeeded:
        typer.echo(f"Export failed at {result.failed_source}: {result.error}", err=True)
        raise typer.Exit(code=1)


@cli.command()
def inspect(path: Path = typer.Argument(..., help="Point cloud file to describe.")) -> None:
    """Print the shape and fields of a point cloud file."""

    try:
        cloud = load_point_cloud(path)
    except (PointCloudIOError, UnsupportedFormatError) as error:
        typer.echo(f"Unable to load {path}: {error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"points: {len(cloud)}")
    typer.echo(f"width x height: {cloud.width} x {cloud.height}")
    typer.echo(f"dense: {cloud.is_dense}")
    typer.echo(f"fields: {' '.join(cloud.fields)}")


@cli.command()
def formats() -> None:
    """List the registered point cloud formats."""

    for extension in REGISTRY.available_formats():
        details = REGISTRY.create(extension).metadata()
        typer.echo(f"{details['extension']}\tbinary={details['binary']}")


if __name__ == "__main__":
    cli()
