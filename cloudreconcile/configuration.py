"""Mini README: Centralised configuration for cloudreconcile.

Structure:
    * ReconcileSettings - Pydantic model describing export defaults.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read the defaults used by the export pipeline:
    the source file marker, output prefix, merge tolerance, and spatial index
    tuning. Every value can be overridden through ``CLOUDRECONCILE_*``
    environment variables or a ``.env`` file, and every pipeline entry point
    also accepts explicit keyword overrides.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class ReconcileSettings(BaseSettings):
    """Runtime configuration for screen-selection exports."""

    source_extension: str = Field(
        "pcd",
        description="File extension marking registry entries that are point-cloud sources.",
    )
    output_prefix: str = Field(
        "screen_selection_",
        description="Path prefix for exported clouds; a sequence number and extension are appended.",
    )
    merge_tolerance: float = Field(
        0.0,
        description="Distance under which displayed points are merged before matching.",
        ge=0.0,
    )
    relative_tolerance: bool = Field(
        False,
        description=(
            "Interpret merge_tolerance as a fraction of the displayed geometry's"
            " bounding box diagonal instead of an absolute distance."
        ),
    )
    binary_output: bool = Field(
        True,
        description="Write exported clouds in binary encoding when the format supports it.",
    )
    brute_force_threshold: int = Field(
        64,
        description="Reference clouds up to this size are searched by linear scan instead of a k-d tree.",
        ge=0,
    )
    leaf_size: int = Field(
        40,
        description="Leaf size of the k-d tree used for nearest neighbour queries.",
        ge=1,
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level applied by the command line interface.",
    )

    class Config:
        env_prefix = "CLOUDRECONCILE_"
        env_file = ".env"
        case_sensitive = False

    @validator("source_extension")
    def _normalise_extension(cls, value: str) -> str:
        """Store the extension without its leading dot, lower-cased."""

        extension = value.strip().lstrip(".").lower()
        if not extension:
            raise ValueError("source_extension must not be empty")
        return extension


@lru_cache()
def get_settings() -> ReconcileSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return ReconcileSettings()
