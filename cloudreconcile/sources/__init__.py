"""Mini README: Point cloud source bookkeeping.

Keeps the display-name parsing isolated in ``references`` and the ordered
name-to-handle registry in ``registry``.
"""

from .references import SourceReference, parse_source_path
from .registry import SourceRegistry, iter_source_references

__all__ = [
    "SourceReference",
    "SourceRegistry",
    "iter_source_references",
    "parse_source_path",
]
