"""Mini README: Utility helper functions for cloudreconcile.

Currently exports the entry point plugin loader used by the format registry.
"""

from .plugin_loader import load_entry_point_plugins

__all__ = ["load_entry_point_plugins"]
