"""Mini README: Export of filtered source clouds.

Exposes the orchestrator that writes one filtered copy of every registered
source cloud, plus the boolean convenience wrapper.
"""

from .orchestrator import ExportOrchestrator, ExportResult, export_filtered_sources

__all__ = ["ExportOrchestrator", "ExportResult", "export_filtered_sources"]
