"""Report building and rendering."""

from .builder import (
    INCOMPLETE_MARKER,
    Coverage,
    DiagnosticReport,
    Finding,
    Hotspot,
    Report,
    RootCoverage,
    build_diagnostic_report,
    build_report,
    rank_hotspots,
)
from .render import (
    print_diagnostic_report,
    print_report,
    render_diagnostic_markdown,
    render_json,
    render_markdown,
)

__all__ = [
    "INCOMPLETE_MARKER",
    "Coverage",
    "DiagnosticReport",
    "Finding",
    "Hotspot",
    "Report",
    "RootCoverage",
    "build_diagnostic_report",
    "build_report",
    "print_diagnostic_report",
    "print_report",
    "rank_hotspots",
    "render_diagnostic_markdown",
    "render_json",
    "render_markdown",
]
