"""Compiler-diagnostic mode."""

from .diagnostics import (
    ClassifiedDiagnostic,
    TscDiagnostic,
    classify_diagnostics,
    health_score,
    parse_tsc_output,
    run_type_checker,
)

__all__ = [
    "ClassifiedDiagnostic",
    "TscDiagnostic",
    "classify_diagnostics",
    "health_score",
    "parse_tsc_output",
    "run_type_checker",
]
