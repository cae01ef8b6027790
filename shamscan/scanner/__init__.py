"""Scanner engine: file selection, parsing and rule evaluation."""

from .engine import CompiledRule, RootStatus, ScanOutcome, compile_rules, scan_file, scan_roots, scan_text
from .files import SCANNABLE_EXTENSIONS, is_scannable_name
from .matchers import MATCHERS
from .source import ParsedSource, SourceParseError, dialect_for

__all__ = [
    "CompiledRule",
    "MATCHERS",
    "ParsedSource",
    "RootStatus",
    "SCANNABLE_EXTENSIONS",
    "ScanOutcome",
    "SourceParseError",
    "compile_rules",
    "dialect_for",
    "is_scannable_name",
    "scan_file",
    "scan_roots",
    "scan_text",
]
