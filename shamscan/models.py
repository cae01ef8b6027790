"""Data models for scan runs."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

Severity = Literal["critical", "warning", "info"]

Tier = Literal["lexical", "structural", "semantic", "behavioral"]

# Canonical tier order: confidence decreases, context per match increases
TIER_ORDER: tuple[str, ...] = ("lexical", "structural", "semantic", "behavioral")

# Higher rank = more severe
SEVERITY_RANK = {"info": 0, "warning": 1, "critical": 2}

SEVERITY_ORDER: tuple[str, ...] = ("critical", "warning", "info")

WarningKind = Literal["file-read-error", "directory-read-error", "parse-downgrade"]


@dataclass(frozen=True)
class SourceRoot:
    """A directory the scanner treats as a unit of coverage."""

    path: Path  # absolute, resolved
    relpath: str  # POSIX path relative to the repo root ("." for the root itself)
    detected_via: tuple[str, ...] = ()
    recursive: bool = True  # False: owns only the files directly inside `path`


@dataclass(frozen=True)
class Match:
    """One rule firing at one location."""

    rule_id: str
    file: str  # repo-relative POSIX path
    line: int
    column: int
    end_line: int
    end_column: int
    snippet: str

    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.file, self.line, self.column, self.rule_id)


@dataclass(frozen=True)
class Classification:
    """Severity and category assigned to a Match."""

    match: Match
    severity: Severity
    tier: Tier
    category: str
    location: Literal["source", "test"] = "source"
    clustered: bool = False
    cluster_size: int = 0
    note: str | None = None

    def sort_key(self) -> tuple[str, int, int, str]:
        return self.match.sort_key()


@dataclass(frozen=True)
class ScanWarning:
    """A per-file condition recovered during the scan."""

    kind: WarningKind
    file: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.file}: {self.message}"


@dataclass
class FileScan:
    """Result of scanning a single file."""

    path: Path
    relpath: str
    root: str  # relpath of the owning SourceRoot
    matches: list[Match] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    line_count: int = 0
    downgraded: bool = False
    read_ok: bool = True
    skipped: str | None = None  # reason the file was not scanned (generated, too large)
