"""Report assembly.

Reports are plain data: the renderers turn them into console, Markdown or
JSON output. Nothing here reads the clock, so identical inputs produce
identical reports.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..classify import severity_counts
from ..config import Thresholds
from ..models import SEVERITY_RANK, TIER_ORDER, Classification, ScanWarning
from ..rules.schema import RuleCatalog
from ..scanner.engine import ScanOutcome
from ..typecheck.diagnostics import ClassifiedDiagnostic, health_score

INCOMPLETE_MARKER = "INCOMPLETE COVERAGE"


@dataclass(frozen=True)
class RootCoverage:
    relpath: str
    detected_via: tuple[str, ...]
    files: int
    scanned: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.relpath,
            "detected_via": list(self.detected_via),
            "files": self.files,
            "scanned": self.scanned,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Coverage:
    roots: tuple[RootCoverage, ...] = ()

    @property
    def discovered(self) -> int:
        return len(self.roots)

    @property
    def scanned(self) -> int:
        return sum(1 for r in self.roots if r.scanned)

    @property
    def percent(self) -> float:
        if not self.roots:
            return 0.0
        return round(100.0 * self.scanned / self.discovered, 1)

    @property
    def complete(self) -> bool:
        return self.discovered > 0 and self.scanned == self.discovered

    @property
    def notice(self) -> str | None:
        """The incomplete-coverage notice, or None at full coverage."""
        if not self.roots:
            return f"{INCOMPLETE_MARKER}: no source roots discovered (0% coverage)"
        if not self.complete:
            missing = ", ".join(r.relpath for r in self.roots if not r.scanned)
            return (
                f"{INCOMPLETE_MARKER}: {self.scanned} of {self.discovered} roots scanned "
                f"({self.percent}%); not scanned: {missing}"
            )
        return None


@dataclass(frozen=True)
class Finding:
    classification: Classification
    rule_name: str
    remediation: str

    def to_dict(self) -> dict[str, Any]:
        c = self.classification
        return {
            "rule": c.match.rule_id,
            "rule_name": self.rule_name,
            "severity": c.severity,
            "tier": c.tier,
            "category": c.category,
            "file": c.match.file,
            "line": c.match.line,
            "column": c.match.column,
            "end_line": c.match.end_line,
            "end_column": c.match.end_column,
            "snippet": c.match.snippet,
            "location": c.location,
            "note": c.note,
            "remediation": self.remediation,
        }


@dataclass(frozen=True)
class Hotspot:
    file: str
    findings: int
    lines: int

    @property
    def density(self) -> float:
        """Findings per 100 lines."""
        return round(100.0 * self.findings / max(self.lines, 1), 2)

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "findings": self.findings, "lines": self.lines, "density": self.density}


@dataclass(frozen=True)
class Report:
    repo: str
    catalog_version: str
    tiers: tuple[str, ...]
    coverage: Coverage
    counts: dict[str, int]
    findings: tuple[Finding, ...] = ()
    warnings: tuple[ScanWarning, ...] = ()
    hotspots: tuple[Hotspot, ...] = ()
    files_scanned: int = 0
    error: str | None = None  # whole-run failure such as DiscoveryFailure

    @property
    def by_category(self) -> dict[str, list[Finding]]:
        """Findings grouped by category, most severe categories first."""
        groups: dict[str, list[Finding]] = {}
        for finding in self.findings:
            groups.setdefault(finding.classification.category, []).append(finding)

        def rank(category: str) -> tuple[int, str]:
            worst = max(SEVERITY_RANK[f.classification.severity] for f in groups[category])
            return (-worst, category)

        return {category: groups[category] for category in sorted(groups, key=rank)}

    def max_severity(self) -> str | None:
        present = [level for level, n in self.counts.items() if n]
        if not present:
            return None
        return max(present, key=lambda level: SEVERITY_RANK[level])

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "catalog_version": self.catalog_version,
            "tiers": list(self.tiers),
            "coverage": {
                "discovered": self.coverage.discovered,
                "scanned": self.coverage.scanned,
                "percent": self.coverage.percent,
                "complete": self.coverage.complete,
                "notice": self.coverage.notice,
                "roots": [r.to_dict() for r in self.coverage.roots],
            },
            "error": self.error,
            "files_scanned": self.files_scanned,
            "counts": dict(self.counts),
            "findings": {
                category: [f.to_dict() for f in findings] for category, findings in self.by_category.items()
            },
            "hotspots": [h.to_dict() for h in self.hotspots],
            "warnings": [{"kind": w.kind, "file": w.file, "message": w.message} for w in self.warnings],
        }


def rank_hotspots(
    classifications: Iterable[Classification],
    line_counts: dict[str, int],
    limit: int,
) -> list[Hotspot]:
    """Files ranked by findings per 100 lines, then finding count, then path."""
    counts = Counter(c.match.file for c in classifications)
    spots = [Hotspot(file=f, findings=n, lines=line_counts.get(f, 0)) for f, n in counts.items()]
    spots.sort(key=lambda h: (-h.density, -h.findings, h.file))
    return spots[:limit]


def build_report(
    repo: str,
    outcome: ScanOutcome | None,
    classifications: list[Classification],
    catalog: RuleCatalog,
    *,
    tiers: Iterable[str] = TIER_ORDER,
    thresholds: Thresholds | None = None,
    error: str | None = None,
) -> Report:
    """
    Assemble a scan report.

    Args:
        repo: Repository name shown in the report header
        outcome: Scan outcome, or None when discovery failed
        classifications: Classified matches
        catalog: Rule catalog (names, remediation, version)
        tiers: Tiers that were run
        thresholds: Hotspot limit and friends
        error: Whole-run failure message, if any
    """
    thresholds = thresholds or Thresholds()
    ordered = sorted(classifications, key=lambda c: c.sort_key())

    findings: list[Finding] = []
    for c in ordered:
        rule = catalog.get(c.match.rule_id)
        findings.append(
            Finding(
                classification=c,
                rule_name=rule.name if rule else c.match.rule_id,
                remediation=rule.remediation if rule else "",
            )
        )

    roots: tuple[RootCoverage, ...] = ()
    warnings: tuple[ScanWarning, ...] = ()
    line_counts: dict[str, int] = {}
    files_scanned = 0
    if outcome is not None:
        roots = tuple(
            RootCoverage(
                relpath=s.root.relpath,
                detected_via=s.root.detected_via,
                files=s.files,
                scanned=s.scanned,
                reason=s.reason,
            )
            for s in sorted(outcome.roots, key=lambda s: s.root.relpath)
        )
        warnings = tuple(outcome.warnings)
        scanned = outcome.scanned_files
        line_counts = {f.relpath: f.line_count for f in scanned}
        files_scanned = len(scanned)

    return Report(
        repo=repo,
        catalog_version=catalog.version,
        tiers=tuple(t for t in TIER_ORDER if t in set(tiers)),
        coverage=Coverage(roots=roots),
        counts=severity_counts(ordered),
        findings=tuple(findings),
        warnings=warnings,
        hotspots=tuple(rank_hotspots(ordered, line_counts, thresholds.hotspots)),
        files_scanned=files_scanned,
        error=error,
    )


# =============================================================================
# Compiler-diagnostic mode
# =============================================================================


@dataclass(frozen=True)
class FileDiagnostics:
    file: str
    quick_fix: int
    design_issue: int
    escalated: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "quick_fix": self.quick_fix,
            "design_issue": self.design_issue,
            "escalated": self.escalated,
        }


@dataclass(frozen=True)
class DiagnosticReport:
    repo: str
    source: str  # command that was run, or the input file
    threshold: int
    diagnostics: tuple[ClassifiedDiagnostic, ...] = ()
    files: tuple[FileDiagnostics, ...] = ()
    unknown_codes: tuple[str, ...] = ()
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def quick_fix(self) -> int:
        return self.counts.get("quick-fix", 0)

    @property
    def design_issue(self) -> int:
        return self.counts.get("design-issue", 0)

    @property
    def score(self) -> int:
        return health_score(self.quick_fix, self.design_issue)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "source": self.source,
            "threshold": self.threshold,
            "score": self.score,
            "counts": {"quick-fix": self.quick_fix, "design-issue": self.design_issue},
            "unknown_codes": list(self.unknown_codes),
            "files": [f.to_dict() for f in self.files],
            "diagnostics": [
                {
                    "file": c.diagnostic.file,
                    "line": c.diagnostic.line,
                    "column": c.diagnostic.column,
                    "code": c.diagnostic.code,
                    "severity": c.diagnostic.severity,
                    "message": c.diagnostic.message,
                    "kind": c.kind,
                    "known": c.known,
                    "escalated": c.escalated,
                }
                for c in self.diagnostics
            ],
        }


def build_diagnostic_report(
    repo: str,
    source: str,
    classified: list[ClassifiedDiagnostic],
    threshold: int,
) -> DiagnosticReport:
    ordered = sorted(classified, key=lambda c: c.diagnostic.sort_key())
    counts = Counter(c.kind for c in ordered)

    per_file: dict[str, list[ClassifiedDiagnostic]] = {}
    for c in ordered:
        per_file.setdefault(c.diagnostic.file or "(global)", []).append(c)
    files = tuple(
        FileDiagnostics(
            file=name,
            quick_fix=sum(1 for c in items if c.kind == "quick-fix"),
            design_issue=sum(1 for c in items if c.kind == "design-issue"),
            escalated=any(c.escalated for c in items),
        )
        for name, items in sorted(per_file.items())
    )

    return DiagnosticReport(
        repo=repo,
        source=source,
        threshold=threshold,
        diagnostics=tuple(ordered),
        files=files,
        unknown_codes=tuple(sorted({c.diagnostic.code for c in ordered if not c.known})),
        counts={"quick-fix": counts.get("quick-fix", 0), "design-issue": counts.get("design-issue", 0)},
    )
