from __future__ import annotations

import json
from pathlib import Path

from shamscan.classify import classify_matches
from shamscan.commands.scan import build_scan_report, scan_exit_code
from shamscan.models import Match, SourceRoot
from shamscan.report import build_report, render_json, render_markdown
from shamscan.report.builder import INCOMPLETE_MARKER, rank_hotspots
from shamscan.scanner.engine import RootStatus, ScanOutcome


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _match(file: str, line: int, rule_id: str = "lex.placeholder-name") -> Match:
    return Match(rule_id=rule_id, file=file, line=line, column=1, end_line=line, end_column=2, snippet="x")


def _sample_repo(repo: Path) -> None:
    _write(repo / "package.json", json.dumps({"workspaces": ["packages/*"]}))
    _write(repo / "packages" / "backend" / "package.json", "{}")
    _write(
        repo / "packages" / "backend" / "src" / "orders.ts",
        """\
const orders = [];

export async function createOrder(order) {
  // Simulate the payment provider for now
  await new Promise((resolve) => setTimeout(resolve, 300));
  orders.push(order);
  return { success: true };
}

export function findOrder(id) {
  return null;
}
""",
    )
    _write(repo / "packages" / "backend" / "src" / "orders.test.ts", "const mockOrders = [];\n// TODO more cases\n")
    _write(repo / "packages" / "web" / "package.json", "{}")
    _write(repo / "packages" / "web" / "src" / "identity.ts", "export function pass(x) { return x }\n")


def test_reports_are_byte_identical_across_runs(repo: Path, catalog, config) -> None:
    _sample_repo(repo)

    first = build_scan_report(repo, config, catalog)
    second = build_scan_report(repo, config.with_overrides(workers=1), catalog)

    assert render_json(first) == render_json(second)
    assert render_markdown(first) == render_markdown(second)
    assert first.coverage.complete
    assert scan_exit_code(first) == 0


def test_report_content(repo: Path, catalog, config) -> None:
    _sample_repo(repo)
    data = json.loads(render_json(build_scan_report(repo, config, catalog)))

    assert data["repo"] == "repo"
    assert [r["root"] for r in data["coverage"]["roots"]] == ["packages/backend/src", "packages/web/src"]
    assert data["coverage"]["notice"] is None
    assert data["files_scanned"] == 3

    categories = data["findings"]
    assert "identity function" in categories
    assert "in-memory store" in categories
    test_findings = [
        f for group in categories.values() for f in group if f["file"].endswith("orders.test.ts")
    ]
    assert test_findings
    assert {f["severity"] for f in test_findings} == {"info"}
    assert {f["location"] for f in test_findings} == {"test"}


def test_partial_coverage_is_flagged(catalog) -> None:
    scanned = RootStatus(root=SourceRoot(Path("/r/a"), "a", ("walk",)), files=2)
    skipped = RootStatus(
        root=SourceRoot(Path("/r/b"), "b", ("walk",)), scanned=False, reason="unreadable: Permission denied"
    )
    report = build_report("r", ScanOutcome(roots=[scanned, skipped]), [], catalog)

    assert report.coverage.percent == 50.0
    assert report.coverage.notice.startswith(INCOMPLETE_MARKER)
    assert "not scanned: b" in report.coverage.notice
    assert INCOMPLETE_MARKER in render_markdown(report)
    assert scan_exit_code(report) == 1


def test_repository_without_sources(repo: Path, catalog, config) -> None:
    _write(repo / "README.md", "docs only\n")
    report = build_scan_report(repo, config, catalog)

    assert report.findings == ()
    assert report.coverage.percent == 0.0
    assert report.coverage.notice == f"{INCOMPLETE_MARKER}: no source roots discovered (0% coverage)"
    assert report.error.startswith("No source roots discovered")
    assert INCOMPLETE_MARKER in render_markdown(report)
    assert scan_exit_code(report) == 2


def test_fail_on_threshold(catalog) -> None:
    root = RootStatus(root=SourceRoot(Path("/r/src"), "src", ("walk",)), files=1)
    classified = classify_matches([_match("src/a.ts", 1)], catalog)
    report = build_report("r", ScanOutcome(roots=[root]), classified, catalog)

    assert scan_exit_code(report) == 0
    assert scan_exit_code(report, "critical") == 0
    assert scan_exit_code(report, "warning") == 1


def test_hotspots_rank_by_density(catalog) -> None:
    matches = [_match("src/big.ts", n) for n in range(1, 5)] + [_match("src/small.ts", 1), _match("src/tiny.ts", 1)]
    classified = classify_matches(matches, catalog)
    spots = rank_hotspots(classified, {"src/big.ts": 400, "src/small.ts": 10, "src/tiny.ts": 10}, limit=2)

    assert [(h.file, h.findings, h.density) for h in spots] == [
        ("src/small.ts", 1, 10.0),
        ("src/tiny.ts", 1, 10.0),
    ]


def test_categories_ordered_by_worst_severity(catalog) -> None:
    root = RootStatus(root=SourceRoot(Path("/r/src"), "src", ("walk",)), files=1)
    classified = classify_matches(
        [_match("src/a.ts", 1, "lex.todo-marker"), _match("src/a.ts", 2, "lex.not-implemented")], catalog
    )
    report = build_report("r", ScanOutcome(roots=[root]), classified, catalog)
    assert list(report.by_category) == ["not implemented", "unfinished work"]
