from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from shamscan.commands.scan import build_scan_report
from shamscan.config import ScanConfig
from shamscan.discovery import discover_source_roots, expand_members
from shamscan.discovery.manifests import strip_json_comments
from shamscan.errors import DiscoveryFailure
from shamscan.scanner import scan_roots


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _roots(repo: Path) -> list[tuple[str, tuple[str, ...]]]:
    return [(r.relpath, r.detected_via) for r in discover_source_roots(repo, ScanConfig())]


def test_workspace_members_merge_with_walked_roots(repo: Path) -> None:
    _write(repo / "package.json", json.dumps({"private": True, "workspaces": ["packages/*"]}))
    for name in ("a", "b"):
        _write(repo / "packages" / name / "package.json", "{}")
        _write(repo / "packages" / name / "src" / "index.ts", "export const x = 1;\n")

    assert _roots(repo) == [
        ("packages/a/src", ("walk", "workspace:npm")),
        ("packages/b/src", ("walk", "workspace:npm")),
    ]


def test_pnpm_workspace_with_negation_and_member_without_src(repo: Path) -> None:
    _write(repo / "pnpm-workspace.yaml", 'packages:\n  - "apps/*"\n  - "!apps/legacy"\n')
    _write(repo / "apps" / "web" / "package.json", "{}")
    _write(repo / "apps" / "web" / "index.ts", "export {};\n")
    _write(repo / "apps" / "legacy" / "package.json", "{}")
    _write(repo / "apps" / "legacy" / "index.ts", "export {};\n")

    # The excluded member still holds source, so its parent directory becomes a root
    assert _roots(repo) == [("apps", ("walk",)), ("apps/web", ("workspace:pnpm",))]


def test_rush_manifest_with_comments(repo: Path) -> None:
    _write(
        repo / "rush.json",
        """{
  // rush configuration
  "projects": [
    { "packageName": "a", "projectFolder": "libs/a", },
  ],
}
""",
    )
    _write(repo / "libs" / "a" / "lib" / "index.ts", "export {};\n")

    assert _roots(repo) == [("libs/a/lib", ("walk", "workspace:rush"))]


def test_walk_does_not_descend_into_found_roots(repo: Path) -> None:
    _write(repo / "server" / "app.js", "module.exports = {};\n")
    _write(repo / "client" / "src" / "main.tsx", "export {};\n")

    assert _roots(repo) == [("client", ("walk",)), ("server", ("walk",))]


def test_fallback_to_repository_root(repo: Path) -> None:
    _write(repo / "index.js", "console.log(1);\n")
    assert _roots(repo) == [(".", ("fallback",))]


def test_empty_repository_fails(repo: Path) -> None:
    _write(repo / "README.md", "# nothing here\n")
    with pytest.raises(DiscoveryFailure):
        discover_source_roots(repo)


def test_dependencies_and_build_output_are_ignored(repo: Path) -> None:
    _write(repo / "node_modules" / "pkg" / "src" / "index.js", "module.exports = 1;\n")
    _write(repo / "dist" / "src" / "bundle.js", "var a = 1;\n")
    with pytest.raises(DiscoveryFailure):
        discover_source_roots(repo)


def test_invalid_manifest_is_logged_not_fatal(repo: Path, caplog: pytest.LogCaptureFixture) -> None:
    _write(repo / "package.json", "{not json")
    _write(repo / "src" / "index.ts", "export {};\n")

    with caplog.at_level(logging.WARNING):
        roots = _roots(repo)

    assert roots == [("src", ("walk",))]
    assert any("npm" in record.getMessage() for record in caplog.records)


def test_member_outside_repository_is_skipped(tmp_path: Path) -> None:
    repo = (tmp_path / "repo").resolve()
    _write(tmp_path / "outside" / "package.json", "{}")
    repo.mkdir()
    assert expand_members(repo, ["../outside"]) == []


def test_strip_json_comments_keeps_urls_in_strings() -> None:
    text = '{"url": "http://example.test/a", /* note */ "n": [1, 2,],} // trailing\n'
    assert json.loads(strip_json_comments(text)) == {"url": "http://example.test/a", "n": [1, 2]}


ALWAYS_VALID = """\
export function {name}(token) {{
  console.log("checking", token);
  return true;
}}
"""


def test_files_outside_conventional_dirs_get_roots(repo: Path, catalog, config) -> None:
    _write(repo / "src" / "index.ts", "export {};\n")
    _write(repo / "hooks" / "useAuth.ts", ALWAYS_VALID.format(name="validateToken"))
    _write(repo / "middleware.ts", ALWAYS_VALID.format(name="checkAccess"))
    _write(repo / "node_modules" / "lib" / "index.js", "module.exports = 1;\n")

    roots = discover_source_roots(repo, ScanConfig())
    assert [(r.relpath, r.detected_via, r.recursive) for r in roots] == [
        (".", ("repo-root",), False),
        ("hooks", ("walk",), True),
        ("src", ("walk",), True),
    ]

    report = build_scan_report(repo, config, catalog)
    assert report.coverage.complete
    assert report.files_scanned == 3
    behavioral = [
        (f.classification.match.file, f.classification.match.rule_id)
        for f in report.findings
        if f.classification.tier == "behavioral"
    ]
    assert sorted(behavioral) == [
        ("hooks/useAuth.ts", "beh.unconditional-success"),
        ("middleware.ts", "beh.unconditional-success"),
    ]


def test_repo_root_only_owns_its_direct_files(repo: Path, catalog, config) -> None:
    _write(repo / "server.ts", "// TODO root\n")
    _write(repo / "src" / "app.ts", "// TODO src\n")

    outcome = scan_roots(discover_source_roots(repo, ScanConfig()), catalog, config, repo)

    assert {f.relpath: f.root for f in outcome.files} == {"server.ts": ".", "src/app.ts": "src"}
