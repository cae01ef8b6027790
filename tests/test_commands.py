"""Tests for the command implementations behind the CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from shamscan.commands.roots_cmd import run_roots
from shamscan.commands.rules_cmd import run_explain, run_rules, run_rules_command
from shamscan.commands.scan import run_scan
from shamscan.commands.typecheck_cmd import run_typecheck
from shamscan.rules import BUILT_IN_RULES

TSC_OUTPUT = """\
src/a.ts(1,7): error TS2322: Type 'string' is not assignable to type 'number'.
src/a.ts(4,1): error TS6133: 'x' is declared but its value is never read.
src/b.ts(2,3): error TS2304: Cannot find name 'y'.
"""


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def small_repo(repo: Path) -> Path:
    _write(repo / "src" / "util.ts", "export function pass(x) { return x }\n")
    return repo


def test_scan_json(small_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_scan(small_repo, output_format="json", workers=2)
    out = capsys.readouterr().out

    assert code == 0
    data = json.loads(out)
    assert data["coverage"]["complete"] is True
    assert [f["rule"] for f in data["findings"]["identity function"]] == ["struct.identity-function"]


def test_scan_markdown_to_file(small_repo: Path, tmp_path: Path) -> None:
    target = tmp_path / "out" / "report.md"
    assert run_scan(small_repo, output_format="md", output=target) == 0
    text = target.read_text(encoding="utf-8")
    assert text.startswith("# shamscan report: repo")
    assert "### identity function (1)" in text


def test_scan_fail_on(small_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_scan(small_repo, output_format="json", fail_on="warning") == 1
    assert run_scan(small_repo, output_format="json", fail_on="critical") == 0


def test_scan_without_sources_is_fatal(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_scan(repo, output_format="json")
    data = json.loads(capsys.readouterr().out)

    assert code == 2
    assert data["findings"] == {}
    assert data["coverage"]["notice"].startswith("INCOMPLETE COVERAGE")


def test_scan_with_invalid_config_is_fatal(small_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(small_repo / ".shamscan.toml", "[scan]\nworkers = 0\n")
    assert run_scan(small_repo, output_format="json") == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "workers" in captured.err


def test_scan_tier_selection(small_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    run_scan(small_repo, output_format="json", tiers=("lexical",))
    data = json.loads(capsys.readouterr().out)
    assert data["tiers"] == ["lexical"]
    assert data["findings"] == {}


def test_typecheck_from_file(repo: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = tmp_path / "tsc.log"
    _write(log, TSC_OUTPUT)

    code = run_typecheck(repo, input_path=str(log), output_format="json")
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data["counts"] == {"quick-fix": 2, "design-issue": 1}
    assert data["score"] == 93
    assert [f["file"] for f in data["files"]] == ["src/a.ts", "src/b.ts"]


def test_typecheck_min_score(repo: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = tmp_path / "tsc.log"
    _write(log, TSC_OUTPUT)
    assert run_typecheck(repo, input_path=str(log), output_format="json", min_score=95) == 1
    assert run_typecheck(repo, input_path=str(log), output_format="json", min_score=90) == 0


def test_typecheck_escalation_threshold_option(repo: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = tmp_path / "tsc.log"
    _write(log, TSC_OUTPUT)
    run_typecheck(repo, input_path=str(log), output_format="json", escalation_threshold=1)
    data = json.loads(capsys.readouterr().out)
    # a single quick fix per file reaches the threshold
    assert data["counts"] == {"quick-fix": 0, "design-issue": 3}
    assert data["score"] == 85


def test_typecheck_missing_tool_is_fatal(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_typecheck(repo, tsc_command="shamscan-no-such-binary --noEmit", output_format="json")
    captured = capsys.readouterr()
    assert code == 2
    assert captured.out == ""
    assert "shamscan-no-such-binary" in captured.err


def test_rules_json(capsys: pytest.CaptureFixture[str], catalog) -> None:
    assert run_rules(catalog, output_json=True) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["version"] == catalog.version
    assert len(data["rules"]) == len(BUILT_IN_RULES)
    tiers = [r["tier"] for r in data["rules"]]
    assert tiers == sorted(tiers, key=["lexical", "structural", "semantic", "behavioral"].index)


def test_rules_filtered_by_tier(capsys: pytest.CaptureFixture[str], catalog) -> None:
    run_rules(catalog, tier="behavioral", output_json=True)
    data = json.loads(capsys.readouterr().out)
    assert [r["id"] for r in data["rules"]] == ["beh.swallowed-error", "beh.unconditional-success"]


def test_explain(capsys: pytest.CaptureFixture[str], catalog) -> None:
    assert run_explain(catalog, "struct.identity-function") == 0
    assert "identity" in capsys.readouterr().out.lower()
    assert run_explain(catalog, "no.such-rule") == 1
    assert "Unknown rule" in capsys.readouterr().out


def test_rules_command_with_broken_pack(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(repo / "pack.toml", '[[rules]]\nid = "x"\ntier = "cosmic"\npattern = "x"\n')
    _write(repo / ".shamscan.toml", '[rules]\nextra = ["pack.toml"]\n')
    assert run_rules_command(repo, output_json=True) == 2


def test_roots_json(small_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_roots(small_repo, output_json=True) == 0
    assert json.loads(capsys.readouterr().out) == [{"root": "src", "detected_via": ["walk"]}]


def test_roots_without_sources(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_roots(repo, output_json=True) == 2
