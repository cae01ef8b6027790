"""
TypeScript compiler diagnostics: parsing, classification and health score.

Diagnostics come from `tsc` output, either captured from a subprocess or read
from a file. Each is classified as a quick fix or a design issue using the
catalog's code table; a file with many quick fixes is treated as a design
problem as a whole.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..errors import ExternalToolFailure
from ..rules.schema import DiagnosticKind

logger = logging.getLogger(__name__)

QUICK_FIX_COST = 1
DESIGN_ISSUE_COST = 5

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_TAIL = r"(?P<severity>error|warning|message)\s+(?P<code>TS\d+)\s*:\s*(?P<message>.*)$"
_PAREN_RE = re.compile(r"^(?P<file>[^\s(][^(]*?)\((?P<line>\d+),(?P<column>\d+)\):\s*" + _TAIL)
_COLON_RE = re.compile(r"^(?P<file>[^\s:][^\n]*?):(?P<line>\d+):(?P<column>\d+)\s+-\s+" + _TAIL)
_GLOBAL_RE = re.compile(r"^" + _TAIL)
_UNDERLINE_RE = re.compile(r"^\s*~+\s*$")


@dataclass(frozen=True)
class TscDiagnostic:
    file: str | None  # None for global diagnostics (e.g. tsconfig errors)
    line: int
    column: int
    code: str
    message: str
    severity: str = "error"

    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.file or "", self.line, self.column, self.code)


def parse_tsc_output(text: str) -> list[TscDiagnostic]:
    """
    Parse `tsc` output.

    Accepts `file(line,col): error TS1234: message` (the `--pretty false`
    format), `file:line:col - error TS1234: message` (the pretty format) and
    file-less `error TS1234: message`. Indented lines continue the previous
    message; a blank line ends it.
    """
    diagnostics: list[TscDiagnostic] = []
    current: dict | None = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            diagnostics.append(TscDiagnostic(**current))
            current = None

    for raw in text.splitlines():
        line = _ANSI_RE.sub("", raw).rstrip()
        if not line.strip():
            flush()
            continue
        if _UNDERLINE_RE.match(line):
            continue

        m = _PAREN_RE.match(line) or _COLON_RE.match(line)
        if m:
            flush()
            current = {
                "file": m.group("file").strip().replace("\\", "/"),
                "line": int(m.group("line")),
                "column": int(m.group("column")),
                "code": m.group("code"),
                "message": m.group("message").strip(),
                "severity": m.group("severity"),
            }
            continue

        m = _GLOBAL_RE.match(line.strip())
        if m and not line[0].isspace():
            flush()
            current = {
                "file": None,
                "line": 0,
                "column": 0,
                "code": m.group("code"),
                "message": m.group("message").strip(),
                "severity": m.group("severity"),
            }
            continue

        if current is not None and line[0].isspace():
            current["message"] = f"{current['message']}\n{line.strip()}"
            continue

        flush()

    flush()
    return diagnostics


@dataclass(frozen=True)
class ClassifiedDiagnostic:
    diagnostic: TscDiagnostic
    kind: DiagnosticKind
    known: bool  # code present in the table
    escalated: bool = False  # raised to design-issue by the per-file quick-fix count


def classify_diagnostics(
    diagnostics: Iterable[TscDiagnostic],
    table: dict[str, DiagnosticKind],
    threshold: int = 5,
) -> list[ClassifiedDiagnostic]:
    """
    Classify diagnostics per file.

    Args:
        diagnostics: Parsed diagnostics
        table: Code -> kind lookup (codes are upper-case, e.g. "TS2322")
        threshold: Per-file count that turns unknown codes into design issues
            and, when reached by quick fixes, escalates the whole file

    Returns:
        Classified diagnostics sorted by (file, line, column, code)
    """
    by_file: dict[str | None, list[TscDiagnostic]] = {}
    for diag in diagnostics:
        by_file.setdefault(diag.file, []).append(diag)

    out: list[ClassifiedDiagnostic] = []
    for file_diags in by_file.values():
        total = len(file_diags)
        base: list[tuple[TscDiagnostic, DiagnosticKind, bool]] = []
        for diag in file_diags:
            kind = table.get(diag.code.upper())
            if kind is not None:
                base.append((diag, kind, True))
            else:
                base.append((diag, "design-issue" if total >= threshold else "quick-fix", False))

        quick_fixes = sum(1 for _, kind, _ in base if kind == "quick-fix")
        escalate = quick_fixes >= threshold
        for diag, kind, known in base:
            if escalate and kind == "quick-fix":
                out.append(ClassifiedDiagnostic(diag, "design-issue", known, escalated=True))
            else:
                out.append(ClassifiedDiagnostic(diag, kind, known))

    out.sort(key=lambda c: c.diagnostic.sort_key())
    return out


def health_score(quick_fixes: int, design_issues: int) -> int:
    """100 minus 1 per quick fix and 5 per design issue, floored at 0."""
    return max(0, 100 - quick_fixes * QUICK_FIX_COST - design_issues * DESIGN_ISSUE_COST)


def run_type_checker(command: str, cwd: Path, timeout: float | None = None) -> str:
    """
    Run the type checker and return its combined output.

    `tsc` exits non-zero whenever it reports errors, so a non-zero status is
    only a failure when the output holds no diagnostics.

    Raises:
        ExternalToolFailure: the command cannot start, times out, or fails
            without producing parseable diagnostics
    """
    argv = shlex.split(command)
    if not argv:
        raise ExternalToolFailure(command, "empty command")

    logger.debug("Running %s in %s", argv, cwd)
    try:
        result = subprocess.run(argv, cwd=cwd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise ExternalToolFailure(command, f"command not found: {argv[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolFailure(command, f"timed out after {timeout}s") from e
    except OSError as e:
        raise ExternalToolFailure(command, str(e)) from e

    output = result.stdout
    if result.stderr:
        output = f"{output}\n{result.stderr}" if output else result.stderr

    if result.returncode != 0 and not parse_tsc_output(output):
        detail = (result.stderr or result.stdout).strip().splitlines()
        tail = detail[-1] if detail else "no output"
        raise ExternalToolFailure(command, f"exit status {result.returncode}: {tail}")
    return output
