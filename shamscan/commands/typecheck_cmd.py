"""Typecheck command - classify compiler diagnostics and score type health."""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console

from ..errors import ConfigError, ExternalToolFailure, RuleLoadError
from ..report import build_diagnostic_report, print_diagnostic_report, render_diagnostic_markdown, render_json
from ..typecheck import classify_diagnostics, parse_tsc_output, run_type_checker
from .scan import EXIT_FATAL, EXIT_FINDINGS, EXIT_OK, emit, load_scan_setup


def run_typecheck(
    repo_root: Path,
    *,
    config_path: Path | None = None,
    input_path: str | None = None,
    tsc_command: str | None = None,
    escalation_threshold: int | None = None,
    output_format: str = "console",
    output: Path | None = None,
    min_score: int | None = None,
    timeout: float | None = None,
) -> int:
    """
    Classify TypeScript diagnostics and report a health score.

    Diagnostics are read from `input_path` ("-" for stdin) when given,
    otherwise the configured type checker is run in `repo_root`.

    Returns:
        Exit code (0 = ok, 1 = score below min_score, 2 = type checker or config failure)
    """
    console = Console(stderr=True)

    try:
        config, catalog = load_scan_setup(
            repo_root,
            config_path,
            diagnostic_escalation=escalation_threshold,
            tsc_command=tsc_command,
        )
    except (ConfigError, RuleLoadError) as e:
        console.print(f"Error: {e}", style="bold red", highlight=False)
        return EXIT_FATAL

    if input_path == "-":
        text = sys.stdin.read()
        source = "stdin"
    elif input_path:
        try:
            text = Path(input_path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            console.print(f"Error: cannot read {input_path}: {e}", style="bold red", highlight=False)
            return EXIT_FATAL
        source = input_path
    else:
        console.print(f"Running {config.tsc_command}...", style="dim")
        try:
            text = run_type_checker(config.tsc_command, repo_root, timeout=timeout)
        except ExternalToolFailure as e:
            console.print(f"Error: {e}", style="bold red", highlight=False)
            return EXIT_FATAL
        source = config.tsc_command

    threshold = config.thresholds.diagnostic_escalation
    classified = classify_diagnostics(parse_tsc_output(text), catalog.diagnostic_codes, threshold)
    report = build_diagnostic_report(repo_root.resolve().name, source, classified, threshold)

    if output_format == "json":
        emit(render_json(report), output)
    elif output_format == "md":
        emit(render_diagnostic_markdown(report), output)
    elif output is not None:
        with output.open("w", encoding="utf-8") as fh:
            print_diagnostic_report(Console(file=fh, no_color=True, width=120), report)
    else:
        print_diagnostic_report(Console(), report)

    if min_score is not None and report.score < min_score:
        console.print(f"Health score {report.score} is below {min_score}", style="bold red")
        return EXIT_FINDINGS
    return EXIT_OK
