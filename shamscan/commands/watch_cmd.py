"""Watch command - re-run the scan when source files change."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..errors import ConfigError, RuleLoadError
from ..report import Report
from ..watcher import run_watch_loop
from .scan import EXIT_FATAL, build_scan_report, load_scan_setup


def summary_line(report: Report) -> str:
    counts = ", ".join(f"{n} {level}" for level, n in report.counts.items())
    cov = report.coverage
    line = f"{len(report.findings)} findings ({counts}); coverage {cov.percent}% of {cov.discovered} roots"
    if cov.notice:
        line += " [INCOMPLETE]"
    return line


def run_watch(repo_root: Path, *, config_path: Path | None = None) -> int:
    """
    Watch the repository and print a summary line after each scan.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    try:
        config, catalog = load_scan_setup(repo_root, config_path)
    except (ConfigError, RuleLoadError) as e:
        console.print(f"Error: {e}", style="bold red", highlight=False)
        return EXIT_FATAL

    runs = 0

    def rescan(changed: list[Path]) -> None:
        nonlocal runs
        runs += 1
        report = build_scan_report(repo_root, config, catalog)
        timestamp = datetime.now().strftime("%H:%M:%S")
        if changed:
            console.print(f"[dim]{timestamp}[/dim] {len(changed)} file(s) changed", highlight=False)
        console.print(f"[dim]{timestamp}[/dim] {escape(summary_line(report))}", highlight=False)

    console.print(f"[bold]Watching[/bold] {repo_root}")
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    rescan([])
    run_watch_loop(repo_root.resolve(), rescan)

    console.print()
    console.print(f"[bold]Stopped.[/bold] {runs} scan(s) run.")
    return 0
