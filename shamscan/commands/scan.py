"""Scan command implementation."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

from ..classify import classify_matches
from ..config import ScanConfig, build_rule_catalog, load_config
from ..discovery import discover_source_roots
from ..errors import ConfigError, DiscoveryFailure, RuleLoadError
from ..models import SEVERITY_RANK
from ..report import Report, build_report, print_report, render_json, render_markdown
from ..rules.schema import RuleCatalog
from ..scanner import scan_roots

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_FATAL = 2


def build_scan_report(repo_root: Path, config: ScanConfig, catalog: RuleCatalog) -> Report:
    """Discover, scan, classify and assemble the report.

    A DiscoveryFailure does not propagate: it becomes a report with zero
    coverage and the failure message.
    """
    repo_root = repo_root.resolve()
    try:
        roots = discover_source_roots(repo_root, config)
    except DiscoveryFailure as e:
        logger.debug("Discovery failed: %s", e)
        return build_report(
            repo_root.name,
            None,
            [],
            catalog,
            tiers=config.tiers,
            thresholds=config.thresholds,
            error=str(e),
        )

    outcome = scan_roots(roots, catalog, config, repo_root)
    matches = [m for f in outcome.files for m in f.matches]
    classifications = classify_matches(matches, catalog, config.thresholds)
    return build_report(
        repo_root.name,
        outcome,
        classifications,
        catalog,
        tiers=config.tiers,
        thresholds=config.thresholds,
    )


def scan_exit_code(report: Report, fail_on: str | None = None) -> int:
    """0 for full coverage, 1 for partial coverage or findings at `fail_on`, 2 when discovery failed."""
    if report.error:
        return EXIT_FATAL
    if not report.coverage.complete:
        return EXIT_FINDINGS
    if fail_on:
        worst = report.max_severity()
        if worst is not None and SEVERITY_RANK[worst] >= SEVERITY_RANK[fail_on]:
            return EXIT_FINDINGS
    return EXIT_OK


def emit(text: str, output: Path | None) -> None:
    """Write rendered output to `output`, or stdout."""
    if output is None:
        print(text, end="" if text.endswith("\n") else "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")


def load_scan_setup(repo_root: Path, config_path: Path | None, **overrides) -> tuple[ScanConfig, RuleCatalog]:
    """Load configuration, apply overrides and build the catalog.

    Raises:
        ConfigError, RuleLoadError
    """
    config = load_config(repo_root, config_path).with_overrides(**overrides)
    catalog = build_rule_catalog(config, repo_root)
    return config, catalog


def run_scan(
    repo_root: Path,
    *,
    config_path: Path | None = None,
    output_format: str = "console",
    output: Path | None = None,
    tiers: tuple[str, ...] = (),
    include: tuple[str, ...] = (),
    exclude: tuple[str, ...] = (),
    cluster_threshold: int | None = None,
    workers: int | None = None,
    timeout: float | None = None,
    fail_on: str | None = None,
) -> int:
    """Scan a repository and print or write the report.

    Args:
        repo_root: Repository root directory
        config_path: Explicit config file (default: <repo_root>/.shamscan.toml if present)
        output_format: "console", "md" or "json"
        output: Write the report here instead of stdout
        tiers: Only run these tiers (default: configured tiers)
        include: Only scan repo-relative paths matching these globs
        exclude: Skip repo-relative paths matching these globs
        cluster_threshold: Override the per-file escalation threshold
        workers: Override the worker count
        timeout: Whole-run timeout in seconds
        fail_on: Also exit 1 when a finding at this severity or higher exists

    Returns:
        Exit code (0 = full coverage, 1 = partial coverage or failing findings, 2 = fatal)
    """
    console = Console(stderr=True)

    try:
        config, catalog = load_scan_setup(
            repo_root,
            config_path,
            tiers=tiers,
            include=include,
            exclude=exclude,
            cluster=cluster_threshold,
            workers=workers,
            timeout=timeout,
        )
    except (ConfigError, RuleLoadError) as e:
        console.print(f"Error: {e}", style="bold red", highlight=False)
        return EXIT_FATAL

    console.print(f"Scanning {repo_root}...", style="dim")
    report = build_scan_report(repo_root, config, catalog)

    if report.coverage.notice:
        console.print(report.coverage.notice, style="bold red", highlight=False)

    if output_format == "json":
        emit(render_json(report), output)
    elif output_format == "md":
        emit(render_markdown(report), output)
    elif output is not None:
        with output.open("w", encoding="utf-8") as fh:
            print_report(Console(file=fh, no_color=True, width=120), report)
    else:
        print_report(Console(), report)

    return scan_exit_code(report, fail_on)
