"""CLI entrypoint for shamscan."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .models import SEVERITY_ORDER, TIER_ORDER

_ROOT = click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path)
_CONFIG = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: <root>/.shamscan.toml if present)",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(__version__, prog_name="shamscan")
@click.option("--verbose", "-V", is_flag=True, help="Enable debug logging on stderr")
def cli(verbose: bool) -> None:
    """shamscan - find fake and placeholder implementations in JS/TS codebases.

    Discovers source roots (monorepo-aware), scans them against a tiered rule
    catalog and reports classified findings with explicit coverage.
    """
    _configure_logging(verbose)


@cli.command()
@click.argument("root", type=_ROOT, default=".")
@_CONFIG
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "md", "json"]),
    default="console",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file path (default: stdout)",
)
@click.option(
    "--tier",
    "tiers",
    type=click.Choice(list(TIER_ORDER)),
    multiple=True,
    help="Only run this tier. Repeatable.",
)
@click.option("--include", multiple=True, help="Only scan paths matching this glob. Repeatable.")
@click.option("--exclude", multiple=True, help="Skip paths matching this glob. Repeatable.")
@click.option("--cluster-threshold", type=click.IntRange(min=1), default=None, help="Findings per file before escalation")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel file workers (default: CPU count)")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Whole-run timeout in seconds")
@click.option(
    "--fail-on",
    type=click.Choice(list(SEVERITY_ORDER)),
    default=None,
    help="Exit with error if a finding of this severity or higher exists",
)
def scan(
    root: Path,
    config_path: Path | None,
    output_format: str,
    output: Path | None,
    tiers: tuple[str, ...],
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    cluster_threshold: int | None,
    workers: int | None,
    timeout: float | None,
    fail_on: str | None,
) -> None:
    """Scan a repository for placeholder implementations.

    Exit status: 0 full coverage, 1 partial coverage (or findings at
    --fail-on), 2 fatal (no source roots, invalid configuration).

    Examples:

        shamscan scan .

        shamscan scan ../app --format md -o report.md

        shamscan scan . --tier structural --tier behavioral --fail-on critical
    """
    from .commands.scan import run_scan

    exit_code = run_scan(
        root,
        config_path=config_path,
        output_format=output_format,
        output=output,
        tiers=tiers,
        include=include,
        exclude=exclude,
        cluster_threshold=cluster_threshold,
        workers=workers,
        timeout=timeout,
        fail_on=fail_on,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("root", type=_ROOT, default=".")
@_CONFIG
@click.option(
    "--input",
    "input_path",
    type=str,
    default=None,
    metavar="FILE|-",
    help="Read tsc output from a file or stdin instead of running the type checker",
)
@click.option("--tsc-command", type=str, default=None, help="Type checker command line")
@click.option(
    "--escalation-threshold",
    type=click.IntRange(min=1),
    default=None,
    help="Quick fixes per file before the whole file counts as design issues",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "md", "json"]),
    default="console",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file path (default: stdout)",
)
@click.option("--min-score", type=click.IntRange(0, 100), default=None, help="Exit 1 when the score is lower")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Type checker timeout in seconds")
def typecheck(
    root: Path,
    config_path: Path | None,
    input_path: str | None,
    tsc_command: str | None,
    escalation_threshold: int | None,
    output_format: str,
    output: Path | None,
    min_score: int | None,
    timeout: float | None,
) -> None:
    """Classify TypeScript diagnostics and compute a health score.

    Each diagnostic is a quick fix (1 point) or a design issue (5 points);
    the score is 100 minus the total, floored at 0.

    Examples:

        shamscan typecheck .

        npx tsc --noEmit --pretty false | shamscan typecheck . --input -
    """
    from .commands.typecheck_cmd import run_typecheck

    exit_code = run_typecheck(
        root,
        config_path=config_path,
        input_path=input_path,
        tsc_command=tsc_command,
        escalation_threshold=escalation_threshold,
        output_format=output_format,
        output=output,
        min_score=min_score,
        timeout=timeout,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("root", type=_ROOT, default=".")
@_CONFIG
@click.option("--json", "output_json", is_flag=True, help="Output roots as JSON")
def roots(root: Path, config_path: Path | None, output_json: bool) -> None:
    """Show discovered source roots and how each was detected."""
    from .commands.roots_cmd import run_roots

    sys.exit(run_roots(root, config_path=config_path, output_json=output_json))


@cli.command()
@_CONFIG
@click.option("--tier", type=click.Choice(list(TIER_ORDER)), default=None, help="Only list this tier")
@click.option("--json", "output_json", is_flag=True, help="Output rules as JSON")
@click.option(
    "--explain",
    "explain_rule",
    type=str,
    default=None,
    metavar="RULE_ID",
    help="Explain a specific rule and exit (e.g., --explain struct.identity-function)",
)
def rules(config_path: Path | None, tier: str | None, output_json: bool, explain_rule: str | None) -> None:
    """List the rule catalog, including configured rule packs."""
    from .commands.rules_cmd import run_rules_command

    directory = config_path.parent if config_path else Path.cwd()
    exit_code = run_rules_command(
        directory,
        config_path=config_path,
        tier=tier,
        output_json=output_json,
        explain_rule=explain_rule,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("root", type=_ROOT, default=".")
@_CONFIG
def watch(root: Path, config_path: Path | None) -> None:
    """Re-run the scan whenever source files change.

    Runs until interrupted (Ctrl+C) and prints one summary line per scan.
    """
    from .commands.watch_cmd import run_watch

    sys.exit(run_watch(root, config_path=config_path))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
