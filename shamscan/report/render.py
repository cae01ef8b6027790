"""Report renderers: Markdown, JSON and rich console output."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .builder import DiagnosticReport, Report

_SEVERITY_STYLE = {"critical": "bold red", "warning": "yellow", "info": "dim"}


def _md_escape(text: str) -> str:
    return text.replace("|", "\\|").replace("`", "'")


def render_markdown(report: Report) -> str:
    lines: list[str] = [f"# shamscan report: {report.repo}", ""]
    lines.append(f"Catalog version {report.catalog_version}; tiers: {', '.join(report.tiers)}.")
    lines.append("")

    cov = report.coverage
    if cov.notice:
        lines.append(f"> **{cov.notice}**")
        lines.append("")
    if report.error:
        lines.append(f"> {report.error}")
        lines.append("")

    lines.append("## Coverage")
    lines.append("")
    lines.append(
        f"{cov.scanned} of {cov.discovered} discovered roots scanned ({cov.percent}%), "
        f"{report.files_scanned} files."
    )
    if cov.roots:
        lines.append("")
        lines.append("| Root | Detected via | Files | Scanned |")
        lines.append("|---|---|---:|---|")
        for root in cov.roots:
            status = "yes" if root.scanned else f"no ({root.reason})"
            lines.append(f"| `{root.relpath}` | {', '.join(root.detected_via)} | {root.files} | {status} |")
    lines.append("")

    lines.append("## Severity")
    lines.append("")
    lines.append("| Severity | Count |")
    lines.append("|---|---:|")
    for level, count in report.counts.items():
        lines.append(f"| {level} | {count} |")
    lines.append("")

    lines.append("## Findings")
    lines.append("")
    if not report.findings:
        lines.append("No findings.")
        lines.append("")
    for category, findings in report.by_category.items():
        lines.append(f"### {category} ({len(findings)})")
        lines.append("")
        remediation = findings[0].remediation
        if remediation:
            lines.append(f"_{remediation.strip()}_")
            lines.append("")
        for finding in findings:
            c = finding.classification
            m = c.match
            lines.append(f"- **{c.severity}** `{m.file}:{m.line}:{m.column}` {finding.rule_name}")
            if m.snippet:
                lines.append(f"  `{_md_escape(m.snippet)}`")
            if c.note:
                lines.append(f"  ({c.note})")
        lines.append("")

    if report.hotspots:
        lines.append("## Hotspots")
        lines.append("")
        lines.append("| File | Findings | Lines | Per 100 lines |")
        lines.append("|---|---:|---:|---:|")
        for spot in report.hotspots:
            lines.append(f"| `{spot.file}` | {spot.findings} | {spot.lines} | {spot.density} |")
        lines.append("")

    if report.warnings:
        lines.append("## Warnings")
        lines.append("")
        for warning in report.warnings:
            lines.append(f"- {warning}")
        lines.append("")

    return "\n".join(lines)


def render_json(report: Report | DiagnosticReport) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False) + "\n"


def print_report(console: Console, report: Report) -> None:
    cov = report.coverage
    console.print(f"[bold]shamscan[/bold] {report.repo}  (catalog {report.catalog_version})")
    if cov.notice:
        console.print(f"[bold red]{cov.notice}[/bold red]")
    if report.error:
        console.print(f"[red]{report.error}[/red]")
    console.print(
        f"Coverage: {cov.scanned}/{cov.discovered} roots ({cov.percent}%), {report.files_scanned} files",
        style="dim",
    )
    console.print()

    for category, findings in report.by_category.items():
        console.print(f"[bold]{category}[/bold] ({len(findings)})")
        for finding in findings:
            c = finding.classification
            m = c.match
            style = _SEVERITY_STYLE[c.severity]
            console.print(
                f"  [{style}]{c.severity:<8}[/{style}] {escape(m.file)}:{m.line}:{m.column}  {escape(m.snippet)}",
                highlight=False,
            )
        console.print()

    if report.hotspots:
        table = Table(title="Hotspots")
        table.add_column("File")
        table.add_column("Findings", justify="right")
        table.add_column("Lines", justify="right")
        table.add_column("Per 100", justify="right")
        for spot in report.hotspots:
            table.add_row(escape(spot.file), str(spot.findings), str(spot.lines), f"{spot.density}")
        console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(str(warning))}", highlight=False)

    summary = ", ".join(f"{n} {level}" for level, n in report.counts.items())
    console.print(f"\n{len(report.findings)} findings: {summary}")


def render_diagnostic_markdown(report: DiagnosticReport) -> str:
    lines = [f"# Type check health: {report.repo}", ""]
    lines.append(f"**Health score: {report.score}/100**")
    lines.append("")
    lines.append(
        f"{report.quick_fix} quick fixes, {report.design_issue} design issues "
        f"(escalation threshold {report.threshold}). Source: `{report.source}`."
    )
    lines.append("")
    if report.files:
        lines.append("| File | Quick fixes | Design issues | Escalated |")
        lines.append("|---|---:|---:|---|")
        for f in report.files:
            lines.append(f"| `{f.file}` | {f.quick_fix} | {f.design_issue} | {'yes' if f.escalated else ''} |")
        lines.append("")
    if report.unknown_codes:
        lines.append(f"Unknown codes: {', '.join(report.unknown_codes)}")
        lines.append("")
    if report.diagnostics:
        lines.append("## Diagnostics")
        lines.append("")
        for c in report.diagnostics:
            d = c.diagnostic
            where = f"{d.file}:{d.line}:{d.column}" if d.file else "(global)"
            first = d.message.splitlines()[0] if d.message else ""
            lines.append(f"- `{where}` {d.code} **{c.kind}**: {_md_escape(first)}")
        lines.append("")
    return "\n".join(lines)


def print_diagnostic_report(console: Console, report: DiagnosticReport) -> None:
    color = "green" if report.score >= 80 else "yellow" if report.score >= 50 else "red"
    console.print(f"[bold]Health score:[/bold] [{color}]{report.score}/100[/{color}]")
    console.print(f"{report.quick_fix} quick fixes, {report.design_issue} design issues", style="dim")

    if report.files:
        table = Table(title="Diagnostics by file")
        table.add_column("File")
        table.add_column("Quick fixes", justify="right")
        table.add_column("Design issues", justify="right")
        table.add_column("Escalated")
        for f in report.files:
            table.add_row(f.file, str(f.quick_fix), str(f.design_issue), "yes" if f.escalated else "")
        console.print(table)

    if report.unknown_codes:
        console.print(f"Unknown codes: {', '.join(report.unknown_codes)}", style="dim")
