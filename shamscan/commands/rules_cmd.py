"""Rules command - list and explain catalog rules."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..errors import ConfigError, RuleLoadError
from ..rules.schema import RuleCatalog, RuleDef
from .scan import EXIT_FATAL, load_scan_setup


def _rule_to_dict(rule: RuleDef) -> dict:
    return {
        "id": rule.id,
        "name": rule.name,
        "tier": rule.tier,
        "severity": rule.severity,
        "category": rule.category,
        "matcher": rule.matcher,
        "pattern": rule.pattern,
        "target": rule.target,
        "remediation": rule.remediation,
        "source": rule.source,
    }


def explain_rule_markdown(rule: RuleDef) -> str:
    lines = [f"# {rule.id}: {rule.name}", ""]
    lines.append(f"- **Tier:** {rule.tier}")
    lines.append(f"- **Severity:** {rule.severity}")
    lines.append(f"- **Category:** {rule.category}")
    if rule.matcher == "regex":
        lines.append(f"- **Pattern ({rule.target}):** `{rule.pattern}`")
    else:
        lines.append(f"- **Matcher:** `{rule.matcher}`")
    lines.append(f"- **Source:** {rule.source}")
    if rule.description:
        lines.extend(["", rule.description])
    if rule.remediation:
        lines.extend(["", "## Remediation", "", rule.remediation])
    return "\n".join(lines)


def run_rules(
    catalog: RuleCatalog,
    *,
    tier: str | None = None,
    output_json: bool = False,
) -> int:
    """List catalog rules, optionally filtered by tier.

    Returns:
        Exit code (always 0)
    """
    rules = catalog.by_tier(tier) if tier else catalog.ordered()

    if output_json:
        print(json.dumps({"version": catalog.version, "rules": [_rule_to_dict(r) for r in rules]}, indent=2))
        return 0

    console = Console()
    table = Table(title=f"Rule catalog {catalog.version}")
    table.add_column("ID", style="bold")
    table.add_column("Tier")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Name")
    for rule in rules:
        table.add_row(rule.id, rule.tier, rule.severity, rule.category, rule.name)
    console.print(table)
    return 0


def run_explain(catalog: RuleCatalog, rule_id: str) -> int:
    """Explain a single rule.

    Returns:
        Exit code (0 = success, 1 = rule not found)
    """
    from rich.markdown import Markdown

    console = Console()
    rule = catalog.get(rule_id.strip())
    if rule is None:
        console.print(f"Unknown rule: {rule_id}", style="bold red")
        console.print()
        console.print("Known rules:", style="bold")
        for r in catalog.ordered():
            console.print(f"  - {r.id}")
        return 1

    console.print(Markdown(explain_rule_markdown(rule)))
    return 0


def load_catalog_for(directory: Path, config_path: Path | None) -> RuleCatalog | None:
    """Catalog including configured rule packs; None (after printing) on failure."""
    try:
        _, catalog = load_scan_setup(directory, config_path)
    except (ConfigError, RuleLoadError) as e:
        Console(stderr=True).print(f"Error: {e}", style="bold red", highlight=False)
        return None
    return catalog


def run_rules_command(
    directory: Path,
    *,
    config_path: Path | None = None,
    tier: str | None = None,
    output_json: bool = False,
    explain_rule: str | None = None,
) -> int:
    catalog = load_catalog_for(directory, config_path)
    if catalog is None:
        return EXIT_FATAL
    if explain_rule:
        return run_explain(catalog, explain_rule)
    return run_rules(catalog, tier=tier, output_json=output_json)
