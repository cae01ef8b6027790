"""Roots command - show discovered source roots."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import load_config
from ..discovery import discover_source_roots
from ..errors import ConfigError, DiscoveryFailure
from .scan import EXIT_FATAL


def run_roots(repo_root: Path, *, config_path: Path | None = None, output_json: bool = False) -> int:
    """Print discovered source roots and how each was detected.

    Returns:
        Exit code (0 = roots found, 2 = no roots or invalid configuration)
    """
    err = Console(stderr=True)
    try:
        config = load_config(repo_root, config_path)
        roots = discover_source_roots(repo_root, config)
    except ConfigError as e:
        err.print(f"Error: {e}", style="bold red", highlight=False)
        return EXIT_FATAL
    except DiscoveryFailure as e:
        err.print(str(e), style="bold red", highlight=False)
        return EXIT_FATAL

    if output_json:
        data = [{"root": r.relpath, "detected_via": list(r.detected_via)} for r in roots]
        print(json.dumps(data, indent=2))
        return 0

    table = Table(title=f"Source roots ({len(roots)})")
    table.add_column("Root", style="bold")
    table.add_column("Detected via")
    for root in roots:
        table.add_row(root.relpath, ", ".join(root.detected_via))
    Console().print(table)
    return 0
