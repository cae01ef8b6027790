"""Scan configuration: `.shamscan.toml` plus command-line overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import TIER_ORDER
from .rules import build_catalog, default_catalog, resolve_rule_paths
from .rules.schema import RuleCatalog

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".shamscan.toml"

DEFAULT_SOURCE_DIRS: tuple[str, ...] = (
    "src",
    "lib",
    "source",
    "app",
    "server",
    "client",
    "pages",
    "components",
    "api",
)

# Checked in order when a workspace member is expanded to its source directory
DEFAULT_MEMBER_SOURCE_DIRS: tuple[str, ...] = ("src", "lib", "source", "app")

DEFAULT_TSC_COMMAND = "npx --no-install tsc --noEmit --pretty false"


@dataclass(frozen=True)
class Thresholds:
    cluster: int = 5  # matches per file before every match escalates one level
    diagnostic_escalation: int = 5  # quick-fix diagnostics per file before all become design issues
    hotspots: int = 10  # files listed in the hotspot table


@dataclass(frozen=True)
class ScanConfig:
    """Immutable scan configuration."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    tiers: tuple[str, ...] = TIER_ORDER
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    timeout: float | None = None
    source_dirs: tuple[str, ...] = DEFAULT_SOURCE_DIRS
    member_source_dirs: tuple[str, ...] = DEFAULT_MEMBER_SOURCE_DIRS
    thresholds: Thresholds = field(default_factory=Thresholds)
    rule_files: tuple[str, ...] = ()
    disabled_rules: tuple[str, ...] = ()
    severity_overrides: dict[str, str] = field(default_factory=dict)
    diagnostic_overrides: dict[str, str] = field(default_factory=dict)
    tsc_command: str = DEFAULT_TSC_COMMAND
    config_path: Path | None = None

    def with_overrides(self, **changes: Any) -> "ScanConfig":
        """Return a copy with non-None keyword values applied and re-validated."""
        threshold_changes = {
            k: changes.pop(k) for k in ("cluster", "diagnostic_escalation", "hotspots") if k in changes
        }
        changes = {k: v for k, v in changes.items() if v is not None and v != ()}
        threshold_changes = {k: v for k, v in threshold_changes.items() if v is not None}
        if threshold_changes:
            changes["thresholds"] = replace(self.thresholds, **threshold_changes)
        updated = replace(self, **changes)
        _validate(updated)
        return updated


def _str_tuple(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigError(f"{key}: expected a string or a list of strings")


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{key}: expected a positive integer, got {value!r}")
    return value


def _coerce_table(value: Any, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table")
    return value


def _validate(config: ScanConfig) -> None:
    unknown = [t for t in config.tiers if t not in TIER_ORDER]
    if unknown:
        raise ConfigError(f"unknown tier(s): {', '.join(unknown)}; expected {', '.join(TIER_ORDER)}")
    if not config.tiers:
        raise ConfigError("at least one tier must be enabled")
    _positive_int(config.workers, "workers")
    if config.timeout is not None and config.timeout <= 0:
        raise ConfigError(f"timeout: expected a positive number, got {config.timeout!r}")
    for name in ("cluster", "diagnostic_escalation", "hotspots"):
        _positive_int(getattr(config.thresholds, name), f"thresholds.{name}")


def _parse(data: dict[str, Any], path: Path) -> ScanConfig:
    scan = _coerce_table(data.get("scan"), "scan")
    thresholds = _coerce_table(data.get("thresholds"), "thresholds")
    rules = _coerce_table(data.get("rules"), "rules")
    typecheck = _coerce_table(data.get("typecheck"), "typecheck")

    base = ScanConfig()
    kwargs: dict[str, Any] = {"config_path": path}

    if "include" in scan:
        kwargs["include"] = _str_tuple(scan["include"], "scan.include")
    if "exclude" in scan:
        kwargs["exclude"] = _str_tuple(scan["exclude"], "scan.exclude")
    if "tiers" in scan:
        kwargs["tiers"] = _str_tuple(scan["tiers"], "scan.tiers")
    if "workers" in scan:
        kwargs["workers"] = _positive_int(scan["workers"], "scan.workers")
    if "timeout" in scan:
        timeout = scan["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigError(f"scan.timeout: expected a number, got {timeout!r}")
        kwargs["timeout"] = float(timeout)
    if "source_dirs" in scan:
        kwargs["source_dirs"] = _str_tuple(scan["source_dirs"], "scan.source_dirs")
    if "member_source_dirs" in scan:
        kwargs["member_source_dirs"] = _str_tuple(scan["member_source_dirs"], "scan.member_source_dirs")

    threshold_values = {}
    for name in ("cluster", "diagnostic_escalation", "hotspots"):
        if name in thresholds:
            threshold_values[name] = _positive_int(thresholds[name], f"thresholds.{name}")
    kwargs["thresholds"] = replace(base.thresholds, **threshold_values)

    kwargs["rule_files"] = _str_tuple(rules.get("extra"), "rules.extra")
    kwargs["disabled_rules"] = _str_tuple(rules.get("disable"), "rules.disable")
    severity = _coerce_table(rules.get("severity"), "rules.severity")
    kwargs["severity_overrides"] = {str(k): str(v) for k, v in severity.items()}

    if "command" in typecheck:
        if not isinstance(typecheck["command"], str) or not typecheck["command"].strip():
            raise ConfigError("typecheck.command: expected a non-empty string")
        kwargs["tsc_command"] = typecheck["command"]
    codes = _coerce_table(typecheck.get("codes"), "typecheck.codes")
    kwargs["diagnostic_overrides"] = {str(k): str(v) for k, v in codes.items()}

    config = replace(base, **kwargs)
    _validate(config)
    return config


def load_config(repo_root: Path, config_path: Path | None = None) -> ScanConfig:
    """
    Load configuration for a repository.

    Args:
        repo_root: Repository root; `.shamscan.toml` there is used when present
        config_path: Explicit config file (must exist)

    Returns:
        ScanConfig (defaults when no file is found)

    Raises:
        ConfigError: file unreadable, not valid TOML, or holding invalid values
    """
    import tomllib

    path = config_path
    if path is None:
        candidate = repo_root / CONFIG_FILENAME
        if not candidate.is_file():
            logger.debug("No %s in %s; using defaults", CONFIG_FILENAME, repo_root)
            return ScanConfig()
        path = candidate

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    logger.debug("Loaded configuration from %s", path)
    return _parse(data, path)


def build_rule_catalog(config: ScanConfig, repo_root: Path) -> RuleCatalog:
    """Built-in catalog plus the configured rule packs and overrides."""
    base_dir = config.config_path.parent if config.config_path else repo_root
    extra = resolve_rule_paths(base_dir, config.rule_files)
    return build_catalog(
        default_catalog(),
        extra_files=extra,
        disable=config.disabled_rules,
        severity_overrides=config.severity_overrides,
        diagnostic_overrides=config.diagnostic_overrides,
    )
