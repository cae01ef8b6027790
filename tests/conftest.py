"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from shamscan.config import ScanConfig
from shamscan.rules import default_catalog
from shamscan.rules.schema import RuleCatalog
from shamscan.scanner import CompiledRule, compile_rules


@pytest.fixture
def catalog() -> RuleCatalog:
    """The built-in rule catalog."""
    return default_catalog()


@pytest.fixture
def compiled(catalog: RuleCatalog) -> list[CompiledRule]:
    """Every built-in rule, compiled."""
    return compile_rules(catalog)


@pytest.fixture
def config() -> ScanConfig:
    """Default configuration with a small worker pool."""
    return ScanConfig(workers=2)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """An empty repository root (resolved, so relative paths are stable)."""
    root = tmp_path / "repo"
    root.mkdir()
    return root.resolve()
