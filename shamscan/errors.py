"""Exception types for whole-run failures.

Per-file conditions (unreadable files, parse downgrades) are never raised;
they are recorded as ScanWarning entries and surface in the report.
"""

from __future__ import annotations

from pathlib import Path


class ShamscanError(Exception):
    """Base class for fatal shamscan errors."""


class ConfigError(ShamscanError):
    """Configuration file or option value is invalid."""


class RuleLoadError(ShamscanError):
    """A rule pack could not be loaded."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class DiscoveryFailure(ShamscanError):
    """No source roots were found under the repository root."""

    def __init__(self, repo_root: Path):
        self.repo_root = repo_root
        super().__init__(f"No source roots discovered under {repo_root}")


class ExternalToolFailure(ShamscanError):
    """The external type checker could not be run."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Type checker failed ({command}): {reason}")
