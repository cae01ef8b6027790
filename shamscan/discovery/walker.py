"""Filesystem walks: conventionally named source directories and unowned files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from ..scanner.files import contains_scannable, is_excluded_dir, is_scannable_name

logger = logging.getLogger(__name__)


def walk_source_dirs(repo_root: Path, source_dirs: Iterable[str]) -> list[Path]:
    """
    Find directories named like source roots that hold scannable files.

    The walk never descends into a directory it has accepted as a root, nor
    into excluded or hidden directories.
    """
    names = set(source_dirs)
    found: list[Path] = []

    def on_error(err: OSError) -> None:
        logger.warning("Cannot read %s: %s", err.filename, err.strerror or err)

    for dirpath, dirnames, _ in os.walk(repo_root, onerror=on_error):
        current = Path(dirpath)
        keep: list[str] = []
        for name in sorted(dirnames):
            if is_excluded_dir(name):
                continue
            candidate = current / name
            if name in names and contains_scannable(candidate):
                found.append(candidate.resolve())
                continue
            keep.append(name)
        dirnames[:] = keep

    return sorted(found)


def _holds_unowned(directory: Path, owned: set[Path]) -> bool:
    for dirpath, dirnames, filenames in os.walk(directory):
        current = Path(dirpath)
        dirnames[:] = [d for d in dirnames if not is_excluded_dir(d) and (current / d).resolve() not in owned]
        if any(is_scannable_name(f) for f in filenames):
            return True
    return False


def unowned_source_dirs(repo_root: Path, roots: Iterable[Path]) -> tuple[list[Path], bool]:
    """
    Find source files that no discovered root owns.

    Args:
        repo_root: Resolved repository root
        roots: Resolved paths of the roots found so far

    Returns:
        (top-level directories holding unowned source files, whether the
        repository root holds source files directly)
    """
    owned = set(roots)
    if repo_root in owned:
        return [], False
    try:
        _, dirnames, filenames = next(os.walk(repo_root))
    except StopIteration:
        return [], False

    found: list[Path] = []
    for name in sorted(dirnames):
        if is_excluded_dir(name):
            continue
        top = (repo_root / name).resolve()
        if top not in owned and _holds_unowned(top, owned):
            found.append(top)
    return found, any(is_scannable_name(f) for f in filenames)
