"""Source root discovery: workspace manifests, filesystem walk, fallback."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from ..config import ScanConfig
from ..errors import DiscoveryFailure
from ..models import SourceRoot
from ..scanner.files import SCANNABLE_EXTENSIONS, contains_scannable
from .manifests import expand_members, read_manifests
from .walker import unowned_source_dirs, walk_source_dirs

logger = logging.getLogger(__name__)


def member_source_dir(member: Path, candidates: Iterable[str]) -> Path | None:
    """The source directory of a workspace member, or None if it has no code."""
    for name in candidates:
        sub = member / name
        if sub.is_dir() and contains_scannable(sub):
            return sub
    if contains_scannable(member):
        return member
    return None


def _relpath(path: Path, repo_root: Path) -> str:
    rel = path.relative_to(repo_root).as_posix()
    return rel or "."


def discover_source_roots(repo_root: Path, config: ScanConfig | None = None) -> list[SourceRoot]:
    """
    Discover every source root under `repo_root`.

    Workspace members declared by manifests and conventionally named
    directories found by walking are merged; a directory found both ways is
    listed once with both detection labels. When neither finds anything, the
    repository root itself is used if it holds source files.

    Every source file must end up owned by a root: a top-level directory
    holding files no root covers becomes a `walk` root, and source files
    sitting directly in the repository root get a non-recursive `repo-root`
    root of their own.

    Args:
        repo_root: Repository root directory
        config: Scan configuration (source directory names); defaults apply when None

    Returns:
        SourceRoots sorted by relative path

    Raises:
        DiscoveryFailure: no source roots were found
    """
    config = config or ScanConfig()
    repo_root = repo_root.resolve()
    labels: dict[Path, set[str]] = {}

    for adapter, patterns in read_manifests(repo_root):
        for member in expand_members(repo_root, patterns):
            source = member_source_dir(member, config.member_source_dirs)
            if source is None:
                logger.debug("Workspace member %s has no source files", member)
                continue
            labels.setdefault(source.resolve(), set()).add(f"workspace:{adapter}")

    for path in walk_source_dirs(repo_root, config.source_dirs):
        labels.setdefault(path, set()).add("walk")

    if not labels and contains_scannable(repo_root):
        labels[repo_root] = {"fallback"}

    if not labels:
        logger.debug("No files with extensions %s under %s", sorted(SCANNABLE_EXTENSIONS), repo_root)
        raise DiscoveryFailure(repo_root)

    unowned, direct = unowned_source_dirs(repo_root, labels)
    for path in unowned:
        logger.debug("%s holds source files outside every discovered root", path)
        labels.setdefault(path, set()).add("walk")
    if direct:
        labels.setdefault(repo_root, set()).add("repo-root")

    roots = [
        SourceRoot(
            path=path,
            relpath=_relpath(path, repo_root),
            detected_via=tuple(sorted(via)),
            recursive="repo-root" not in via,
        )
        for path, via in labels.items()
    ]
    roots.sort(key=lambda r: r.relpath)
    return roots
