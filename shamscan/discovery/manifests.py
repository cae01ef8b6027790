"""
Workspace manifest adapters.

Each adapter reads one kind of monorepo manifest and returns the member path
patterns it declares, relative to the repository root. Adapters register
themselves by name; discovery runs them in registration order.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable

import yaml  # type: ignore

logger = logging.getLogger(__name__)

AdapterFn = Callable[[Path], list[str]]

# Registry: adapter name -> adapter, in priority order
_ADAPTERS: dict[str, AdapterFn] = {}


def register_adapter(name: str) -> Callable[[AdapterFn], AdapterFn]:
    """Decorator registering a manifest adapter under `name`."""

    def decorator(fn: AdapterFn) -> AdapterFn:
        _ADAPTERS[name] = fn
        return fn

    return decorator


def unregister_adapter(name: str) -> None:
    _ADAPTERS.pop(name, None)


def list_adapters() -> list[str]:
    return list(_ADAPTERS.keys())


def strip_json_comments(text: str) -> str:
    """Remove `//` and `/* */` comments and trailing commas from JSONC text."""
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
        elif ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return re.sub(r",(\s*[}\]])", r"\1", "".join(out))


def _load_json(path: Path, *, comments: bool = False) -> Any:
    text = path.read_text(encoding="utf-8")
    if comments:
        text = strip_json_comments(text)
    return json.loads(text)


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


@register_adapter("npm")
def npm_workspaces(repo_root: Path) -> list[str]:
    """`workspaces` in package.json (npm, yarn, bun)."""
    path = repo_root / "package.json"
    if not path.is_file():
        return []
    data = _load_json(path)
    if not isinstance(data, dict):
        return []
    workspaces = data.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    return _strings(workspaces)


@register_adapter("pnpm")
def pnpm_workspace(repo_root: Path) -> list[str]:
    path = repo_root / "pnpm-workspace.yaml"
    if not path.is_file():
        return []
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        return []
    return _strings(data.get("packages"))


@register_adapter("lerna")
def lerna_packages(repo_root: Path) -> list[str]:
    path = repo_root / "lerna.json"
    if not path.is_file():
        return []
    data = _load_json(path)
    if not isinstance(data, dict):
        return []
    return _strings(data.get("packages"))


@register_adapter("rush")
def rush_projects(repo_root: Path) -> list[str]:
    path = repo_root / "rush.json"
    if not path.is_file():
        return []
    data = _load_json(path, comments=True)
    if not isinstance(data, dict):
        return []
    folders: list[str] = []
    for project in data.get("projects") or []:
        if isinstance(project, dict) and isinstance(project.get("projectFolder"), str):
            folders.append(project["projectFolder"])
    return folders


@register_adapter("nx")
def nx_workspace(repo_root: Path) -> list[str]:
    path = repo_root / "workspace.json"
    if not path.is_file():
        return []
    data = _load_json(path, comments=True)
    projects = data.get("projects") if isinstance(data, dict) else None
    if not isinstance(projects, dict):
        return []
    roots: list[str] = []
    for value in projects.values():
        if isinstance(value, str):
            roots.append(value)
        elif isinstance(value, dict) and isinstance(value.get("root"), str):
            roots.append(value["root"])
    return roots


@register_adapter("tsconfig")
def tsconfig_references(repo_root: Path) -> list[str]:
    """Project references in the root tsconfig.json."""
    path = repo_root / "tsconfig.json"
    if not path.is_file():
        return []
    data = _load_json(path, comments=True)
    refs = data.get("references") if isinstance(data, dict) else None
    members: list[str] = []
    for ref in refs or []:
        if isinstance(ref, dict) and isinstance(ref.get("path"), str):
            members.append(ref["path"])
    return members


def read_manifests(repo_root: Path) -> list[tuple[str, list[str]]]:
    """
    Run every registered adapter.

    A manifest that cannot be read or parsed is logged and contributes no
    members; it never aborts discovery.

    Returns:
        (adapter name, member patterns) for adapters that found members
    """
    found: list[tuple[str, list[str]]] = []
    for name, adapter in _ADAPTERS.items():
        try:
            patterns = adapter(repo_root)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Ignoring %s manifest in %s: %s", name, repo_root, e)
            continue
        if patterns:
            logger.debug("%s manifest declares %d member pattern(s)", name, len(patterns))
            found.append((name, patterns))
    return found


_GLOB_CHARS = re.compile(r"[*?\[]")


def expand_members(repo_root: Path, patterns: list[str]) -> list[Path]:
    """
    Resolve member patterns to existing directories inside `repo_root`.

    Glob patterns keep only directories holding a package.json; literal paths
    are kept when they exist (a path to a file resolves to its directory).
    A leading `!` excludes what the pattern matches.
    """
    repo_root = repo_root.resolve()
    included: set[Path] = set()
    excluded: set[Path] = set()

    for raw in patterns:
        negate = raw.startswith("!")
        pattern = raw[1:] if negate else raw
        pattern = pattern.strip().removeprefix("./").rstrip("/")
        if not pattern:
            continue

        if _GLOB_CHARS.search(pattern):
            matches = {
                p.resolve() for p in repo_root.glob(pattern) if p.is_dir() and (p / "package.json").is_file()
            }
        else:
            candidate = repo_root / pattern
            if candidate.is_file():
                candidate = candidate.parent
            matches = {candidate.resolve()} if candidate.is_dir() else set()
            if not matches and not negate:
                logger.warning("Workspace member %s does not exist", pattern)

        for path in matches:
            if not path.is_relative_to(repo_root):
                logger.warning("Skipping workspace member outside the repository: %s", path)
                continue
            (excluded if negate else included).add(path)

    return sorted(included - excluded)
