"""Scannable file selection."""

from __future__ import annotations

import fnmatch
import os
import re
from pathlib import Path
from typing import Callable, Iterable, Iterator

SCANNABLE_EXTENSIONS = frozenset({".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".mts", ".cts"})

EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        "out",
        "coverage",
        ".next",
        ".nuxt",
        ".turbo",
        ".git",
        ".cache",
        ".output",
        ".svelte-kit",
        ".vercel",
        "vendor",
        "bower_components",
        "jspm_packages",
        "storybook-static",
        "__generated__",
    }
)

# Skip files larger than 1 MiB; they are bundles or data, not hand-written code
MAX_FILE_SIZE = 1_048_576

GENERATED_HEADER_LINES = 5

_GENERATED_NAME_RE = re.compile(r"(?:\.d\.[mc]?ts|\.min\.[mc]?js)$|\.(?:generated|gen)\.[^.]+$")
_GENERATED_HEADER_RE = re.compile(r"@generated\b|\bauto-?generated\b|\bdo not edit\b", re.IGNORECASE)


def is_scannable_name(name: str) -> bool:
    """True for JS/TS source file names that are not declaration or generated files."""
    if Path(name).suffix.lower() not in SCANNABLE_EXTENSIONS:
        return False
    return not _GENERATED_NAME_RE.search(name.lower())


def is_excluded_dir(name: str) -> bool:
    return name in EXCLUDED_DIRS or name.startswith(".")


def has_generated_header(text: str) -> bool:
    head = text.split("\n", GENERATED_HEADER_LINES)[:GENERATED_HEADER_LINES]
    return any(_GENERATED_HEADER_RE.search(line) for line in head)


def contains_scannable(directory: Path) -> bool:
    """True if `directory` or any non-excluded subdirectory holds a scannable file."""
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = [d for d in dirnames if not is_excluded_dir(d)]
        if any(is_scannable_name(f) for f in filenames):
            return True
    return False


def path_selected(relpath: str, include: Iterable[str] = (), exclude: Iterable[str] = ()) -> bool:
    """Apply include/exclude globs to a repo-relative POSIX path."""
    include = list(include)
    if include and not any(fnmatch.fnmatch(relpath, pat) for pat in include):
        return False
    return not any(fnmatch.fnmatch(relpath, pat) for pat in exclude)


def iter_source_files(
    root: Path,
    *,
    skip_dirs: Iterable[Path] = (),
    recursive: bool = True,
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[Path]:
    """
    Yield scannable files under `root` in sorted order.

    Directories in `skip_dirs` (resolved paths) are not descended into; the
    scanner passes nested source roots here so each file is owned by exactly
    one root. With `recursive` off only the files directly in `root` are
    yielded. Size and include/exclude filtering happen in the engine.
    """
    skip = {Path(p) for p in skip_dirs}
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        if not recursive:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(
                d for d in dirnames if not is_excluded_dir(d) and (current / d) not in skip
            )
        for name in sorted(filenames):
            if is_scannable_name(name):
                yield current / name
