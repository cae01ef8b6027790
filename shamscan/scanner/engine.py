"""Scanner engine: apply the rule catalog to every file under every root."""

from __future__ import annotations

import logging
import os
import re
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from ..models import TIER_ORDER, FileScan, Match, ScanWarning, SourceRoot
from ..rules.load import compile_pattern
from ..rules.schema import RuleCatalog, RuleDef
from .files import MAX_FILE_SIZE, has_generated_header, iter_source_files, path_selected
from .matchers import MATCHERS, regex_line_matches
from .source import LineIndex, ParsedSource, SourceParseError, dialect_for

if TYPE_CHECKING:
    from ..config import ScanConfig

logger = logging.getLogger(__name__)

SNIPPET_LIMIT = 200


@dataclass(frozen=True)
class CompiledRule:
    rule: RuleDef
    pattern: re.Pattern[str] | None = None


def compile_rules(catalog: RuleCatalog, tiers: Iterable[str] | None = None) -> list[CompiledRule]:
    """Compile the enabled rules, in catalog order, restricted to `tiers`."""
    wanted = set(tiers) if tiers else set(TIER_ORDER)
    compiled: list[CompiledRule] = []
    for rule in catalog.ordered():
        if rule.tier not in wanted:
            continue
        pattern = compile_pattern(rule) if rule.matcher == "regex" else None
        compiled.append(CompiledRule(rule=rule, pattern=pattern))
    return compiled


def _snippet(lines: LineIndex, line: int) -> str:
    text = lines.line_text(line).strip()
    if len(text) > SNIPPET_LIMIT:
        return text[: SNIPPET_LIMIT - 3] + "..."
    return text


def _count_lines(text: str) -> int:
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


def scan_text(text: str, relpath: str, compiled: list[CompiledRule]) -> tuple[list[Match], list[ScanWarning], bool]:
    """
    Run compiled rules over one file's text.

    Returns:
        (matches, warnings, downgraded). A file whose syntax tree has errors is
        downgraded: only regex rules run, and code-target rules see raw text.
    """
    warnings: list[ScanWarning] = []
    lines = LineIndex(text)
    parsed: ParsedSource | None
    try:
        parsed = ParsedSource(text, dialect_for(relpath))
    except SourceParseError as e:
        line, col = lines.line_col(min(e.offset, len(text)))
        warnings.append(
            ScanWarning(
                kind="parse-downgrade",
                file=relpath,
                message=f"{e} at {line}:{col}; scanned with lexical rules only",
            )
        )
        parsed = None

    found: dict[tuple[str, int, int], Match] = {}
    for cr in compiled:
        rule = cr.rule
        if cr.pattern is not None:
            target = parsed.masked if (parsed is not None and rule.target == "code") else text
            spans = regex_line_matches(target, cr.pattern)
        elif parsed is None:
            continue
        else:
            spans = MATCHERS[rule.matcher](parsed, rule)

        for start, end in spans:
            line, col = lines.line_col(start)
            end_line, end_col = lines.line_col(max(start, end))
            key = (rule.id, line, col)
            if key in found:
                continue
            found[key] = Match(
                rule_id=rule.id,
                file=relpath,
                line=line,
                column=col,
                end_line=end_line,
                end_column=end_col,
                snippet=_snippet(lines, line),
            )

    matches = sorted(found.values(), key=lambda m: m.sort_key())
    return matches, warnings, parsed is None


def scan_file(path: Path, relpath: str, root: str, compiled: list[CompiledRule]) -> FileScan:
    """Scan a single file. Read failures are recorded, never raised."""
    result = FileScan(path=path, relpath=relpath, root=root)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        result.read_ok = False
        result.warnings.append(ScanWarning(kind="file-read-error", file=relpath, message=str(e)))
        return result

    if has_generated_header(text):
        result.skipped = "generated"
        return result

    result.line_count = _count_lines(text)
    matches, warnings, downgraded = scan_text(text, relpath, compiled)
    result.matches = matches
    result.warnings.extend(warnings)
    result.downgraded = downgraded
    return result


@dataclass
class RootStatus:
    """Coverage bookkeeping for one discovered root."""

    root: SourceRoot
    files: int = 0
    scanned: bool = True
    reason: str | None = None


@dataclass
class ScanOutcome:
    roots: list[RootStatus]
    files: list[FileScan] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    timed_out: bool = False

    @property
    def scanned_files(self) -> list[FileScan]:
        return [f for f in self.files if f.read_ok and f.skipped is None]


def _collect_files(
    status: RootStatus,
    repo_root: Path,
    all_roots: set[Path],
    config: "ScanConfig",
    warnings: list[ScanWarning],
) -> list[tuple[Path, str]]:
    root = status.root
    if not root.path.is_dir():
        status.scanned = False
        status.reason = "not a directory"
        return []

    def on_error(err: OSError) -> None:
        where = Path(err.filename) if err.filename else root.path
        if where == root.path:
            status.scanned = False
            status.reason = f"unreadable: {err.strerror or err}"
            return
        rel = where.relative_to(repo_root).as_posix() if where.is_relative_to(repo_root) else str(where)
        warnings.append(ScanWarning(kind="directory-read-error", file=rel, message=str(err)))

    # Nested roots own their own files
    skip = [p for p in all_roots if p != root.path and p.is_relative_to(root.path)]

    files: list[tuple[Path, str]] = []
    for path in iter_source_files(root.path, skip_dirs=skip, recursive=root.recursive, on_error=on_error):
        rel = path.relative_to(repo_root).as_posix()
        if not path_selected(rel, config.include, config.exclude):
            continue
        try:
            size = path.stat().st_size
        except OSError as e:
            warnings.append(ScanWarning(kind="file-read-error", file=rel, message=str(e)))
            continue
        if size > MAX_FILE_SIZE:
            logger.debug("Skipping %s: %d bytes", rel, size)
            continue
        files.append((path, rel))
    return files


def scan_roots(
    roots: list[SourceRoot],
    catalog: RuleCatalog,
    config: "ScanConfig",
    repo_root: Path,
) -> ScanOutcome:
    """
    Scan every file under every root.

    Files are scanned concurrently, bounded by `config.workers`; results are
    merged here and sorted by path. With `config.timeout` set, files still
    pending when the deadline passes are cancelled and their roots are marked
    as not scanned.

    Args:
        roots: Discovered source roots
        catalog: Rule catalog to apply
        config: Scan configuration (tiers, include/exclude, workers, timeout)
        repo_root: Repository root; Match paths are relative to it

    Returns:
        ScanOutcome with per-root status, per-file results and warnings
    """
    repo_root = repo_root.resolve()
    compiled = compile_rules(catalog, config.tiers)
    statuses = [RootStatus(root=r) for r in roots]
    outcome = ScanOutcome(roots=statuses)
    all_roots = {r.path for r in roots}

    tasks: list[tuple[RootStatus, Path, str]] = []
    for status in statuses:
        files = _collect_files(status, repo_root, all_roots, config, outcome.warnings)
        if not status.scanned:
            logger.warning("Root %s not scanned: %s", status.root.relpath, status.reason)
            continue
        logger.debug("Root %s: %d files", status.root.relpath, len(files))
        tasks.extend((status, path, rel) for path, rel in files)

    workers = max(1, config.workers or os.cpu_count() or 1)
    pool = ThreadPoolExecutor(max_workers=workers)
    futures: dict[Future[FileScan], RootStatus] = {
        pool.submit(scan_file, path, rel, status.root.relpath, compiled): status for status, path, rel in tasks
    }
    collected: set[Future[FileScan]] = set()

    def collect(future: Future[FileScan]) -> None:
        collected.add(future)
        file_scan = future.result()
        outcome.files.append(file_scan)
        if file_scan.read_ok and file_scan.skipped is None:
            futures[future].files += 1

    try:
        for future in as_completed(futures, timeout=config.timeout):
            collect(future)
    except TimeoutError:
        outcome.timed_out = True
        for future, status in futures.items():
            if future in collected:
                continue
            if future.done() and not future.cancelled():
                collect(future)
                continue
            future.cancel()
            status.scanned = False
            status.reason = "timed out"
        logger.warning("Scan timed out after %ss", config.timeout)
    finally:
        pool.shutdown(wait=not outcome.timed_out, cancel_futures=True)

    outcome.files.sort(key=lambda f: f.relpath)
    for file_scan in outcome.files:
        outcome.warnings.extend(file_scan.warnings)
    outcome.warnings.sort(key=lambda w: (w.file, w.kind, w.message))
    return outcome
