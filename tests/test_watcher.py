from __future__ import annotations

import threading
from pathlib import Path

from watchdog.events import DirModifiedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from shamscan.watcher import SourceChangeHandler


def _handler(repo: Path) -> tuple[SourceChangeHandler, list[list[Path]]]:
    batches: list[list[Path]] = []
    handler = SourceChangeHandler(repo, batches.append)
    handler.DEBOUNCE_SECONDS = 0
    return handler, batches


def test_only_source_changes_are_reported(repo: Path) -> None:
    handler, batches = _handler(repo)

    handler.on_modified(FileModifiedEvent(str(repo / "src" / "a.ts")))
    handler.on_modified(FileModifiedEvent(str(repo / "README.md")))
    handler.on_modified(FileModifiedEvent(str(repo / "node_modules" / "x" / "index.js")))
    handler.on_modified(FileModifiedEvent(str(repo / "src" / "types.d.ts")))
    handler.on_modified(DirModifiedEvent(str(repo / "src")))
    handler.flush_pending()

    assert batches == [[repo / "src" / "a.ts"]]


def test_batches_are_sorted_and_deduplicated(repo: Path) -> None:
    handler, batches = _handler(repo)

    handler.on_modified(FileModifiedEvent(str(repo / "src" / "b.ts")))
    handler.on_deleted(FileDeletedEvent(str(repo / "src" / "a.ts")))
    handler.on_modified(FileModifiedEvent(str(repo / "src" / "b.ts")))
    handler.flush_pending()
    handler.flush_pending()

    assert batches == [[repo / "src" / "a.ts", repo / "src" / "b.ts"]]


def test_moves_report_both_paths(repo: Path) -> None:
    handler, batches = _handler(repo)
    handler.on_moved(FileMovedEvent(str(repo / "src" / "old.ts"), str(repo / "src" / "new.ts")))
    handler.flush_pending()
    assert batches == [[repo / "src" / "new.ts", repo / "src" / "old.ts"]]


def test_changes_wait_for_quiet_period(repo: Path) -> None:
    batches: list[list[Path]] = []
    handler = SourceChangeHandler(repo, batches.append)
    handler.on_modified(FileModifiedEvent(str(repo / "src" / "a.ts")))
    handler.flush_pending()
    assert batches == []
    assert list(handler.pending) == [str(repo / "src" / "a.ts")]


def test_event_during_callback_lands_in_next_batch(repo: Path) -> None:
    batches: list[list[Path]] = []

    def on_change(changed: list[Path]) -> None:
        batches.append(changed)
        if len(batches) == 1:
            # An editor saving again while the scan runs
            handler.on_modified(FileModifiedEvent(str(repo / "src" / "b.ts")))

    handler = SourceChangeHandler(repo, on_change)
    handler.DEBOUNCE_SECONDS = 0
    handler.on_modified(FileModifiedEvent(str(repo / "src" / "a.ts")))
    handler.flush_pending()
    handler.flush_pending()

    assert batches == [[repo / "src" / "a.ts"], [repo / "src" / "b.ts"]]


def test_concurrent_events_are_never_lost(repo: Path) -> None:
    handler, batches = _handler(repo)
    paths = [repo / "src" / f"m{n:03d}.ts" for n in range(300)]

    def produce() -> None:
        for path in paths:
            handler.on_modified(FileModifiedEvent(str(path)))

    producer = threading.Thread(target=produce)
    producer.start()
    while producer.is_alive():
        handler.flush_pending()
    producer.join()
    handler.flush_pending()

    seen = [path for batch in batches for path in batch]
    assert sorted(seen) == paths
    assert handler.pending == {}
