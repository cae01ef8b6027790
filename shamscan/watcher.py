"""
File system watcher that re-runs the scan when source files change.

Events are debounced: editors save in bursts, so changes are collected until
the tree has been quiet for DEBOUNCE_SECONDS and then reported as one batch.
"""

import threading
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .scanner.files import is_excluded_dir, is_scannable_name


class SourceChangeHandler(FileSystemEventHandler):
    """
    Collects changes to scannable files and hands them over in batches.

    Files under excluded directories (node_modules, dist, ...) and hidden
    directories are ignored, as are non-source files.
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(self, repo_root: Path, on_change: Callable[[list[Path]], None]):
        """
        Args:
            repo_root: Directory being watched
            on_change: Called with the sorted changed paths once a burst settles
        """
        super().__init__()
        self.repo_root = repo_root
        self.on_change = on_change
        self.pending: dict[str, float] = {}  # path -> time of last event
        # Shared with the observer thread
        self._lock = threading.Lock()

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        try:
            parts = p.relative_to(self.repo_root).parts
        except ValueError:
            parts = p.parts
        if any(is_excluded_dir(part) for part in parts[:-1]):
            return False
        return is_scannable_name(p.name)

    def _touch(self, path: str) -> None:
        if self._is_relevant(path):
            with self._lock:
                self.pending[path] = time.time()

    def flush_pending(self) -> None:
        """Report pending changes once no event arrived within the debounce window."""
        with self._lock:
            if not self.pending:
                return
            if time.time() - max(self.pending.values()) < self.DEBOUNCE_SECONDS:
                return
            batch, self.pending = self.pending, {}
        self.on_change(sorted(Path(p) for p in batch))

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._touch(event.src_path)
        self._touch(event.dest_path)


def watch_tree(repo_root: Path, on_change: Callable[[list[Path]], None]) -> tuple[Observer, SourceChangeHandler]:
    """
    Start watching `repo_root` recursively.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = SourceChangeHandler(repo_root, on_change)
    observer = Observer()
    observer.schedule(handler, str(repo_root), recursive=True)
    observer.start()
    return observer, handler


def run_watch_loop(repo_root: Path, on_change: Callable[[list[Path]], None]) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that watches for changes and flushes
    pending batches periodically.
    """
    observer, handler = watch_tree(repo_root, on_change)
    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
