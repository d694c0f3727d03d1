"""Rebuild the site when its sources change.

Every rebuild is a full build; watching only decides when to start one.
Events are collected from a watchdog observer and a rebuild starts once no
further change has arrived for the debounce delay.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class SiteEventHandler(FileSystemEventHandler):
    """Forwards changes to site sources, ignoring the output directory and hidden paths."""

    def __init__(self, site_root: Path, output_dir: Path, callback: Callable[[Path], None]) -> None:
        super().__init__()
        self.site_root = site_root.resolve()
        self.output_dir = output_dir.resolve()
        self.callback = callback

    def is_source(self, path: Path) -> bool:
        path = path.resolve()
        if path == self.output_dir or self.output_dir in path.parents:
            return False
        try:
            relative = path.relative_to(self.site_root)
        except ValueError:
            return False
        return not any(part.startswith(".") for part in relative.parts)

    def _forward(self, raw_path: str | bytes) -> None:
        path = Path(raw_path.decode() if isinstance(raw_path, bytes) else raw_path)
        if self.is_source(path):
            self.callback(path)

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._forward(event.src_path)
        self._forward(event.dest_path)


class SiteWatcher:
    """Runs ``rebuild`` after source changes settle."""

    def __init__(
        self,
        site_root: Path,
        output_dir: Path,
        rebuild: Callable[[], object],
        debounce: float = 0.5,
    ) -> None:
        self.site_root = site_root
        self.rebuild = rebuild
        self.debounce = debounce
        self.handler = SiteEventHandler(site_root, output_dir, self.record)
        self._lock = threading.Lock()
        self._changed: set[Path] = set()
        self._last_change: float | None = None

    def record(self, path: Path) -> None:
        with self._lock:
            self._changed.add(path)
            self._last_change = time.monotonic()

    def take_settled(self, now: float | None = None) -> set[Path]:
        """Changed paths, once no change has arrived for ``debounce`` seconds."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._last_change is None or now - self._last_change < self.debounce:
                return set()
            changed, self._changed = self._changed, set()
            self._last_change = None
            return changed

    def run(self, stop: threading.Event | None = None, poll_interval: float = 0.1) -> None:
        """Watch until ``stop`` is set (or the process is interrupted)."""
        stop = stop or threading.Event()
        observer = Observer()
        observer.schedule(self.handler, str(self.site_root), recursive=True)
        observer.start()
        logger.info("Watching %s for changes", self.site_root)
        try:
            while not stop.is_set():
                changed = self.take_settled()
                if changed:
                    logger.info("%d file(s) changed, rebuilding", len(changed))
                    self.rebuild()
                stop.wait(poll_interval)
        finally:
            observer.stop()
            observer.join()
