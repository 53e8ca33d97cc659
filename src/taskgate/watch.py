"""Re-run a task whenever watched files change."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from taskgate import ui
from taskgate.pipeline.adapter import matches_patterns

if TYPE_CHECKING:
    from rich.console import Console

    from taskgate.registry import TaskOutcome, TaskRegistry

logger = logging.getLogger(__name__)

_CHANGE_EVENTS = {"created", "modified", "deleted", "moved"}


class ChangeHandler(FileSystemEventHandler):
    """Forwards file events that match the watched pattern set."""

    def __init__(self, patterns: Sequence[str], root: Path, on_change: Callable[[str], None]) -> None:
        super().__init__()
        self.patterns = list(patterns)
        self.root = root
        self.on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENTS:
            return
        path = getattr(event, "dest_path", "") or event.src_path
        if isinstance(path, bytes):
            path = path.decode()
        if matches_patterns(Path(path), self.patterns, self.root):
            logger.debug("change: %s %s", event.event_type, path)
            self.on_change(path)


class WatchTrigger:
    """Invokes one watch-safe task on every burst of matching file changes.

    Each invocation builds a fresh run state inside the registry, so a failing
    run leaves nothing behind for the next one.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        task_name: str,
        patterns: Sequence[str],
        *,
        invoke: Callable[[str], TaskOutcome],
        root: Path,
        observer_factory: Callable[[], Any] = Observer,
        console: Console | None = None,
    ) -> None:
        task = registry.get(task_name)
        # only the invoked task's flag matters; dependencies never decide termination
        if task.terminates:
            raise ValueError(f"Task {task_name!r} ends the process on failure and cannot be watched")
        self.task_name = task_name
        self.patterns = list(patterns)
        self.invoke = invoke
        self.root = root
        self.observer_factory = observer_factory
        self.console = console or ui.console
        self.runs = 0
        self._pending = threading.Event()
        self._last_path: str | None = None
        self.handler = ChangeHandler(self.patterns, root, self._on_change)

    def _on_change(self, path: str) -> None:
        self._last_path = path
        self._pending.set()

    def trigger(self, path: str | None = None) -> TaskOutcome:
        """Run the target task once, synchronously."""
        if path:
            self.console.print(f"[cyan]File {path} was changed, running '{self.task_name}'...[/cyan]")
        self.runs += 1
        return self.invoke(self.task_name)

    def serve(
        self,
        stop_event: threading.Event | None = None,
        *,
        max_runs: int | None = None,
        poll_interval: float = 0.2,
    ) -> int:
        """Block, re-running the task on changes until stopped; returns the run count."""
        stop = stop_event or threading.Event()
        observer = self.observer_factory()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.start()
        self.console.print(f"[cyan]Watching for changes, target '{self.task_name}'[/cyan]")
        served = 0
        try:
            while not stop.is_set():
                if not self._pending.wait(timeout=poll_interval):
                    continue
                self._pending.clear()
                self.trigger(self._last_path)
                served += 1
                if max_runs is not None and served >= max_runs:
                    break
        finally:
            observer.stop()
            observer.join(timeout=5)
        return served
