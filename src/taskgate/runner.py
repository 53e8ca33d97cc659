"""Top-level driver: invokes requested tasks and decides the exit status."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from watchdog.observers import Observer

from taskgate import ui
from taskgate.registry import TaskContext, TaskOutcome, TaskRegistry
from taskgate.termination import TerminationController
from taskgate.watch import WatchTrigger

if TYPE_CHECKING:
    from rich.console import Console

    from taskgate.config import Settings

logger = logging.getLogger(__name__)


class TaskRunner:
    """Runs tasks from a registry and owns the run's termination decision."""

    def __init__(
        self,
        registry: TaskRegistry,
        settings: Settings,
        *,
        console: Console | None = None,
        watch_mode: bool = False,
        observer_factory: Callable[[], Any] = Observer,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings
        self.console = console or ui.console
        self.watch_mode = watch_mode
        self.observer_factory = observer_factory
        self.stop_event = stop_event
        self.controller = TerminationController(watch_mode=watch_mode, console=self.console)
        self.outcomes: list[TaskOutcome] = []

    def context(self, *, watch_mode: bool | None = None) -> TaskContext:
        return TaskContext(
            settings=self.settings,
            console=self.console,
            watch_mode=self.watch_mode if watch_mode is None else watch_mode,
            watcher=self.watch,
        )

    def run(self, names: Sequence[str]) -> int:
        """Invoke ``names`` in order and return the process exit status.

        Stops after the first failure that terminates the run.
        """
        self.controller.reset()
        for name in names:
            task = self.registry.get(name)
            outcome = self.registry.invoke(name, self.context())
            self.outcomes.append(outcome)
            if outcome.failed and self.controller.fail(outcome, terminate=task.terminates):
                break
        return self.controller.exit_code

    def invoke_watched(self, name: str) -> TaskOutcome:
        """One watch-triggered run; failures are logged, never terminate."""
        outcome = self.registry.invoke(name, self.context(watch_mode=True))
        self.outcomes.append(outcome)
        if outcome.failed:
            ui.task_failed(self.console, name)
        return outcome

    def watcher(self, patterns: Sequence[str], target: str) -> WatchTrigger:
        return WatchTrigger(
            self.registry,
            target,
            patterns,
            invoke=self.invoke_watched,
            root=self.settings.root,
            observer_factory=self.observer_factory,
            console=self.console,
        )

    def watch(self, patterns: Sequence[str], target: str) -> None:
        trigger = self.watcher(patterns, target)
        logger.info("watching %d patterns for %s", len(patterns), target)
        trigger.serve(self.stop_event)
