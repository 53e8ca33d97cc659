"""Termination decisions for failed runs.

The controller only records the decision; the CLI turns a non-zero
``exit_code`` into the process exit status once all output is printed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskgate import ui

if TYPE_CHECKING:
    from rich.console import Console

    from taskgate.registry import TaskOutcome

logger = logging.getLogger(__name__)

FAILURE_EXIT_CODE = 1


class TerminationController:
    """Decides, at most once per run, that the process must exit non-zero."""

    def __init__(self, *, watch_mode: bool = False, console: Console | None = None) -> None:
        self.watch_mode = watch_mode
        self.console = console or ui.console
        self._exit_code = 0
        self._terminated_by: str | None = None

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def terminated(self) -> bool:
        return self._terminated_by is not None

    def fail(self, outcome: TaskOutcome, *, terminate: bool = True) -> bool:
        """Report a failed outcome; returns True when this call decided termination."""
        ui.task_failed(self.console, outcome.name)
        if self.watch_mode or not terminate:
            logger.debug("task %s failed; process stays alive", outcome.name)
            return False
        if self._terminated_by is not None:
            return False
        self._terminated_by = outcome.name
        self._exit_code = FAILURE_EXIT_CODE
        return True

    def reset(self) -> None:
        self._exit_code = 0
        self._terminated_by = None
