"""Run-state store: per-invocation error counters and the run failure flag."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from taskgate.pipeline.types import UnitResult


class Category(str, Enum):
    """Failure domains a pipeline can report on."""

    STYLE = "style"
    SERVER_LINT = "server-lint"
    CLIENT_LINT = "client-lint"
    TEST = "test"
    COVERAGE = "coverage"


@dataclass
class RunState:
    """Error counters for one task invocation.

    A fresh instance is created for every invocation (watch re-runs included),
    so counts never leak from one run into the next. Counters only grow while
    a run is in progress.
    """

    error_counts: dict[Category, int] = field(default_factory=dict)
    run_failed: bool = False

    def reset(self) -> None:
        self.error_counts = {category: 0 for category in Category}
        self.run_failed = False

    def record_unit_result(self, category: Category, result: UnitResult) -> None:
        """Add the unit's error count to ``category`` when the unit failed."""
        if result.succeeded:
            return
        if result.count < 0:
            raise ValueError(f"Unit result count must be >= 0, got {result.count}")
        self.error_counts[category] = self.error_counts.get(category, 0) + result.count

    def current_verdict(self, category: Category) -> bool:
        """True when ``category`` has accumulated at least one error."""
        return self.error_counts.get(category, 0) > 0

    def mark_failed(self) -> None:
        self.run_failed = True

    def fold_verdicts(self, categories: set[Category]) -> bool:
        """Fold the verdicts of finished categories into ``run_failed``."""
        failed = any(self.current_verdict(category) for category in categories)
        self.run_failed = self.run_failed or failed
        return failed

    def merge(self, other: RunState) -> None:
        """Add a completed dependency's counters into this state."""
        for category, count in other.error_counts.items():
            self.error_counts[category] = self.error_counts.get(category, 0) + count
        self.run_failed = self.run_failed or other.run_failed

    def snapshot(self) -> dict[str, Any]:
        return {
            "run_failed": self.run_failed,
            "error_counts": {
                category.value: count
                for category, count in sorted(self.error_counts.items(), key=lambda item: item[0].value)
            },
        }


def new_run_state() -> RunState:
    """Return a reset state, ready for one invocation."""
    state = RunState()
    state.reset()
    return state
