"""Pipeline types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from taskgate.state import Category


@dataclass(frozen=True)
class UnitResult:
    """Result for one processed unit (a linted file, a test case, a metric)."""

    succeeded: bool
    category: Category
    detail: Any = None
    count: int = 0

    @classmethod
    def passed(cls, category: Category, detail: Any = None) -> UnitResult:
        return cls(succeeded=True, category=category, detail=detail, count=0)

    @classmethod
    def failed(cls, category: Category, detail: Any = None, count: int = 1) -> UnitResult:
        return cls(succeeded=False, category=category, detail=detail, count=count)


@dataclass
class PipelineOutcome:
    """Summary of one consumed pipeline."""

    title: str
    failed: bool
    units: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None
