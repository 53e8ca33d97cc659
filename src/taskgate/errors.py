"""Exception hierarchy for taskgate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from taskgate.state import Category


class TaskgateError(Exception):
    """Base class for all taskgate errors."""


class ConfigError(TaskgateError):
    """Configuration file is malformed or fails validation."""


class RegistryError(TaskgateError):
    """Task registration or lookup failed."""


class UnknownTaskError(RegistryError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown task: {name!r}")
        self.name = name


class DuplicateTaskError(RegistryError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Task already registered: {name!r}")
        self.name = name


class CyclicDependencyError(RegistryError):
    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__("Cyclic task dependency: " + " -> ".join(cycle))
        self.cycle = tuple(cycle)


class ToolError(TaskgateError):
    """An external tool could not proceed (crash, bad config, parse error)."""

    def __init__(self, message: str, *, category: Category | None = None) -> None:
        super().__init__(message)
        self.category = category


class PipelineError(TaskgateError):
    """Pipeline-level failure: aborts the remaining pipeline immediately.

    Distinct from a failed unit result, which only adds to a category count.
    """

    def __init__(self, category: Category, message: str) -> None:
        super().__init__(message)
        self.category = category
        self.message = message
