"""Task registry and combo-task dependency resolution.

Every invocation gets its own RunState. Dependencies of a combo task run in
waves (a task starts once all of its own dependencies have completed); each
dependency owns a separate state, and the states are folded into the
invoked task's state only after every dependency has finished.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console

from taskgate import ui
from taskgate.errors import CyclicDependencyError, DuplicateTaskError, ToolError, UnknownTaskError
from taskgate.pipeline.adapter import Pipeline
from taskgate.pipeline.aggregator import OutcomeAggregator
from taskgate.pipeline.size import size_reporter
from taskgate.state import RunState, new_run_state

if TYPE_CHECKING:
    from taskgate.config import Settings
    from taskgate.pipeline.types import PipelineOutcome

logger = logging.getLogger(__name__)


@dataclass
class TaskContext:
    """What a task action gets to work with."""

    settings: Settings
    console: Console = field(default_factory=lambda: ui.console)
    watch_mode: bool = False
    watcher: Callable[[Sequence[str], str], None] | None = None

    def watch(self, patterns: Sequence[str], target: str) -> None:
        if self.watcher is None:
            raise RuntimeError("File watching is not available in this context")
        self.watcher(patterns, target)


Action = Callable[[TaskContext], Pipeline | None]


@dataclass(frozen=True)
class TaskDescriptor:
    """A named task. Tasks without an action are combo tasks."""

    name: str
    description: str = ""
    hidden: bool = False
    dependencies: tuple[str, ...] = ()
    action: Action | None = field(default=None, compare=False)
    # False for watch variants: their failures are only ever logged
    terminates: bool = True

    @property
    def is_combo(self) -> bool:
        return self.action is None


@dataclass
class TaskOutcome:
    """Completion value returned by ``TaskRegistry.invoke``."""

    name: str
    state: RunState
    tasks: list[str] = field(default_factory=list)
    pipelines: list[PipelineOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state.run_failed


class TaskRegistry:
    """Named catalogue of tasks."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskDescriptor] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def register(self, descriptor: TaskDescriptor) -> TaskDescriptor:
        """Add a task.

        Raises:
            DuplicateTaskError: If the name is taken
            CyclicDependencyError: If the task closes a dependency cycle
        """
        if descriptor.name in self._tasks:
            raise DuplicateTaskError(descriptor.name)
        cycle = self._find_cycle(descriptor)
        if cycle:
            raise CyclicDependencyError(cycle)
        self._tasks[descriptor.name] = descriptor
        logger.debug("registered task %s", descriptor.name)
        return descriptor

    def task(
        self,
        name: str,
        description: str = "",
        *,
        hidden: bool = False,
        dependencies: Sequence[str] = (),
        terminates: bool = True,
    ) -> Callable[[Action], Action]:
        """Decorator form of ``register`` for tasks with an action."""

        def decorator(fn: Action) -> Action:
            self.register(
                TaskDescriptor(
                    name=name,
                    description=description,
                    hidden=hidden,
                    dependencies=tuple(dependencies),
                    action=fn,
                    terminates=terminates,
                )
            )
            return fn

        return decorator

    def _find_cycle(self, descriptor: TaskDescriptor) -> list[str] | None:
        # Only the new task can close a cycle, so search paths leading back to it.
        def visit(name: str, path: list[str], seen: set[str]) -> list[str] | None:
            deps = descriptor.dependencies if name == descriptor.name else self._deps_of(name)
            for dep in deps:
                if dep == descriptor.name:
                    return [*path, dep]
                if dep in seen:
                    continue
                seen.add(dep)
                found = visit(dep, [*path, dep], seen)
                if found:
                    return found
            return None

        return visit(descriptor.name, [descriptor.name], set())

    def _deps_of(self, name: str) -> tuple[str, ...]:
        task = self._tasks.get(name)
        return task.dependencies if task else ()

    def get(self, name: str) -> TaskDescriptor:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def list_tasks(self, include_hidden: bool = False) -> list[TaskDescriptor]:
        return sorted(
            (t for t in self._tasks.values() if include_hidden or not t.hidden),
            key=lambda t: t.name,
        )

    def execution_order(self, name: str) -> list[str]:
        """Dependencies first in declared order, each task once, ``name`` last."""
        order: list[str] = []
        seen: set[str] = set()

        def visit(current: str) -> None:
            if current in seen:
                return
            seen.add(current)
            for dep in self.get(current).dependencies:
                visit(dep)
            order.append(current)

        visit(name)
        return order

    def waves(self, name: str) -> list[list[str]]:
        """Group the execution order into batches whose dependencies are already done."""
        remaining = self.execution_order(name)
        done: set[str] = set()
        batches: list[list[str]] = []
        while remaining:
            ready = [t for t in remaining if all(d in done for d in self.get(t).dependencies)]
            batches.append(ready)
            done.update(ready)
            remaining = [t for t in remaining if t not in done]
        return batches

    def invoke(self, name: str, context: TaskContext) -> TaskOutcome:
        """Run ``name`` and its dependencies; returns once all have completed.

        Raises:
            UnknownTaskError: If ``name`` or one of its dependencies is missing
        """
        batches = self.waves(name)
        outcome = TaskOutcome(name=name, state=new_run_state())
        jobs = max(1, context.settings.jobs)

        for batch in batches:
            if jobs == 1 or len(batch) == 1:
                results = [self._run_one(task, context) for task in batch]
            else:
                with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="taskgate") as pool:
                    results = list(pool.map(lambda task: self._run_one(task, context), batch))
            for task, (state, pipelines) in zip(batch, results, strict=True):
                outcome.tasks.append(task)
                outcome.pipelines.extend(pipelines)
                outcome.state.merge(state)

        logger.debug("task %s finished: %s", name, outcome.state.snapshot())
        return outcome

    def _run_one(self, name: str, context: TaskContext) -> tuple[RunState, list[PipelineOutcome]]:
        task = self.get(name)
        state = new_run_state()
        if task.action is None:
            return state, []

        aggregator = OutcomeAggregator(
            state,
            console=context.console,
            sizes=size_reporter(context.settings.show_stream_size, context.console),
        )
        try:
            pipeline = task.action(context)
        except ToolError as exc:
            state.mark_failed()
            ui.pipeline_failure(context.console, name, str(exc))
            return state, []

        if pipeline is None:
            return state, []
        return state, [aggregator.consume(pipeline)]
