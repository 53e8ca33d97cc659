"""Tests for the termination controller and the top-level runner."""

from __future__ import annotations

from taskgate_test_utils import console_text, leaf, lint_failures, make_console

from taskgate.catalogue import CI_TASKS
from taskgate.registry import TaskDescriptor, TaskOutcome, TaskRegistry
from taskgate.runner import TaskRunner
from taskgate.state import Category, new_run_state
from taskgate.termination import FAILURE_EXIT_CODE, TerminationController


def _failed(name: str) -> TaskOutcome:
    state = new_run_state()
    state.mark_failed()
    return TaskOutcome(name=name, state=state)


def test_fail_terminates_exactly_once() -> None:
    console = make_console()
    controller = TerminationController(console=console)

    assert controller.fail(_failed("lint")) is True
    assert controller.fail(_failed("felint")) is False

    assert controller.exit_code == FAILURE_EXIT_CODE
    assert controller.terminated is True
    assert "taskgate 'lint' failed" in console_text(console)


def test_watch_mode_only_logs() -> None:
    console = make_console()
    controller = TerminationController(watch_mode=True, console=console)

    assert controller.fail(_failed("ci-watch")) is False
    assert controller.exit_code == 0
    assert controller.terminated is False
    assert "taskgate 'ci-watch' failed" in console_text(console)


def test_non_terminating_task_only_logs() -> None:
    controller = TerminationController(console=make_console())
    assert controller.fail(_failed("lint-watch"), terminate=False) is False
    assert controller.exit_code == 0


def test_reset_clears_decision() -> None:
    controller = TerminationController(console=make_console())
    controller.fail(_failed("lint"))
    controller.reset()
    assert controller.exit_code == 0
    assert controller.terminated is False


def _registry(lint_counts: tuple[int, ...]) -> TaskRegistry:
    registry = TaskRegistry()
    registry.register(leaf("lint", Category.SERVER_LINT, lint_failures(*lint_counts)))
    registry.register(leaf("lint-watch", Category.SERVER_LINT, lint_failures(*lint_counts), terminates=False))
    registry.register(leaf("felint", Category.CLIENT_LINT, lint_failures(0)))
    return registry


def test_runner_exits_non_zero_on_failed_lint(settings) -> None:
    """3 files, one with 4 violations: exit status is non-zero in normal mode."""
    console = make_console()
    runner = TaskRunner(_registry((0, 4, 0)), settings, console=console)

    assert runner.run(["lint"]) == 1
    assert runner.outcomes[0].state.error_counts[Category.SERVER_LINT] == 4
    assert "taskgate 'lint' failed" in console_text(console)


def test_runner_exits_zero_when_passing(settings) -> None:
    runner = TaskRunner(_registry((0, 0)), settings, console=make_console())
    assert runner.run(["lint", "felint"]) == 0
    assert [o.name for o in runner.outcomes] == ["lint", "felint"]


def test_runner_stops_after_terminating_failure(settings) -> None:
    runner = TaskRunner(_registry((1,)), settings, console=make_console())
    assert runner.run(["lint", "felint"]) == 1
    assert [o.name for o in runner.outcomes] == ["lint"]


def test_watch_variant_never_sets_exit_code(settings) -> None:
    runner = TaskRunner(_registry((2,)), settings, console=make_console())
    assert runner.run(["lint-watch", "felint"]) == 0
    assert runner.outcomes[0].failed is True


def test_runner_in_watch_mode_never_exits_non_zero(settings) -> None:
    runner = TaskRunner(_registry((2,)), settings, console=make_console(), watch_mode=True)
    assert runner.run(["lint"]) == 0


def test_ci_failure_terminates_once(settings) -> None:
    registry = TaskRegistry()
    registry.register(leaf("lessTest", Category.STYLE, []))
    registry.register(leaf("lint", Category.SERVER_LINT, lint_failures(3)))
    registry.register(leaf("felint", Category.CLIENT_LINT, lint_failures(2)))
    registry.register(leaf("test-cover", Category.COVERAGE, []))
    registry.register(TaskDescriptor("ci", dependencies=CI_TASKS))
    console = make_console()

    exit_code = TaskRunner(registry, settings, console=console).run(["ci"])

    assert exit_code == 1
    assert console_text(console).count("taskgate 'ci' failed") == 1
