"""Tests for the built-in task catalogue."""

from __future__ import annotations

import pytest
from taskgate_test_utils import make_console

from taskgate.catalogue import CI_TASKS, CI_WATCH_TASKS, build_registry
from taskgate.registry import TaskContext
from taskgate.state import Category
from taskgate.tools import CoverageRunner, LintEngine, StyleCompiler, TestRunner

PUBLIC_TASKS = ["ci", "felint", "lessTest", "lint", "plato", "test", "test-cover", "watch", "watch-all"]
HIDDEN_TASKS = ["ci-watch", "felint-watch", "lint-watch", "test-cover-watch", "test-watch"]


@pytest.fixture
def ctx(settings) -> TaskContext:
    return TaskContext(settings=settings, console=make_console())


def test_public_and_hidden_tasks() -> None:
    registry = build_registry()
    assert [t.name for t in registry.list_tasks()] == PUBLIC_TASKS
    all_names = [t.name for t in registry.list_tasks(include_hidden=True)]
    assert sorted(all_names) == sorted(PUBLIC_TASKS + HIDDEN_TASKS)


def test_ci_dependencies() -> None:
    registry = build_registry()
    assert registry.get("ci").dependencies == CI_TASKS
    assert registry.get("ci-watch").dependencies == CI_WATCH_TASKS
    assert registry.execution_order("ci") == [*CI_TASKS, "ci"]


@pytest.mark.parametrize("name", HIDDEN_TASKS + ["watch", "watch-all"])
def test_watch_tasks_never_terminate(name) -> None:
    assert build_registry().get(name).terminates is False


@pytest.mark.parametrize("name", ["lessTest", "lint", "felint", "test", "test-cover", "plato", "ci"])
def test_gated_tasks_terminate(name) -> None:
    assert build_registry().get(name).terminates is True


@pytest.mark.parametrize(
    ("name", "title", "categories", "tool_type"),
    [
        ("lessTest", "lessTest", [Category.STYLE], StyleCompiler),
        ("lint", "lint", [Category.SERVER_LINT], LintEngine),
        ("lint-watch", "lint", [Category.SERVER_LINT], LintEngine),
        ("felint", "felint", [Category.CLIENT_LINT], LintEngine),
        ("felint-watch", "felint", [Category.CLIENT_LINT], LintEngine),
        ("test", "test", [Category.TEST], TestRunner),
        ("test-watch", "test-watch", [Category.TEST], TestRunner),
        ("test-cover", "test-cover", [Category.TEST, Category.COVERAGE], CoverageRunner),
        ("test-cover-watch", "test-cover", [Category.TEST, Category.COVERAGE], CoverageRunner),
    ],
)
def test_pipelines_built_from_settings(ctx, name, title, categories, tool_type) -> None:
    pipeline = build_registry().get(name).action(ctx)

    assert pipeline.title == title
    assert pipeline.categories == tuple(categories)
    assert isinstance(pipeline.tool, tool_type)


def test_pipeline_patterns_come_from_settings(ctx) -> None:
    registry = build_registry()
    paths = ctx.settings.paths
    assert registry.get("lint").action(ctx).patterns == tuple(paths.lint)
    assert registry.get("felint").action(ctx).patterns == tuple(paths.felint)
    assert registry.get("test").action(ctx).patterns == tuple(paths.test)
    assert registry.get("test-cover").action(ctx).patterns == tuple(paths.cover)
    assert registry.get("lessTest").action(ctx).patterns == tuple(paths.less)


def test_lint_engines_use_their_rule_sets(ctx) -> None:
    registry = build_registry()
    server = registry.get("lint").action(ctx).tool
    client = registry.get("felint").action(ctx).tool
    assert server.rules_path.name == "server.jsonc"
    assert client.rules_path.name == "client.jsonc"


def test_watch_variant_uses_minimal_reporter(ctx) -> None:
    runner = build_registry().get("test-watch").action(ctx).tool
    assert "--no-header" in runner.flags


def test_watch_all_watches_lint_and_style_patterns(ctx) -> None:
    calls = []
    ctx.watcher = lambda patterns, target: calls.append((list(patterns), target))

    build_registry().get("watch-all").action(ctx)
    build_registry().get("watch").action(ctx)

    paths = ctx.settings.paths
    assert calls == [([*paths.lint, *paths.less], "ci-watch"), (paths.lint, "test-watch")]


def test_plato_writes_report(ctx, monkeypatch) -> None:
    generated = []
    monkeypatch.setattr(
        "taskgate.catalogue.ComplexityReporter.generate",
        lambda self, files: generated.append((self.dest_dir, self.open_report, files)),
    )

    build_registry().get("plato").action(ctx)

    dest_dir, open_report, files = generated[0]
    assert dest_dir == ctx.settings.root / "target" / "complexity"
    assert open_report is True
    assert files == []
