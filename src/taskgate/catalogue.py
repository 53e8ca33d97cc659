"""The built-in task catalogue."""

from __future__ import annotations

from taskgate.pipeline.adapter import Pipeline, expand_patterns
from taskgate.registry import TaskContext, TaskDescriptor, TaskRegistry
from taskgate.state import Category
from taskgate.tools import ComplexityReporter, CoverageRunner, LintEngine, StyleCompiler, TestRunner

CI_TASKS = ("lessTest", "lint", "felint", "test-cover")
CI_WATCH_TASKS = ("lessTest", "lint-watch", "felint-watch", "test-cover-watch")


def style_pipeline(ctx: TaskContext) -> Pipeline:
    s = ctx.settings
    compiler = StyleCompiler(command=s.tools.lessc, include_paths=s.style_paths, cwd=s.root)
    return Pipeline("lessTest", [Category.STYLE], s.paths.less, compiler, root=s.root)


def lint_pipeline(ctx: TaskContext, title: str = "lint") -> Pipeline:
    s = ctx.settings
    engine = LintEngine(
        Category.SERVER_LINT,
        s.resolve(s.rules.server),
        command=s.tools.ruff,
        cwd=s.root,
        console=ctx.console,
    )
    return Pipeline(title, [Category.SERVER_LINT], s.paths.lint, engine, root=s.root)


def felint_pipeline(ctx: TaskContext, title: str = "felint") -> Pipeline:
    s = ctx.settings
    engine = LintEngine(
        Category.CLIENT_LINT,
        s.resolve(s.rules.client),
        command=s.tools.ruff,
        cwd=s.root,
        console=ctx.console,
    )
    return Pipeline(title, [Category.CLIENT_LINT], s.paths.felint, engine, root=s.root)


def unit_test_pipeline(ctx: TaskContext, title: str = "test", reporter: str = "dot") -> Pipeline:
    s = ctx.settings
    runner = TestRunner(python=s.tools.python, reporter=reporter, cwd=s.root, console=ctx.console)
    return Pipeline(title, [Category.TEST], s.paths.test, runner, root=s.root)


def cover_pipeline(ctx: TaskContext, title: str = "test-cover") -> Pipeline:
    s = ctx.settings
    runner = CoverageRunner(
        s.coverage,
        test_patterns=s.paths.test,
        root=s.root,
        python=s.tools.python,
        console=ctx.console,
    )
    return Pipeline(title, [Category.TEST, Category.COVERAGE], s.paths.cover, runner, root=s.root)


def complexity_report(ctx: TaskContext) -> None:
    s = ctx.settings
    reporter = ComplexityReporter(
        s.resolve(s.rules.server),
        s.resolve(s.complexity.dest_dir),
        command=s.tools.radon,
        options=s.complexity.options,
        open_report=s.complexity.open_report,
        cwd=s.root,
        console=ctx.console,
    )
    reporter.generate(expand_patterns(s.paths.cover, s.root))


def watch_all(ctx: TaskContext) -> None:
    paths = ctx.settings.paths
    ctx.watch([*paths.lint, *paths.less], "ci-watch")


def watch_tests(ctx: TaskContext) -> None:
    ctx.watch(ctx.settings.paths.lint, "test-watch")


def build_registry() -> TaskRegistry:
    """Register every built-in task on a new registry."""
    registry = TaskRegistry()
    tasks = [
        TaskDescriptor("lessTest", "Check for LESS compilation errors", action=style_pipeline),
        TaskDescriptor("lint", "Lint server side code", action=lint_pipeline),
        TaskDescriptor(
            "lint-watch",
            hidden=True,
            action=lambda ctx: lint_pipeline(ctx, "lint"),
            terminates=False,
        ),
        TaskDescriptor("felint", "Lint client side code", action=felint_pipeline),
        TaskDescriptor(
            "felint-watch",
            hidden=True,
            action=lambda ctx: felint_pipeline(ctx, "felint"),
            terminates=False,
        ),
        TaskDescriptor("test", "Unit tests only", action=unit_test_pipeline),
        TaskDescriptor(
            "test-watch",
            hidden=True,
            action=lambda ctx: unit_test_pipeline(ctx, "test-watch", reporter="min"),
            terminates=False,
        ),
        TaskDescriptor("test-cover", "Unit tests and coverage", action=cover_pipeline),
        TaskDescriptor(
            "test-cover-watch",
            hidden=True,
            action=lambda ctx: cover_pipeline(ctx, "test-cover"),
            terminates=False,
        ),
        TaskDescriptor("plato", "Generate complexity analysis reports", action=complexity_report),
        TaskDescriptor("ci", "Lint, tests and test coverage", dependencies=CI_TASKS),
        TaskDescriptor("ci-watch", hidden=True, dependencies=CI_WATCH_TASKS, terminates=False),
        TaskDescriptor(
            "watch-all",
            "Watch files and run all ci validation on change",
            action=watch_all,
            terminates=False,
        ),
        TaskDescriptor(
            "watch",
            "Watch files and run tests on change",
            action=watch_tests,
            terminates=False,
        ),
    ]
    for task in tasks:
        registry.register(task)
    return registry
