"""Test runner adapter (pytest)."""

from __future__ import annotations

import tempfile
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from pathlib import Path

from rich.console import Console

from taskgate import ui
from taskgate.errors import ToolError
from taskgate.pipeline.adapter import run_command
from taskgate.pipeline.types import UnitResult
from taskgate.state import Category

REPORTER_FLAGS: dict[str, list[str]] = {
    "dot": ["-q"],
    "min": ["-q", "--no-header", "-p", "no:cacheprovider"],
    "verbose": ["-v"],
}

# pytest exit codes: 0 all passed, 1 some failed, 5 nothing collected
_OK_EXIT_CODES = {0, 1, 5}
_NO_TESTS_COLLECTED = 5


def reporter_flags(reporter: str) -> list[str]:
    try:
        return list(REPORTER_FLAGS[reporter])
    except KeyError:
        raise ValueError(f"Unknown reporter: {reporter!r}. Valid reporters: {', '.join(sorted(REPORTER_FLAGS))}") from None


def parse_junit(report_path: Path) -> list[UnitResult]:
    """Turn a JUnit XML report into one result per test case.

    Raises:
        ToolError: If the report is missing or malformed
    """
    try:
        tree = ET.parse(report_path)
    except (OSError, ET.ParseError) as exc:
        raise ToolError(f"Cannot read test report {report_path}: {exc}", category=Category.TEST) from exc

    results: list[UnitResult] = []
    for case in tree.getroot().iter("testcase"):
        name = f"{case.get('classname', '')}::{case.get('name', '')}".strip(":")
        problem = case.find("failure")
        if problem is None:
            problem = case.find("error")
        if problem is None:
            results.append(UnitResult.passed(Category.TEST, detail=name))
        else:
            message = problem.get("message") or ""
            if not message and problem.text:
                lines = problem.text.strip().splitlines()
                message = lines[-1] if lines else ""
            results.append(UnitResult.failed(Category.TEST, detail={"test": name, "message": message}))
    return results


class TestRunner:
    """Runs pytest in a subprocess and reports each test case."""

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        *,
        python: str = "python",
        reporter: str = "dot",
        cwd: Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.python = python
        self.flags = reporter_flags(reporter)
        self.cwd = cwd
        self.console = console or ui.console

    def pytest_args(self, files: list[Path], junit_path: Path) -> list[str]:
        return ["-m", "pytest", *self.flags, f"--junitxml={junit_path}", *[str(f) for f in files]]

    def __call__(self, files: list[Path]) -> Iterator[UnitResult]:
        if not files:
            return
        with tempfile.TemporaryDirectory(prefix="taskgate-") as tmp:
            junit_path = Path(tmp) / "junit.xml"
            proc = run_command([self.python, *self.pytest_args(files, junit_path)], cwd=self.cwd)
            results = check_pytest_result(proc.returncode, proc.stdout, proc.stderr, junit_path)
        if proc.stdout:
            self.console.out(proc.stdout.rstrip())
        yield from report_failures(self.console, results)


def check_pytest_result(returncode: int, stdout: str, stderr: str, junit_path: Path) -> list[UnitResult]:
    """Validate a pytest exit status and collect its per-test results."""
    if returncode not in _OK_EXIT_CODES:
        tail = (stderr or stdout).strip().splitlines()[-5:]
        raise ToolError(
            f"pytest exited with {returncode}: " + " ".join(tail),
            category=Category.TEST,
        )
    if returncode == _NO_TESTS_COLLECTED and not junit_path.exists():
        return []
    return parse_junit(junit_path)


def report_failures(console: Console, results: list[UnitResult]) -> Iterator[UnitResult]:
    for result in results:
        if not result.succeeded:
            console.print(f"[red]FAILED[/red] {result.detail['test']}: {result.detail['message']}")
        yield result
