"""Coverage instrumentation and threshold enforcement (coverage.py)."""

from __future__ import annotations

import json
import logging
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from rich.console import Console

from taskgate import ui
from taskgate.config import CoverageSettings, Thresholds
from taskgate.errors import ToolError
from taskgate.pipeline.adapter import expand_patterns, run_command
from taskgate.pipeline.types import UnitResult
from taskgate.state import Category
from taskgate.tools.testing import TestRunner, check_pytest_result, report_failures, reporter_flags

logger = logging.getLogger(__name__)

METRICS = ("statements", "branches", "lines", "functions")


def _percent(covered: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return 100.0 * covered / total


def coverage_metrics(report: dict[str, Any]) -> dict[str, float]:
    """Compute the four enforced percentages from a coverage.py JSON report.

    Metrics with nothing to measure count as fully covered. Function coverage
    needs the per-function regions written by coverage.py 7.5+; a function is
    covered when at least one of its statements ran.
    """
    totals = report.get("totals", {})
    statements = _percent(totals.get("covered_lines", 0), totals.get("num_statements", 0))
    branches = _percent(totals.get("covered_branches", 0), totals.get("num_branches", 0))

    functions_total = 0
    functions_covered = 0
    for file_report in report.get("files", {}).values():
        for name, function in (file_report.get("functions") or {}).items():
            # the "" region is module-level code
            if not name:
                continue
            if not function.get("executed_lines") and not function.get("missing_lines"):
                continue
            functions_total += 1
            if function.get("executed_lines"):
                functions_covered += 1

    return {
        "statements": statements,
        # coverage.py measures executable lines as statements
        "lines": statements,
        "branches": branches,
        "functions": _percent(functions_covered, functions_total),
    }


class ThresholdEnforcer:
    """Checks measured coverage against the configured thresholds."""

    def __init__(self, thresholds: Thresholds, console: Console | None = None) -> None:
        self.thresholds = thresholds
        self.console = console or ui.console

    def evaluate(self, metrics: dict[str, float]) -> list[UnitResult]:
        results: list[UnitResult] = []
        limits = self.thresholds.as_dict()
        for metric in METRICS:
            actual = metrics.get(metric, 100.0)
            required = limits[metric]
            detail = {"metric": metric, "actual": round(actual, 2), "threshold": required}
            if actual >= required:
                results.append(UnitResult.passed(Category.COVERAGE, detail=detail))
            else:
                self.console.print(
                    f"[red]Coverage for {metric} ({actual:.2f}%) does not meet threshold ({required}%)[/red]"
                )
                results.append(UnitResult.failed(Category.COVERAGE, detail=detail))
        return results


class CoverageRunner:
    """Runs the test files under coverage, writes reports and enforces thresholds.

    Yields ``test`` results for every test case and then one ``coverage``
    result per enforced metric. Yields nothing when no test file matches;
    runs the tests unmeasured when no source matches the cover patterns.
    """

    def __init__(
        self,
        settings: CoverageSettings,
        *,
        test_patterns: list[str],
        root: Path,
        python: str = "python",
        reporter: str = "dot",
        console: Console | None = None,
    ) -> None:
        self.settings = settings
        self.test_patterns = test_patterns
        self.root = root
        self.python = python
        self.reporter = reporter
        self.flags = reporter_flags(reporter)
        self.console = console or ui.console
        self.enforcer = ThresholdEnforcer(settings.thresholds, console=self.console)

    @property
    def report_dir(self) -> Path:
        path = Path(self.settings.directory)
        return path if path.is_absolute() else self.root / path

    @property
    def cwd(self) -> Path:
        if self.settings.root_directory:
            return self.root / self.settings.root_directory
        return self.root

    def _coverage(self, *args: str) -> list[str]:
        return [self.python, "-m", "coverage", *args, f"--data-file={self.report_dir / '.coverage'}"]

    def __call__(self, files: list[Path]) -> Iterator[UnitResult]:
        tests = expand_patterns(self.test_patterns, self.root)
        if not tests:
            logger.debug("no test files match %s", self.test_patterns)
            return
        if not files:
            self.console.print("[yellow]No sources match the cover patterns; coverage not measured[/yellow]")
            yield from TestRunner(python=self.python, reporter=self.reporter, cwd=self.cwd, console=self.console)(tests)
            return

        self.report_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="taskgate-") as tmp:
            junit_path = Path(tmp) / "junit.xml"
            cmd = self._coverage("run", "--branch", "--include=" + ",".join(str(f) for f in files))
            cmd += ["-m", "pytest", *self.flags, f"--junitxml={junit_path}", *[str(t) for t in tests]]
            proc = run_command(cmd, cwd=self.cwd)
            results = check_pytest_result(proc.returncode, proc.stdout, proc.stderr, junit_path)

        if proc.stdout:
            self.console.out(proc.stdout.rstrip())
        yield from report_failures(self.console, results)

        json_path = self.report_dir / "coverage.json"
        self._report("json", "-o", str(json_path))
        self._report("html", "-d", str(self.report_dir / "html"))
        try:
            report = json.loads(json_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ToolError(f"Cannot read coverage report {json_path}: {exc}", category=Category.COVERAGE) from exc

        metrics = coverage_metrics(report)
        logger.debug("coverage metrics: %s", metrics)
        yield from self.enforcer.evaluate(metrics)

    def _report(self, kind: str, *args: str) -> None:
        proc = run_command([*self._coverage(kind), *args], cwd=self.cwd)
        if proc.returncode != 0:
            raise ToolError(
                f"coverage {kind} failed: {(proc.stderr or proc.stdout).strip()}",
                category=Category.COVERAGE,
            )
