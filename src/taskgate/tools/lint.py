"""Lint engine adapter (ruff)."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from rich.console import Console

from taskgate import ui
from taskgate.errors import ToolError
from taskgate.pipeline.adapter import run_command
from taskgate.pipeline.types import UnitResult
from taskgate.state import Category
from taskgate.tools.rulefile import load_rule_file, ruff_arguments


class LintEngine:
    """Runs ruff over the matched files and yields one result per file.

    ``count`` on a failed result is the number of violations in that file.
    """

    def __init__(
        self,
        category: Category,
        rules_path: Path,
        *,
        command: str = "ruff",
        cwd: Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.category = category
        self.rules_path = rules_path
        self.command = command
        self.cwd = cwd
        self.console = console or ui.console

    def __call__(self, files: list[Path]) -> Iterator[UnitResult]:
        if not files:
            return

        rules = load_rule_file(self.rules_path)
        cmd = [
            self.command,
            "check",
            "--output-format",
            "json",
            "--no-cache",
            "--exit-zero",
            *ruff_arguments(rules),
            *[str(f) for f in files],
        ]
        proc = run_command(cmd, cwd=self.cwd)
        if proc.returncode != 0:
            raise ToolError(
                f"{self.command} exited with {proc.returncode}: {proc.stderr.strip()}",
                category=self.category,
            )

        by_file = self._group(proc.stdout)
        total = 0
        for path in files:
            violations = by_file.get(str(path.resolve()), [])
            if violations:
                total += len(violations)
                self._print_file(path, violations)
                yield UnitResult.failed(self.category, detail=violations, count=len(violations))
            else:
                yield UnitResult.passed(self.category, detail=str(path))

        if total:
            cross = "✖ " if ui.symbols_enabled() else ""
            self.console.print(f"[bold red]{cross}{total} problem{'s' if total != 1 else ''}[/bold red]\n")

    def _group(self, stdout: str) -> dict[str, list[dict[str, Any]]]:
        if not stdout.strip():
            return {}
        try:
            results = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ToolError(f"{self.command} produced invalid JSON output: {e}", category=self.category) from e

        grouped: dict[str, list[dict[str, Any]]] = {}
        for item in results:
            location = item.get("location", {}) or {}
            filename = str(Path(item.get("filename", "")).resolve())
            grouped.setdefault(filename, []).append(
                {
                    "line": location.get("row", 0),
                    "column": location.get("column", 0),
                    "code": (item.get("code") or "").strip() or "ruff-unknown",
                    "message": item.get("message", ""),
                }
            )
        return grouped

    def _print_file(self, path: Path, violations: list[dict[str, Any]]) -> None:
        self.console.print(f"\n[underline]{path}[/underline]")
        for v in violations:
            self.console.print(
                f"  [dim]line {v['line']}[/dim]  [dim]col {v['column']}[/dim]  "
                f"[blue]{v['message']}[/blue]  [dim]{v['code']}[/dim]"
            )
