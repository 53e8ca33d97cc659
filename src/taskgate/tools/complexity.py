"""Complexity report generation (radon)."""

from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from taskgate import ui
from taskgate.errors import ToolError
from taskgate.pipeline.adapter import run_command
from taskgate.tools.rulefile import load_rule_file

DEFAULT_MAX_COMPLEXITY = 10


def option_flags(options: dict[str, Any]) -> list[str]:
    """Translate reporter options into radon flags (``show_closures: true`` -> ``--show-closures``)."""
    flags: list[str] = []
    for key in sorted(options):
        value = options[key]
        flag = "--" + key.replace("_", "-")
        if value is True:
            flags.append(flag)
        elif value is False or value is None:
            continue
        else:
            flags += [flag, str(value)]
    return flags


class ComplexityReporter:
    """Writes an HTML complexity report for the matched files and opens it."""

    def __init__(
        self,
        rules_path: Path,
        dest_dir: Path,
        *,
        command: str = "radon",
        options: dict[str, Any] | None = None,
        open_report: bool = True,
        cwd: Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.rules_path = rules_path
        self.dest_dir = dest_dir
        self.command = command
        self.options = options or {}
        self.open_report = open_report
        self.cwd = cwd
        self.console = console or ui.console

    def analyze(self, files: list[Path]) -> dict[str, list[dict[str, Any]]]:
        if not files:
            return {}
        cmd = [self.command, "cc", "--json", *option_flags(self.options), *[str(f) for f in files]]
        proc = run_command(cmd, cwd=self.cwd)
        if proc.returncode != 0:
            raise ToolError(f"{self.command} exited with {proc.returncode}: {proc.stderr.strip()}")
        try:
            raw = json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ToolError(f"{self.command} produced invalid JSON output: {e}") from e

        blocks: dict[str, list[dict[str, Any]]] = {}
        for filename, entries in raw.items():
            if isinstance(entries, dict) and "error" in entries:
                self.console.print(f"[yellow]Warning: {filename}: {entries['error']}[/yellow]")
                continue
            blocks[filename] = [
                {
                    "name": entry.get("name", ""),
                    "type": entry.get("type", ""),
                    "lineno": entry.get("lineno", 0),
                    "complexity": entry.get("complexity", 0),
                    "rank": entry.get("rank", ""),
                }
                for entry in entries
            ]
        return blocks

    def generate(self, files: list[Path]) -> Path:
        """Analyze ``files``, write ``index.html`` and ``report.json``, and open the report.

        Raises:
            ToolError: If the rule file or radon output cannot be processed
        """
        rules = load_rule_file(self.rules_path)
        limit = int(rules.get("max-complexity", DEFAULT_MAX_COMPLEXITY))
        blocks = self.analyze(files)

        self.dest_dir.mkdir(parents=True, exist_ok=True)
        (self.dest_dir / "report.json").write_text(
            json.dumps({"max_complexity": limit, "files": blocks}, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        index = self.dest_dir / "index.html"
        index.write_text(render_html(blocks, limit), encoding="utf-8")
        self.console.print(f"[green]Complexity report written to {index}[/green]")

        if self.open_report:
            typer.launch(str(index))
        return index


def render_html(blocks: dict[str, list[dict[str, Any]]], limit: int) -> str:
    rows: list[str] = []
    flat = [(filename, block) for filename, entries in blocks.items() for block in entries]
    flat.sort(key=lambda item: (-item[1]["complexity"], item[0], item[1]["lineno"]))
    for filename, block in flat:
        css = ' class="over"' if block["complexity"] > limit else ""
        rows.append(
            f"<tr{css}><td>{html.escape(filename)}</td><td>{html.escape(block['name'])}</td>"
            f"<td>{block['lineno']}</td><td>{block['complexity']}</td><td>{html.escape(block['rank'])}</td></tr>"
        )
    over = sum(1 for _, block in flat if block["complexity"] > limit)
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html><head><meta charset="utf-8"><title>Complexity report</title>',
            "<style>body{font-family:sans-serif}td,th{padding:2px 8px}.over{background:#fdd}</style>",
            "</head><body>",
            "<h1>Complexity report</h1>",
            f"<p>{len(blocks)} files, {len(flat)} blocks, {over} above max-complexity {limit}</p>",
            "<table><tr><th>File</th><th>Block</th><th>Line</th><th>Complexity</th><th>Rank</th></tr>",
            *rows,
            "</table></body></html>",
            "",
        ]
    )
