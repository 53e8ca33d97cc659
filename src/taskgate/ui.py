"""Console output helpers shared by the aggregator, controller and CLI."""

from __future__ import annotations

import os
import sys

from rich.console import Console
from rich.text import Text

console = Console(highlight=False)


def symbols_enabled() -> bool:
    """Check marks and crosses are skipped on Windows consoles."""
    return sys.platform != "win32"


def bell_enabled() -> bool:
    return os.getenv("TASKGATE_BELL", "1") == "1"


def alert(out: Console) -> None:
    if bell_enabled():
        out.bell()


def task_passed(out: Console, name: str) -> None:
    check = "✔ " if symbols_enabled() else ""
    text = Text()
    text.append(check, style="bold green")
    text.append(f"taskgate '{name}' passed", style="green")
    out.print(text)


def task_failed(out: Console, name: str) -> None:
    out.print(Text(f"taskgate '{name}' failed", style="red"))


def errors_found(out: Console, count: int, label: str = "errors") -> None:
    text = Text()
    text.append(str(count), style="magenta")
    text.append(f" {label}\n")
    out.print(text)
    alert(out)


def style_errors_found(out: Console) -> None:
    cross = "✖ " if symbols_enabled() else ""
    out.print(Text(f"\n{cross}Style errors found\n", style="bold red"))
    alert(out)


def pipeline_failure(out: Console, title: str, message: str) -> None:
    out.print(Text(f"[{title}] {message}", style="red"))
    alert(out)
