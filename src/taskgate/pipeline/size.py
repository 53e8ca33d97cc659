"""Opt-in stream size reporting."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.text import Text


def _human_size(num: float) -> str:
    for unit in ("B", "kB", "MB", "GB"):
        if num < 1000 or unit == "GB":
            return f"{num:.0f} {unit}" if unit == "B" else f"{num:.2f} {unit}"
        num /= 1000
    return f"{num:.2f} GB"


class SizeReporter:
    """Prints how many items and bytes a pipeline processed."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def report(self, title: str, sources: Sequence[Path]) -> str:
        total = 0
        for path in sources:
            try:
                total += path.stat().st_size
            except OSError:
                continue
        text = Text()
        text.append(title, style="cyan")
        text.append(f" {len(sources)} items (")
        text.append(_human_size(total), style="magenta")
        text.append(")")
        self.console.print(text)
        return text.plain


class NullSizeReporter:
    """Stands in for SizeReporter when stream sizes are not requested."""

    def report(self, title: str, sources: Sequence[Path]) -> str:
        return ""


def size_reporter(enabled: bool, console: Console) -> SizeReporter | NullSizeReporter:
    return SizeReporter(console) if enabled else NullSizeReporter()
