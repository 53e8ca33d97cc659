"""Style compiler adapter (lessc)."""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from taskgate.errors import ToolError
from taskgate.pipeline.adapter import run_command
from taskgate.pipeline.types import UnitResult
from taskgate.state import Category


class StyleCompiler:
    """Compiles each stylesheet; the first compile error aborts the pipeline."""

    def __init__(
        self,
        *,
        command: str = "lessc",
        include_paths: Sequence[str] = (),
        cwd: Path | None = None,
    ) -> None:
        self.command = command
        self.include_paths = list(include_paths)
        self.cwd = cwd

    def build_command(self, path: Path) -> list[str]:
        cmd = [self.command]
        if self.include_paths:
            cmd.append(f"--include-path={os.pathsep.join(self.include_paths)}")
        cmd += [str(path), os.devnull]
        return cmd

    def __call__(self, files: list[Path]) -> Iterator[UnitResult]:
        for path in files:
            proc = run_command(self.build_command(path), cwd=self.cwd)
            if proc.returncode != 0:
                diagnostic = (proc.stderr or proc.stdout).strip() or f"exit status {proc.returncode}"
                raise ToolError(f"{path}: {diagnostic}", category=Category.STYLE)
            yield UnitResult.passed(Category.STYLE, detail=str(path))
