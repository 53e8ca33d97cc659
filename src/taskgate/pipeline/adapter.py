"""Uniform wrapper around external tool invocations.

A pipeline expands a pattern set into source files, hands them to a tool and
yields the tool's unit results lazily. Tool-level failures surface as
``PipelineError`` and end iteration; failed units never do.
"""

from __future__ import annotations

import functools
import glob
import logging
import re
import subprocess
from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path

from taskgate.errors import PipelineError, ToolError
from taskgate.pipeline.types import UnitResult
from taskgate.state import Category

logger = logging.getLogger(__name__)

Tool = Callable[[list[Path]], Iterable[UnitResult]]


def expand_patterns(patterns: Sequence[str], root: Path) -> list[Path]:
    """Expand a glob pattern set relative to ``root``.

    Patterns starting with ``!`` exclude matches regardless of their position
    in the set. ``**`` matches any number of directories. Only regular files
    are returned, sorted and de-duplicated.

    Args:
        patterns: Include and ``!``-prefixed exclude patterns
        root: Directory relative patterns are resolved against

    Returns:
        Sorted list of matching file paths
    """
    found: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            continue
        for match in glob.glob(pattern, root_dir=root, recursive=True):
            path = Path(match)
            full = path if path.is_absolute() else root / path
            if full.is_file() and matches_patterns(full, patterns, root):
                found.add(full)

    return sorted(found)


def matches_patterns(path: Path, patterns: Sequence[str], root: Path) -> bool:
    """Check a single path against a pattern set without touching the filesystem.

    Uses the same rules as ``glob``: ``*`` and ``?`` stay inside one path
    segment, ``**`` spans directories, and wildcards skip dot-names.
    """
    full = path if path.is_absolute() else root / path
    rel = _relative_posix(full, root)
    included = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if _glob_match(rel, pattern[1:]):
                return False
        elif _glob_match(rel, pattern):
            included = True
    return included


def _glob_match(rel: str, pattern: str) -> bool:
    return _compile_glob(_strip_dot(pattern)).fullmatch(rel) is not None


@functools.lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    segments = pattern.split("/")
    parts: list[str] = []
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "**":
            # zero or more non-hidden directories, or any non-hidden tail
            parts.append(r"[^/.][^/]*(?:/[^/.][^/]*)*" if last else r"(?:[^/.][^/]*/)*")
            continue
        parts.append(_translate_segment(segment))
        if not last:
            parts.append("/")
    return re.compile("".join(parts))


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    if segment[:1] in ("*", "?", "["):
        out.append(r"(?!\.)")
    i = 0
    while i < len(segment):
        char = segment[i]
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[" and "]" in segment[i + 2 :]:
            end = segment.index("]", i + 2)
            body = segment[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append("[" + body.replace("\\", "\\\\") + "]")
            i = end
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def _strip_dot(pattern: str) -> str:
    return pattern[2:] if pattern.startswith("./") else pattern


def _relative_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def run_command(cmd: Sequence[str], *, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run an external tool and capture its output.

    Raises:
        ToolError: If the executable cannot be started
    """
    logger.debug("running %s", " ".join(cmd))
    try:
        return subprocess.run(
            list(cmd),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ToolError(f"Executable not found: {cmd[0]}") from exc


class Pipeline:
    """Lazy sequence of unit results produced by one tool over one pattern set."""

    def __init__(
        self,
        title: str,
        categories: Sequence[Category],
        patterns: Sequence[str],
        tool: Tool,
        *,
        root: Path | None = None,
    ) -> None:
        if not categories:
            raise ValueError("A pipeline reports on at least one category")
        self.title = title
        self.categories = tuple(categories)
        self.patterns = tuple(patterns)
        self.tool = tool
        self.root = root or Path.cwd()
        self._sources: list[Path] | None = None

    @property
    def category(self) -> Category:
        return self.categories[0]

    @property
    def sources(self) -> list[Path]:
        if self._sources is None:
            self._sources = expand_patterns(self.patterns, self.root)
        return self._sources

    def __iter__(self) -> Iterator[UnitResult]:
        try:
            yield from self.tool(self.sources)
        except PipelineError:
            raise
        except ToolError as exc:
            raise PipelineError(exc.category or self.category, str(exc)) from exc
        except OSError as exc:
            raise PipelineError(self.category, f"{self.title}: {exc}") from exc

    def __repr__(self) -> str:
        return f"Pipeline(title={self.title!r}, categories={[c.value for c in self.categories]})"
