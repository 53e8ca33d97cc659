"""Rule configuration files: JSON with ``//`` and ``/* */`` comments."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from taskgate.errors import ToolError

# Strings are matched first so comment markers inside them survive.
_COMMENT_RE = re.compile(r'("(?:\\.|[^"\\])*")|/\*.*?\*/|//[^\n\r]*', re.DOTALL)


def strip_comments(text: str) -> str:
    return _COMMENT_RE.sub(lambda m: m.group(1) or "", text)


def load_rule_file(path: Path) -> dict[str, Any]:
    """Read a rule configuration file, stripping comments before parsing.

    Raises:
        ToolError: If the file cannot be read or is not a JSON object
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ToolError(f"Cannot read rule configuration {path}: {exc}") from exc
    try:
        data = json.loads(strip_comments(text))
    except json.JSONDecodeError as exc:
        raise ToolError(f"Invalid rule configuration {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ToolError(f"Rule configuration {path} must be a JSON object")
    return data


def ruff_arguments(rules: dict[str, Any]) -> list[str]:
    """Translate a rule configuration into ruff command-line flags."""
    args: list[str] = []
    if rules.get("select"):
        args += ["--select", ",".join(rules["select"])]
    if rules.get("ignore"):
        args += ["--ignore", ",".join(rules["ignore"])]
    if "line-length" in rules:
        args += ["--line-length", str(rules["line-length"])]
    if "max-complexity" in rules:
        args += ["--config", f"lint.mccabe.max-complexity = {int(rules['max-complexity'])}"]
    return args
