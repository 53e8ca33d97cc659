"""taskgate configuration: defaults, YAML overrides and validation.

Overrides are deep-merged onto the defaults. Mappings merge key by key;
lists and scalars always replace the default outright, so a user pattern
set never gets appended to the built-in one.
"""

from __future__ import annotations

import copy
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from taskgate.errors import ConfigError

CONFIG_FILENAME = "taskgate.yaml"
CONFIG_ENV_VAR = "TASKGATE_CONFIG"

_RULES_DIR = Path(__file__).parent / "rules"

DEFAULTS: dict[str, Any] = {
    "coverage": {
        "thresholds": {
            "statements": 80,
            "branches": 70,
            "lines": 80,
            "functions": 80,
        },
        "directory": "./target/coverage",
        "root_directory": "",
    },
    "paths": {
        "lint": [
            "src/**/*.py",
            "tests/**/*.py",
            "!.venv/**",
            "!target/**",
        ],
        "felint": [
            "content/**/*.py",
        ],
        "cover": [
            "src/**/*.py",
        ],
        "test": [
            "tests/**/test_*.py",
        ],
        "styles": {
            "less": [
                "content/styles/less/*.less",
            ],
        },
    },
    "rules": {
        "server": str(_RULES_DIR / "server.jsonc"),
        "client": str(_RULES_DIR / "client.jsonc"),
    },
    "show_stream_size": False,
    "complexity": {
        "dest_dir": "./target/complexity",
        "options": {},
        "open_report": True,
    },
    "style_opts": {
        "paths": [],
    },
    "tools": {
        "ruff": "ruff",
        "lessc": "lessc",
        "radon": "radon",
        "python": "python",
    },
    "jobs": 1,
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; lists replace, never append."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass(frozen=True)
class Thresholds:
    statements: float = 80
    branches: float = 70
    lines: float = 80
    functions: float = 80

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CoverageSettings:
    thresholds: Thresholds = field(default_factory=Thresholds)
    directory: str = "./target/coverage"
    root_directory: str = ""


@dataclass(frozen=True)
class PathSettings:
    lint: list[str] = field(default_factory=list)
    felint: list[str] = field(default_factory=list)
    cover: list[str] = field(default_factory=list)
    test: list[str] = field(default_factory=list)
    less: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RuleSettings:
    server: str
    client: str


@dataclass(frozen=True)
class ComplexitySettings:
    dest_dir: str = "./target/complexity"
    options: dict[str, Any] = field(default_factory=dict)
    open_report: bool = True


@dataclass(frozen=True)
class ToolSettings:
    ruff: str = "ruff"
    lessc: str = "lessc"
    radon: str = "radon"
    python: str = "python"


@dataclass(frozen=True)
class Settings:
    """Validated, merged configuration."""

    coverage: CoverageSettings
    paths: PathSettings
    rules: RuleSettings
    complexity: ComplexitySettings
    tools: ToolSettings
    style_paths: list[str] = field(default_factory=list)
    show_stream_size: bool = False
    jobs: int = 1
    root: Path = field(default_factory=Path.cwd)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, root: Path | None = None) -> Settings:
        """Validate a merged config dict and build Settings.

        Raises:
            ConfigError: On unknown keys, wrong types or out-of-range values
        """
        _check_keys(data, DEFAULTS, "")

        cov = data["coverage"]
        thresholds = {}
        for metric, value in cov["thresholds"].items():
            key = f"coverage.thresholds.{metric}"
            _require_number(value, key)
            if not 0 <= value <= 100:
                raise ConfigError(f"{key} must be between 0 and 100, got {value}")
            thresholds[metric] = value

        paths = data["paths"]
        for name in ("lint", "felint", "cover", "test"):
            _require_str_list(paths[name], f"paths.{name}")
        _require_str_list(paths["styles"]["less"], "paths.styles.less")
        _require_str_list(data["style_opts"]["paths"], "style_opts.paths")

        for name in ("server", "client"):
            _require_str(data["rules"][name], f"rules.{name}")
        for name in ("ruff", "lessc", "radon", "python"):
            _require_str(data["tools"][name], f"tools.{name}")
        _require_str(cov["directory"], "coverage.directory")
        _require_str(cov["root_directory"], "coverage.root_directory")
        _require_str(data["complexity"]["dest_dir"], "complexity.dest_dir")
        if not isinstance(data["complexity"]["options"], dict):
            raise ConfigError("complexity.options must be a mapping")
        _require_bool(data["complexity"]["open_report"], "complexity.open_report")
        _require_bool(data["show_stream_size"], "show_stream_size")

        jobs = data["jobs"]
        if isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1:
            raise ConfigError(f"jobs must be a positive integer, got {jobs!r}")

        return cls(
            coverage=CoverageSettings(
                thresholds=Thresholds(**thresholds),
                directory=cov["directory"],
                root_directory=cov["root_directory"],
            ),
            paths=PathSettings(
                lint=list(paths["lint"]),
                felint=list(paths["felint"]),
                cover=list(paths["cover"]),
                test=list(paths["test"]),
                less=list(paths["styles"]["less"]),
            ),
            rules=RuleSettings(server=data["rules"]["server"], client=data["rules"]["client"]),
            complexity=ComplexitySettings(
                dest_dir=data["complexity"]["dest_dir"],
                options=dict(data["complexity"]["options"]),
                open_report=data["complexity"]["open_report"],
            ),
            tools=ToolSettings(**data["tools"]),
            style_paths=list(data["style_opts"]["paths"]),
            show_stream_size=data["show_stream_size"],
            jobs=jobs,
            root=(root or Path.cwd()).resolve(),
            raw=data,
        )

    def resolve(self, value: str) -> Path:
        """Resolve a configured path against the project root."""
        path = Path(value)
        return path if path.is_absolute() else (self.root / path)


def _check_keys(data: Any, schema: dict[str, Any], prefix: str) -> None:
    if not isinstance(data, dict):
        raise ConfigError(f"{prefix or 'config'} must be a mapping")
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if key not in schema:
            raise ConfigError(f"Unknown config key: {path}")
        expected = schema[key]
        # complexity.options is free-form; passed through to the reporter
        if isinstance(expected, dict) and expected and path != "complexity.options":
            _check_keys(value, expected, path)


def _require_number(value: Any, key: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")


def _require_str(value: Any, key: str) -> None:
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")


def _require_bool(value: Any, key: str) -> None:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")


def _require_str_list(value: Any, key: str) -> None:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key} must be a list of strings")


def find_config_file(root: Path, explicit: Path | None = None) -> Path | None:
    """Locate the config file: explicit path, then $TASKGATE_CONFIG, then ./taskgate.yaml."""
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if not path.exists():
            raise ConfigError(f"Config file from ${CONFIG_ENV_VAR} not found: {path}")
        return path

    candidate = root / CONFIG_FILENAME
    return candidate if candidate.exists() else None


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load defaults, merge the YAML config file and any in-code overrides.

    Args:
        root: Project root; defaults to the current directory
        config_path: Explicit config file (takes precedence over discovery)
        overrides: Extra overrides applied after the file

    Returns:
        Validated Settings

    Raises:
        ConfigError: If the file is malformed or the merged config is invalid
    """
    project_root = (root or Path.cwd()).resolve()
    data = copy.deepcopy(DEFAULTS)

    path = find_config_file(project_root, config_path)
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML config at {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {path}: {e}") from e
        if user_config is not None:
            if not isinstance(user_config, dict):
                raise ConfigError(f"Config at {path} must be a mapping")
            data = deep_merge(data, user_config)

    if overrides:
        data = deep_merge(data, overrides)

    return Settings.from_dict(data, root=project_root)


def dump_settings(settings: Settings) -> str:
    return yaml.safe_dump(settings.raw, sort_keys=True)
