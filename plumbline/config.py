"""TOML-based settings.

Loads ~/.plumbline/defaults.toml (global) and plumbline.toml (project),
merges them, and resolves the retry policy and logging configuration:

    [retry]
    timeout = 600
    interval = 2

    [logging]
    level = "DEBUG"
    file = "plumbline.log"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from plumbline.errors import ConfigurationError
from plumbline.logging import LogConfig
from plumbline.retry import RetryPolicy

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".plumbline" / "defaults.toml"
PROJECT_CONFIG_NAME = "plumbline.toml"


@dataclass(frozen=True, slots=True)
class Settings:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    logging: LogConfig = field(default_factory=LogConfig)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("retry", {})
    merged.setdefault("logging", {})
    return merged


def _build[T](cls: type[T], section: str, raw: Any) -> T:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table, got {type(raw).__name__}")
    valid = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(set(raw) - valid)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in [{section}]: {', '.join(unknown)}. Valid: {', '.join(sorted(valid))}"
        )
    try:
        return cls(**raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid [{section}] settings: {e}") from e


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Settings:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return Settings(
        retry=_build(RetryPolicy, "retry", config["retry"]),
        logging=_build(LogConfig, "logging", config["logging"]),
    )
