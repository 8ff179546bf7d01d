"""Worker settings loading.

Settings come from three layers, later ones winning:

    defaults < YAML file < STORMWORKER_* environment variables

Example ``stormworker.yaml``::

    strict_sentinel: true
    idle_sync_pause_s: 0.002
    need_task_ids: false
    log_level: INFO
"""
from __future__ import annotations
from dataclasses import dataclass, fields, replace
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import ConfigError

ENV_PREFIX = "STORMWORKER_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class WorkerSettings:
    strict_sentinel: bool = False
    idle_sync_pause_s: float = 0.001
    need_task_ids: bool = True
    log_level: Optional[str] = None


_KINDS = {
    "strict_sentinel": bool,
    "idle_sync_pause_s": float,
    "need_task_ids": bool,
    "log_level": str,
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must contain a mapping")
    return data


def _coerce(key: str, value: Any) -> Any:
    kind = _KINDS[key]
    if kind is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE:
            return False
        raise ConfigError(f"{key} must be a boolean, got {value!r}")
    if kind is float:
        if isinstance(value, bool):
            raise ConfigError(f"{key} must be a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} must be a number, got {value!r}") from e
        if number < 0:
            raise ConfigError(f"{key} must not be negative")
        return number
    if value is None:
        return None
    if key == "log_level":
        level = str(value).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigError(f"log_level must be a logging level name, got {value!r}")
        return level
    return str(value)


def _validate(data: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(data) - set(_KINDS)
    if unknown:
        raise ConfigError(f"unknown settings: {', '.join(sorted(unknown))}")
    return {k: _coerce(k, v) for k, v in data.items()}


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(WorkerSettings):
        # STORMWORKER_LOG_LEVEL is read by the logging module directly
        if f.name == "log_level":
            continue
        key = ENV_PREFIX + f.name.upper()
        if key in env:
            out[f.name] = env[key]
    return out


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> WorkerSettings:
    settings = WorkerSettings()
    if path is not None:
        settings = replace(settings, **_validate(_read_yaml(Path(path))))
    env_values = _from_env(os.environ if env is None else env)
    if env_values:
        settings = replace(settings, **_validate(env_values))
    return settings


__all__ = ["WorkerSettings", "load_settings", "ConfigError"]
