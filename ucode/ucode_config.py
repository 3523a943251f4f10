"""
Runtime settings: engine locator, module search path and logging.

Settings come from built-in defaults, then an optional YAML file, then
UCODE_* environment variables, each layer overriding the previous one.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ucode.ucode_errors import ConfigError

DEFAULT_SEARCH_PATH = "/usr/lib/ucode/*.so:/usr/share/ucode/*.uc:./*.so:./*.uc"

_ENV_KEYS = {
    "UCODE_ENGINE": "engine",
    "UCODE_SEARCH_PATH": "search_path",
    "UCODE_LOG_LEVEL": "log_level",
    "UCODE_LOG_FORMAT": "log_format",
    "UCODE_LOG_DIR": "log_dir",
}


@dataclass(frozen=True)
class RuntimeSettings:
    engine: Optional[str] = None
    search_path: str = DEFAULT_SEARCH_PATH
    log_level: str = "warning"
    log_format: str = "json"
    log_dir: Optional[str] = None


def default_config_path(environ: Mapping[str, str]) -> Path:
    explicit = environ.get("UCODE_CONFIG")
    if explicit:
        return Path(explicit)
    base = environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / "ucode" / "config.yaml"


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML settings file; a missing file yields no settings."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}", detail=e.strerror) from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}", detail=str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}", detail="top level must be a mapping")

    known = {f.name for f in fields(RuntimeSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Invalid config file {path}", detail=f"unknown keys: {', '.join(map(str, unknown))}")
    for key, value in data.items():
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"Invalid config file {path}", detail=f"{key} must be a string")
    return data


def load_settings(environ: Optional[Mapping[str, str]] = None, path: Optional[Path] = None) -> RuntimeSettings:
    env = os.environ if environ is None else environ
    settings = RuntimeSettings()

    from_file = {k: v for k, v in read_config_file(path or default_config_path(env)).items() if v is not None}
    if from_file:
        settings = replace(settings, **from_file)

    overrides = {attr: env[name] for name, attr in _ENV_KEYS.items() if env.get(name) is not None}
    if overrides:
        settings = replace(settings, **overrides)
    return settings
