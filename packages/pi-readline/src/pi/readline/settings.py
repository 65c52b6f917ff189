"""Readline settings with JSON persistence and environment overrides.

Precedence (lowest to highest): defaults, ``~/.pi/readline.json`` (or
``$PI_CONFIG_DIR/readline.json``), environment variables, explicit overrides.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pi.readline.source import DEFAULT_ESCAPE_TIMEOUT

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "readline.json"

ENV_CONFIG_DIR = "PI_CONFIG_DIR"
ENV_PROMPT = "PI_READLINE_PROMPT"
ENV_HISTORY = "PI_READLINE_HISTORY"

OUTPUT_STREAMS = ("stderr", "stdout")

# JSON key -> dataclass field
_FIELD_NAMES: dict[str, str] = {
    "prompt": "prompt",
    "historyFile": "history_file",
    "escapeTimeout": "escape_timeout",
    "output": "output",
}


@dataclass
class ReadlineSettings:
    """Options for building a :class:`~pi.readline.Readline`."""

    prompt: str = "> "
    history_file: str | None = None
    escape_timeout: float = DEFAULT_ESCAPE_TIMEOUT
    output: str = "stderr"

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in _FIELD_NAMES.items()}


def get_config_dir() -> Path:
    return Path(os.environ.get(ENV_CONFIG_DIR, Path.home() / ".pi"))


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILE_NAME


def _load_from_file(path: Path) -> dict[str, Any]:
    """Read settings JSON, returning ``{}`` when it is missing or malformed."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring settings file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected a JSON object", path)
        return {}
    return data


def _env_settings() -> dict[str, Any]:
    result: dict[str, Any] = {}
    if ENV_PROMPT in os.environ:
        result["prompt"] = os.environ[ENV_PROMPT]
    if os.environ.get(ENV_HISTORY):
        result["historyFile"] = os.environ[ENV_HISTORY]
    return result


def settings_from_dict(data: dict[str, Any]) -> ReadlineSettings:
    """Build settings from camelCase JSON keys, ignoring unknown or bad values."""
    settings = ReadlineSettings()
    for key, value in data.items():
        attr = _FIELD_NAMES.get(key)
        if attr is None or value is None:
            continue
        if attr == "escape_timeout":
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Invalid escapeTimeout %r, using default", value)
                continue
            if value < 0:
                logger.warning("Negative escapeTimeout %r, using default", value)
                continue
        elif attr == "output" and value not in OUTPUT_STREAMS:
            logger.warning("Unknown output stream %r, using stderr", value)
            continue
        elif attr == "history_file":
            value = os.path.expanduser(str(value))
        elif not isinstance(value, str):
            value = str(value)
        setattr(settings, attr, value)
    return settings


def load_settings(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ReadlineSettings:
    """Load merged settings from file, environment and *overrides*."""
    merged: dict[str, Any] = {}
    merged.update(_load_from_file(Path(path) if path is not None else get_settings_path()))
    merged.update(_env_settings())
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})
    return settings_from_dict(merged)
