"""Configuration loading from TOML files.

Lookup order inside the project directory:

1. ``.git-dch.toml`` (the whole file is the configuration)
2. ``pyproject.toml`` (the ``[tool.git-dch]`` table)

Command line values override file values.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from git_dch.config.models import DchConfig
from git_dch.exceptions import ConfigNotFoundError, ConfigValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".git-dch.toml"
PYPROJECT_FILENAME = "pyproject.toml"
TOOL_TABLE = "git-dch"


def load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigValidationError: If the file is not valid TOML
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"configuration file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigValidationError(f"invalid TOML in {path}: {e}") from e


def extract_git_dch_config(data: dict[str, Any]) -> dict[str, Any]:
    """Return the ``[tool.git-dch]`` table of a parsed pyproject.toml."""
    tool = data.get("tool", {})
    table = tool.get(TOOL_TABLE, {}) if isinstance(tool, dict) else {}
    if not isinstance(table, dict):
        raise ConfigValidationError(f"[tool.{TOOL_TABLE}] must be a table")
    return table


def find_config_file(project_path: Path) -> Path | None:
    """Locate the file holding git-dch settings, if any."""
    candidate = project_path / CONFIG_FILENAME
    if candidate.is_file():
        return candidate

    pyproject = project_path / PYPROJECT_FILENAME
    if pyproject.is_file() and extract_git_dch_config(load_toml(pyproject)):
        return pyproject

    return None


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {key.replace("-", "_"): value for key, value in data.items()}


def load_config(project_path: Path | None = None, **overrides: Any) -> DchConfig:
    """Build the configuration for a run.

    Args:
        project_path: Directory searched for configuration files,
            defaults to the current directory
        **overrides: Values taking precedence over the files; ``None``
            values are ignored

    Returns:
        The validated configuration

    Raises:
        ConfigValidationError: If a file is malformed or options conflict
    """
    project_path = project_path or Path.cwd()

    data: dict[str, Any] = {}
    config_file = find_config_file(project_path)
    if config_file is not None:
        logger.debug("Loading configuration from %s", config_file)
        raw = load_toml(config_file)
        if config_file.name == PYPROJECT_FILENAME:
            raw = extract_git_dch_config(raw)
        data = _normalize_keys(raw)

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return DchConfig(**data)
    except ValidationError as e:
        raise ConfigValidationError(_format_validation_error(e)) from e


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)
