"""Loader settings with project-file, environment, and explicit-override precedence.

specgraph has no persistent user configuration of its own; the only knobs
are the transport settings in :class:`~specgraph.models.LoaderSettings`.
They are resolved by :func:`resolve_settings`:

Precedence (high to low):
    1. Explicit keyword overrides passed by the caller
    2. Environment variables (``SPECGRAPH_TIMEOUT``, ``SPECGRAPH_VERIFY_SSL``,
       ``SPECGRAPH_MAX_CONCURRENCY``)
    3. Project config (``./specgraph.json``, key ``"loader"``)
    4. Defaults
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specgraph.exceptions import ConfigError
from specgraph.models import LoaderSettings

_PROJECT_CONFIG_FILENAME = "specgraph.json"

_ENV_VARS: dict[str, str] = {
    "SPECGRAPH_TIMEOUT": "timeout",
    "SPECGRAPH_VERIFY_SSL": "verify_ssl",
    "SPECGRAPH_MAX_CONCURRENCY": "max_concurrency",
}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specgraph.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    """Collect settings from ``SPECGRAPH_*`` environment variables."""
    values: dict[str, Any] = {}
    for var, field_name in _ENV_VARS.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        if field_name == "verify_ssl":
            lowered = raw.strip().lower()
            if lowered in _TRUE_VALUES:
                values[field_name] = True
            elif lowered in _FALSE_VALUES:
                values[field_name] = False
            else:
                raise ConfigError(f"Environment variable {var} must be a boolean, got '{raw}'")
        else:
            values[field_name] = raw
    return values


def resolve_settings(**overrides: Any) -> LoaderSettings:
    """Resolve :class:`~specgraph.models.LoaderSettings` through the precedence chain.

    Args:
        **overrides: Explicit field values.  ``None`` values are ignored so
            callers can forward optional arguments unchanged.

    Returns:
        The effective settings.

    Raises:
        ConfigError: If any layer supplies a value that fails validation.
    """
    merged: dict[str, Any] = {}

    project = load_project_config()
    if project is not None:
        loader_section = project.get("loader", {})
        if not isinstance(loader_section, dict):
            raise ConfigError("Project config key 'loader' must be an object")
        merged.update(loader_section)

    merged.update(_env_overrides())
    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return LoaderSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid loader settings: {exc}") from exc
