"""Load and deep-merge the YAML validation config."""

from __future__ import annotations

import logging
import os
from copy import deepcopy
from pathlib import Path

import yaml

from allocation_qa.core.errors import ConfigError
from allocation_qa.core.resources import get_default_config_path

_log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ALLOCATION_QA_CONFIG"


def deep_merge(base: dict, overlay: dict) -> dict:
    """Merge overlay into base. Overlay wins on scalar conflicts.

    Dicts are merged recursively. Lists are replaced (not concatenated).
    """
    result = deepcopy(base)
    for key, val in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = deep_merge(result[key], val)
        else:
            result[key] = deepcopy(val)
    return result


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(
            f"Cannot read config file {path}: {exc}",
            source="config",
            suggested_action="Check the path and file permissions",
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in {path}: {exc}",
            source="config",
            suggested_action="Fix the YAML syntax",
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping at the top level",
            source="config",
        )
    return data


def default_config() -> dict:
    return _read_yaml(get_default_config_path())


def load_config(path: str | Path | None = None, overrides: dict | None = None) -> dict:
    """Return the default config merged with an optional overlay.

    The overlay file is *path* when given, else the file named by the
    ``ALLOCATION_QA_CONFIG`` environment variable. *overrides* is merged last.
    """
    config = default_config()

    overlay_path = path or os.environ.get(CONFIG_ENV_VAR)
    if overlay_path:
        overlay_path = Path(overlay_path)
        if not overlay_path.exists():
            raise ConfigError(
                f"Config file not found: {overlay_path}",
                source="config",
                suggested_action=f"Unset {CONFIG_ENV_VAR} or point it at an existing file",
            )
        config = deep_merge(config, _read_yaml(overlay_path))
        _log.debug("Merged config overlay %s", overlay_path)

    if overrides:
        config = deep_merge(config, overrides)
    return config


def resolve_config(config: dict | None) -> dict:
    """Merge a partial config dict over the defaults (``None`` -> defaults)."""
    if config is None:
        return default_config()
    return deep_merge(default_config(), config)


def check_enabled(config: dict, check_id: str) -> bool:
    return bool(config.get("checks", {}).get(check_id, {}).get("enabled", True))


def warn_unknown_checks(config: dict, known_ids: list[str]) -> list[str]:
    """Log a warning for each ``checks.<id>`` entry that names no check."""
    unknown = sorted(set(config.get("checks", {})) - set(known_ids))
    for check_id in unknown:
        _log.warning("Ignoring config for unknown check %r", check_id)
    return unknown
