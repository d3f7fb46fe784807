"""
Configuration loader for solver tuning files.

Reads a YAML mapping whose keys are VoicingConfig field names and returns a
VoicingConfig with those fields overridden. Register windows are written as
two-item lists, e.g. ``tenor_range: [48, 67]``.
"""

import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any

import yaml

from chordlab.voicing_strategy import VoicingConfig

logger = logging.getLogger(__name__)

RANGE_FIELDS = frozenset({"bass_range", "tenor_range", "alto_range", "soprano_range"})


class ConfigLoadError(Exception):
    """Raised when a configuration file cannot be read, parsed or applied."""


def _load_yaml(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its top-level mapping.

    Raises:
        ConfigLoadError: If the file is missing, unparsable or not a mapping.
    """
    if not path.exists():
        raise ConfigLoadError(f"Configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}") from e
    except OSError as e:
        raise ConfigLoadError(f"Failed to read configuration file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Configuration file {path} must contain a mapping at top level.")
    return data


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name in RANGE_FIELDS:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ConfigLoadError(f"'{name}' must be a two-item list [low, high], got {value!r}.")
        try:
            return (int(value[0]), int(value[1]))
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"'{name}' bounds must be integers, got {value!r}.") from e
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigLoadError(f"'{name}' must be a number, got {value!r}.")
    return int(value) if isinstance(default, int) else float(value)


def config_from_mapping(data: dict[str, Any], base: VoicingConfig | None = None) -> VoicingConfig:
    """
    Apply a mapping of overrides onto a VoicingConfig.

    Args:
        data: Field name -> value.
        base: Config to start from; defaults to VoicingConfig().

    Raises:
        ConfigLoadError: On unknown keys, wrong value types or values the
                         config rejects.
    """
    base = base if base is not None else VoicingConfig()
    known = {f.name for f in fields(VoicingConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigLoadError(f"Unknown configuration keys: {', '.join(unknown)}")

    overrides = {name: _coerce(name, value, getattr(base, name)) for name, value in data.items()}
    try:
        return replace(base, **overrides)
    except ValueError as e:
        raise ConfigLoadError(str(e)) from e


def load_voicing_config(path: str | Path) -> VoicingConfig:
    """
    Load solver settings from a YAML file.

    Args:
        path: YAML file of VoicingConfig overrides.

    Returns:
        VoicingConfig with the file's values applied over the defaults.

    Raises:
        ConfigLoadError: If the file cannot be loaded or holds invalid settings.
    """
    path = Path(path)
    config = config_from_mapping(_load_yaml(path))
    logger.debug("Loaded voicing config from %s", path)
    return config
