"""YAML configuration loader

Loads defaults.yaml once and gives dotted-key access to it. A user file can
be merged on top with load_config().

Usage:
    from fastsim_mc.config import get_default
    cap = get_default('hadronic.max_rejection_attempts')
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

SCATTERING_MODELS = ("general_mixture", "highland")
SECTIONS = ("hadronic", "scattering", "logging", "run")


def _get_yaml_path() -> Path:
    """Get the path to defaults.yaml.

    The file is searched for in the following order:
    1. Environment variable FASTSIM_DEFAULTS_PATH
    2. defaults.yaml next to this module

    Raises:
        FileNotFoundError: If defaults.yaml cannot be found.
    """
    env_path = os.getenv("FASTSIM_DEFAULTS_PATH")
    if env_path and Path(env_path).exists():
        return Path(env_path)

    yaml_path = Path(__file__).parent / "defaults.yaml"
    if not yaml_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {yaml_path}\n"
            f"Set FASTSIM_DEFAULTS_PATH environment variable if file is relocated."
        )
    return yaml_path


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top level of {path} must be a mapping")
    return data


_CONFIG_CACHE: dict[str, Any] | None = None


def _get_config() -> dict[str, Any]:
    """Get the cached configuration, loading if necessary."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        config = _read_yaml(_get_yaml_path())
        validate_config(config)
        _CONFIG_CACHE = config
    return _CONFIG_CACHE


def get_defaults() -> dict[str, Any]:
    """Get a copy of the full default configuration."""
    return copy.deepcopy(_get_config())


def get_default(key_path: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key path.

    Example:
        >>> get_default('scattering.model')
        'general_mixture'
        >>> get_default('nonexistent.key', 'fallback')
        'fallback'
    """
    value: Any = _get_config()
    for key in key_path.split("."):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return default if value is None else value


def reload_defaults() -> None:
    """Drop the cache so the next access rereads defaults.yaml."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load the defaults, with a user YAML file merged on top if given.

    Raises:
        FileNotFoundError: If the user file does not exist.
        ValueError: If the merged configuration is invalid.
    """
    config = get_defaults()
    if path is None:
        return config
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    config = _merge(config, _read_yaml(path))
    validate_config(config)
    return config


def validate_config(config: dict[str, Any]) -> None:
    """Check value ranges of the known keys.

    Raises:
        ValueError: On the first invalid value found.
    """
    for section in SECTIONS:
        if section in config and not isinstance(config[section], dict):
            raise ValueError(
                f"Section '{section}' must be a mapping, got {config[section]!r}"
            )

    hadronic = config.get("hadronic", {})
    attempts = hadronic.get("max_rejection_attempts", 1)
    if not _is_int(attempts) or attempts < 1:
        raise ValueError(
            f"hadronic.max_rejection_attempts must be a positive integer, got {attempts!r}"
        )
    if _number(hadronic, "hadronic", "probability_scale", 1.0) < 0:
        raise ValueError("hadronic.probability_scale must be non-negative")

    scattering = config.get("scattering", {})
    model = scattering.get("model", SCATTERING_MODELS[0])
    if model not in SCATTERING_MODELS:
        raise ValueError(
            f"Unknown scattering.model '{model}'. Available: {list(SCATTERING_MODELS)}"
        )
    if _number(scattering, "scattering", "mixture_scale", 1.0) <= 0:
        raise ValueError("scattering.mixture_scale must be positive")

    log = config.get("logging", {})
    for key in ("level", "format"):
        if key in log and not isinstance(log[key], str):
            raise ValueError(f"logging.{key} must be a string, got {log[key]!r}")

    run = config.get("run", {})
    samples = run.get("samples", 1)
    if not _is_int(samples) or samples < 1:
        raise ValueError(f"run.samples must be a positive integer, got {samples!r}")
    if "seed" in run and not _is_int(run["seed"]):
        raise ValueError(f"run.seed must be an integer, got {run['seed']!r}")
    if "material" in run and not isinstance(run["material"], str):
        raise ValueError(f"run.material must be a string, got {run['material']!r}")
    if _number(run, "run", "thickness_cm", 0.0) < 0:
        raise ValueError("run.thickness_cm must be non-negative")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _number(section: dict[str, Any], name: str, key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name}.{key} must be a number, got {value!r}")
    return float(value)
