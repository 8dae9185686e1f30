"""Configuration: YAML defaults and user overrides."""

from fastsim_mc.config.loader import (
    get_default,
    get_defaults,
    load_config,
    reload_defaults,
    validate_config,
)

__all__ = [
    "get_default",
    "get_defaults",
    "load_config",
    "reload_defaults",
    "validate_config",
]
