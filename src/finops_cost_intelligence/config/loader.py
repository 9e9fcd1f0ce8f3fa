"""Configuration loader for FinOps Cost Intelligence."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml

from finops_cost_intelligence.config.schema import Config


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    """Find the config directory, searching up from current directory."""
    if config_dir := os.environ.get("CONFIG_DIR"):
        return Path(config_dir)

    current = Path.cwd()
    while current != current.parent:
        config_path = current / "config"
        if config_path.is_dir():
            return config_path
        current = current.parent

    return Path("config")


def _read_yaml(path: Path) -> dict:
    """Read a YAML mapping, treating an empty file as {}."""
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a YAML mapping, got {type(data).__name__}")
    return data


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> Config:
    """
    Load configuration from YAML files.

    Loads config.yaml as base, then merges environment-specific overrides
    (e.g., config.dev.yaml, config.prod.yaml), then environment variables.

    Args:
        config_path: Path to config directory. If None, searches for config/ directory.
        environment: Environment name (dev, staging, prod). If None, uses CONFIG_ENV
                    environment variable or defaults to 'dev'.

    Returns:
        Config: Validated configuration object.
    """
    config_dir = Path(config_path) if config_path else _find_config_dir()
    environment = environment or os.environ.get("CONFIG_ENV", "dev")

    config_data: dict = {}

    base_config_path = config_dir / "config.yaml"
    if base_config_path.exists():
        config_data = _read_yaml(base_config_path)

    env_config_path = config_dir / f"config.{environment}.yaml"
    if env_config_path.exists():
        config_data = _deep_merge(config_data, _read_yaml(env_config_path))

    config_data = _apply_env_overrides(config_data)
    config_data["environment"] = environment

    return Config(**config_data)


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration."""
    env_mappings = {
        "LOG_LEVEL": ("log_level",),
        "ANOMALY_SENSITIVITY": ("anomaly_detection", "sensitivity"),
        "ANOMALY_THRESHOLD": ("anomaly_detection", "threshold"),
        "WASTE_MIN_COST_THRESHOLD": ("waste_analysis", "min_cost_threshold"),
        "WASTE_ANALYSIS_WINDOW_DAYS": ("waste_analysis", "analysis_window_days"),
    }

    for env_var, path in env_mappings.items():
        if value := os.environ.get(env_var):
            current = config_data
            for key in path[:-1]:
                current = current.setdefault(key, {})

            final_key = path[-1]
            if final_key in ("sensitivity", "threshold", "min_cost_threshold"):
                current[final_key] = float(value)
            elif final_key in ("analysis_window_days",):
                current[final_key] = int(value)
            elif final_key == "log_level":
                current[final_key] = value.upper()
            else:
                current[final_key] = value

    return config_data


@lru_cache(maxsize=1)
def get_cached_config() -> Config:
    """Get cached configuration singleton."""
    return load_config()
