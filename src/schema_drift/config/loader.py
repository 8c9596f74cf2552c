"""TOML configuration loader for schema-drift."""

import os
import tomllib
from pathlib import Path

from schema_drift.config.models import (
    ComparisonProfile,
    DriftConfig,
    HistorySettings,
    InstanceProfile,
    LoggingSettings,
)

CONFIG_ENV_VAR = "SCHEMA_DRIFT_CONFIG"


def default_config_path() -> Path:
    """``$SCHEMA_DRIFT_CONFIG`` if set, else ``drift.toml`` in the working directory."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / "drift.toml"


def load_config(config_path: Path | None = None) -> DriftConfig:
    """Load drift configuration from TOML file.

    Args:
        config_path: Path to drift.toml (default: ``default_config_path()``)

    Returns:
        DriftConfig with all instances and comparison profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Drift config not found: {config_path}\n"
            f"Create drift.toml with [instances.<name>] and [profiles.<name>] tables."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    instances = {
        name: InstanceProfile(**instance_data)
        for name, instance_data in data.get("instances", {}).items()
    }
    profiles = {
        name: ComparisonProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    return DriftConfig(
        instances=instances,
        profiles=profiles,
        history=HistorySettings(**data.get("history", {})),
        logging=LoggingSettings(**data.get("logging", {})),
    )
