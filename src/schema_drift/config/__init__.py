"""Configuration management: instances, comparison profiles, TOML loading.

Usage:
    >>> from schema_drift.config import load_config, DriftConfig, InstanceProfile
"""

from schema_drift.config.loader import load_config
from schema_drift.config.models import (
    ComparisonProfile,
    DriftConfig,
    HistorySettings,
    InstanceProfile,
    LoggingSettings,
)

__all__ = [
    "load_config",
    "ComparisonProfile",
    "DriftConfig",
    "HistorySettings",
    "InstanceProfile",
    "LoggingSettings",
]
