"""Pydantic models for drift.toml configuration."""

from pydantic import BaseModel, Field

from schema_drift.schema.filter import ComparisonFilter, FilterPreset


# ============================================================================
# Configuration Models
# ============================================================================


class InstanceProfile(BaseModel):
    """Database instance from drift.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class ComparisonProfile(BaseModel):
    """Saved comparison between two instances from drift.toml."""

    source: str
    destination: str
    source_schema: str = "public"
    destination_schema: str = "public"
    description: str = ""
    preset: FilterPreset = FilterPreset.NONE
    filter: ComparisonFilter = Field(default_factory=ComparisonFilter)

    def build_filter(self) -> ComparisonFilter:
        """Combine the preset with the explicit filter table.

        Preset patterns are prepended to the explicit exclusion lists.
        """
        if self.preset is FilterPreset.NONE:
            return self.filter
        base = ComparisonFilter.from_preset(self.preset)
        return self.filter.model_copy(
            update={
                "excluded_schemas": base.excluded_schemas + self.filter.excluded_schemas,
                "excluded_name_patterns": (
                    base.excluded_name_patterns + self.filter.excluded_name_patterns
                ),
            }
        )


class HistorySettings(BaseModel):
    """Where comparison history lives and for how long."""

    instance: str | None = None  # None = in-memory store
    retention_days: int = 90


class LoggingSettings(BaseModel):
    level: str = "INFO"


class DriftConfig(BaseModel):
    """Complete configuration from drift.toml."""

    instances: dict[str, InstanceProfile] = Field(default_factory=dict)
    profiles: dict[str, ComparisonProfile] = Field(default_factory=dict)
    history: HistorySettings = Field(default_factory=HistorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
