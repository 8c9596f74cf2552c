"""Factory helpers that turn drift.toml entries into live collaborators.

Resolves instance URLs, looks up instances and comparison profiles by name,
and builds adapters, history stores, and schema snapshots.

Usage:
    config = load_config()
    snapshot = await collect_snapshot(config, "staging", "public")
    store = await get_history_store(config)
"""

import logging
from urllib.parse import quote

from schema_drift.adapters.postgres import AsyncPostgresAdapter
from schema_drift.config.models import ComparisonProfile, DriftConfig, InstanceProfile
from schema_drift.errors import ComparisonProfileNotFoundError, InstanceNotFoundError
from schema_drift.history.store import (
    JSONB_PARAMS,
    HistoryStore,
    InMemoryHistoryStore,
    PostgresHistoryStore,
)
from schema_drift.schema.introspector import SchemaIntrospector
from schema_drift.schema.models import SchemaSnapshot

logger = logging.getLogger(__name__)


# ============================================================================
# Lookup
# ============================================================================


def resolve_url(instance: InstanceProfile) -> str:
    """Resolve instance URL with password substitution.

    Args:
        instance: Database instance from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> resolve_url(InstanceProfile(
        ...     url="postgresql://app:[YOUR-PASSWORD]@db/main", db_password="p@ss"
        ... ))
        'postgresql://app:p%40ss@db/main'
    """
    url = instance.url
    if instance.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(instance.db_password, safe=""))
    return url


def get_instance(config: DriftConfig, name: str) -> InstanceProfile:
    """Look up an instance by name.

    Raises:
        InstanceNotFoundError: If *name* is not configured.
    """
    if name not in config.instances:
        available = ", ".join(config.instances) or "(none)"
        raise InstanceNotFoundError(
            f"Instance '{name}' not found in drift.toml. Available: {available}"
        )
    return config.instances[name]


def get_profile(config: DriftConfig, name: str) -> ComparisonProfile:
    """Look up a comparison profile by name.

    Raises:
        ComparisonProfileNotFoundError: If *name* is not configured.
    """
    if name not in config.profiles:
        available = ", ".join(config.profiles) or "(none)"
        raise ComparisonProfileNotFoundError(
            f"Profile '{name}' not found in drift.toml. Available: {available}"
        )
    return config.profiles[name]


# ============================================================================
# Collaborators
# ============================================================================


def get_adapter(
    config: DriftConfig, instance_name: str, jsonb_params: list[str] | None = None
) -> AsyncPostgresAdapter:
    """Create an ``AsyncPostgresAdapter`` for a configured instance."""
    instance = get_instance(config, instance_name)
    return AsyncPostgresAdapter(resolve_url(instance), jsonb_params=jsonb_params)


async def get_history_store(config: DriftConfig) -> HistoryStore:
    """Build the history store named by ``[history]``.

    Without ``[history].instance`` an in-memory store is returned, so
    history lives only as long as the process.
    """
    if config.history.instance is None:
        logger.debug("No history instance configured; using in-memory store")
        return InMemoryHistoryStore()

    adapter = get_adapter(config, config.history.instance, jsonb_params=JSONB_PARAMS)
    store = PostgresHistoryStore(adapter)
    try:
        await store.ensure_schema()
    except Exception:
        await adapter.close()
        raise
    return store


async def collect_snapshot(
    config: DriftConfig, instance_name: str, schema_name: str = "public"
) -> SchemaSnapshot:
    """Connect to *instance_name* and capture *schema_name*."""
    url = resolve_url(get_instance(config, instance_name))
    async with SchemaIntrospector(url) as introspector:
        return await introspector.snapshot(instance_name, schema_name)
