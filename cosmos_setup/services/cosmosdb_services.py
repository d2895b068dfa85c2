"""
services/cosmosdb_services.py
-----------------------------
Process-wide wiring for Cosmos database setup. Keeping it here isolates
the rest of the app from constructing the manager and its collaborators.
"""

from functools import lru_cache

from cosmos_setup.config.cosmos_config import ConfigSource
from cosmos_setup.cosmosdb.client_provider import CosmosClientProvider, CosmosCredentials
from cosmos_setup.cosmosdb.database_setup import CosmosDatabaseSetupManager
from cosmos_setup.cosmosdb.exceptions import (
    ConfigurationError,
    CosmosSetupException,
    SetupCancelledError,
    SetupError,
    TransientStoreError,
)
from cosmos_setup.cosmosdb.retry import RetryPolicy
from cosmos_setup.cosmosdb.throughput import ThroughputMode, ThroughputSpec
from utils.telemetry_config import setup_azure_monitor


@lru_cache(maxsize=1)
def get_database_setup_manager() -> CosmosDatabaseSetupManager:
    """Return the shared manager; one client provider per process."""
    config = ConfigSource()
    setup_azure_monitor("cosmos_setup")
    return CosmosDatabaseSetupManager(
        config=config,
        client_provider=CosmosClientProvider(config),
    )


__all__ = [
    "ConfigurationError",
    "CosmosClientProvider",
    "CosmosCredentials",
    "CosmosDatabaseSetupManager",
    "CosmosSetupException",
    "RetryPolicy",
    "SetupCancelledError",
    "SetupError",
    "ThroughputMode",
    "ThroughputSpec",
    "TransientStoreError",
    "get_database_setup_manager",
]
