"""Service wiring for Cosmos database setup."""

from .cosmosdb_services import get_database_setup_manager

__all__ = [
    "get_database_setup_manager",
]
