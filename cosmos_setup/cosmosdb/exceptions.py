"""Error taxonomy for Cosmos database setup."""

import asyncio
from typing import Any, Dict, Optional


class CosmosSetupException(Exception):
    """Base class for all database setup failures."""


class ConfigurationError(CosmosSetupException):
    """A required configuration value is missing or malformed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class TransientStoreError(CosmosSetupException):
    """A store failure that is expected to succeed on retry."""


class SetupError(CosmosSetupException):
    """
    Terminal failure to ensure a database.

    Raised when retries are exhausted, when the store returns no database,
    or when throughput reconciliation fails. Callers must assume neither
    existence nor throughput of the database.
    """

    def __init__(
        self,
        message: str,
        *,
        database_name: Optional[str] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.database_name = database_name
        self.diagnostics = diagnostics or {}


class SetupCancelledError(asyncio.CancelledError):
    """The caller signalled cancellation; never retried, never wrapped."""
