"""Centralized Azure Cosmos DB client lifecycle management."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from azure.cosmos.aio import CosmosClient

from cosmos_setup.config.cosmos_config import (
    ACCOUNT_KEY_KEY,
    ENDPOINT_KEY,
    ConfigSource,
)
from cosmos_setup.cosmosdb.exceptions import ConfigurationError
from utils.azure_auth import create_async_credential
from utils.ml_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CosmosCredentials:
    """Endpoint and account key for a dedicated Cosmos client."""

    endpoint: str
    account_key: str = field(repr=False)

    def __post_init__(self) -> None:
        if not (self.endpoint or "").strip():
            raise ConfigurationError("Cosmos endpoint must be a non-empty string", key=ENDPOINT_KEY)
        if not (self.account_key or "").strip():
            raise ConfigurationError(
                "Cosmos account key must be a non-empty string", key=ACCOUNT_KEY_KEY
            )


def create_cosmos_client(endpoint: str, credential: Any) -> CosmosClient:
    return CosmosClient(endpoint, credential=credential)


class CosmosClientProvider:
    """Own Cosmos client creation and caching, one client per account credential."""

    def __init__(
        self,
        config: Optional[ConfigSource] = None,
        *,
        factory: Optional[Callable[[str, Any], Any]] = None,
        credential: Optional[Any] = None,
    ) -> None:
        self._config = config or ConfigSource()
        self._factory = factory or create_cosmos_client
        self._credential = credential
        self._owned_credential: Optional[Any] = None
        self._clients: Dict[Optional[Tuple[str, str]], Any] = {}
        self._lock = asyncio.Lock()

    async def get_client(self, credentials: Optional[CosmosCredentials] = None) -> Any:
        """Return the cached client for ``credentials``, or the shared default client."""
        cache_key = (credentials.endpoint, credentials.account_key) if credentials else None
        client = self._clients.get(cache_key)
        if client is not None:
            return client

        async with self._lock:
            client = self._clients.get(cache_key)
            if client is None:
                client = self._build_client(credentials)
                self._clients[cache_key] = client
        return client

    def _build_client(self, credentials: Optional[CosmosCredentials]) -> Any:
        if credentials is not None:
            endpoint = credentials.endpoint
            credential: Any = credentials.account_key
            auth = "account_key"
        else:
            endpoint = self._config.get_strict(ENDPOINT_KEY)
            account_key = self._config.get_str(ACCOUNT_KEY_KEY)
            if account_key:
                credential = account_key
                auth = "account_key"
            else:
                credential = self._credential or self._aad_credential()
                auth = "aad"

        logger.info(
            "Building Cosmos client",
            extra={"endpoint": endpoint, "auth": auth, "shared": credentials is None},
        )
        return self._factory(endpoint, credential)

    def _aad_credential(self) -> Any:
        if self._owned_credential is None:
            self._owned_credential = create_async_credential()
        return self._owned_credential

    async def close(self) -> None:
        """Close every cached client and the AAD credential built for them.

        A credential passed to the constructor belongs to the caller and stays open.
        """
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
            owned_credential, self._owned_credential = self._owned_credential, None
        resources = list(clients)
        if owned_credential is not None:
            resources.append(owned_credential)
        for resource in resources:
            close = getattr(resource, "close", None)
            if close is None:
                continue
            result = close()
            if asyncio.iscoroutine(result):
                await result
        if clients:
            logger.info("Closed %d Cosmos client(s)", len(clients))

    @property
    def cached_client_count(self) -> int:
        return len(self._clients)
