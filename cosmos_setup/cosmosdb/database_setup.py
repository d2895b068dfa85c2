import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from azure.cosmos.exceptions import CosmosResourceExistsError
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from cosmos_setup.config.cosmos_config import (
    DATABASE_NAME_KEY,
    REPLACE_THROUGHPUT_KEY,
    ConfigSource,
)
from cosmos_setup.cosmosdb.client_provider import CosmosClientProvider, CosmosCredentials
from cosmos_setup.cosmosdb.exceptions import ConfigurationError, SetupError
from cosmos_setup.cosmosdb.retry import (
    RetryPolicy,
    execute_with_retry,
    is_transient_error,
    raise_if_cancelled,
    run_cancellable,
)
from cosmos_setup.cosmosdb.throughput import ThroughputSpec
from cosmos_setup.enums.monitoring import SpanAttr
from utils.ml_logging import get_logger

logger = get_logger(__name__)


class CosmosDatabaseSetupManager:
    """
    CosmosDatabaseSetupManager ensures an Azure Cosmos DB database exists with
    the configured throughput.

    Creation is idempotent (create-if-not-exists) and retried on transient
    failures; throughput replacement is opt-in and attempted once.
    """

    def __init__(
        self,
        config: Optional[ConfigSource] = None,
        client_provider: Optional[Any] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        should_retry: Callable[[BaseException], bool] = is_transient_error,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or ConfigSource()
        self.client_provider = client_provider or CosmosClientProvider(self.config)
        self.retry_policy = retry_policy or RetryPolicy()
        self.should_retry = should_retry
        self._sleep = sleep
        self.tracer = trace.get_tracer(__name__)

    async def ensure_database(
        self,
        database_name: Optional[str] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Ensure the database exists, creating it if not.

        :param database_name: Database id; read from configuration when omitted.
        :param cancel_event: Set to abort; surfaces as SetupCancelledError.
        :return: The database proxy.
        """
        if database_name is None:
            database_name = self.config.get_strict(DATABASE_NAME_KEY)
        return await self._ensure(database_name, None, cancel_event)

    async def ensure_database_with_credentials(
        self,
        endpoint: str,
        account_key: str,
        database_name: str,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """Ensure the database exists on a dedicated client for ``endpoint``."""
        credentials = CosmosCredentials(endpoint=endpoint, account_key=account_key)
        return await self._ensure(database_name, credentials, cancel_event)

    def get_database_throughput(self) -> ThroughputSpec:
        spec = ThroughputSpec.from_config(self.config)
        logger.debug(
            "Retrieved the Cosmos DB %s throughput of %d RU/s",
            spec.mode.value,
            spec.units,
        )
        return spec

    async def set_database_throughput(
        self,
        database: Any,
        spec: Optional[ThroughputSpec] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Replace the database throughput once; failures raise SetupError."""
        spec = spec or self.get_database_throughput()
        database_id = getattr(database, "id", None)
        logger.info("Setting database throughput to %s ...", spec)
        try:
            await run_cancellable(
                database.replace_throughput(spec.to_properties()),
                cancel_event,
                "replace database throughput",
            )
        except Exception as e:
            logger.critical(
                "Failed to set throughput %s on Cosmos database %s, aborting!",
                spec,
                database_id,
                exc_info=e,
            )
            raise SetupError(
                f"Failed to set throughput on Cosmos database {database_id}: {e}",
                database_name=database_id,
            ) from e
        logger.debug("Finished setting database throughput")

    async def _ensure(
        self,
        database_name: str,
        credentials: Optional[CosmosCredentials],
        cancel_event: Optional[asyncio.Event],
    ) -> Any:
        if not isinstance(database_name, str) or not database_name.strip():
            raise ConfigurationError(
                "Database name must be a non-empty string", key=DATABASE_NAME_KEY
            )
        database_name = database_name.strip()

        # Configuration is resolved up front so it fails before any network call
        spec = self.get_database_throughput()
        replace_throughput = self.config.get_bool(REPLACE_THROUGHPUT_KEY, False)

        with self.tracer.start_as_current_span(
            "cosmos.ensure_database",
            kind=SpanKind.CLIENT,
            attributes={
                SpanAttr.PEER_SERVICE.value: "azure-cosmos-db",
                SpanAttr.DB_SYSTEM.value: "cosmosdb",
                SpanAttr.DB_NAME.value: database_name,
                SpanAttr.DB_OPERATION.value: "create_database_if_not_exists",
                SpanAttr.COSMOS_THROUGHPUT_MODE.value: spec.mode.value,
                SpanAttr.COSMOS_THROUGHPUT_UNITS.value: spec.units,
                SpanAttr.COSMOS_THROUGHPUT_REPLACED.value: replace_throughput,
            },
        ) as span:
            try:
                logger.debug(
                    "Ensuring Cosmos database %s exists ... if not, creating",
                    database_name,
                )
                raise_if_cancelled(cancel_event, "ensure database")
                client = await run_cancellable(
                    self.client_provider.get_client(credentials),
                    cancel_event,
                    "acquire Cosmos client",
                )

                database, diagnostics = await self._create_database(
                    client, database_name, spec, cancel_event
                )
                if database is None:
                    logger.critical(
                        "Cosmos returned no database for %s, diagnostics: %s",
                        database_name,
                        diagnostics,
                    )
                    raise SetupError(
                        f"Failed to create Cosmos database {database_name} diagnostics: {diagnostics}",
                        database_name=database_name,
                        diagnostics=diagnostics,
                    )

                if replace_throughput:
                    await self.set_database_throughput(
                        database, spec, cancel_event=cancel_event
                    )
            except asyncio.CancelledError:
                span.set_status(Status(StatusCode.ERROR, "cancelled"))
                logger.info("Ensuring Cosmos database %s was cancelled", database_name)
                raise
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute(SpanAttr.ERROR_TYPE.value, type(e).__name__)
                raise

            activity_id = diagnostics.get("x-ms-activity-id")
            if activity_id:
                span.set_attribute(SpanAttr.COSMOS_ACTIVITY_ID.value, activity_id)
            span.set_status(Status(StatusCode.OK))

        logger.keyinfo("Ensured Cosmos database %s (%s)", database_name, spec)
        return database

    async def _create_database(
        self,
        client: Any,
        database_name: str,
        spec: ThroughputSpec,
        cancel_event: Optional[asyncio.Event],
    ):
        diagnostics: Dict[str, Any] = {}

        def _capture_headers(headers, _result) -> None:
            diagnostics.clear()
            diagnostics.update(dict(headers or {}))

        async def _attempt():
            try:
                database = await client.create_database_if_not_exists(
                    id=database_name,
                    offer_throughput=spec.to_properties(),
                    response_hook=_capture_headers,
                )
            except CosmosResourceExistsError:
                # Another caller created it between the read and the create
                logger.info(
                    "Cosmos database %s was created concurrently, using it",
                    database_name,
                )
                return client.get_database_client(database_name)
            logger.debug("Ensured database %s", database_name)
            return database

        try:
            database = await execute_with_retry(
                _attempt,
                policy=self.retry_policy,
                should_retry=self.should_retry,
                cancel_event=cancel_event,
                sleep=self._sleep,
                operation_name=f"ensure database {database_name}",
            )
        except Exception as e:
            logger.critical(
                "Stopped retrying database creation: %s, aborting!",
                database_name,
                exc_info=e,
            )
            raise SetupError(
                f"Failed to ensure Cosmos database {database_name}: {e}",
                database_name=database_name,
                diagnostics=dict(diagnostics),
            ) from e
        return database, dict(diagnostics)
