# -------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License in the project root for
# license information.
# --------------------------------------------------------------------------
import logging
import os

from azure.monitor.opentelemetry import configure_azure_monitor
from opentelemetry.sdk.resources import Resource

from utils.azure_auth import get_credential

logger = logging.getLogger(__name__)
_azure_monitor_configured = False

SERVICE_NAME = "cosmos-database-setup"


def is_azure_monitor_configured() -> bool:
    """Return True when Azure Monitor finished configuring successfully."""
    return _azure_monitor_configured


def _build_resource() -> Resource:
    resource_attrs = {
        "service.name": SERVICE_NAME,
        "service.namespace": "cosmos-setup",
    }
    env_name = os.getenv("ENVIRONMENT")
    if env_name:
        resource_attrs["service.environment"] = env_name
    return Resource.create(resource_attrs)


def setup_azure_monitor(logger_name: str = None) -> bool:
    """
    Export traces and logs of the database setup to Application Insights.

    A no-op when DISABLE_CLOUD_TELEMETRY is true or no
    APPLICATIONINSIGHTS_CONNECTION_STRING is set. Azure SDK instrumentation
    is enabled so Cosmos requests show up under the ensure span.

    Args:
        logger_name (str, optional): Logger whose records are exported. Defaults
            to AZURE_MONITOR_LOGGER_NAME or 'cosmos_setup'.

    Returns:
        True when Azure Monitor was configured.
    """
    global _azure_monitor_configured

    if _azure_monitor_configured:
        return True

    if os.getenv("DISABLE_CLOUD_TELEMETRY", "true").lower() == "true":
        logger.info("Telemetry disabled (DISABLE_CLOUD_TELEMETRY=true), skipping Azure Monitor setup")
        return False

    connection_string = os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING")
    if not connection_string:
        logger.info(
            "APPLICATIONINSIGHTS_CONNECTION_STRING not found, skipping Azure Monitor configuration"
        )
        return False

    logger_name = logger_name or os.getenv("AZURE_MONITOR_LOGGER_NAME", "cosmos_setup")
    logger.info(f"Setting up Azure Monitor with logger_name: {logger_name}")

    try:
        configure_azure_monitor(
            resource=_build_resource(),
            logger_name=logger_name,
            credential=get_credential(),
            connection_string=connection_string,
            enable_live_metrics=False,
            instrumentation_options={"azure_sdk": {"enabled": True}},
        )
    except Exception as e:
        logger.error(f"Failed to configure Azure Monitor: {e}", exc_info=e)
        return False

    logger.info("Azure Monitor configured successfully")
    _azure_monitor_configured = True
    return True
