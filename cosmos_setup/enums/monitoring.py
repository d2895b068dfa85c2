from enum import Enum


# Span attribute keys for Azure App Insights OpenTelemetry logging
class SpanAttr(str, Enum):
    ERROR_TYPE = "error.type"

    # Database semantic conventions
    DB_SYSTEM = "db.system"
    DB_NAME = "db.name"
    DB_OPERATION = "db.operation"
    PEER_SERVICE = "peer.service"

    # Cosmos DB provisioning attributes
    COSMOS_THROUGHPUT_MODE = "cosmos.throughput.mode"
    COSMOS_THROUGHPUT_UNITS = "cosmos.throughput.units"
    COSMOS_THROUGHPUT_REPLACED = "cosmos.throughput.replaced"
    COSMOS_ACTIVITY_ID = "cosmos.activity_id"
