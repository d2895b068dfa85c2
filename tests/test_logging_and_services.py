import json
import logging

from utils import telemetry_config
from utils.ml_logging import (
    KEYINFO_LEVEL_NUM,
    JsonFormatter,
    PrettyFormatter,
    TraceLogFilter,
    get_logger,
)

from cosmos_setup.cosmosdb.database_setup import CosmosDatabaseSetupManager
from cosmos_setup.services import cosmosdb_services


def _record(msg="Ensured database %s", args=("appdb",), **extra):
    record = logging.LogRecord(
        name="cosmos_setup.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_attaches_trace_filter_once():
    logger = get_logger("cosmos_setup.tests.filters")
    get_logger("cosmos_setup.tests.filters")

    assert sum(isinstance(f, TraceLogFilter) for f in logger.filters) == 1
    assert logger.level == logging.INFO


def test_keyinfo_level_is_registered(caplog):
    logger = get_logger("cosmos_setup.tests.keyinfo")
    caplog.set_level(logging.INFO, logger="cosmos_setup.tests.keyinfo")

    logger.keyinfo("Ensured Cosmos database %s", "appdb")

    assert logging.getLevelName(KEYINFO_LEVEL_NUM) == "KEYINFO"
    assert [r.levelno for r in caplog.records] == [KEYINFO_LEVEL_NUM]


def test_trace_filter_fills_defaults_without_overwriting_extras():
    record = _record(operation_name="ensure database appdb")

    assert TraceLogFilter().filter(record) is True
    assert record.trace_id == "-"
    assert record.db_name == "-"
    assert record.operation_name == "ensure database appdb"


def test_json_formatter_emits_structured_fields():
    record = _record(retry_attempt=2)
    TraceLogFilter().filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Ensured database appdb"
    assert payload["level"] == "INFO"
    assert payload["retry_attempt"] == 2
    assert payload["db_name"] == "-"


def test_pretty_formatter_includes_level_and_message():
    line = PrettyFormatter().format(_record())

    assert "INFO" in line
    assert "Ensured database appdb" in line


def test_setup_azure_monitor_respects_opt_out(monkeypatch):
    monkeypatch.setattr(telemetry_config, "_azure_monitor_configured", False)
    monkeypatch.setenv("DISABLE_CLOUD_TELEMETRY", "true")

    assert telemetry_config.setup_azure_monitor() is False
    assert telemetry_config.is_azure_monitor_configured() is False


def test_setup_azure_monitor_requires_connection_string(monkeypatch):
    monkeypatch.setenv("DISABLE_CLOUD_TELEMETRY", "false")
    monkeypatch.delenv("APPLICATIONINSIGHTS_CONNECTION_STRING", raising=False)

    assert telemetry_config.setup_azure_monitor() is False


def test_setup_azure_monitor_configures_exporter(monkeypatch):
    calls = []
    monkeypatch.setattr(telemetry_config, "_azure_monitor_configured", False)
    monkeypatch.setenv("DISABLE_CLOUD_TELEMETRY", "false")
    monkeypatch.setenv("APPLICATIONINSIGHTS_CONNECTION_STRING", "InstrumentationKey=abc")
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.setattr(telemetry_config, "get_credential", lambda: object())
    monkeypatch.setattr(
        telemetry_config, "configure_azure_monitor", lambda **kwargs: calls.append(kwargs)
    )

    assert telemetry_config.setup_azure_monitor("cosmos_setup") is True
    assert telemetry_config.is_azure_monitor_configured() is True
    assert calls[0]["logger_name"] == "cosmos_setup"
    assert calls[0]["connection_string"] == "InstrumentationKey=abc"

    assert telemetry_config.setup_azure_monitor("cosmos_setup") is True
    assert len(calls) == 1


def test_setup_azure_monitor_reports_exporter_failure(monkeypatch):
    monkeypatch.setattr(telemetry_config, "_azure_monitor_configured", False)
    monkeypatch.setenv("DISABLE_CLOUD_TELEMETRY", "false")
    monkeypatch.setenv("APPLICATIONINSIGHTS_CONNECTION_STRING", "InstrumentationKey=abc")
    monkeypatch.setattr(telemetry_config, "get_credential", lambda: object())

    def _boom(**kwargs):
        raise ValueError("bad connection string")

    monkeypatch.setattr(telemetry_config, "configure_azure_monitor", _boom)

    assert telemetry_config.setup_azure_monitor() is False
    assert telemetry_config.is_azure_monitor_configured() is False


def test_get_database_setup_manager_is_a_singleton(monkeypatch):
    telemetry_calls = []
    monkeypatch.setattr(cosmosdb_services, "setup_azure_monitor", telemetry_calls.append)
    cosmosdb_services.get_database_setup_manager.cache_clear()
    try:
        first = cosmosdb_services.get_database_setup_manager()
        second = cosmosdb_services.get_database_setup_manager()

        assert isinstance(first, CosmosDatabaseSetupManager)
        assert first is second
        assert telemetry_calls == ["cosmos_setup"]
    finally:
        cosmosdb_services.get_database_setup_manager.cache_clear()
