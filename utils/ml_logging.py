import json
import logging
import os
from typing import Optional

from colorama import Fore, Style
from colorama import init as colorama_init

# Early .env load to check DISABLE_CLOUD_TELEMETRY before importing any OTel
try:
    from dotenv import load_dotenv

    if os.path.isfile(".env"):
        load_dotenv(override=False)
except Exception:
    pass

# Conditionally import OpenTelemetry based on DISABLE_CLOUD_TELEMETRY
_telemetry_disabled = os.getenv("DISABLE_CLOUD_TELEMETRY", "false").lower() == "true"

if not _telemetry_disabled:
    from opentelemetry import trace
    from opentelemetry.sdk._logs import LoggingHandler
    from utils.telemetry_config import is_azure_monitor_configured
else:
    # Mock objects when telemetry is disabled
    trace = None
    LoggingHandler = None
    is_azure_monitor_configured = lambda: False

colorama_init(autoreset=True)

# Define a new logging level named "KEYINFO" with a level of 25
KEYINFO_LEVEL_NUM = 25
logging.addLevelName(KEYINFO_LEVEL_NUM, "KEYINFO")


def keyinfo(self: logging.Logger, message, *args, **kws):
    if self.isEnabledFor(KEYINFO_LEVEL_NUM):
        self._log(KEYINFO_LEVEL_NUM, message, args, **kws)


logging.Logger.keyinfo = keyinfo

# Span attribute prefixes copied onto log records for correlation
_CORRELATION_PREFIXES = ("db.", "cosmos.", "operation.")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "name": record.name,
            "process": record.processName,
            "level": record.levelname,
            "trace_id": getattr(record, "trace_id", "-"),
            "span_id": getattr(record, "span_id", "-"),
            "db_name": getattr(record, "db_name", "-"),
            "operation_name": getattr(record, "operation_name", "-"),
            "message": record.getMessage(),
            "file": record.filename,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add any custom span attributes as additional fields
        for attr_name in dir(record):
            if attr_name.startswith(("db_", "cosmos_", "retry_")):
                log_record.setdefault(attr_name, getattr(record, attr_name))

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class PrettyFormatter(logging.Formatter):
    LEVEL_COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.MAGENTA,
        "KEYINFO": Fore.BLUE,
    }

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname
        name = record.name
        msg = record.getMessage()

        color = self.LEVEL_COLORS.get(level, "")
        line = f"{Fore.WHITE}[{timestamp}]{Style.RESET_ALL} {color}{level}{Style.RESET_ALL} - {Fore.BLUE}{name}{Style.RESET_ALL}: {msg}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TraceLogFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = getattr(record, "trace_id", "-")
        record.span_id = getattr(record, "span_id", "-")
        record.db_name = getattr(record, "db_name", "-")
        record.operation_name = getattr(record, "operation_name", "-")

        if _telemetry_disabled or trace is None:
            return True

        span = trace.get_current_span()
        context = span.get_span_context() if span else None
        if context and context.trace_id:
            record.trace_id = f"{context.trace_id:032x}"
        if context and context.span_id:
            record.span_id = f"{context.span_id:016x}"

        # Span attributes become customDimensions in App Insights
        if span and span.is_recording():
            span_attributes = getattr(span, "_attributes", None) or {}
            record.db_name = span_attributes.get("db.name", record.db_name)
            if record.operation_name == "-":
                record.operation_name = span_attributes.get(
                    "operation.name", getattr(span, "name", "-")
                )
            for key, value in span_attributes.items():
                if key.startswith(_CORRELATION_PREFIXES):
                    setattr(record, key.replace(".", "_"), value)

        return True


def get_logger(
    name: str = "cosmos_setup",
    level: Optional[int] = None,
    include_stream_handler: bool = True,
) -> logging.Logger:
    logger = logging.getLogger(name)

    if level is not None or logger.level == 0:
        logger.setLevel(level or logging.INFO)

    is_production = os.environ.get("ENV", "dev").lower() == "prod"

    # Ensure Azure Monitor LoggingHandler is attached if not already present
    has_azure_handler = LoggingHandler is not None and any(
        isinstance(h, LoggingHandler) for h in logger.handlers
    )
    should_attach_azure_handler = (
        not has_azure_handler
        and not _telemetry_disabled
        and LoggingHandler is not None
        and is_azure_monitor_configured()
    )

    if should_attach_azure_handler:
        try:
            azure_handler = LoggingHandler(level=logging.INFO)
            logger.addHandler(azure_handler)
            logger.debug(f"Azure Monitor LoggingHandler attached to logger: {name}")
        except Exception as e:
            logger.debug(f"Failed to attach Azure Monitor handler: {e}")

    # Add trace filter if not already present
    has_trace_filter = any(isinstance(f, TraceLogFilter) for f in logger.filters)
    if not has_trace_filter:
        logger.addFilter(TraceLogFilter())

    if include_stream_handler and not any(
        isinstance(h, logging.StreamHandler) for h in logger.handlers
    ):
        sh = logging.StreamHandler()
        sh.setFormatter(JsonFormatter() if is_production else PrettyFormatter())
        logger.addHandler(sh)

    return logger
