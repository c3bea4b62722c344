"""
Structured logging for benchmark runs.

Features:
- JSON-formatted log entries (python-json-logger)
- Run ID correlation across every record emitted during a run
- Timestamp in ISO format
- Sensitive field redaction (passwords, connection URLs)
"""
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from pythonjsonlogger.json import JsonFormatter as jsonlogger

# Context variable for run correlation
_run_id: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

SENSITIVE_FIELDS = {
    "password", "passwd", "pwd", "secret", "token",
    "api_key", "apikey", "credential", "database_url", "postgres_url",
}

REDACTED_VALUE = "[REDACTED]"


def set_run_context(run_id: Optional[str] = None) -> None:
    """Set the run ID attached to every subsequent log record."""
    if run_id:
        _run_id.set(run_id)


def clear_run_context() -> None:
    """Clear the run context."""
    _run_id.set(None)


def get_run_id() -> Optional[str]:
    """Get the current run ID from context."""
    return _run_id.get()


def _should_redact(field_name: str) -> bool:
    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in SENSITIVE_FIELDS)


class BenchmarkJsonFormatter(jsonlogger):
    """
    JSON log formatter with run correlation and sensitive field redaction.

    Adds:
    - timestamp: ISO format timestamp
    - level: Log level name
    - logger: Logger name
    - run_id: Benchmark run correlation ID (when in context)
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if "message" not in log_record:
            log_record["message"] = record.getMessage()

        log_record["run_id"] = get_run_id()

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
            log_record["traceback"] = "".join(traceback.format_exception(*record.exc_info))

        for key in list(log_record.keys()):
            if _should_redact(key) and log_record[key] not in (None, REDACTED_VALUE):
                log_record[key] = REDACTED_VALUE


def get_json_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for JSON output.

    Args:
        name: Logger name (typically __name__)
    """
    return logging.getLogger(name)


def setup_logging(
    level: int | str = logging.INFO,
    format_json: bool = False,
) -> None:
    """
    Configure the root logger.

    Logs go to stderr so the console report on stdout stays clean.

    Args:
        level: Log level (default: INFO)
        format_json: Use JSON formatting (default: False)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if format_json:
        formatter = BenchmarkJsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
