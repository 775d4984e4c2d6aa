"""
Structured Logging Configuration for D4DHub Media Ingest

Log records are emitted as single-line JSON in deployed environments and as
plain text during local development. Per-upload context such as the original
filename or category is attached with a LoggerAdapter so that every record
from one ingest run can be correlated.

Usage:
    from media_ingest.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="INFO", json_logs=True)

    logger = logging.getLogger(__name__)
    upload_logger = add_log_context(logger, original_filename="cat.jpg", category="image")
    upload_logger.warning("EXIF strip failed, keeping original bytes")
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any


# =============================================================================
# Constants
# =============================================================================

LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries whose INFO output drowns out pipeline logs
THIRD_PARTY_LOGGERS: list[str] = [
    "uvicorn.access",
    "fastapi",
    "PIL",
    "multipart",
    "asyncio",
]


class LogJSONEncoder(json.JSONEncoder):
    """JSON encoder that falls back to str() for anything it cannot serialize."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, bytes):
            # Never dump upload payloads into logs
            return f"<{len(obj)} bytes>"
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        try:
            return str(obj)
        except Exception:
            return f"<non-serializable: {type(obj).__name__}>"


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """
    Render a LogRecord as one JSON object per line.

    Example output:
        {"timestamp":"2025-01-15T10:30:45.123456+00:00","level":"WARNING",
         "logger":"media_ingest.services.media_processing_service",
         "message":"Duration probe failed","extra":{"temp_path":"/tmp/..."}}
    """

    RESERVED_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "thread",
            "threadName",
            "taskName",
        }
    )

    def __init__(self, include_extra_fields: bool = True, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_extra_fields = include_extra_fields
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="microseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        if self.include_extra_fields:
            extra = {
                key: value
                for key, value in record.__dict__.items()
                if not key.startswith("_") and key not in self.RESERVED_ATTRS
            }
            if extra:
                entry["extra"] = extra

        try:
            return json.dumps(entry, cls=LogJSONEncoder, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            return json.dumps(
                {
                    "timestamp": entry["timestamp"],
                    "level": "ERROR",
                    "logger": "JSONFormatter",
                    "message": f"Failed to serialize log record: {e}",
                    "original_message": str(record.msg),
                }
            )


class StandardFormatter(logging.Formatter):
    """Human-readable formatter for local development."""

    DEFAULT_FORMAT: str = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt or self.DEFAULT_FORMAT, datefmt=datefmt or self.DEFAULT_DATE_FORMAT)


def _build_formatter(json_logs: bool, level: int) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(include_extra_fields=True, include_source_location=level <= logging.DEBUG)
    return StandardFormatter()


# =============================================================================
# Application Setup
# =============================================================================


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    third_party_level: str = "WARNING",
) -> None:
    """
    Configure the root and uvicorn loggers once at application startup.

    Args:
        log_level: Application log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Output JSON when True, plain text otherwise
        third_party_level: Level applied to THIRD_PARTY_LOGGERS
    """
    level_str = log_level.upper()
    level = LOG_LEVEL_MAP.get(level_str, logging.INFO)
    formatter = _build_formatter(json_logs, level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # uvicorn installs its own handlers; route them through ours instead
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = True

    third_party = LOG_LEVEL_MAP.get(third_party_level.upper(), logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, json=%s", level_str, json_logs
    )


# =============================================================================
# Context Enrichment
# =============================================================================


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call extra fields instead of replacing them."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        # logging.Logger.makeRecord raises KeyError on these
        kwargs["extra"] = {
            (f"context_{key}" if key in JSONFormatter.RESERVED_ATTRS else key): value
            for key, value in extra.items()
        }
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap a logger so every record carries the given context fields.

    Example:
        upload_logger = add_log_context(logger, original_filename="clip.mp4", category="short")
        upload_logger.info("Duration probed", extra={"duration_seconds": 12.4})
        # extra contains original_filename, category and duration_seconds

    Keys that clash with LogRecord attributes (filename, module, ...) are
    stored as context_<key>.
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "ContextLoggerAdapter",
    "JSONFormatter",
    "LOG_LEVEL_MAP",
    "StandardFormatter",
    "add_log_context",
    "setup_logging",
]
