import json
import logging
import logging.handlers
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

CONTEXT_FIELDS = ("request_id", "cache_key")

_context: ContextVar[Dict[str, Optional[str]]] = ContextVar("storyvoice_request_context")


class RequestContext:
    """Per-request identifiers carried through contextvars into every log record."""

    @staticmethod
    def get() -> Dict[str, Optional[str]]:
        current = _context.get(None) or {}
        return {field: current.get(field) for field in CONTEXT_FIELDS}

    @staticmethod
    def set(**values: Optional[str]) -> None:
        unknown = set(values) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown request context fields: {sorted(unknown)}")
        current = RequestContext.get()
        current.update(values)
        _context.set(current)

    @staticmethod
    def clear() -> None:
        _context.set({})


class RequestContextFilter(logging.Filter):
    """Copy RequestContext values onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field, value in RequestContext.get().items():
            if value is not None and not hasattr(record, field):
                setattr(record, field, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    production = os.getenv("ENVIRONMENT", "development").lower() == "production"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if production
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    context_filter = RequestContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if production:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    console_handler.addFilter(context_filter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(JSONFormatter())
        app_handler.addFilter(context_filter)
        root_logger.addHandler(app_handler)

        # Error-only log file for critical issues
        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        error_handler.addFilter(context_filter)
        root_logger.addHandler(error_handler)

    # aiohttp access noise
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_voice_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger for synthesis events.

    Args:
        name: Logger name (defaults to "voice_synthesis")
    """
    return structlog.get_logger(name or "voice_synthesis")


def log_synthesis_event(
    event: str, logger: Optional[structlog.BoundLogger] = None, **details: Any
) -> None:
    """Log a synthesis outcome together with the current request context."""
    if logger is None:
        logger = get_voice_logger()
    context = {k: v for k, v in RequestContext.get().items() if v is not None}
    logger.info(event, **{**context, **details})
