"""
Logger Implementation
=====================

structlog pipeline for ZKLend.

Every entry carries the service name, version, level, logger name and a UTC
timestamp. Salts, blinding factors, private witnesses and setup trapdoors are
redacted before rendering, wherever they appear in the event.

Rendering:
- JSON lines when `json_logs` is set (production)
- Coloured console output with rich tracebacks otherwise

Version: 0.1.0
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from zklend import __version__


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


REDACTED = "***REDACTED***"

# Substrings of keys whose values must never reach a log sink
SENSITIVE_KEYS = frozenset(
    {
        "salt",
        "blinding",
        "witness",
        "private",
        "secret",
        "toxic",
        "tau",
    }
)


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(marker in key_lower for marker in SENSITIVE_KEYS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(_redact(item) for item in value)
    return value


def _censor_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace witness material with a marker, recursing into nested values."""
    return _redact(event_dict)


def _service_context(service_name: str) -> Processor:
    def add_service_context(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("version", __version__)
        return event_dict

    return add_service_context


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(
            show_locals=False,
            max_frames=10,
        ),
    )


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "zklend",
) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render JSON lines instead of console output
        service_name: Value of the `service` field on every entry
    """
    level = logging.getLevelName(log_level.upper())

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(service_name),
        _censor_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info if json_logs else structlog.dev.set_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str | None = None) -> "BoundLogger":
    """
    Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("commitment_registered", commitment_type="collateral", owner="0xabc")
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all subsequent logs in this context.

    Example:
        bind_context(tx_hash="0x...", sender="0xabc")
        logger.info("borrowed")  # includes tx_hash and sender
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
