"""structlog setup for the ledger.

Production writes one JSON object per line:

    {"event": "ledger_entry_finalized", "level": "info",
     "timestamp": "2026-01-01T00:00:00.000000Z", "correlation_id": "...",
     "operation": "reconcile-user", "subject_id": "user-1", "status": "CONFIRMED"}

Vote power and tallies are 256-bit integers. JSON consumers that parse
numbers as doubles would silently round them, so integers outside the
safe range are rendered as strings.
"""

import logging
import os
from typing import Any, cast

import structlog
from structlog.typing import Processor

from governance_ledger.infrastructure.observability.correlation import (
    correlation_id_processor,
)

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

# Largest integer a double represents exactly
MAX_SAFE_INTEGER = 2**53 - 1


def _get_log_level() -> int:
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def stringify_large_ints(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Render top-level ints beyond MAX_SAFE_INTEGER as decimal strings."""
    for key, value in event_dict.items():
        if (
            isinstance(value, int)
            and not isinstance(value, bool)
            and abs(value) > MAX_SAFE_INTEGER
        ):
            event_dict[key] = str(value)
    return event_dict


def configure_structlog(environment: str = "production") -> None:
    """Configure structlog for the process.

    Args:
        environment: 'production' for JSON lines, anything else for the
            console renderer.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
    ]

    if environment == "production":
        processors += [
            structlog.processors.format_exc_info,
            cast(Processor, stringify_large_ints),
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
