"""
Structured Logging

DESIGN DECISION: Every store write, settings load and published change
event is logged as a structured event. This provides:
1. Traceability of what was written for which user
2. Debugging capability when local and remote state disagree
3. Correlation of the paths touched by one multi-path write

Log events use snake_case names (``taxonomy_saved``) with key/value
context rather than formatted messages.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

import structlog

from ledger_sync.config import get_settings


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# structlog hands records to stdlib logging, which needs a handler to emit them
logging.basicConfig(format="%(message)s", level=get_settings().app.log_level)


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally bound to initial context."""
    return structlog.get_logger(name, **initial_values)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related log events.

    Use this at the start of an operation that touches several paths
    (e.g., a batched expense write) and bind it to the logger.
    """
    return uuid4()
