"""Structured logging via structlog.

Configures structlog once at application startup. Every module either
calls `structlog.get_logger(__name__)` or uses a stdlib logger; the
stdlib bridge keeps httpx / SQLAlchemy output on the same stream.

Renderer selection:
  debug=True  — `ConsoleRenderer` for local development.
  debug=False — `JSONRenderer` for machine-parseable logs in production.

The `request_id` of the current request is injected into every event
from `designhub.core.middleware._request_id_var`.
"""

from __future__ import annotations

import logging
import sys

import structlog

from designhub.core.middleware import get_request_id


def _inject_request_id(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: add request_id when running inside a request."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def configure_structlog(debug: bool = True) -> None:
    """Configure structlog for the application lifetime.

    Called from `create_app()` before any router logs. Safe to call
    repeatedly; the last call wins.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_request_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer = (
        structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )
