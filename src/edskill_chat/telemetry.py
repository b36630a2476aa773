"""Structlog wiring and Prometheus metrics."""

import logging

import structlog
from prometheus_client import CollectorRegistry, Counter

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

CHAT_REQUESTS = Counter(
    "chat_requests_total", "Chat relay invocations", registry=CUSTOM_REGISTRY
)
CHAT_ERRORS = Counter(
    "chat_errors_total", "Failed chat relay invocations by kind", ["kind"], registry=CUSTOM_REGISTRY
)
PERSIST_FAILURES = Counter(
    "message_persist_failures_total", "Swallowed message log write failures", registry=CUSTOM_REGISTRY
)


def configure_logging(level: str = "INFO") -> None:
    """Sets up structlog with key/value console output at the given level."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )
