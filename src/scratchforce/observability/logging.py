"""Structured logging configuration for scratchforce.

Library modules log through stdlib ``logging.getLogger(__name__)``; this
module renders those records (and structlog events) as JSON lines or
console output, correlated by the provisioning run that emitted them.

The library never calls :func:`configure_logging` itself.

Usage::

    from scratchforce.observability.logging import configure_logging, get_logger

    configure_logging()  # Call once at application startup
    logger = get_logger()
    logger.info("environment_ready", name="ci-42")
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar

import structlog

from .redaction import RedactingProcessor, SecretRedactor

# Correlation ID of the provisioning run in progress, if any.
workflow_id_ctx: ContextVar[str | None] = ContextVar("workflow_id", default=None)

_configured = False


def _add_workflow_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Inject the current workflow_id from context into every log entry."""
    wid = workflow_id_ctx.get()
    if wid is not None:
        event_dict["workflow_id"] = wid
    return event_dict


def shared_processors(redactor: SecretRedactor | None = None) -> list:
    """Processors applied to structlog events and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        _add_workflow_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        RedactingProcessor(redactor or SecretRedactor()),
    ]


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
    redactor: SecretRedactor | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
            Defaults to SCRATCHFORCE_LOG_LEVEL env var or INFO.
        json_output: If True, emit JSON lines. If False, emit
            human-readable console output. Defaults to
            SCRATCHFORCE_LOG_FORMAT env var == "json" (the default).
        redactor: Secrets to scrub from every entry. Token-shaped
            strings are scrubbed either way.
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = level or os.environ.get("SCRATCHFORCE_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("SCRATCHFORCE_LOG_FORMAT", "json") == "json"

    processors = shared_processors(redactor)

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Request lines from httpx carry query strings; keep them out of INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given name."""
    return structlog.get_logger(name)
