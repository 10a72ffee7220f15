"""Logging setup and secret redaction for scratchforce.

Quick start::

    from scratchforce.observability import configure_logging

    configure_logging(json_output=False)
"""

from .logging import configure_logging, get_logger, workflow_id_ctx
from .redaction import RedactingProcessor, SecretRedactor

__all__ = [
    "RedactingProcessor",
    "SecretRedactor",
    "configure_logging",
    "get_logger",
    "workflow_id_ctx",
]
