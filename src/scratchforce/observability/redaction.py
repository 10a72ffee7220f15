"""Secret redaction for log output and surfaced error text.

Access tokens, one-time auth codes and generated passwords must never show
up in logs. Known values are registered as they are produced; token-shaped
strings are scrubbed even when nobody registered them.

Usage:
    redactor = SecretRedactor()
    redactor.register(session.access_token)
    safe = redactor.redact(f'login failed for {session.access_token}')
    # -> 'login failed for [REDACTED]'
"""
from __future__ import annotations

import logging
import re
from typing import Any

# Shorter values are too likely to collide with ordinary words.
MIN_SECRET_LENGTH = 8

SECRET_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'Bearer\s+[A-Za-z0-9._~+/=!-]{20,}'),
    # Session ids: 15-char org id, '!', opaque token
    re.compile(r'\b00D[A-Za-z0-9]{12,15}![A-Za-z0-9._]{20,}'),
    re.compile(r'\b[a-f0-9]{32,}\b'),
)

REDACTED = '[REDACTED]'


class SecretRedactor:
    """Replaces registered secrets and token-shaped strings with [REDACTED]."""

    def __init__(self, *, enable_pattern_matching: bool = True) -> None:
        self._secrets: set[str] = set()
        self._enable_patterns = enable_pattern_matching

    def register(self, secret: str) -> None:
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            return
        self._secrets.add(secret)

    def redact(self, text: str) -> str:
        if not text:
            return text

        result = text
        # Longest first so a secret containing another is replaced whole.
        for secret in sorted(self._secrets, key=len, reverse=True):
            if secret in result:
                result = result.replace(secret, REDACTED)

        if self._enable_patterns:
            for pattern in SECRET_PATTERNS:
                result = pattern.sub(REDACTED, result)
        return result


class RedactingProcessor:
    """structlog processor that scrubs every string value of an event."""

    def __init__(self, redactor: SecretRedactor) -> None:
        self.redactor = redactor

    def __call__(
        self,
        logger: logging.Logger,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = self.redactor.redact(value)
        return event_dict
