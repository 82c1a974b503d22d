"""
Logging redaction helpers.
Redacts broker credentials and API keys from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # Gemini REST calls carry the key as a query parameter
    (re.compile(r"([?&]key=)([A-Za-z0-9\-_]+)"), r"\1[REDACTED]"),
    # Broker TOTP seed / MPIN / password values
    (re.compile(r"(?i)(totp[_-]?secret|mpin|password)\s*[:=]\s*([^\s,;]+)"), r"\1=[REDACTED]"),
    # Generic access token key/value
    (re.compile(r"(?i)(access_token|jwt_token|token)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
    # API key/secret values
    (re.compile(r"(?i)(api[_-]?key|api[_-]?secret)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args: let the handler report it
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def _has_filter(filterer: logging.Filterer) -> bool:
    return any(isinstance(existing, RedactingFilter) for existing in filterer.filters)


def install_redaction_filter() -> None:
    """
    Attach the redaction filter to the root logger and its handlers.

    Logger-level filters only see records emitted on that logger, so the
    handlers need their own copy to catch records propagated from children.
    """
    root = logging.getLogger()
    if not _has_filter(root):
        root.addFilter(RedactingFilter())
    for handler in root.handlers:
        if not _has_filter(handler):
            handler.addFilter(RedactingFilter())
