"""Logging filters that scrub credentials from log output."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|access_token\"\s*:\s*\"[^\"]+\""
    r"|password\"\s*:\s*\"[^\"]+\""
    r"|password=[^&\s]+)",
    re.IGNORECASE,
)
_REDACTED = "**REDACTED**"


def scrub(message: str) -> str:
    """Return ``message`` with bearer tokens and passwords masked."""
    return _SENSITIVE_PATTERN.sub(_REDACTED, message)


class SensitiveFilter(logging.Filter):
    """Replace sensitive tokens in log records with a redaction marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                scrub(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


def install_sensitive_filter(*logger_names: str) -> None:
    """Attach a single ``SensitiveFilter`` to each named logger."""
    for name in logger_names:
        target = logging.getLogger(name)
        if not any(isinstance(flt, SensitiveFilter) for flt in target.filters):
            target.addFilter(SensitiveFilter())


__all__ = ["SensitiveFilter", "install_sensitive_filter", "scrub"]
