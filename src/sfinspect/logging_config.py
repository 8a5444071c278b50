from __future__ import annotations

import logging
import os
import re
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

# Loggers that are chatty at DEBUG and never useful to an inspector user.
_NOISY_LOGGERS = ("urllib3.connection", "urllib3.connectionpool")

# "Bearer <token>" headers and raw session ids (00D<org>!<secret>).
_TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)\S+"),
    re.compile(r"\b(00D\w{12,15}!)[\w.]+"),
)


class RedactTokensFilter(logging.Filter):
    """Masks access tokens in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _TOKEN_PATTERNS:
            redacted = pattern.sub(r"\1***", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def resolve_level(level: Optional[int]) -> int:
    """Explicit level, else SF_LOG_LEVEL (name or number), else WARNING."""
    if level is not None:
        return level
    raw = (os.getenv("SF_LOG_LEVEL") or "").strip()
    if raw.isdigit():
        return int(raw)
    named = logging.getLevelName(raw.upper()) if raw else None
    return named if isinstance(named, int) else logging.WARNING


def configure_logging(level: Optional[int]) -> None:
    """Configure root logging once; later calls only adjust the level.

    Every root handler gets the token redaction filter, including handlers
    installed by a host web app before us.
    """
    lvl = resolve_level(level)
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=_DEFAULT_FMT, datefmt=_DEFAULT_DATEFMT)

    for handler in root.handlers:
        if not any(isinstance(f, RedactTokensFilter) for f in handler.filters):
            handler.addFilter(RedactTokensFilter())

    # Keep pool chatter out unless it is an actual error.
    for name in _NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        if noisy.level == logging.NOTSET or noisy.level < logging.ERROR:
            noisy.setLevel(logging.ERROR)
