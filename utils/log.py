"""
Leveled, structured logging on top of the standard ``logging`` module.

Records carry optional key/value fields passed as
``extra={"fields": {...}}``; they are rendered after the message as
sorted ``key=value`` pairs.  Any field that looks like a credential is
masked before it reaches a handler.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, NoReturn

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"
REDACTED = "***"

LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

_SENSITIVE_KEYS = ("password", "password_hash", "hash", "secret", "token_secret")


def parse_level(name: str) -> int:
    """Map a level name (``debug``/``info``/``warn``/``error``/``fatal``) to a logging level."""
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"unknown log level {name!r}; expected one of {', '.join(sorted(LEVELS))}"
        ) from None


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return key in _SENSITIVE_KEYS or "password" in key


class RedactingFilter(logging.Filter):
    """Mask credential-looking fields attached to a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            record.fields = {
                k: (REDACTED if _is_sensitive(str(k)) else v) for k, v in fields.items()
            }
        return True


class KeyValueFormatter(logging.Formatter):
    """Append ``key=value`` pairs from ``record.fields`` to the formatted line."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields: Dict[str, Any] = getattr(record, "fields", None) or {}
        if fields:
            pairs = " ".join(f"{k}={fields[k]}" for k in sorted(fields))
            line = f"{line}  {pairs}"
        return line


def configure_logging(level: str = "info") -> logging.Logger:
    """
    Install a single stdout handler on the root logger.

    Returns the service logger (``auth``).  Raises ``ValueError`` for an
    unknown level name.
    """
    numeric = parse_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KeyValueFormatter(LOG_FORMAT))
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric)

    for _noisy in ("asyncio", "grpc", "sqlalchemy.engine", "asyncpg"):
        logging.getLogger(_noisy).setLevel(max(numeric, logging.WARNING))

    return logging.getLogger("auth")


def fatal(logger: logging.Logger, msg: str, *args: Any, **kwargs: Any) -> NoReturn:
    """Log at CRITICAL and terminate the process with exit code 1."""
    logger.critical(msg, *args, **kwargs)
    raise SystemExit(1)
