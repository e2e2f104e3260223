"""Structured JSON logging for megaverse.

All package loggers hang off the ``megaverse`` logger, which owns the only
handler.  Each record leaves it as one JSON object per line, so a reconcile
run can be followed with ``jq``::

    {"ts": "2026-10-19T12:00:00.123456+00:00", "level": "WARNING",
     "logger": "megaverse.executor", "message": "Operation rate limited",
     "op": "submit", "index": 14, "attempt": 2, "delay": 5.0}

The candidate id is the caller's credential and travels in every request
path and body.  Clients hand it to :func:`register_secret`; from then on the
formatter scrubs it from every field of every line, and values under
sensitive keys (``candidate_id``, ``token``, ...) are masked regardless.

Usage::

    from megaverse.observability import get_logger

    log = get_logger("megaverse.executor")
    log.info("submitted", extra={"extra_fields": {"index": 3}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from megaverse.utils.redact import redact

PACKAGE_LOGGER = "megaverse"

_secrets: set[str] = set()


def register_secret(secret: str | None) -> None:
    """Scrub *secret* from every log line written after this call."""
    if secret:
        _secrets.add(secret)


def _resolve_level(level: int | str) -> int:
    return logging.getLevelName(level.upper()) if isinstance(level, str) else level


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line, redacted JSON objects.

    Guaranteed keys: ``ts`` (ISO-8601 UTC), ``level``, ``logger`` and
    ``message``.  Fields passed via ``extra={"extra_fields": {...}}`` are
    merged into the top-level object, and ``exc_info``/``stack_info`` are
    rendered when present.  Values that JSON cannot hold are stringified
    before redaction.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        entry = json.loads(json.dumps(entry, default=str))
        for secret in sorted(_secrets, key=len, reverse=True) or [None]:
            entry = redact(entry, secret)
        return json.dumps(entry)


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Return the logger called *name*, installing the package handler once.

    *name* should live under ``megaverse.``; children carry no handler of
    their own and propagate to the package logger.
    """
    _package_logger()
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Set the package threshold; *level* may be an ``int`` or a name."""
    _package_logger().setLevel(_resolve_level(level))
