"""Structured JSON logger for casedesk.

Every log record is emitted as a single-line JSON object::

    {"ts": "2026-03-02T09:14:07.120311+00:00", "level": "INFO",
     "logger": "casedesk.edit", "message": "record saved",
     "op": "save", "table": "cases", "record_id": 17, "changed": 1}

Usage::

    from casedesk.observability import fields, get_logger

    log = get_logger("casedesk.edit")
    log.info("record saved", extra=fields(op="save", record_id=17))
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts``, ``level``, ``logger`` and ``message``.
    Structured fields passed as ``extra={"extra_fields": {...}}`` are merged
    into the top-level object; exception and stack info are serialised when
    present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
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

        return json.dumps(entry, default=str)


def fields(**kwargs: Any) -> dict[str, dict[str, Any]]:
    """Wrap keyword arguments in the ``extra`` shape the formatter reads."""
    return {"extra_fields": kwargs}


# One handler per root name so repeated ``get_logger`` calls stay idempotent.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "casedesk",
    *,
    level: int | str = logging.INFO,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Parameters
    ----------
    name:
        Logger name.  Child names such as ``"casedesk.store"`` get their
        own handler the first time they are requested.
    level:
        Minimum log level as an ``int`` or a case-insensitive name.
    stream:
        Output stream for the handler.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        Repeated calls with the same *name* return the same logger and do
        not add duplicate handlers.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        resolved_level = (
            logging.getLevelName(level.upper()) if isinstance(level, str) else level
        )
        logger.setLevel(resolved_level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger
