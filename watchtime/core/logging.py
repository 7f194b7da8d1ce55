"""Logging configuration for watchtime-service.

One stdout handler on the root logger, two renderings:

  text (default)  one line per record, request context in brackets:

      2026-03-14T10:00:00.123+0000 INFO     watchtime.services.aggregation_service [req=9f2c user=u1]  Chunk logged ...

  JSON (LOG_JSON=true)  one object per line; context fields become
      top-level keys so the log pipeline can filter on them:

      {"level": "WARNING", "user_id": "u1", "video_id": "v9", "message": "Video not found ..."}

Metrics live in watchtime/core/metrics.py.
"""

from __future__ import annotations

import json
import logging
import sys

from watchtime.core.context import request_id_var, user_id_var

_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Libraries that stay at WARNING unless the service itself runs quieter
_NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpcore",
    "httpx",
    "sqlalchemy.engine",
    "alembic",
)


class _RequestContextFilter(logging.Filter):
    """Stamp request_id / user_id from the ContextVars onto each record.

    Lives on the handler: logger-level filters never see records that
    propagate up from child loggers.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get()  # type: ignore[attr-defined]
        return True


def _timestamp(formatter: logging.Formatter, record: logging.LogRecord) -> str:
    # strftime has no milliseconds; splice them in ahead of the +0000 offset
    base = formatter.formatTime(record, _DATEFMT)
    return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"


class _ContainerFormatter(logging.Formatter):
    """Human-readable single line for `docker compose logs` and local runs.

    WARNING and above also get the source location appended.
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            _timestamp(self, record),
            f"{record.levelname:<8}",
            record.name,
        ]
        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            user_id = getattr(record, "user_id", None) or "-"
            parts.append(f"[req={request_id} user={user_id}]")
        line = " ".join(parts) + "  " + record.getMessage()

        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines.  Unset context fields are left out rather than nulled."""

    _CONTEXT_FIELDS = (
        "request_id",
        "user_id",
        "video_id",
        "course_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": _timestamp(self, record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key in self._CONTEXT_FIELDS
            if (value := getattr(record, key, None)) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Install the stdout handler on the root logger.

    Unknown level names fall back to INFO.  Safe to call more than once;
    each call replaces the previous handler.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(_RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
