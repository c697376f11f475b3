"""Structured logging configuration for artigov.

JSON lines in production, human-readable text in development. Two
contextvars are stamped onto every record: the request id (set by the
request context middleware) and the acting user id (set by the auth
dependency), so a workflow transition can be traced back to who triggered it.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
actor_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("actor_id", default="")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s|%(actor_id)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}
_CONTEXT_ATTRS = ("request_id", "actor_id")


class _ContextFilter(logging.Filter):
    """Copy the request and actor contextvars onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.actor_id = actor_id_var.get() or "-"
        return True


class _RedactFilter(logging.Filter):
    """Mask bearer tokens and signing secrets before a record is formatted."""

    _patterns = (
        (re.compile(r"(?i)\bbearer\s+[\w.\-]{16,}"), "Bearer ***"),
        (re.compile(r"\beyJ[\w\-]+\.[\w\-]+\.[\w\-]+"), "***"),
        (re.compile(r"(?i)\b(jwt_secret_key|secret|token|password)(\s*[=:]\s*)\S{8,}"), r"\1\2***"),
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.scrub(record.msg)
        if record.exc_text:
            record.exc_text = self.scrub(record.exc_text)
        return True

    @classmethod
    def scrub(cls, text: str) -> str:
        for pattern, replacement in cls._patterns:
            text = pattern.sub(replacement, text)
        return text


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are merged at top level.

    ``logger.info("Artifact approved", extra={"artifact_id": aid})`` yields
    ``{"level": "INFO", "message": "Artifact approved", "artifact_id": ..., ...}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in _CONTEXT_ATTRS:
            value = getattr(record, attr, "-")
            if value != "-":
                entry[attr] = value
        entry.update(
            (k, v) for k, v in vars(record).items()
            if k not in _RECORD_ATTRS and k not in _CONTEXT_ATTRS
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to INFO.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_ContextFilter())
    handler.addFilter(_RedactFilter())
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for noisy in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
