"""Logging setup for the API server and the CLI.

Log lines often carry recipe URLs and request headers, so every handler gets a
:class:`SensitiveDataFilter` that masks credentials before formatting.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, Sequence, Tuple

REDACTED = "[redacted]"

CONTEXT_FIELDS = ("request_id", "import_source")

_PLAIN_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
_QUIET_LOGGERS = ("httpx", "httpcore")
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_CREDENTIAL_PATTERNS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/=]+", re.IGNORECASE), r"\g<1>" + REDACTED),
    (re.compile(r"\b((?:api_token|api_key|token|key)=)[^&\s]+", re.IGNORECASE), r"\g<1>" + REDACTED),
    (re.compile(r"(X-API-Key[=:]\s*)[^&\s]+", re.IGNORECASE), r"\g<1>" + REDACTED),
    (re.compile(r"(https?://)[^/\s:@]+:[^/\s@]+@", re.IGNORECASE), r"\g<1>" + REDACTED + "@"),
)


def redact(message: str, secrets: Sequence[str] = ()) -> str:
    """Mask bearer tokens, key-like query params, URL passwords and ``secrets``."""

    for pattern, replacement in _CREDENTIAL_PATTERNS:
        message = pattern.sub(replacement, message)
    for secret in secrets:
        if secret:
            message = message.replace(secret, REDACTED)
    return message


class SensitiveDataFilter(logging.Filter):
    """Rewrite records in place so no handler sees a credential."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets = tuple(secret.strip() for secret in secrets if secret and secret.strip())

    def filter(self, record: logging.LogRecord) -> bool:
        rendered = record.getMessage()
        cleaned = redact(rendered, self.secrets)
        if cleaned != rendered:
            record.msg, record.args = cleaned, ()
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if isinstance(value, str):
                setattr(record, field, redact(value, self.secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with request context when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if getattr(record, field, None)}
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, default=str)


def _formatter(fmt: str) -> logging.Formatter:
    if (fmt or "").strip().lower() == "json":
        return JsonFormatter()
    return logging.Formatter(_PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Route all logging through one redacting stream handler on the root logger."""

    level = logging.getLevelName((level_name or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    redactor = SensitiveDataFilter(secrets)
    handler = logging.StreamHandler()
    handler.setFormatter(_formatter(fmt))
    handler.addFilter(redactor)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(True)

    for name in _SERVER_LOGGERS + _QUIET_LOGGERS:
        named = logging.getLogger(name)
        named.handlers.clear()
        named.propagate = True
        named.setLevel(max(level, logging.WARNING) if name in _QUIET_LOGGERS else level)
        named.addFilter(redactor)
