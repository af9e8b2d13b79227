"""Settings for the importers, the meal store and the API server.

Every setting can be overridden with a ``MEALBOOK_*`` environment variable. A
``.env`` or ``.env.local`` file in the working directory supplies values the
environment leaves unset.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

DOTENV_FILES = (Path(".env"), Path(".env.local"))

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseModel):
    """Runtime configuration; immutable once loaded."""

    database_path: Path = Field(default=Path("./data/mealbook.db"), description="SQLite file for stored meals.")
    api_token: Optional[str] = Field(
        default=None,
        description="Token required on import and write routes; unset disables the check.",
    )
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="plain", description="'plain' or 'json'.")
    log_requests: bool = Field(default=True, description="Write one access log line per request.")
    import_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent when fetching recipe pages.",
    )
    import_timeout: float = Field(default=15.0, gt=0, description="Seconds before a page fetch is abandoned.")
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Largest accepted Paprika export or photo upload.",
    )
    ocr_default_lang: str = Field(default="eng", description="Tesseract language for cookbook photos.")

    model_config = ConfigDict(frozen=True)


def _flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# env var -> (settings field, converter)
_ENV_FIELDS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "MEALBOOK_DATABASE_PATH": ("database_path", Path),
    "MEALBOOK_API_TOKEN": ("api_token", str),
    "MEALBOOK_LOG_LEVEL": ("log_level", str),
    "MEALBOOK_LOG_FORMAT": ("log_format", str),
    "MEALBOOK_LOG_REQUESTS": ("log_requests", _flag),
    "MEALBOOK_IMPORT_USER_AGENT": ("import_user_agent", str),
    "MEALBOOK_IMPORT_TIMEOUT": ("import_timeout", float),
    "MEALBOOK_MAX_UPLOAD_BYTES": ("max_upload_bytes", int),
    "MEALBOOK_OCR_LANG": ("ocr_default_lang", str),
}


def read_dotenv(path: Path) -> Dict[str, str]:
    """Parse ``KEY=value`` lines, ignoring blanks, comments and a missing file."""

    if not path.is_file():
        return {}
    entries: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        entries[key.strip()] = value.strip().strip("\"'")
    return entries


def settings_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, object]:
    """Collect settings overrides from ``environ`` and the dotenv files.

    Values that fail to convert (``MEALBOOK_IMPORT_TIMEOUT=soon``) are ignored so
    the default applies.
    """

    environ = os.environ if environ is None else environ
    dotenv: Dict[str, str] = {}
    for path in DOTENV_FILES:
        dotenv.update(read_dotenv(path))

    overrides: Dict[str, object] = {}
    for env_name, (field_name, convert) in _ENV_FIELDS.items():
        raw = environ.get(env_name) or dotenv.get(env_name)
        if not raw:
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError:
            continue
    return overrides


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""

    return Settings(**settings_overrides())
