"""
Settings loaded from the environment (and an optional .env file).

Usage:
    from lessonbook.config import Settings
    settings = Settings.from_env()
    settings.require("github_token", "github_repo")
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_ENV_FILE = ".env"
DEFAULT_LOG_DIR = "~/.lessonbook/logs"


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration. Build with Settings.from_env()."""

    # Remote document store (GitHub contents API)
    github_token: Optional[str] = None
    github_repo: Optional[str] = None          # "owner/name"
    github_branch: str = "main"
    github_api_url: str = "https://api.github.com"
    data_dir: str = "data"
    store_backend: str = "github"              # 'github' | 'memory'
    http_timeout: float = 10.0

    # Google OAuth / Calendar
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_redirect_uri: str = "http://localhost:3000/oauth2callback"
    google_refresh_token: Optional[str] = None
    calendar_id: str = "primary"
    local_tz: str = "Asia/Jerusalem"
    window_days: int = 30

    log_dir: Path = Path(DEFAULT_LOG_DIR).expanduser()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        When environ is None the process environment is used, after loading
        the .env file named by LESSONBOOK_ENV_FILE (existing variables win).
        """
        if environ is None:
            load_dotenv(Path(os.environ.get("LESSONBOOK_ENV_FILE", DEFAULT_ENV_FILE)).expanduser())
            environ = os.environ

        def get(key: str, default: Optional[str] = None) -> Optional[str]:
            value = environ.get(key)
            if value is None or not value.strip():
                return default
            return value.strip()

        settings = cls(
            github_token=get("GITHUB_TOKEN"),
            github_repo=get("GITHUB_REPO"),
            github_branch=get("GITHUB_BRANCH", "main"),
            github_api_url=get("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
            data_dir=get("LESSONBOOK_DATA_DIR", "data").strip("/"),
            store_backend=get("LESSONBOOK_STORE", "github").lower(),
            http_timeout=_number(get("LESSONBOOK_HTTP_TIMEOUT", "10"), "LESSONBOOK_HTTP_TIMEOUT", float),
            google_client_id=get("GOOGLE_CLIENT_ID"),
            google_client_secret=get("GOOGLE_CLIENT_SECRET"),
            google_redirect_uri=get("GOOGLE_REDIRECT_URI", "http://localhost:3000/oauth2callback"),
            google_refresh_token=get("GOOGLE_REFRESH_TOKEN"),
            calendar_id=get("GOOGLE_CALENDAR_ID", "primary"),
            local_tz=get("LESSONBOOK_TZ", "Asia/Jerusalem"),
            window_days=_number(get("LESSONBOOK_WINDOW_DAYS", "30"), "LESSONBOOK_WINDOW_DAYS", int),
            log_dir=Path(get("LESSONBOOK_LOG_DIR", DEFAULT_LOG_DIR)).expanduser(),
        )
        if settings.store_backend not in ("github", "memory"):
            raise ConfigError(
                f"LESSONBOOK_STORE must be 'github' or 'memory', got {settings.store_backend!r}"
            )
        return settings

    def require(self, *fields: str) -> None:
        """Raise ConfigError naming every listed field that is unset."""
        missing = [f for f in fields if not getattr(self, f)]
        if missing:
            raise ConfigError(
                "Missing configuration: " + ", ".join(f.upper() for f in missing)
            )

    @property
    def tz(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.local_tz)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown time zone in LESSONBOOK_TZ: {self.local_tz}") from exc


def _number(raw: Optional[str], key: str, kind: type):
    try:
        value = kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value
