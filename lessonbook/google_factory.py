"""
GoogleServiceFactory: Google API service objects built from the current credential.

Service objects are cached per (api, version, refresh token), so a credential
replaced by a new authorization gets a fresh service on the next access while
repeated calls with the same credential reuse one client.

Usage:
    factory = GoogleServiceFactory(lifecycle)
    calendar_svc = factory.calendar      # raises NotAuthenticated if no credential
"""
from __future__ import annotations

from typing import Any

from googleapiclient.discovery import build

from .google_auth import CredentialLifecycle


class GoogleServiceFactory:
    """Constructs and caches Google API service objects."""

    def __init__(self, lifecycle: CredentialLifecycle) -> None:
        self._lifecycle = lifecycle
        self._services: dict[tuple[str, str, str], Any] = {}

    @property
    def lifecycle(self) -> CredentialLifecycle:
        return self._lifecycle

    # ── Internal builder ──────────────────────────────────────────────────────

    def _build(self, name: str, version: str) -> Any:
        """Build and cache a googleapiclient service object."""
        record = self._lifecycle.ensure_authenticated()
        key = (name, version, record.refresh_token)
        if key not in self._services:
            self._services[key] = build(
                name,
                version,
                credentials=self._lifecycle.google_credentials(),
                cache_discovery=False,
            )
        return self._services[key]

    # ── Service properties ────────────────────────────────────────────────────

    @property
    def calendar(self) -> Any:
        """Google Calendar API v3 service object."""
        return self._build("calendar", "v3")
