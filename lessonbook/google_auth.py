"""
Google OAuth2 credential lifecycle.

The refresh credential comes from one of three places, checked in order:
    1. GOOGLE_REFRESH_TOKEN in the environment (no store read)
    2. the "credentials" document in the store
    3. a fresh authorization-code exchange (scripts/authorize.py), which is
       then persisted to the store

The credential lives in a CredentialHolder that is created once per process
and passed to whatever needs it. Every caller asks the lifecycle for a
credential at call time, so a missing one surfaces as NotAuthenticated at the
point of use.

Usage:
    holder = CredentialHolder()
    lifecycle = CredentialLifecycle(holder, CredentialRepository(store), settings)
    creds = lifecycle.google_credentials()      # google.oauth2 Credentials
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .config import Settings
from .documents import CREDENTIALS_DOCUMENT, CredentialRepository
from .errors import InvalidInput, NotAuthenticated
from .models import CredentialRecord

logger = logging.getLogger(__name__)

CALENDAR_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/calendar.readonly",
]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

FlowFactory = Callable[[Settings, list[str]], Flow]


def build_flow(settings: Settings, scopes: list[str]) -> Flow:
    """Build a web-application OAuth flow from the configured client id and secret."""
    settings.require("google_client_id", "google_client_secret", "google_redirect_uri")
    client_config = {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }
    # No PKCE verifier: the URL and the code exchange run in separate processes.
    return Flow.from_client_config(
        client_config,
        scopes=scopes,
        redirect_uri=settings.google_redirect_uri,
        autogenerate_code_verifier=False,
    )


def _epoch_ms(expiry: Optional[datetime]) -> Optional[int]:
    if expiry is None:
        return None
    # google-auth keeps expiry as naive UTC
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return int(expiry.timestamp() * 1000)


class CredentialHolder:
    """The process's current refresh credential. One tutor, last writer wins."""

    def __init__(self, record: Optional[CredentialRecord] = None) -> None:
        self._record = record
        self._lock = threading.Lock()

    @property
    def record(self) -> Optional[CredentialRecord]:
        with self._lock:
            return self._record

    def replace(self, record: Optional[CredentialRecord]) -> None:
        with self._lock:
            self._record = record


class CredentialLifecycle:
    """
    Resolves, issues and persists the Google refresh credential.

    ensure_authenticated() never writes to the store; only
    complete_authorization() does.
    """

    def __init__(
        self,
        holder: CredentialHolder,
        repository: CredentialRepository,
        settings: Settings,
        flow_factory: FlowFactory = build_flow,
        scopes: Optional[list[str]] = None,
    ) -> None:
        self._holder = holder
        self._repository = repository
        self._settings = settings
        self._flow_factory = flow_factory
        self._scopes: list[str] = scopes or CALENDAR_SCOPES

    @property
    def holder(self) -> CredentialHolder:
        return self._holder

    # ── Resolve ───────────────────────────────────────────────────────────────

    def ensure_authenticated(self) -> CredentialRecord:
        """
        Return the current refresh credential, loading it if needed.

        Raises NotAuthenticated when neither the environment nor the store
        has one.
        """
        record = self._holder.record
        if record is not None:
            return record

        env_token = self._settings.google_refresh_token
        if env_token:
            record = CredentialRecord(refresh_token=env_token, scope=" ".join(self._scopes))
            logger.info("Using refresh token from GOOGLE_REFRESH_TOKEN (%s)", record.masked_token)
            self._holder.replace(record)
            return record

        record = self._repository.load()
        if record is None:
            logger.warning("No Google credential in environment or store")
            raise NotAuthenticated()
        logger.info("Loaded stored Google credential %s", record.masked_token)
        self._holder.replace(record)
        return record

    def google_credentials(self) -> Credentials:
        """Build google-auth Credentials; the access token is fetched on first use."""
        record = self.ensure_authenticated()
        self._settings.require("google_client_id", "google_client_secret")
        return Credentials(
            token=None,
            refresh_token=record.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._settings.google_client_id,
            client_secret=self._settings.google_client_secret,
            scopes=record.scope.split() or self._scopes,
        )

    def reject(self) -> None:
        """Forget the in-memory credential after the identity provider refused it."""
        logger.warning("Google rejected the current credential; clearing it")
        self._holder.replace(None)

    # ── Authorize ─────────────────────────────────────────────────────────────

    def authorization_url(self) -> str:
        """Consent URL. offline + consent makes Google issue a refresh token every time."""
        flow = self._flow_factory(self._settings, self._scopes)
        url, _state = flow.authorization_url(
            access_type="offline", prompt="consent", include_granted_scopes="true"
        )
        return url

    def complete_authorization(self, code: str) -> CredentialRecord:
        """
        Exchange an authorization code, persist the new credential and make it current.

        Raises InvalidInput for an empty code and NotAuthenticated if Google
        did not issue a refresh token.
        """
        if not code or not code.strip():
            raise InvalidInput("Authentication failed: missing authorization code")

        flow = self._flow_factory(self._settings, self._scopes)
        try:
            flow.fetch_token(code=code.strip())
        except OAuth2Error as exc:
            raise NotAuthenticated(
                f"Authorization code exchange failed: {exc.description or exc.error}."
            ) from exc
        creds = flow.credentials
        if not creds.refresh_token:
            raise NotAuthenticated(
                "Google did not issue a refresh token. Revoke the app's access and consent again."
            )

        record = CredentialRecord(
            refresh_token=creds.refresh_token,
            scope=" ".join(creds.scopes or self._scopes),
            token_type="Bearer",
            expiry_hint=_epoch_ms(creds.expiry),
        )
        self._repository.save(record)
        self._holder.replace(record)
        logger.info(
            "New refresh token %s stored in the %r document",
            record.masked_token,
            CREDENTIALS_DOCUMENT,
        )
        return record
