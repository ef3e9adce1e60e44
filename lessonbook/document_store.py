"""
Versioned JSON document storage.

A DocumentStore is a small key-value interface with optimistic concurrency:

    doc = store.fetch("payments")            # Document(content, revision)
    new_rev = store.put("payments", content, doc.revision, "Record payment")

put() only succeeds if expected_revision is still the document's current
revision (None means "create"); otherwise it raises RevisionConflict and the
stored content is left untouched. Nothing here retries.

Implementations:
    GitHubDocumentStore : JSON files in a GitHub repository (contents API)
    MemoryDocumentStore : in-process, for dry runs and tests
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from .config import Settings
from .errors import RevisionConflict, StoreUnavailable
from .models import Document

logger = logging.getLogger(__name__)


def encode_document(content: Any) -> bytes:
    """Serialise content as UTF-8 JSON with sorted keys so repository diffs stay readable."""
    text = json.dumps(content, indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def decode_document(name: str, data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise StoreUnavailable(f"Document '{name}' is not valid UTF-8 JSON: {exc}") from exc


class DocumentStore(ABC):
    """Abstract versioned document store."""

    @abstractmethod
    def fetch(self, name: str) -> Document:
        """
        Return the named document and its current revision.

        A document that does not exist yields Document(name, None, None).
        Raises StoreUnavailable for any other failure.
        """

    @abstractmethod
    def put(
        self,
        name: str,
        content: Any,
        expected_revision: Optional[str],
        message: str,
    ) -> str:
        """
        Write content if expected_revision is current; return the new revision.

        Raises RevisionConflict if another writer got there first,
        StoreUnavailable on transport or permission failure.
        """


# ── GitHub ────────────────────────────────────────────────────────────────────

class GitHubDocumentStore(DocumentStore):
    """
    Stores each document as <data_dir>/<name>.json in a GitHub repository.

    The revision token is the file's blob SHA, which the contents API
    already uses as its compare-and-swap key.

    Usage:
        store = GitHubDocumentStore(Settings.from_env())
        doc = store.fetch("students")
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        settings.require("github_token", "github_repo")
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {settings.github_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    def path_for(self, name: str) -> str:
        prefix = f"{self._settings.data_dir}/" if self._settings.data_dir else ""
        return f"{prefix}{name}.json"

    def _url(self, name: str) -> str:
        return (
            f"{self._settings.github_api_url}/repos/"
            f"{self._settings.github_repo}/contents/{self.path_for(name)}"
        )

    # ── Read ──────────────────────────────────────────────────────────────────

    def fetch(self, name: str) -> Document:
        try:
            resp = self._session.get(
                self._url(name),
                params={"ref": self._settings.github_branch},
                timeout=self._settings.http_timeout,
            )
        except requests.RequestException as exc:
            raise StoreUnavailable(f"Could not reach GitHub reading '{name}': {exc}") from exc

        if resp.status_code == 404:
            logger.debug("Document %s not found; treating as absent", name)
            return Document(name=name)
        if not resp.ok:
            raise StoreUnavailable(
                f"GitHub returned {resp.status_code} reading '{name}': {_error_message(resp)}"
            )

        try:
            body = resp.json()
            sha = body["sha"]
            encoding = body.get("encoding")
            raw = body.get("content", "")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreUnavailable(f"Malformed GitHub response reading '{name}'") from exc
        if encoding != "base64":
            raise StoreUnavailable(
                f"Document '{name}' came back with unsupported encoding {encoding!r}"
            )
        try:
            data = base64.b64decode(raw)
        except (binascii.Error, TypeError) as exc:
            raise StoreUnavailable(f"Document '{name}' has corrupt base64 content") from exc

        logger.debug("Fetched %s at %s", name, sha)
        return Document(name=name, content=decode_document(name, data), revision=sha)

    # ── Write ─────────────────────────────────────────────────────────────────

    def put(
        self,
        name: str,
        content: Any,
        expected_revision: Optional[str],
        message: str,
    ) -> str:
        body: dict = {
            "message": message,
            "content": base64.b64encode(encode_document(content)).decode("ascii"),
            "branch": self._settings.github_branch,
        }
        if expected_revision is not None:
            body["sha"] = expected_revision

        try:
            resp = self._session.put(
                self._url(name), json=body, timeout=self._settings.http_timeout
            )
        except requests.RequestException as exc:
            raise StoreUnavailable(f"Could not reach GitHub writing '{name}': {exc}") from exc

        # 409: sha mismatch. 422 on create: the file exists and a sha is required.
        if resp.status_code == 409 or (resp.status_code == 422 and expected_revision is None):
            logger.warning("Revision conflict writing %s (expected %s)", name, expected_revision)
            raise RevisionConflict(name, expected_revision)
        if not resp.ok:
            raise StoreUnavailable(
                f"GitHub returned {resp.status_code} writing '{name}': {_error_message(resp)}"
            )

        try:
            new_sha = resp.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as exc:
            raise StoreUnavailable(f"Malformed GitHub response writing '{name}'") from exc

        logger.info("Wrote %s: %s -> %s", self.path_for(name), expected_revision, new_sha)
        return new_sha


def _error_message(resp: requests.Response) -> str:
    try:
        return str(resp.json().get("message", "")) or resp.reason
    except (ValueError, AttributeError):
        return resp.reason or ""


# ── In-memory ─────────────────────────────────────────────────────────────────

class MemoryDocumentStore(DocumentStore):
    """
    Process-local store with the same compare-and-swap contract.

    Content is kept serialised, so callers can never mutate stored state
    through a reference returned by fetch().
    """

    def __init__(self) -> None:
        self._docs: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def fetch(self, name: str) -> Document:
        with self._lock:
            entry = self._docs.get(name)
        if entry is None:
            return Document(name=name)
        data, revision = entry
        return Document(name=name, content=decode_document(name, data), revision=revision)

    def put(
        self,
        name: str,
        content: Any,
        expected_revision: Optional[str],
        message: str,
    ) -> str:
        data = encode_document(content)
        with self._lock:
            current = self._docs.get(name)
            current_revision = current[1] if current else None
            if current_revision != expected_revision:
                raise RevisionConflict(name, expected_revision)
            revision = uuid.uuid4().hex
            self._docs[name] = (data, revision)
        logger.debug("Stored %s at %s (%s)", name, revision, message)
        return revision


def build_store(settings: Settings) -> DocumentStore:
    """Return the store selected by LESSONBOOK_STORE."""
    if settings.store_backend == "memory":
        logger.warning("Using in-memory document store; nothing will be persisted")
        return MemoryDocumentStore()
    return GitHubDocumentStore(settings)
