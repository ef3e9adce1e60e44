"""Shared fixtures."""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from lessonbook.config import Settings
from lessonbook.document_store import MemoryDocumentStore
from lessonbook.documents import CredentialRepository, PaymentLedger, RosterRepository
from lessonbook.google_auth import CredentialHolder, CredentialLifecycle


@pytest.fixture
def settings(tmp_path):
    return Settings(
        github_token="ghp_test",
        github_repo="tutor/lessons-data",
        google_client_id="client-id",
        google_client_secret="client-secret",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def clock():
    return Mock(return_value=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def roster(store):
    return RosterRepository(store)


@pytest.fixture
def ledger(store, clock):
    return PaymentLedger(store, clock=clock)


@pytest.fixture
def credentials(store):
    return CredentialRepository(store)


@pytest.fixture
def lifecycle(credentials, settings):
    return CredentialLifecycle(CredentialHolder(), credentials, settings, flow_factory=Mock())

