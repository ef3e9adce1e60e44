"""
Typed repositories for the three documents Lessonbook keeps in the store.

    RosterRepository      "students":    ordered list of Student
    PaymentLedger         "payments":    lesson id -> PaymentRecord
    CredentialRepository  "credentials": CredentialRecord

This is the only layer that converts between raw JSON and models, and the
only place defaults are filled in (missing price, missing document).
RevisionConflict and StoreUnavailable from the store are never caught here.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from .document_store import DocumentStore
from .errors import InvalidInput, StoreUnavailable
from .models import CredentialRecord, PaymentRecord, Student, UNPAID_STATUS

logger = logging.getLogger(__name__)

ROSTER_DOCUMENT = "students"
LEDGER_DOCUMENT = "payments"
CREDENTIALS_DOCUMENT = "credentials"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Roster ────────────────────────────────────────────────────────────────────

class RosterRepository:
    """
    Load and save the student roster.

    Usage:
        roster = RosterRepository(store)
        students, revision = roster.load_with_revision()
        students.append(Student(id="s9", name="Noa"))
        roster.save(students, revision)
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def load(self) -> list[Student]:
        """Return the roster in stored order; empty if it was never saved."""
        return self.load_with_revision()[0]

    def load_with_revision(self) -> tuple[list[Student], Optional[str]]:
        doc = self._store.fetch(ROSTER_DOCUMENT)
        if doc.content is None:
            return [], doc.revision
        if not isinstance(doc.content, list):
            raise StoreUnavailable(
                f"Stored roster is a {type(doc.content).__name__}, expected a list"
            )
        try:
            students = [Student.from_dict(item) for item in doc.content]
        except InvalidInput as exc:
            raise StoreUnavailable(f"Stored roster is malformed: {exc}") from exc
        return students, doc.revision

    def save(
        self,
        students: Sequence[Union[Student, Mapping[str, Any]]],
        expected_revision: Optional[str],
    ) -> str:
        """
        Replace the roster with students; return the new revision.

        Items may be Student objects or {id, name, price} mappings. Input is
        validated in full before the store is contacted.
        """
        if isinstance(students, (str, bytes, Mapping)) or not isinstance(students, Sequence):
            raise InvalidInput(
                f"Students must be a list, got {type(students).__name__}"
            )
        normalised = [
            s if isinstance(s, Student) else Student.from_dict(s) for s in students
        ]
        revision = self._store.put(
            ROSTER_DOCUMENT,
            [s.to_dict() for s in normalised],
            expected_revision,
            "Update students",
        )
        logger.info("Saved roster with %d student(s)", len(normalised))
        return revision


# ── Payments ──────────────────────────────────────────────────────────────────

class PaymentLedger:
    """
    Payment status per lesson, keyed by the calendar event id.

    record_payment() is a single read-modify-write against the current
    revision. When two writers race, the later one gets RevisionConflict;
    calling record_payment() again re-reads, so the other writer's entry is
    kept.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    def load(self) -> dict[str, PaymentRecord]:
        """Return lesson id -> PaymentRecord; empty if nothing was ever recorded."""
        return self.load_with_revision()[0]

    def load_with_revision(self) -> tuple[dict[str, PaymentRecord], Optional[str]]:
        raw, revision = self._fetch_raw()
        return (
            {str(key): PaymentRecord.from_dict(value) for key, value in raw.items()},
            revision,
        )

    def status_for(self, lesson_id: str) -> str:
        record = self.load().get(lesson_id)
        return record.status if record else UNPAID_STATUS

    def record_payment(self, lesson_id: str, status: str) -> PaymentRecord:
        """Set (or overwrite) the payment status for one lesson."""
        if not isinstance(lesson_id, str) or not lesson_id.strip():
            raise InvalidInput("A lesson key is required to record a payment")
        if not isinstance(status, str) or not status.strip():
            raise InvalidInput("A payment status is required")

        raw, revision = self._fetch_raw()
        record = PaymentRecord(status=status.strip(), updated_at=self._clock())
        raw[lesson_id] = record.to_dict()
        self._store.put(
            LEDGER_DOCUMENT,
            raw,
            revision,
            f"Record payment for {lesson_id}: {record.status}",
        )
        logger.info("Recorded payment %s for lesson %s", record.status, lesson_id)
        return record

    def _fetch_raw(self) -> tuple[dict[str, Any], Optional[str]]:
        # Unknown entries are written back untouched by record_payment().
        doc = self._store.fetch(LEDGER_DOCUMENT)
        if doc.content is None:
            return {}, doc.revision
        if not isinstance(doc.content, dict):
            raise StoreUnavailable(
                f"Stored payment ledger is a {type(doc.content).__name__}, expected an object"
            )
        return doc.content, doc.revision


# ── Credentials ───────────────────────────────────────────────────────────────

class CredentialRepository:
    """Persist the Google refresh credential as a single document."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def load(self) -> Optional[CredentialRecord]:
        doc = self._store.fetch(CREDENTIALS_DOCUMENT)
        if doc.content is None:
            return None
        if not isinstance(doc.content, dict):
            raise StoreUnavailable(
                f"Credential document holds {type(doc.content).__name__}, expected an object"
            )
        record = CredentialRecord.from_dict(doc.content)
        if not record.refresh_token:
            logger.warning("Stored credential has no refresh token; ignoring it")
            return None
        return record

    def save(self, record: CredentialRecord) -> str:
        """Replace the stored credential. A record without a refresh token is rejected."""
        if not record.refresh_token or not record.refresh_token.strip():
            raise InvalidInput("Refusing to store a credential without a refresh token")
        current = self._store.fetch(CREDENTIALS_DOCUMENT)
        revision = self._store.put(
            CREDENTIALS_DOCUMENT,
            record.to_dict(),
            current.revision,
            "Update credentials",
        )
        logger.info("Stored Google credential %s", record.masked_token)
        return revision
