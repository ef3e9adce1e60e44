"""
Unit tests for the roster, payment ledger and credential repositories.
"""
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from lessonbook.documents import (
    CREDENTIALS_DOCUMENT,
    LEDGER_DOCUMENT,
    ROSTER_DOCUMENT,
    CredentialRepository,
    PaymentLedger,
    RosterRepository,
)
from lessonbook.errors import InvalidInput, RevisionConflict, StoreUnavailable
from lessonbook.models import (
    DEFAULT_PRICE,
    UNPAID_STATUS,
    CredentialRecord,
    PaymentRecord,
    Student,
)


class TestRosterRepository:
    """Roster load/save."""

    def test_empty_store_gives_empty_roster(self, roster):
        assert roster.load() == []

    def test_missing_price_defaults(self, store, roster):
        store.put(ROSTER_DOCUMENT, [
            {"id": "s1", "name": "Dana"},
            {"id": "s2", "name": "Omer", "price": 200},
            {"id": "s3", "name": "Lior", "price": None},
        ], None, "seed")

        students = roster.load()

        assert [s.price for s in students] == [DEFAULT_PRICE, 200, DEFAULT_PRICE]
        assert [s.id for s in students] == ["s1", "s2", "s3"]

    def test_ids_keep_their_stored_type(self, store, roster):
        store.put(ROSTER_DOCUMENT, [{"id": 7, "name": "Dana"}, {"id": "s2", "name": "Omer"}], None, "seed")

        students = roster.load()

        assert [s.id for s in students] == [7, "s2"]
        roster.save(students, store.fetch(ROSTER_DOCUMENT).revision)
        assert store.fetch(ROSTER_DOCUMENT).content[0]["id"] == 7

    @pytest.mark.parametrize("bad_id", [True, 1.5, ["s1"], {"k": "v"}])
    def test_rejects_unusable_id(self, store, roster, bad_id):
        store.put(ROSTER_DOCUMENT, [{"id": bad_id, "name": "Dana"}], None, "seed")

        with pytest.raises(StoreUnavailable, match="string or integer"):
            roster.load()

        with pytest.raises(InvalidInput, match="string or integer"):
            roster.save([{"id": bad_id, "name": "Dana"}], None)

    def test_save_then_load_scenario(self, roster):
        students, revision = roster.load_with_revision()
        assert students == []

        roster.save([{"id": "s1", "name": "Dana"}], revision)

        assert roster.load() == [Student(id="s1", name="Dana", price=170)]

    def test_save_accepts_student_objects(self, roster):
        roster.save([Student(id="s1", name="Dana", price=150)], None)

        assert roster.load()[0].price == 150

    @pytest.mark.parametrize("bad", [None, "s1", {"id": "s1"}, 42])
    def test_save_rejects_non_sequence_before_store(self, bad):
        store = Mock()
        with pytest.raises(InvalidInput):
            RosterRepository(store).save(bad, None)

        store.put.assert_not_called()
        store.fetch.assert_not_called()

    def test_save_rejects_malformed_student(self, roster, store):
        with pytest.raises(InvalidInput):
            roster.save([{"name": "no id"}], None)

        assert not store.fetch(ROSTER_DOCUMENT).exists

    def test_save_with_stale_revision_conflicts(self, roster):
        _, first = roster.load_with_revision()
        roster.save([{"id": "s1", "name": "Dana"}], first)

        with pytest.raises(RevisionConflict):
            roster.save([{"id": "s2", "name": "Omer"}], first)

        assert [s.id for s in roster.load()] == ["s1"]

    def test_stored_roster_wrong_shape(self, store, roster):
        store.put(ROSTER_DOCUMENT, {"s1": "Dana"}, None, "seed")

        with pytest.raises(StoreUnavailable):
            roster.load()


class TestPaymentLedger:
    """Payment ledger read-modify-write."""

    def test_empty_ledger(self, ledger):
        assert ledger.load() == {}
        assert ledger.status_for("evt1") == UNPAID_STATUS

    def test_record_payment(self, ledger, store):
        record = ledger.record_payment("evt1", "paid")

        assert record == PaymentRecord(
            status="paid", updated_at=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
        )
        assert ledger.status_for("evt1") == "paid"
        assert store.fetch(LEDGER_DOCUMENT).content == {
            "evt1": {"status": "paid", "updated": "2026-03-01T09:30:00+00:00"}
        }

    def test_record_payment_overwrites(self, ledger):
        ledger.record_payment("evt1", "paid")
        ledger.record_payment("evt1", "refunded")

        assert ledger.load()["evt1"].status == "refunded"

    def test_record_keeps_other_entries(self, ledger, store):
        store.put(LEDGER_DOCUMENT, {"old": "paid", "evt0": {"status": "bit", "note": "x"}}, None, "seed")

        ledger.record_payment("evt1", "paid")

        content = store.fetch(LEDGER_DOCUMENT).content
        assert content["old"] == "paid"
        assert content["evt0"] == {"status": "bit", "note": "x"}
        assert ledger.load()["old"] == PaymentRecord(status="paid")

    @pytest.mark.parametrize("lesson_id,status", [
        ("", "paid"),
        ("   ", "paid"),
        (None, "paid"),
        ("evt1", ""),
        ("evt1", None),
    ])
    def test_record_payment_requires_fields(self, lesson_id, status):
        store = Mock()

        with pytest.raises(InvalidInput):
            PaymentLedger(store).record_payment(lesson_id, status)

        store.fetch.assert_not_called()
        store.put.assert_not_called()

    def test_concurrent_writers(self, ledger, store):
        """Two writers read the same revision; the second gets a conflict, then retries."""
        initial = store.fetch(LEDGER_DOCUMENT)

        with patch.object(store, "fetch", side_effect=[initial, initial]):
            ledger.record_payment("evt1", "paid")
            with pytest.raises(RevisionConflict):
                ledger.record_payment("evt2", "paid")

        assert set(ledger.load()) == {"evt1"}

        ledger.record_payment("evt2", "paid")

        final = ledger.load()
        assert final["evt1"].status == "paid"
        assert final["evt2"].status == "paid"

    def test_ledger_wrong_shape(self, ledger, store):
        store.put(LEDGER_DOCUMENT, ["paid"], None, "seed")

        with pytest.raises(StoreUnavailable):
            ledger.load()

    def test_store_failure_propagates(self, clock):
        store = Mock()
        store.fetch.side_effect = StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            PaymentLedger(store, clock=clock).record_payment("evt1", "paid")


class TestCredentialRepository:
    """Credential record persistence."""

    def test_absent(self, credentials):
        assert credentials.load() is None

    def test_round_trip(self, credentials, store):
        record = CredentialRecord(
            refresh_token="1//refresh-token-value",
            scope="https://www.googleapis.com/auth/calendar.readonly",
            expiry_hint=1767225600000,
        )

        credentials.save(record)

        assert credentials.load() == record
        assert store.fetch(CREDENTIALS_DOCUMENT).content == {
            "refresh_token": "1//refresh-token-value",
            "scope": "https://www.googleapis.com/auth/calendar.readonly",
            "token_type": "Bearer",
            "expiry_date": 1767225600000,
        }

    def test_save_replaces_existing(self, credentials):
        credentials.save(CredentialRecord(refresh_token="first-token-1234"))
        credentials.save(CredentialRecord(refresh_token="second-token-5678"))

        assert credentials.load().refresh_token == "second-token-5678"

    @pytest.mark.parametrize("token", ["", "   "])
    def test_save_rejects_empty_token(self, token):
        store = Mock()

        with pytest.raises(InvalidInput):
            CredentialRepository(store).save(CredentialRecord(refresh_token=token))

        store.put.assert_not_called()

    def test_stored_record_without_token_ignored(self, credentials, store):
        store.put(CREDENTIALS_DOCUMENT, {"scope": "x"}, None, "seed")

        assert credentials.load() is None

    @pytest.mark.parametrize("content", [["1//refresh-token"], "1//refresh-token", 42])
    def test_malformed_document_is_a_store_failure(self, credentials, store, content):
        store.put(CREDENTIALS_DOCUMENT, content, None, "seed")

        with pytest.raises(StoreUnavailable, match="expected an object"):
            credentials.load()
