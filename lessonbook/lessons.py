"""
Lesson reconciliation: calendar events joined with the payment ledger.

Both inputs are re-read on every call. Payments are marked out-of-band, so
the view must always reflect the latest committed ledger.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .documents import PaymentLedger
from .errors import InvalidInput
from .google_auth import CredentialLifecycle
from .models import LessonEvent, LessonView, UNPAID_STATUS

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    def get_events(self, start: datetime, end: datetime) -> list[LessonEvent]: ...


class LessonReconciler:
    """
    Produces the merged lesson view for a time window.

    Usage:
        reconciler = LessonReconciler(lifecycle, CalendarClient(factory), PaymentLedger(store))
        for lesson in reconciler.list_next(days=14):
            print(lesson.lesson_key, lesson.payment_status)
    """

    def __init__(
        self,
        lifecycle: CredentialLifecycle,
        calendar: EventSource,
        ledger: PaymentLedger,
    ) -> None:
        self._lifecycle = lifecycle
        self._calendar = calendar
        self._ledger = ledger

    def list_upcoming(self, window_start: datetime, window_end: datetime) -> list[LessonView]:
        """
        Return lessons in [window_start, window_end), in calendar order.

        Lessons without a ledger entry report UNPAID_STATUS. Raises
        NotAuthenticated before touching the calendar or the ledger when no
        credential is available.
        """
        if window_start.tzinfo is None or window_end.tzinfo is None:
            raise InvalidInput("Lesson window bounds must be timezone-aware")
        if window_start >= window_end:
            raise InvalidInput("Lesson window must end after it starts")

        self._lifecycle.ensure_authenticated()
        events = self._calendar.get_events(window_start, window_end)
        ledger = self._ledger.load()

        lessons: list[LessonView] = []
        for event in events:
            record = ledger.get(event.event_id)
            if record is None:
                lessons.append(LessonView(event=event, payment_status=UNPAID_STATUS))
            else:
                lessons.append(LessonView(
                    event=event,
                    payment_status=record.status,
                    payment_updated_at=record.updated_at,
                ))

        logger.info(
            "Reconciled %d lesson(s) against %d payment record(s)",
            len(lessons), len(ledger),
        )
        return lessons

    def list_next(self, days: int) -> list[LessonView]:
        """Lessons from now through the next N days."""
        if days <= 0:
            raise InvalidInput(f"days must be positive, got {days}")
        now = datetime.now(timezone.utc)
        return self.list_upcoming(now, now + timedelta(days=days))
