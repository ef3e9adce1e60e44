"""Builds the object graph once per process."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .calendar_client import CalendarClient
from .config import Settings
from .document_store import DocumentStore, build_store
from .documents import CredentialRepository, PaymentLedger, RosterRepository
from .google_auth import CredentialHolder, CredentialLifecycle
from .google_factory import GoogleServiceFactory
from .lessons import LessonReconciler


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    roster: RosterRepository
    ledger: PaymentLedger
    credentials: CredentialRepository
    holder: CredentialHolder
    lifecycle: CredentialLifecycle
    calendar: CalendarClient
    lessons: LessonReconciler


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
) -> Services:
    settings = settings or Settings.from_env()
    store = store or build_store(settings)

    roster = RosterRepository(store)
    ledger = PaymentLedger(store)
    credentials = CredentialRepository(store)
    holder = CredentialHolder()
    lifecycle = CredentialLifecycle(holder, credentials, settings)
    calendar = CalendarClient(
        GoogleServiceFactory(lifecycle),
        calendar_id=settings.calendar_id,
        local_tz=settings.tz,
    )
    return Services(
        settings=settings,
        store=store,
        roster=roster,
        ledger=ledger,
        credentials=credentials,
        holder=holder,
        lifecycle=lifecycle,
        calendar=calendar,
        lessons=LessonReconciler(lifecycle, calendar, ledger),
    )
