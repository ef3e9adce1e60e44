"""
Lessonbook: a tutor's roster, lessons and payments, stored as JSON documents
in a Git repository.

Package structure:
    lessonbook.config           Settings (environment + .env)
    lessonbook.errors           Exception hierarchy
    lessonbook.models           Typed dataclasses (Document, Student, PaymentRecord, ...)
    lessonbook.document_store   DocumentStore: GitHub contents API / in-memory
    lessonbook.documents        RosterRepository, PaymentLedger, CredentialRepository
    lessonbook.google_auth      CredentialHolder, CredentialLifecycle (OAuth2)
    lessonbook.google_factory   GoogleServiceFactory (calendar service)
    lessonbook.calendar_client  CalendarClient
    lessonbook.lessons          LessonReconciler
    lessonbook.container        build_services()
    lessonbook.base             BaseScript for the CLI scripts
"""

__version__ = "0.1.0"
