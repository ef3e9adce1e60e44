"""
Exception hierarchy for Lessonbook.

A document that has never been written is NOT an error: the store returns a
Document whose revision is None and the repositories turn that into defaults.
Everything below propagates to the script boundary unchanged; nothing in the
library retries on its own.
"""
from __future__ import annotations

from typing import Optional


class LessonbookError(Exception):
    """Base class for every error raised by the lessonbook package."""


class ConfigError(LessonbookError):
    """Required configuration is missing or malformed."""


class StoreUnavailable(LessonbookError):
    """The document store could not be read or written (network, permission, bad payload)."""


class RevisionConflict(LessonbookError):
    """A conditional write was rejected because the document moved on since it was read."""

    def __init__(self, name: str, expected_revision: Optional[str]) -> None:
        self.name = name
        self.expected_revision = expected_revision
        if expected_revision is None:
            detail = "it already exists"
        else:
            detail = f"revision {expected_revision} is no longer current"
        super().__init__(
            f"Document '{name}' was changed by another writer ({detail}); "
            "re-read it and try again."
        )


class InvalidInput(LessonbookError, ValueError):
    """Caller-supplied data failed validation before touching the store."""


AUTHORIZE_HINT = "Run scripts/authorize.py to connect Google Calendar."


class NotAuthenticated(LessonbookError):
    """No usable refresh credential is available."""

    def __init__(self, reason: str = "No Google credential available.",
                 authorize_hint: str = AUTHORIZE_HINT) -> None:
        self.authorize_hint = authorize_hint
        super().__init__(f"{reason} {authorize_hint}")


class CalendarUnavailable(LessonbookError):
    """The Calendar API returned an error other than an authorization failure."""
