"""
Typed data models for documents, students, payments, credentials and lessons.

All classes are plain dataclasses. Conversion to and from the persisted JSON
shapes happens here (from_dict / to_dict) and is only called by the
repositories in lessonbook.documents, so everything above that layer sees
fully populated records.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from .errors import InvalidInput

DEFAULT_PRICE = 170
UNPAID_STATUS = "not yet paid"


# ── Store ─────────────────────────────────────────────────────────────────────

@dataclass
class Document:
    """A named JSON value plus the revision the store assigned on its last write."""

    name: str
    content: Any = None
    revision: Optional[str] = None      # None: never written

    @property
    def exists(self) -> bool:
        return self.revision is not None


# ── Roster ────────────────────────────────────────────────────────────────────

@dataclass
class Student:
    """One entry in the tutor's roster."""

    id: Union[str, int]                 # kept as stored
    name: str
    price: float = DEFAULT_PRICE

    @classmethod
    def from_dict(cls, raw: Any) -> "Student":
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"Student must be an object, got {type(raw).__name__}")
        student_id = raw.get("id")
        if student_id in (None, ""):
            raise InvalidInput("Student is missing an id")
        if isinstance(student_id, bool) or not isinstance(student_id, (str, int)):
            raise InvalidInput(f"Student id must be a string or integer: {student_id!r}")
        price = raw.get("price")
        if price is None:
            price = DEFAULT_PRICE
        elif isinstance(price, bool) or not isinstance(price, (int, float)):
            raise InvalidInput(f"Student {student_id} has a non-numeric price: {price!r}")
        return cls(id=student_id, name=str(raw.get("name") or ""), price=price)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price}


# ── Payments ──────────────────────────────────────────────────────────────────

@dataclass
class PaymentRecord:
    """Payment status for one lesson. Status is a free-form label."""

    status: str
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "PaymentRecord":
        # Older ledgers stored the bare status string
        if isinstance(raw, str):
            return cls(status=raw or UNPAID_STATUS)
        if not isinstance(raw, Mapping):
            return cls(status=UNPAID_STATUS)
        return cls(
            status=str(raw.get("status") or UNPAID_STATUS),
            updated_at=_parse_ts(raw.get("updated")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "updated": self.updated_at.isoformat() if self.updated_at else None,
        }


def _parse_ts(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


# ── Credentials ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CredentialRecord:
    """
    Long-lived Google refresh credential.

    Replaced as a whole when the identity provider issues a new refresh
    token; never edited field by field (hence frozen).
    """

    refresh_token: str
    scope: str = ""
    token_type: str = "Bearer"
    expiry_hint: Optional[int] = None   # access-token expiry, epoch ms

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CredentialRecord":
        expiry = raw.get("expiry_date")
        return cls(
            refresh_token=str(raw.get("refresh_token") or ""),
            scope=str(raw.get("scope") or ""),
            token_type=str(raw.get("token_type") or "Bearer"),
            expiry_hint=int(expiry) if isinstance(expiry, (int, float)) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "refresh_token": self.refresh_token,
            "scope": self.scope,
            "token_type": self.token_type,
            "expiry_date": self.expiry_hint,
        }

    @property
    def masked_token(self) -> str:
        return f"…{self.refresh_token[-4:]}" if len(self.refresh_token) > 8 else "****"


# ── Lessons ───────────────────────────────────────────────────────────────────

@dataclass
class LessonEvent:
    """A lesson slot as returned by the calendar."""

    event_id: str
    title: str
    start: datetime
    end: datetime
    description: str = ""
    location: str = ""
    html_link: str = ""
    is_all_day: bool = False

    @property
    def duration_minutes(self) -> int:
        return max(0, int((self.end - self.start).total_seconds() / 60))


@dataclass
class LessonView:
    """A calendar event joined with its payment record. Derived, never persisted."""

    event: LessonEvent
    payment_status: str = UNPAID_STATUS
    payment_updated_at: Optional[datetime] = None

    @property
    def lesson_key(self) -> str:
        """Identifier to pass back when recording a payment for this lesson."""
        return self.event.event_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "lessonKey":        self.lesson_key,
            "id":               self.event.event_id,
            "summary":          self.event.title,
            "start":            self.event.start.isoformat(),
            "end":              self.event.end.isoformat(),
            "duration_minutes": self.event.duration_minutes,
            "location":         self.event.location,
            "is_all_day":       self.event.is_all_day,
            "link":             self.event.html_link,
            "paymentStatus":    self.payment_status,
            "paymentUpdated": (
                self.payment_updated_at.isoformat() if self.payment_updated_at else None
            ),
        }

