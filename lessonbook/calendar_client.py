"""
CalendarClient: reads lesson slots from the Google Calendar API v3.

Timed events come back as UTC-aware datetimes; all-day events are anchored
at midnight in the tutor's local time zone.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError
import httplib2

from .errors import CalendarUnavailable, InvalidInput, NotAuthenticated
from .google_factory import GoogleServiceFactory
from .models import LessonEvent

logger = logging.getLogger(__name__)

_DEFAULT_TZ = ZoneInfo("Asia/Jerusalem")


def _parse_event_dt(dt_dict: dict, is_all_day: bool, tz: ZoneInfo) -> datetime:
    """
    Parse a Calendar API 'start' or 'end' dict into a timezone-aware datetime.

    All-day events have a 'date' key; timed events have 'dateTime'.
    """
    if is_all_day:
        d = date.fromisoformat(dt_dict["date"])
        return datetime(d.year, d.month, d.day, tzinfo=tz)
    dt_str = dt_dict.get("dateTime", "").replace("Z", "+00:00")
    return datetime.fromisoformat(dt_str).astimezone(timezone.utc)


class CalendarClient:
    """
    Lists events from one calendar.

    Usage:
        cal = CalendarClient(factory, calendar_id="primary")
        events = cal.get_events(start, end)
    """

    def __init__(
        self,
        factory: GoogleServiceFactory,
        calendar_id: str = "primary",
        local_tz: ZoneInfo = _DEFAULT_TZ,
    ) -> None:
        self._factory = factory
        self.calendar_id = calendar_id
        self.local_tz = local_tz

    def get_events(
        self,
        start: datetime,
        end: datetime,
        max_results: int = 250,
    ) -> list[LessonEvent]:
        """
        Return events within [start, end), in the API's start-time order.

        Both datetimes must be timezone-aware. Recurring events are expanded
        into single instances, and all result pages are followed.
        """
        if start.tzinfo is None or end.tzinfo is None:
            raise InvalidInput("Calendar window bounds must be timezone-aware")

        kwargs: dict = dict(
            calendarId=self.calendar_id,
            timeMin=start.isoformat(),
            timeMax=end.isoformat(),
            maxResults=max_results,
            singleEvents=True,   # expand recurring events
            orderBy="startTime",
        )

        events: list[LessonEvent] = []
        page_token: Optional[str] = None
        try:
            svc = self._factory.calendar
            while True:
                if page_token:
                    kwargs["pageToken"] = page_token
                resp = svc.events().list(**kwargs).execute()
                events.extend(self._parse_event(e) for e in resp.get("items", []))
                page_token = resp.get("nextPageToken")
                if not page_token:
                    break
        except RefreshError as exc:
            self._factory.lifecycle.reject()
            raise NotAuthenticated(f"Google refused the stored credential ({exc}).") from exc
        except HttpError as exc:
            if exc.resp.status == 401:
                self._factory.lifecycle.reject()
                raise NotAuthenticated("Google Calendar rejected the credential.") from exc
            raise CalendarUnavailable(
                f"Calendar API returned {exc.resp.status} listing {self.calendar_id}"
            ) from exc
        except (TransportError, httplib2.HttpLib2Error, OSError) as exc:
            raise CalendarUnavailable(
                f"Could not reach Google Calendar listing {self.calendar_id}: {exc}"
            ) from exc

        logger.debug("Fetched %d event(s) from %s", len(events), self.calendar_id)
        return events

    # ── Internal ──────────────────────────────────────────────────────────────

    def _parse_event(self, raw: dict) -> LessonEvent:
        is_all_day = (
            "date" in raw.get("start", {})
            and "dateTime" not in raw.get("start", {})
        )
        start = _parse_event_dt(raw["start"], is_all_day, self.local_tz)
        end   = _parse_event_dt(raw["end"],   is_all_day, self.local_tz)

        return LessonEvent(
            event_id=raw["id"],
            title=raw.get("summary", "(no title)"),
            start=start,
            end=end,
            description=raw.get("description", ""),
            location=raw.get("location", ""),
            html_link=raw.get("htmlLink", ""),
            is_all_day=is_all_day,
        )
