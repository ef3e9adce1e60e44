"""
Unit tests for CalendarClient with a mocked Calendar service.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import httplib2
import pytest
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from lessonbook.calendar_client import CalendarClient
from lessonbook.errors import CalendarUnavailable, InvalidInput, NotAuthenticated

TZ = ZoneInfo("Asia/Jerusalem")
START = datetime(2026, 3, 1, tzinfo=timezone.utc)
END = START + timedelta(days=7)


def _http_error(status):
    return HttpError(Mock(status=status, reason="error"), b'{"error": {"message": "boom"}}')


@pytest.fixture
def factory():
    factory = Mock()
    factory.calendar.events.return_value.list.return_value.execute.return_value = {"items": []}
    return factory


@pytest.fixture
def client(factory):
    return CalendarClient(factory, calendar_id="tutor@example.com", local_tz=TZ)


def _list(factory):
    return factory.calendar.events.return_value.list


class TestGetEvents:
    """Listing and parsing events."""

    def test_query_parameters(self, client, factory):
        client.get_events(START, END)

        kwargs = _list(factory).call_args.kwargs
        assert kwargs["calendarId"] == "tutor@example.com"
        assert kwargs["timeMin"] == "2026-03-01T00:00:00+00:00"
        assert kwargs["timeMax"] == "2026-03-08T00:00:00+00:00"
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"

    def test_parses_timed_and_all_day_events(self, client, factory):
        _list(factory).return_value.execute.return_value = {"items": [
            {
                "id": "evt1",
                "summary": "Math with Dana",
                "start": {"dateTime": "2026-03-02T16:00:00+02:00"},
                "end": {"dateTime": "2026-03-02T17:00:00+02:00"},
                "htmlLink": "https://calendar.google.com/event?eid=1",
            },
            {
                "id": "evt2",
                "start": {"date": "2026-03-03"},
                "end": {"date": "2026-03-04"},
            },
        ]}

        first, second = client.get_events(START, END)

        assert first.event_id == "evt1"
        assert first.title == "Math with Dana"
        assert first.start == datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)
        assert first.duration_minutes == 60
        assert not first.is_all_day
        assert second.title == "(no title)"
        assert second.is_all_day
        assert second.start == datetime(2026, 3, 3, tzinfo=TZ)

    def test_preserves_api_order_across_pages(self, client, factory):
        def event(eid, hour):
            return {
                "id": eid,
                "start": {"dateTime": f"2026-03-02T{hour:02d}:00:00Z"},
                "end": {"dateTime": f"2026-03-02T{hour:02d}:45:00Z"},
            }

        _list(factory).return_value.execute.side_effect = [
            {"items": [event("a", 8), event("b", 9)], "nextPageToken": "p2"},
            {"items": [event("c", 10)]},
        ]

        events = client.get_events(START, END)

        assert [e.event_id for e in events] == ["a", "b", "c"]
        assert _list(factory).call_args.kwargs["pageToken"] == "p2"

    def test_naive_window_rejected(self, client, factory):
        with pytest.raises(InvalidInput):
            client.get_events(datetime(2026, 3, 1), END)

        _list(factory).assert_not_called()


class TestErrors:
    """Error mapping."""

    def test_refresh_error_is_not_authenticated(self, client, factory):
        _list(factory).return_value.execute.side_effect = RefreshError("invalid_grant")

        with pytest.raises(NotAuthenticated):
            client.get_events(START, END)

        factory.lifecycle.reject.assert_called_once()

    def test_401_is_not_authenticated(self, client, factory):
        _list(factory).return_value.execute.side_effect = _http_error(401)

        with pytest.raises(NotAuthenticated):
            client.get_events(START, END)

        factory.lifecycle.reject.assert_called_once()

    def test_other_http_error(self, client, factory):
        _list(factory).return_value.execute.side_effect = _http_error(503)

        with pytest.raises(CalendarUnavailable, match="503"):
            client.get_events(START, END)

        factory.lifecycle.reject.assert_not_called()

    @pytest.mark.parametrize(
        "exc",
        [
            TransportError("Failed to resolve oauth2.googleapis.com"),
            httplib2.ServerNotFoundError("Unable to find the server at www.googleapis.com"),
            TimeoutError("timed out"),
            ConnectionResetError(104, "Connection reset by peer"),
        ],
    )
    def test_network_failure_is_calendar_unavailable(self, client, factory, exc):
        _list(factory).return_value.execute.side_effect = exc

        with pytest.raises(CalendarUnavailable, match="Could not reach Google Calendar") as info:
            client.get_events(START, END)

        assert info.value.__cause__ is exc
        factory.lifecycle.reject.assert_not_called()
