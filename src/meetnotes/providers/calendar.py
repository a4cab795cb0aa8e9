from __future__ import annotations

from typing import Any, Protocol

from ..config import AppConfig, CALENDAR_PROVIDERS
from ..errors import ConfigError
from ..models import CalendarEvent
from .session import GoogleSession, MicrosoftSession, SessionProvider, google_session, microsoft_session


GOOGLE_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
GRAPH_URL = "https://graph.microsoft.com/v1.0"


class CalendarProvider(Protocol):
    def create_event(self, event: CalendarEvent) -> str:
        """Create the event; return a link (or id) to it."""
        ...

    def list_events(self, start: str, end: str) -> list[CalendarEvent]:
        ...

    def __enter__(self) -> CalendarProvider:
        ...

    def __exit__(self, *exc) -> None:
        ...


class GoogleCalendar(SessionProvider):
    def __init__(self, session: GoogleSession, *, time_zone: str = "UTC"):
        self.session = session
        self.time_zone = time_zone

    def create_event(self, event: CalendarEvent) -> str:
        body: dict[str, Any] = {
            "summary": event.title,
            "description": event.description,
            "start": {"dateTime": event.start_time, "timeZone": self.time_zone},
            "end": {"dateTime": event.end_time, "timeZone": self.time_zone},
        }
        if event.attendees:
            body["attendees"] = [{"email": a} for a in event.attendees]
        if event.location:
            body["location"] = event.location

        data = self.session.request("POST", GOOGLE_EVENTS_URL, json=body)
        return data.get("htmlLink") or data.get("id") or "Event created"

    def list_events(self, start: str, end: str) -> list[CalendarEvent]:
        data = self.session.request(
            "GET",
            GOOGLE_EVENTS_URL,
            params={"timeMin": start, "timeMax": end, "singleEvents": "true", "orderBy": "startTime"},
        )
        out = []
        for item in data.get("items") or []:
            s = item.get("start") or {}
            e = item.get("end") or {}
            out.append(
                CalendarEvent(
                    title=item.get("summary") or "Untitled",
                    description=item.get("description") or None,
                    start_time=s.get("dateTime") or s.get("date") or "",
                    end_time=e.get("dateTime") or e.get("date") or "",
                    attendees=[a["email"] for a in (item.get("attendees") or []) if a.get("email")],
                    location=item.get("location") or None,
                )
            )
        return out


class OutlookCalendar(SessionProvider):
    def __init__(self, session: MicrosoftSession, *, time_zone: str = "UTC"):
        self.session = session
        self.time_zone = time_zone

    def create_event(self, event: CalendarEvent) -> str:
        body: dict[str, Any] = {
            "subject": event.title,
            "body": {"contentType": "Text", "content": event.description or ""},
            "start": {"dateTime": event.start_time, "timeZone": self.time_zone},
            "end": {"dateTime": event.end_time, "timeZone": self.time_zone},
        }
        if event.location:
            body["location"] = {"displayName": event.location}
        if event.attendees:
            body["attendees"] = [{"emailAddress": {"address": a}, "type": "required"} for a in event.attendees]

        data = self.session.request("POST", f"{GRAPH_URL}/me/events", json=body)
        return data.get("webLink") or data.get("id") or "Event created"

    def list_events(self, start: str, end: str) -> list[CalendarEvent]:
        data = self.session.request(
            "GET",
            f"{GRAPH_URL}/me/calendarview",
            params={"startDateTime": start, "endDateTime": end, "$orderby": "start/dateTime"},
        )
        out = []
        for item in data.get("value") or []:
            attendees = [
                (a.get("emailAddress") or {}).get("address") for a in (item.get("attendees") or [])
            ]
            out.append(
                CalendarEvent(
                    title=item.get("subject") or "Untitled",
                    description=(item.get("body") or {}).get("content"),
                    start_time=(item.get("start") or {}).get("dateTime") or "",
                    end_time=(item.get("end") or {}).get("dateTime") or "",
                    attendees=[a for a in attendees if a],
                    location=(item.get("location") or {}).get("displayName") or None,
                )
            )
        return out


def get_calendar(config: AppConfig, provider: str | None = None, **session_kwargs: Any) -> CalendarProvider:
    name = provider or config.default_calendar
    if name == "google":
        return GoogleCalendar(google_session(config, **session_kwargs), time_zone=config.time_zone)
    if name == "outlook":
        return OutlookCalendar(microsoft_session(config, **session_kwargs), time_zone=config.time_zone)
    raise ConfigError(f"Unknown calendar provider {name!r}; expected one of {', '.join(CALENDAR_PROVIDERS)}")
