"""
iCalendar export for hangouts.

Builds the VCALENDAR invitation attached to a hangout so it can be added to
any calendar application, either as a downloadable .ics or a data: URL.
"""

from datetime import datetime
from typing import Iterable, Optional
from urllib.parse import quote

from ..domain.errors import CalendarError
from ..domain.models import Friend, Hangout, ensure_utc, now_utc

ICS_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
MAX_LINE_OCTETS = 75
ORGANIZER = "ORGANIZER;CN=ketchupsoon:mailto:no-reply@ketchupsoon.app"


def _ics_date(value: datetime) -> str:
    return ensure_utc(value).strftime(ICS_DATE_FORMAT)


def _escape(text: str) -> str:
    """Escape TEXT values per RFC 5545."""
    return (text or "").replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")


def _param(value: str) -> str:
    """Quote a parameter value; DQUOTE and line breaks are not allowed inside."""
    cleaned = (value or "").replace('"', "'").replace("\r", " ").replace("\n", " ")
    return f'"{cleaned}"'


def _fold(line: str) -> str:
    """Fold a content line into chunks of at most 75 octets, continuations start with a space."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line
    chunks, current, size = [], "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > MAX_LINE_OCTETS:
            chunks.append(current)
            current, size = " ", 1
        current += char
        size += width
    chunks.append(current)
    return "\r\n".join(chunks)


def hangout_to_ics(hangout: Hangout, friends: Iterable[Friend], now: Optional[datetime] = None) -> str:
    """Render a hangout as an iCalendar REQUEST with one attendee per friend email."""
    if hangout.date is None or hangout.end_date is None:
        raise CalendarError("Hangout has no start or end date", code="calendar_missing_dates")

    friends = list(friends)
    names = ", ".join(f.name for f in friends)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//ketchupsoon//Hangout//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{hangout.id}@ketchupsoon.app",
        f"DTSTART:{_ics_date(hangout.date)}",
        f"DTEND:{_ics_date(hangout.end_date)}",
        f"DTSTAMP:{_ics_date(now or now_utc())}",
        ORGANIZER,
        f"SUMMARY:{_escape(hangout.title)}",
        f"DESCRIPTION:{_escape('Hangout with ' + names)}",
    ]
    if hangout.location:
        lines.append(f"LOCATION:{_escape(hangout.location)}")
    for friend in friends:
        if friend.email:
            lines.append(
                "ATTENDEE;CUTYPE=INDIVIDUAL;ROLE=REQ-PARTICIPANT;PARTSTAT=NEEDS-ACTION;"
                f"RSVP=TRUE;CN={_param(friend.name)}:mailto:{friend.email}"
            )
    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return "\r\n".join(_fold(line) for line in lines) + "\r\n"


def hangout_calendar_data_url(hangout: Hangout, friends: Iterable[Friend], now: Optional[datetime] = None) -> str:
    content = hangout_to_ics(hangout, friends, now)
    return "data:text/calendar;charset=utf8," + quote(content, safe="")
