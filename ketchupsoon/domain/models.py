"""
Domain models for friends, hangouts, tags, events and reminders.

These models represent the core business entities independent of persistence concerns.
Timestamps are timezone-aware UTC datetimes; repositories store them as ISO strings.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid


DEFAULT_HANGOUT_DURATION = 3600  # seconds


def now_utc() -> datetime:
    """Timezone-aware UTC now for default timestamps (avoid datetime.utcnow deprecation)."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings (including a trailing 'Z') or pass datetimes through."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip().replace('Z', '+00:00')
        return ensure_utc(datetime.fromisoformat(text))
    raise ValueError(f"Unsupported datetime value: {value!r}")


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


class CatchUpFrequency(Enum):
    """How often the user wants to catch up with a friend."""
    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "Every 2 weeks"
    MONTHLY = "Monthly"
    BIMONTHLY = "Every 2 months"
    QUARTERLY = "Every 3 months"
    SEMIANNUALLY = "Every 6 months"
    YEARLY = "Yearly"

    @property
    def days(self) -> int:
        return _FREQUENCY_DAYS[self]

    @property
    def display_text(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: Any) -> Optional['CatchUpFrequency']:
        """Accept an enum member, its name ("weekly") or its label ("Every 2 weeks")."""
        if raw is None or raw == '':
            return None
        if isinstance(raw, cls):
            return raw
        candidate = str(raw).strip().lower()
        for member in cls:
            if candidate in (member.name.lower(), member.value.lower()):
                return member
        raise ValueError(f"Unknown catch-up frequency: {raw}")


_FREQUENCY_DAYS = {
    CatchUpFrequency.DAILY: 1,
    CatchUpFrequency.WEEKLY: 7,
    CatchUpFrequency.BIWEEKLY: 14,
    CatchUpFrequency.MONTHLY: 30,
    CatchUpFrequency.BIMONTHLY: 60,
    CatchUpFrequency.QUARTERLY: 90,
    CatchUpFrequency.SEMIANNUALLY: 180,
    CatchUpFrequency.YEARLY: 365,
}


class CalendarVisibilityPreference(Enum):
    NONE = "none"
    BUSY_TIME = "busy_time"
    FULL = "full"


class RSVPStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MAYBE = "maybe"


class MissedHangoutOutcome(Enum):
    """What to do with a hangout that did not happen."""
    RESCHEDULE = "reschedule"
    TO_CONNECT = "to_connect"  # put the friends on the wishlist, drop the hangout
    HOLD_OFF = "hold_off"      # clear the wishlist flag, drop the hangout


class ReminderKind(Enum):
    CATCH_UP = "catch_up"
    HANGOUT = "hangout"


@dataclass
class Tag:
    """Label attached to friends (many-to-many)."""
    id: Optional[str] = None
    name: str = ""
    is_predefined: bool = False
    friend_count: int = 0

    PREDEFINED_TAGS = ("local", "longdistance", "work", "family", "school", "neighbors")

    def __post_init__(self):
        self.name = self.normalize_name(self.name)

    @staticmethod
    def normalize_name(name: Optional[str]) -> str:
        return (name or "").strip().lower()

    @classmethod
    def create_predefined(cls, name: str) -> 'Tag':
        return cls(id=new_id(), name=name, is_predefined=True)


@dataclass
class Friend:
    """A person the user wants to keep in touch with."""
    id: Optional[str] = None
    name: str = ""
    last_seen: Optional[datetime] = None
    location: Optional[str] = None
    contact_identifier: Optional[str] = None
    needs_to_connect_flag: bool = False  # wishlist
    phone_number: Optional[str] = None
    email: Optional[str] = None
    additional_emails: List[str] = field(default_factory=list)
    catch_up_frequency: Optional[CatchUpFrequency] = None
    calendar_integration_enabled: bool = False
    calendar_visibility_preference: CalendarVisibilityPreference = CalendarVisibilityPreference.NONE
    tags: List[str] = field(default_factory=list)

    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @property
    def initials(self) -> str:
        return "".join(part[0] for part in self.name.split()[:2] if part)

    @property
    def all_emails(self) -> List[str]:
        """Emails stored locally; contact-linked friends are managed by their contact card."""
        if self.contact_identifier:
            return []
        primary = [self.email] if self.email else []
        return primary + list(self.additional_emails)

    @property
    def next_connect_date(self) -> Optional[datetime]:
        if self.catch_up_frequency is None:
            return None
        base = self.last_seen or self.created_at
        return ensure_utc(base) + timedelta(days=self.catch_up_frequency.days)

    def update_last_seen(self, date: Optional[datetime] = None) -> None:
        self.last_seen = ensure_utc(date) if date else now_utc()
        self.updated_at = now_utc()

    def last_seen_text(self, now: Optional[datetime] = None) -> str:
        if self.last_seen is None:
            return "Never"
        now = ensure_utc(now) if now else now_utc()
        days = (now.date() - ensure_utc(self.last_seen).date()).days
        if days < 0:
            return _plural(-days, "day", prefix="in ")
        if days == 0:
            return "today"
        if days == 1:
            return "yesterday"
        if days < 7:
            return _plural(days, "day", suffix=" ago")
        if days < 30:
            return _plural(days // 7, "week", suffix=" ago")
        if days < 365:
            return _plural(days // 30, "month", suffix=" ago")
        return _plural(days // 365, "year", suffix=" ago")


def _plural(count: int, unit: str, prefix: str = "", suffix: str = "") -> str:
    label = unit if count == 1 else f"{unit}s"
    return f"{prefix}{count} {label}{suffix}"


@dataclass
class Hangout:
    """A scheduled or completed meetup with one or more friends."""
    id: Optional[str] = None
    date: datetime = field(default_factory=now_utc)
    end_date: Optional[datetime] = None
    title: str = ""
    location: str = ""
    is_scheduled: bool = True
    is_completed: bool = False
    needs_reschedule: bool = False
    original_hangout_id: Optional[str] = None
    event_link: Optional[str] = None
    event_token: Optional[str] = None
    google_event_id: Optional[str] = None
    google_event_link: Optional[str] = None
    attendee_emails: List[str] = field(default_factory=list)
    friend_ids: List[str] = field(default_factory=list)
    duration: Optional[int] = None  # seconds; derived from end_date when omitted

    created_at: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        self.date = ensure_utc(self.date)
        if self.end_date is None:
            seconds = self.duration if self.duration is not None else DEFAULT_HANGOUT_DURATION
            self.end_date = self.date + timedelta(seconds=seconds)
        else:
            self.end_date = ensure_utc(self.end_date)
        self.duration = int((self.end_date - self.date).total_seconds())

    @property
    def is_rescheduled(self) -> bool:
        return self.original_hangout_id is not None

    def create_rescheduled(self, new_date: datetime, duration: int = DEFAULT_HANGOUT_DURATION) -> 'Hangout':
        """Build the follow-up hangout that replaces this one at a new time."""
        return Hangout(
            id=new_id(),
            date=new_date,
            duration=duration,
            title=self.title,
            location=self.location,
            is_scheduled=True,
            friend_ids=list(self.friend_ids),
            attendee_emails=list(self.attendee_emails),
            original_hangout_id=self.id,
        )


@dataclass
class EventAttendee:
    id: Optional[str] = None
    event_id: str = ""
    name: str = ""
    email: Optional[str] = None
    phone_number: Optional[str] = None
    rsvp_status: RSVPStatus = RSVPStatus.PENDING


@dataclass
class Event:
    """Shareable event record with attendees and their RSVP state."""
    id: Optional[str] = None
    title: str = ""
    date: datetime = field(default_factory=now_utc)
    location: str = ""
    description: str = ""
    duration: int = 60  # minutes
    creator_id: str = ""
    is_private: bool = False
    google_calendar_id: Optional[str] = None
    google_calendar_link: Optional[str] = None
    attendees: List[EventAttendee] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_utc)

    def rsvp_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in RSVPStatus}
        for attendee in self.attendees:
            counts[attendee.rsvp_status.value] += 1
        return counts


@dataclass
class Reminder:
    """A pending local notification."""
    id: str = ""
    kind: ReminderKind = ReminderKind.CATCH_UP
    friend_id: str = ""
    title: str = ""
    body: str = ""
    fire_at: datetime = field(default_factory=now_utc)
    created_at: datetime = field(default_factory=now_utc)
