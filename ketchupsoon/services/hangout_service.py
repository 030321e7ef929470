"""
Hangout Service

Scheduling, completion and rescheduling of hangouts, and the "ketchups"
board that groups them into upcoming, awaiting confirmation and completed,
alongside the friends who are due a check-in.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from ..domain.errors import HangoutError
from ..domain.models import (
    DEFAULT_HANGOUT_DURATION, Friend, Hangout, MissedHangoutOutcome, ensure_utc, new_id, now_utc,
    parse_datetime,
)
from ..domain.repositories import FriendRepository, HangoutRepository
from ..infrastructure.kuzu_repositories import KuzuFriendRepository, KuzuHangoutRepository
from ..utils.calendar_export import hangout_to_ics
from ..utils.simple_cache import bump_data_version, cache_get, cache_set, get_data_version
from .reminder_service import ReminderService

logger = logging.getLogger(__name__)

DEFAULT_CHECK_IN_HORIZON_DAYS = 21
BOARD_TTL = 30


def is_upcoming(hangout: Hangout, now: datetime) -> bool:
    return hangout.is_scheduled and hangout.date > now and not hangout.needs_reschedule


def is_awaiting_confirmation(hangout: Hangout, now: datetime) -> bool:
    return hangout.is_scheduled and hangout.end_date <= now and not hangout.is_completed


def is_completed(hangout: Hangout) -> bool:
    return hangout.is_scheduled and hangout.is_completed


def _parse_date(value: Any, field_name: str) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError:
        raise HangoutError(f"Invalid {field_name}: {value}", code="invalid_date")


def _parse_seconds(value: Any, default: int) -> int:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise HangoutError(f"Invalid duration: {value}", code="invalid_duration")
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        raise HangoutError(f"Invalid duration: {value}", code="invalid_duration")
    if seconds <= 0:
        raise HangoutError(f"Invalid duration: {value}", code="invalid_duration")
    return seconds


def _text(value: Any, key: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise HangoutError(f"{key} must be a string", code=f"invalid_{key}")
    return value.strip()


def _string_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise HangoutError(f"{key} must be a list of strings", code=f"invalid_{key}")
    return [v.strip() for v in value if v.strip()]


class HangoutService:
    def __init__(self, hangout_repo: Optional[HangoutRepository] = None,
                 friend_repo: Optional[FriendRepository] = None,
                 reminder_service: Optional[ReminderService] = None):
        self.hangout_repo = hangout_repo or KuzuHangoutRepository()
        self.friend_repo = friend_repo or KuzuFriendRepository()
        self.reminder_service = reminder_service or ReminderService()

    # ---------------------- Lookups ----------------------
    def get_hangout(self, hangout_id: str) -> Hangout:
        hangout = self.hangout_repo.get_by_id(hangout_id)
        if hangout is None:
            raise HangoutError.not_found("Hangout", hangout_id)
        return hangout

    def list_hangouts(self) -> List[Hangout]:
        return self.hangout_repo.list_all()

    def hangouts_for_friend(self, friend_id: str) -> List[Hangout]:
        if self.friend_repo.get_by_id(friend_id) is None:
            raise HangoutError.not_found("Friend", friend_id)
        return self.hangout_repo.list_for_friend(friend_id)

    def friends_for(self, hangout: Hangout) -> List[Friend]:
        friends = [self.friend_repo.get_by_id(fid) for fid in hangout.friend_ids]
        return [f for f in friends if f is not None]

    # ---------------------- Scheduling ----------------------
    def _resolve_friends(self, friend_ids: Iterable[str]) -> List[Friend]:
        friends = []
        for friend_id in dict.fromkeys(friend_ids or []):
            friend = self.friend_repo.get_by_id(friend_id)
            if friend is None:
                raise HangoutError.not_found("Friend", friend_id)
            friends.append(friend)
        if not friends:
            raise HangoutError("A hangout needs at least one friend", code="no_friends")
        return friends

    def _schedule_reminders(self, hangout: Hangout, friends: Iterable[Friend], now: datetime) -> None:
        if hangout.date <= now:
            return
        for friend in friends:
            self.reminder_service.schedule_hangout_reminder(friend, hangout.date)

    def _cancel_reminders(self, hangout: Hangout) -> None:
        for friend_id in hangout.friend_ids:
            self.reminder_service.cancel_hangout_reminder(friend_id, hangout.date)

    def create_hangout(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Hangout:
        now = ensure_utc(now) if now else now_utc()
        date = _parse_date(data.get('date'), 'date')
        if date is None:
            raise HangoutError("Hangout date is required", code="missing_date")
        end_date = _parse_date(data.get('end_date'), 'end_date')
        if end_date is None:
            end_date = date + timedelta(seconds=_parse_seconds(data.get('duration'), DEFAULT_HANGOUT_DURATION))
        if end_date <= date:
            raise HangoutError.invalid_dates()

        friends = self._resolve_friends(_string_list(data.get('friend_ids'), 'friend_ids'))
        emails = [f.email for f in friends if f.email]
        for email in _string_list(data.get('attendee_emails'), 'attendee_emails'):
            if email not in emails:
                emails.append(email)

        hangout = Hangout(
            id=new_id(),
            date=date,
            end_date=end_date,
            title=_text(data.get('title'), 'title') or f"Hangout with {', '.join(f.name for f in friends)}",
            location=_text(data.get('location'), 'location'),
            is_scheduled=bool(data.get('is_scheduled', True)),
            friend_ids=[f.id for f in friends],
            attendee_emails=emails,
            event_link=data.get('event_link'),
            event_token=data.get('event_token'),
        )
        self.hangout_repo.create(hangout)
        self._schedule_reminders(hangout, friends, now)
        bump_data_version()
        return hangout

    def mark_completed(self, hangout_id: str, now: Optional[datetime] = None) -> Hangout:
        """Confirm the hangout happened.

        Each attendee's last seen moves forward to the hangout date (never
        backwards), they come off the wishlist and their catch-up reminder
        is rescheduled.
        """
        hangout = self.get_hangout(hangout_id)
        hangout.is_completed = True
        hangout.needs_reschedule = False
        self.hangout_repo.update(hangout)

        for friend in self.friends_for(hangout):
            if friend.last_seen is None or ensure_utc(friend.last_seen) < hangout.date:
                friend.update_last_seen(hangout.date)
            friend.needs_to_connect_flag = False
            self.friend_repo.update(friend)
            self.reminder_service.schedule_catch_up_reminder(friend, now)
        bump_data_version()
        return hangout

    def resolve_missed(self, hangout_id: str, outcome: Any) -> Optional[Hangout]:
        """Handle a hangout that did not happen.

        ``reschedule`` flags it for rescheduling and returns it. ``to_connect``
        and ``hold_off`` set or clear the friends' wishlist flag and delete
        the hangout, returning None.
        """
        if not isinstance(outcome, MissedHangoutOutcome):
            try:
                outcome = MissedHangoutOutcome((outcome or '').strip().lower())
            except (ValueError, AttributeError):
                raise HangoutError(f"Invalid outcome: {outcome}", code="invalid_outcome")

        if outcome is MissedHangoutOutcome.RESCHEDULE:
            return self.mark_needs_reschedule(hangout_id)

        hangout = self.get_hangout(hangout_id)
        for friend in self.friends_for(hangout):
            friend.needs_to_connect_flag = outcome is MissedHangoutOutcome.TO_CONNECT
            self.friend_repo.update(friend)
        self._cancel_reminders(hangout)
        self.hangout_repo.delete(hangout_id)
        bump_data_version()
        logger.info(f"Missed hangout {hangout_id} resolved as {outcome.value}")
        return None

    def mark_needs_reschedule(self, hangout_id: str) -> Hangout:
        hangout = self.get_hangout(hangout_id)
        hangout.needs_reschedule = True
        self.hangout_repo.update(hangout)
        self._cancel_reminders(hangout)
        bump_data_version()
        return hangout

    def reschedule(self, hangout_id: str, new_date: Any, duration: Optional[int] = None,
                   now: Optional[datetime] = None) -> Hangout:
        """Replace a hangout with a copy at a new time. Returns the new hangout."""
        now = ensure_utc(now) if now else now_utc()
        original = self.get_hangout(hangout_id)
        date = _parse_date(new_date, 'date')
        if date is None:
            raise HangoutError("New date is required", code="missing_date")
        seconds = _parse_seconds(duration, original.duration or DEFAULT_HANGOUT_DURATION)

        replacement = original.create_rescheduled(date, seconds)
        self.hangout_repo.create(replacement)

        self._cancel_reminders(original)
        original.needs_reschedule = False
        original.is_scheduled = False
        self.hangout_repo.update(original)

        self._schedule_reminders(replacement, self.friends_for(replacement), now)
        bump_data_version()
        logger.info(f"Rescheduled hangout {original.id} as {replacement.id}")
        return replacement

    def delete_hangout(self, hangout_id: str) -> None:
        hangout = self.get_hangout(hangout_id)
        self._cancel_reminders(hangout)
        self.hangout_repo.delete(hangout_id)
        bump_data_version()

    # ---------------------- Ketchups board ----------------------
    def upcoming_hangouts(self, now: Optional[datetime] = None) -> List[Hangout]:
        now = ensure_utc(now) if now else now_utc()
        return sorted((h for h in self.hangout_repo.list_all() if is_upcoming(h, now)), key=lambda h: h.date)

    def past_hangouts(self, now: Optional[datetime] = None) -> List[Hangout]:
        now = ensure_utc(now) if now else now_utc()
        return sorted((h for h in self.hangout_repo.list_all() if is_awaiting_confirmation(h, now)),
                      key=lambda h: h.date)

    def completed_hangouts(self) -> List[Hangout]:
        return sorted((h for h in self.hangout_repo.list_all() if is_completed(h)),
                      key=lambda h: h.date, reverse=True)

    def upcoming_check_ins(self, now: Optional[datetime] = None,
                           horizon_days: int = DEFAULT_CHECK_IN_HORIZON_DAYS) -> List[Friend]:
        """Friends due a catch-up within the horizon who have nothing booked yet."""
        now = ensure_utc(now) if now else now_utc()
        horizon = now + timedelta(days=horizon_days)
        booked = {fid for h in self.upcoming_hangouts(now) for fid in h.friend_ids}

        due = [
            f for f in self.friend_repo.list_all()
            if f.next_connect_date is not None and f.next_connect_date <= horizon and f.id not in booked
        ]
        never = [f for f in due if f.last_seen is None]
        seen = sorted((f for f in due if f.last_seen is not None), key=lambda f: f.last_seen)
        return never + seen

    def ketchups_board(self, now: Optional[datetime] = None,
                       horizon_days: int = DEFAULT_CHECK_IN_HORIZON_DAYS) -> Dict[str, list]:
        now = ensure_utc(now) if now else now_utc()
        key = f"ketchups:{get_data_version()}:{now.strftime('%Y%m%d%H%M')}:{horizon_days}"
        cached = cache_get(key)
        if cached is not None:
            return cached
        board = {
            'upcoming': self.upcoming_hangouts(now),
            'past': self.past_hangouts(now),
            'completed': self.completed_hangouts(),
            'check_ins': self.upcoming_check_ins(now, horizon_days),
        }
        cache_set(key, board, BOARD_TTL)
        return board

    # ---------------------- Calendar ----------------------
    def calendar_ics(self, hangout_id: str, now: Optional[datetime] = None) -> str:
        hangout = self.get_hangout(hangout_id)
        return hangout_to_ics(hangout, self.friends_for(hangout), now)


def hangout_to_dict(hangout: Hangout) -> Dict[str, Any]:
    return {
        'id': hangout.id,
        'title': hangout.title,
        'date': hangout.date.isoformat() if hangout.date else None,
        'end_date': hangout.end_date.isoformat() if hangout.end_date else None,
        'duration': hangout.duration,
        'location': hangout.location,
        'is_scheduled': hangout.is_scheduled,
        'is_completed': hangout.is_completed,
        'needs_reschedule': hangout.needs_reschedule,
        'is_rescheduled': hangout.is_rescheduled,
        'original_hangout_id': hangout.original_hangout_id,
        'event_link': hangout.event_link,
        'event_token': hangout.event_token,
        'google_event_id': hangout.google_event_id,
        'google_event_link': hangout.google_event_link,
        'attendee_emails': list(hangout.attendee_emails),
        'friend_ids': list(hangout.friend_ids),
        'created_at': hangout.created_at.isoformat() if hangout.created_at else None,
    }
