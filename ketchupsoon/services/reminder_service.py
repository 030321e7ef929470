"""
Reminder Service

Stored reminders stand in for a device notification center: catch-up
nudges keyed `catchup-<friend_id>` and hangout reminders keyed
`hangout-<friend_id>-<epoch seconds>`. Clients poll the due list.
"""

import logging
from datetime import datetime, time as dt_time, timedelta
from typing import List, Optional

import pytz
from flask import current_app

from ..domain.models import Friend, Reminder, ReminderKind, ensure_utc, now_utc
from ..domain.repositories import ReminderRepository
from ..infrastructure.kuzu_repositories import KuzuReminderRepository
from ..utils.app_settings import load_app_settings, save_app_settings

logger = logging.getLogger(__name__)

CATCH_UP_PREFIX = "catchup-"
HANGOUT_PREFIX = "hangout-"
CATCH_UP_HOUR = 10


def catch_up_identifier(friend_id: str) -> str:
    return f"{CATCH_UP_PREFIX}{friend_id}"


def hangout_identifier(friend_id: str, date: datetime) -> str:
    return f"{HANGOUT_PREFIX}{friend_id}-{int(ensure_utc(date).timestamp())}"


class ReminderService:
    def __init__(self, repository: Optional[ReminderRepository] = None,
                 timezone_name: Optional[str] = None, data_dir: Optional[str] = None):
        self.repository = repository or KuzuReminderRepository()
        self._timezone_name = timezone_name
        self.data_dir = data_dir

    @property
    def timezone(self):
        name = self._timezone_name
        if not name:
            try:
                name = current_app.config.get('TIMEZONE', 'UTC')
            except RuntimeError:
                name = 'UTC'
        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {name!r}, falling back to UTC")
            return pytz.utc

    # ---------------------- Settings ----------------------
    def catch_up_notifications_enabled(self) -> bool:
        return bool(load_app_settings(self.data_dir).get('catch_up_notifications_enabled', True))

    def default_minutes_before(self) -> int:
        return int(load_app_settings(self.data_dir).get('hangout_reminder_minutes', 60))

    def set_catch_up_notifications_enabled(self, enabled: bool) -> dict:
        settings = save_app_settings({'catch_up_notifications_enabled': bool(enabled)}, self.data_dir)
        if not enabled:
            removed = self.repository.delete_by_prefix(CATCH_UP_PREFIX)
            logger.info(f"Catch-up notifications disabled; cancelled {removed} reminders")
        return settings

    def update_settings(self, updates: dict) -> dict:
        enabled = updates.get('catch_up_notifications_enabled')
        other = {k: v for k, v in updates.items() if k != 'catch_up_notifications_enabled'}
        settings = save_app_settings(other, self.data_dir) if other else load_app_settings(self.data_dir)
        if enabled is not None:
            settings = self.set_catch_up_notifications_enabled(settings_flag(enabled))
        return settings

    # ---------------------- Catch-up reminders ----------------------
    def catch_up_fire_time(self, base: datetime, days: int) -> datetime:
        """10:00 local time on the day `days` after `base`, expressed in UTC."""
        tz = self.timezone
        target = ensure_utc(base) + timedelta(days=days)
        local_day = target.astimezone(tz).date()
        local_fire = tz.localize(datetime.combine(local_day, dt_time(CATCH_UP_HOUR, 0)))
        return local_fire.astimezone(pytz.utc)

    def schedule_catch_up_reminder(self, friend: Friend, now: Optional[datetime] = None) -> Optional[Reminder]:
        if not self.catch_up_notifications_enabled():
            return None
        if friend.catch_up_frequency is None:
            self.cancel_catch_up_reminder(friend.id)
            return None

        self.cancel_catch_up_reminder(friend.id)
        now = ensure_utc(now) if now else now_utc()
        base = friend.last_seen or friend.created_at
        next_date = ensure_utc(base) + timedelta(days=friend.catch_up_frequency.days)
        if next_date <= now:
            return None

        reminder = Reminder(
            id=catch_up_identifier(friend.id),
            kind=ReminderKind.CATCH_UP,
            friend_id=friend.id,
            title="Time to Catch Up!",
            body=f"It's been a while since you connected with {friend.name}. Why not reach out?",
            fire_at=self.catch_up_fire_time(base, friend.catch_up_frequency.days),
        )
        return self.repository.save(reminder)

    def cancel_catch_up_reminder(self, friend_id: str) -> bool:
        return self.repository.delete(catch_up_identifier(friend_id))

    # ---------------------- Hangout reminders ----------------------
    def schedule_hangout_reminder(self, friend: Friend, hangout_date: datetime,
                                  minutes_before: Optional[int] = None) -> Reminder:
        if minutes_before is None:
            minutes_before = self.default_minutes_before()
        reminder = Reminder(
            id=hangout_identifier(friend.id, hangout_date),
            kind=ReminderKind.HANGOUT,
            friend_id=friend.id,
            title="Upcoming Hangout",
            body=f"You have a hangout with {friend.name} in {minutes_before} minutes",
            fire_at=ensure_utc(hangout_date) - timedelta(minutes=minutes_before),
        )
        return self.repository.save(reminder)

    def cancel_hangout_reminder(self, friend_id: str, hangout_date: datetime) -> bool:
        return self.repository.delete(hangout_identifier(friend_id, hangout_date))

    # ---------------------- Queries ----------------------
    def pending(self) -> List[Reminder]:
        return self.repository.list_all()

    def due(self, now: Optional[datetime] = None) -> List[Reminder]:
        return self.repository.list_due(now or now_utc())

    def pop_due(self, now: Optional[datetime] = None) -> List[Reminder]:
        """Return due reminders and remove them, like delivered notifications."""
        reminders = self.due(now)
        for reminder in reminders:
            self.repository.delete(reminder.id)
        return reminders

    def cancel_all(self) -> int:
        return self.repository.delete_all()

    def cancel_for_friend(self, friend_id: str) -> int:
        return self.repository.delete_for_friend(friend_id)


def settings_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'on', 'yes')
    return bool(value)
