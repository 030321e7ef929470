"""
Friend Service

CRUD for friends plus the small behaviours around them: wishlist flag,
mark-as-seen, catch-up frequency, search and sort, and contact import.
Any change that moves a friend's next connect date reschedules their
catch-up reminder.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..domain.errors import FriendError
from ..domain.models import (
    CalendarVisibilityPreference, CatchUpFrequency, Friend, ensure_utc, new_id, parse_datetime,
)
from ..domain.repositories import FriendRepository
from ..infrastructure.kuzu_repositories import KuzuFriendRepository
from ..utils.contacts_import import parse_contacts_csv
from ..utils.friend_search import SortDirection, SortOption, filter_friends, wishlist
from ..utils.phone_numbers import standardize_phone_number
from ..utils.simple_cache import bump_data_version
from .reminder_service import ReminderService
from .tag_service import TagService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'location', 'phone_number', 'email', 'additional_emails', 'needs_to_connect_flag',
    'catch_up_frequency', 'calendar_integration_enabled', 'calendar_visibility_preference',
    'last_seen', 'contact_identifier',
)


def _text(value: Any, key: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise FriendError(f"{key} must be a string", code=f"invalid_{key}")
    return value.strip()


def _string_list(value: Any, key: str) -> List[str]:
    """A single string or a list of strings, stripped, blanks dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise FriendError(f"{key} must be a list of strings", code=f"invalid_{key}")
    return [v.strip() for v in value if v.strip()]


def _apply_fields(friend: Friend, data: Dict[str, Any]) -> None:
    """Copy editable fields from a JSON payload onto a friend, converting types."""
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == 'name':
            if not isinstance(value, str) or not value.strip():
                raise FriendError.invalid_name()
            value = value.strip()
        elif key in ('location', 'contact_identifier'):
            value = _text(value, key) or None
        elif key == 'catch_up_frequency':
            try:
                value = CatchUpFrequency.parse(value)
            except ValueError as e:
                raise FriendError(str(e), code="invalid_catch_up_frequency")
        elif key == 'calendar_visibility_preference':
            try:
                value = CalendarVisibilityPreference(value or CalendarVisibilityPreference.NONE.value)
            except ValueError:
                raise FriendError(f"Invalid calendar visibility: {value}", code="invalid_calendar_visibility")
        elif key == 'last_seen':
            try:
                value = parse_datetime(value)
            except ValueError:
                raise FriendError(f"Invalid last_seen date: {value}", code="invalid_date")
        elif key == 'phone_number':
            value = standardize_phone_number(_text(value, key) or None)
        elif key == 'email':
            value = _text(value, key).lower() or None
        elif key == 'additional_emails':
            value = [e.lower() for e in _string_list(value, key)]
        elif key in ('needs_to_connect_flag', 'calendar_integration_enabled'):
            value = bool(value)
        setattr(friend, key, value)


class FriendService:
    def __init__(self, friend_repo: Optional[FriendRepository] = None,
                 tag_service: Optional[TagService] = None,
                 reminder_service: Optional[ReminderService] = None):
        self.friend_repo = friend_repo or KuzuFriendRepository()
        self.tag_service = tag_service or TagService(friend_repo=self.friend_repo)
        self.reminder_service = reminder_service or ReminderService()

    def get_friend(self, friend_id: str) -> Friend:
        friend = self.friend_repo.get_by_id(friend_id)
        if friend is None:
            raise FriendError.not_found("Friend", friend_id)
        return friend

    def list_friends(self, search_text: Optional[str] = None, tags: Optional[Iterable[str]] = None,
                     sort: Optional[str] = None, direction: Optional[str] = None) -> List[Friend]:
        return filter_friends(
            self.friend_repo.list_all(),
            search_text=search_text,
            selected_tags=list(tags or []),
            sort_option=SortOption.parse(sort),
            sort_direction=SortDirection.parse(direction),
        )

    def wishlist(self) -> List[Friend]:
        return wishlist(self.friend_repo.list_all())

    def create_friend(self, data: Dict[str, Any]) -> Friend:
        if 'name' not in data:
            raise FriendError.invalid_name()
        tags = _string_list(data.get('tags'), 'tags')
        friend = Friend(id=new_id())
        _apply_fields(friend, data)
        self.friend_repo.create(friend)

        if tags:
            friend.tags = self.tag_service.set_friend_tags(friend.id, tags)
        self.reminder_service.schedule_catch_up_reminder(friend)
        bump_data_version()
        return friend

    def update_friend(self, friend_id: str, data: Dict[str, Any]) -> Friend:
        friend = self.get_friend(friend_id)
        tags = _string_list(data.get('tags'), 'tags') if 'tags' in data else None
        before = friend.next_connect_date
        _apply_fields(friend, data)
        self.friend_repo.update(friend)

        if tags is not None:
            friend.tags = self.tag_service.set_friend_tags(friend.id, tags)
        if friend.next_connect_date != before:
            self.reminder_service.schedule_catch_up_reminder(friend)
        bump_data_version()
        return friend

    def delete_friend(self, friend_id: str) -> None:
        self.get_friend(friend_id)
        self.friend_repo.delete(friend_id)
        bump_data_version()

    def delete_friends(self, friend_ids: Iterable[str]) -> int:
        deleted = 0
        for friend_id in friend_ids:
            if self.friend_repo.delete(friend_id):
                deleted += 1
        if deleted:
            bump_data_version()
        return deleted

    def mark_seen(self, friend_id: str, date: Optional[datetime] = None) -> Friend:
        friend = self.get_friend(friend_id)
        friend.update_last_seen(date)
        self.friend_repo.update(friend)
        self.reminder_service.schedule_catch_up_reminder(friend)
        bump_data_version()
        return friend

    def toggle_wishlist(self, friend_id: str, value: Optional[bool] = None) -> Friend:
        friend = self.get_friend(friend_id)
        friend.needs_to_connect_flag = (not friend.needs_to_connect_flag) if value is None else bool(value)
        self.friend_repo.update(friend)
        bump_data_version()
        return friend

    def set_catch_up_frequency(self, friend_id: str, frequency: Any) -> Friend:
        return self.update_friend(friend_id, {'catch_up_frequency': frequency})

    def import_contacts(self, csv_text: str) -> Dict[str, int]:
        """Create or sync friends from a contacts CSV.

        Existing friends matched by contact identifier get name, phone and
        email refreshed; their wishlist flag is left alone.
        """
        created = updated = 0
        for record in parse_contacts_csv(csv_text):
            identifier = record.sync_identifier
            existing = self.friend_repo.get_by_contact_identifier(identifier) if identifier else None
            if existing:
                existing.name = record.name
                existing.phone_number = record.phone_number
                existing.email = record.email
                self.friend_repo.update(existing)
                updated += 1
                continue
            friend = Friend(
                id=new_id(),
                name=record.name,
                phone_number=record.phone_number,
                email=record.email,
                contact_identifier=identifier,
            )
            self.friend_repo.create(friend)
            created += 1
        if created or updated:
            bump_data_version()
        logger.info(f"Contact import finished: {created} created, {updated} updated")
        return {'created': created, 'updated': updated}


def friend_to_dict(friend: Friend, now: Optional[datetime] = None) -> Dict[str, Any]:
    next_connect = friend.next_connect_date
    return {
        'id': friend.id,
        'name': friend.name,
        'initials': friend.initials,
        'last_seen': friend.last_seen.isoformat() if friend.last_seen else None,
        'last_seen_text': friend.last_seen_text(now),
        'location': friend.location,
        'contact_identifier': friend.contact_identifier,
        'needs_to_connect_flag': friend.needs_to_connect_flag,
        'phone_number': friend.phone_number,
        'email': friend.email,
        'additional_emails': list(friend.additional_emails),
        'all_emails': friend.all_emails,
        'catch_up_frequency': friend.catch_up_frequency.name.lower() if friend.catch_up_frequency else None,
        'catch_up_frequency_text': friend.catch_up_frequency.display_text if friend.catch_up_frequency else None,
        'next_connect_date': ensure_utc(next_connect).isoformat() if next_connect else None,
        'calendar_integration_enabled': friend.calendar_integration_enabled,
        'calendar_visibility_preference': friend.calendar_visibility_preference.value,
        'tags': list(friend.tags),
        'created_at': friend.created_at.isoformat() if friend.created_at else None,
        'updated_at': friend.updated_at.isoformat() if friend.updated_at else None,
    }
