"""
Repository interfaces for the domain layer.

These interfaces define the contracts for data access without coupling to specific implementations.
Following the Repository pattern and Dependency Inversion Principle.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .models import Friend, Tag, Hangout, Event, EventAttendee, Reminder, RSVPStatus


class FriendRepository(ABC):
    """Repository interface for Friend operations."""

    @abstractmethod
    def create(self, friend: Friend) -> Friend:
        """Create a new friend."""
        pass

    @abstractmethod
    def get_by_id(self, friend_id: str) -> Optional[Friend]:
        """Get a friend by ID, with tag names populated."""
        pass

    @abstractmethod
    def get_by_contact_identifier(self, contact_identifier: str) -> Optional[Friend]:
        """Get the friend linked to an address book contact."""
        pass

    @abstractmethod
    def list_all(self) -> List[Friend]:
        """List every friend, with tag names populated."""
        pass

    @abstractmethod
    def update(self, friend: Friend) -> Friend:
        """Persist scalar changes of an existing friend."""
        pass

    @abstractmethod
    def delete(self, friend_id: str) -> bool:
        """Delete a friend, cascading to hangouts only they attend."""
        pass


class TagRepository(ABC):
    """Repository interface for Tag operations."""

    @abstractmethod
    def create(self, tag: Tag) -> Tag:
        pass

    @abstractmethod
    def get_by_id(self, tag_id: str) -> Optional[Tag]:
        pass

    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Tag]:
        pass

    @abstractmethod
    def list_all(self) -> List[Tag]:
        """All tags with their friend counts."""
        pass

    @abstractmethod
    def delete(self, tag_id: str) -> bool:
        """Delete a tag and detach it from every friend."""
        pass

    @abstractmethod
    def attach(self, tag_id: str, friend_id: str) -> bool:
        pass

    @abstractmethod
    def detach(self, tag_id: str, friend_id: str) -> bool:
        pass

    @abstractmethod
    def is_attached(self, tag_id: str, friend_id: str) -> bool:
        pass


class HangoutRepository(ABC):
    """Repository interface for Hangout operations."""

    @abstractmethod
    def create(self, hangout: Hangout) -> Hangout:
        """Create a hangout and link its friends."""
        pass

    @abstractmethod
    def get_by_id(self, hangout_id: str) -> Optional[Hangout]:
        pass

    @abstractmethod
    def list_all(self) -> List[Hangout]:
        """All hangouts ordered by start date."""
        pass

    @abstractmethod
    def list_for_friend(self, friend_id: str) -> List[Hangout]:
        pass

    @abstractmethod
    def update(self, hangout: Hangout) -> Hangout:
        pass

    @abstractmethod
    def delete(self, hangout_id: str) -> bool:
        pass


class EventRepository(ABC):
    """Repository interface for shareable events and their attendees."""

    @abstractmethod
    def create(self, event: Event) -> Event:
        """Create an event together with its attendees."""
        pass

    @abstractmethod
    def get_by_id(self, event_id: str) -> Optional[Event]:
        pass

    @abstractmethod
    def list_all(self, creator_id: Optional[str] = None) -> List[Event]:
        pass

    @abstractmethod
    def update(self, event: Event) -> Event:
        pass

    @abstractmethod
    def delete(self, event_id: str) -> bool:
        """Delete an event and its attendees."""
        pass

    @abstractmethod
    def add_attendee(self, attendee: EventAttendee) -> EventAttendee:
        pass

    @abstractmethod
    def remove_attendee(self, event_id: str, attendee_id: str) -> bool:
        pass

    @abstractmethod
    def update_rsvp(self, event_id: str, attendee_id: str, status: RSVPStatus) -> Optional[EventAttendee]:
        pass


class ReminderRepository(ABC):
    """Repository interface for pending reminders."""

    @abstractmethod
    def save(self, reminder: Reminder) -> Reminder:
        """Insert or replace a reminder by identifier."""
        pass

    @abstractmethod
    def get_by_id(self, reminder_id: str) -> Optional[Reminder]:
        pass

    @abstractmethod
    def list_all(self) -> List[Reminder]:
        pass

    @abstractmethod
    def list_due(self, now: datetime) -> List[Reminder]:
        pass

    @abstractmethod
    def delete(self, reminder_id: str) -> bool:
        pass

    @abstractmethod
    def delete_by_prefix(self, prefix: str) -> int:
        pass

    @abstractmethod
    def delete_for_friend(self, friend_id: str) -> int:
        pass

    @abstractmethod
    def delete_all(self) -> int:
        pass
