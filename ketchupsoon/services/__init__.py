"""
Services Package

Business logic, one service per aggregate:
- FriendService: friends, wishlist, mark-as-seen, contact import
- TagService: shared tags and friend tagging
- HangoutService: scheduling and the ketchups board
- ReminderService: catch-up and hangout reminders
- EventService: shareable events and RSVPs, pushed to the remote backend
- OperationCoordinator: debounced, prioritized remote operations
"""

from .friend_service import FriendService
from .tag_service import TagService
from .hangout_service import HangoutService
from .reminder_service import ReminderService
from .event_service import EventService
from .operation_coordinator import (
    OperationCoordinator, OperationPriority, LogVerbosity,
    get_operation_coordinator, reset_operation_coordinator,
)

# Service instances with lazy initialization
_friend_service = None
_tag_service = None
_hangout_service = None
_reminder_service = None
_event_service = None


def get_reminder_service() -> ReminderService:
    """Get reminder service instance with lazy initialization."""
    global _reminder_service
    if _reminder_service is None:
        _reminder_service = ReminderService()
    return _reminder_service


def get_tag_service() -> TagService:
    """Get tag service instance with lazy initialization."""
    global _tag_service
    if _tag_service is None:
        _tag_service = TagService()
    return _tag_service


def get_friend_service() -> FriendService:
    """Get friend service instance with lazy initialization."""
    global _friend_service
    if _friend_service is None:
        _friend_service = FriendService(tag_service=get_tag_service(),
                                        reminder_service=get_reminder_service())
    return _friend_service


def get_hangout_service() -> HangoutService:
    """Get hangout service instance with lazy initialization."""
    global _hangout_service
    if _hangout_service is None:
        _hangout_service = HangoutService(reminder_service=get_reminder_service())
    return _hangout_service


def get_event_service() -> EventService:
    """Get event service instance with lazy initialization."""
    global _event_service
    if _event_service is None:
        _event_service = EventService()
    return _event_service


def reset_services() -> None:
    """Drop cached service instances so they reconnect to the current database."""
    global _friend_service, _tag_service, _hangout_service, _reminder_service, _event_service
    _friend_service = None
    _tag_service = None
    _hangout_service = None
    _reminder_service = None
    _event_service = None
    reset_operation_coordinator()


__all__ = [
    'FriendService', 'TagService', 'HangoutService', 'ReminderService', 'EventService',
    'OperationCoordinator', 'OperationPriority', 'LogVerbosity',
    'get_friend_service', 'get_tag_service', 'get_hangout_service',
    'get_reminder_service', 'get_event_service', 'get_operation_coordinator',
    'reset_services',
]
