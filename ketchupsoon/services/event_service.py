"""
Event Service

Shareable events with attendees and RSVP tracking. Events live in Kuzu;
when a Supabase backend is configured each change is also pushed there via
the operation coordinator. A queued update is replaced by the next one and
sends the stored state when it runs, so bursts of edits collapse into one
request and the remote copy ends on the latest version. Updates re-sync the
attendee rows as well.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..domain.errors import EventError
from ..domain.models import Event, EventAttendee, RSVPStatus, new_id, parse_datetime
from ..domain.repositories import EventRepository
from ..infrastructure.kuzu_repositories import KuzuEventRepository
from ..utils.phone_numbers import standardize_phone_number
from .operation_coordinator import OperationCoordinator, OperationPriority, get_operation_coordinator
from .remote_backend import SupabaseClient, get_remote_backend

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('title', 'date', 'creator_id')
EDITABLE_FIELDS = ('title', 'date', 'location', 'description', 'duration', 'is_private',
                   'google_calendar_id', 'google_calendar_link')


def _parse_status(raw: Any) -> RSVPStatus:
    try:
        return RSVPStatus((raw or '').strip().lower())
    except (ValueError, AttributeError):
        raise EventError.invalid_rsvp(str(raw))


def _parse_date(raw: Any):
    try:
        return parse_datetime(raw)
    except ValueError:
        raise EventError(f"Invalid event date: {raw}", code="invalid_date")


def _parse_duration(raw: Any) -> int:
    if raw is None or raw == '':
        return 60
    try:
        minutes = int(raw)
    except (TypeError, ValueError):
        raise EventError(f"Invalid duration: {raw}", code="invalid_duration")
    if minutes <= 0:
        raise EventError(f"Invalid duration: {raw}", code="invalid_duration")
    return minutes


def _attendee_from_payload(payload: Dict[str, Any], event_id: str = '') -> EventAttendee:
    if not isinstance(payload, dict):
        raise EventError("Attendee must be an object", code="invalid_attendee")
    name = payload.get('name')
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise EventError.missing_fields(['name'])
    return EventAttendee(
        id=new_id(),
        event_id=event_id,
        name=name,
        email=(payload.get('email') or '').strip().lower() or None,
        phone_number=standardize_phone_number(payload.get('phone_number') or payload.get('phone')),
        rsvp_status=RSVPStatus.PENDING,
    )


class EventService:
    def __init__(self, event_repo: Optional[EventRepository] = None,
                 remote: Optional[SupabaseClient] = None,
                 coordinator: Optional[OperationCoordinator] = None):
        self.event_repo = event_repo or KuzuEventRepository()
        self._remote = remote
        self._coordinator = coordinator

    @property
    def remote(self) -> Optional[SupabaseClient]:
        return self._remote or get_remote_backend()

    @property
    def coordinator(self) -> OperationCoordinator:
        if self._coordinator is None:
            self._coordinator = get_operation_coordinator()
        return self._coordinator

    # ---------------------- Remote push ----------------------
    def _log_push_failure(self, event_id: str):
        def handler(error: Exception) -> None:
            logger.warning(f"Remote sync for event {event_id} failed: {error}")
        return handler

    def _push(self, event: Event, created: bool) -> bool:
        """Queue a remote push. Operations read the stored event when they run."""
        remote = self.remote
        if remote is None:
            return False
        event_id = event.id

        if created:
            def create():
                current = self.event_repo.get_by_id(event_id)
                if current is None:
                    return
                remote.insert_event(current)
                remote.insert_attendees(current.attendees)

            return self.coordinator.schedule_operation(
                name=f"create event {event.title}",
                key=f"event:{event_id}:create",
                operation=create,
                priority=OperationPriority.HIGH,
                error_handler=self._log_push_failure(event_id),
            )

        def update():
            current = self.event_repo.get_by_id(event_id)
            if current is None:
                return
            remote.update_event(current)
            remote.replace_attendees(event_id, current.attendees)

        # A newer update replaces the queued one instead of being debounced
        key = f"event:{event_id}:update"
        self.coordinator.cancel_operations(key)
        return self.coordinator.schedule_operation(
            name=f"update event {event.title}",
            key=key,
            operation=update,
            priority=OperationPriority.NORMAL,
            min_interval=0,
            error_handler=self._log_push_failure(event_id),
        )

    def _push_delete(self, event_id: str) -> bool:
        remote = self.remote
        if remote is None:
            return False
        self.coordinator.cancel_operations(f"event:{event_id}:update")
        self.coordinator.cancel_operations(f"event:{event_id}:create")
        return self.coordinator.schedule_operation(
            name=f"delete event {event_id}",
            key=f"event:{event_id}:delete",
            operation=lambda: remote.delete_event(event_id),
            priority=OperationPriority.HIGH,
            error_handler=self._log_push_failure(event_id),
        )

    # ---------------------- CRUD ----------------------
    def create_event(self, payload: Dict[str, Any]) -> Event:
        """Insert an event and its attendees. Attendees always start as pending."""
        missing = [f for f in REQUIRED_FIELDS if not payload.get(f)]
        if missing:
            raise EventError.missing_fields(missing)

        event = Event(
            id=new_id(),
            title=str(payload['title']).strip(),
            date=_parse_date(payload['date']),
            location=payload.get('location') or '',
            description=payload.get('description') or '',
            duration=_parse_duration(payload.get('duration')),
            creator_id=str(payload['creator_id']),
            is_private=bool(payload.get('is_private', False)),
        )
        event.attendees = [_attendee_from_payload(a, event.id) for a in payload.get('attendees') or []]
        self.event_repo.create(event)
        logger.info(f"Created event '{event.title}' with {len(event.attendees)} attendees")
        self._push(event, created=True)
        return event

    def get_event(self, event_id: str) -> Event:
        event = self.event_repo.get_by_id(event_id)
        if event is None:
            raise EventError.not_found("Event", event_id)
        return event

    def list_events(self, creator_id: Optional[str] = None) -> List[Event]:
        return self.event_repo.list_all(creator_id)

    def update_event(self, event_id: str, payload: Dict[str, Any]) -> Event:
        event = self.get_event(event_id)
        for key in EDITABLE_FIELDS:
            if key not in payload:
                continue
            value = payload[key]
            if key == 'title':
                if not isinstance(value, str) or not value.strip():
                    raise EventError.missing_fields(['title'])
                value = value.strip()
            elif key == 'date':
                value = _parse_date(value)
                if value is None:
                    raise EventError.missing_fields(['date'])
            elif key == 'duration':
                value = _parse_duration(value)
            elif key == 'is_private':
                value = bool(value)
            setattr(event, key, value)
        self.event_repo.update(event)
        self._push(event, created=False)
        return event

    def delete_event(self, event_id: str) -> None:
        self.get_event(event_id)
        self.event_repo.delete(event_id)
        self._push_delete(event_id)

    # ---------------------- Attendees ----------------------
    def add_attendee(self, event_id: str, payload: Dict[str, Any]) -> EventAttendee:
        event = self.get_event(event_id)
        attendee = self.event_repo.add_attendee(_attendee_from_payload(payload, event_id))
        self._push(event, created=False)
        return attendee

    def add_attendees(self, event_id: str, payloads: Iterable[Dict[str, Any]]) -> List[EventAttendee]:
        return [self.add_attendee(event_id, p) for p in payloads]

    def remove_attendee(self, event_id: str, attendee_id: str) -> None:
        event = self.get_event(event_id)
        if not self.event_repo.remove_attendee(event_id, attendee_id):
            raise EventError.not_found("Attendee", attendee_id)
        self._push(event, created=False)

    def update_rsvp(self, event_id: str, attendee_id: str, status: Any) -> EventAttendee:
        rsvp = _parse_status(status)
        event = self.get_event(event_id)
        attendee = self.event_repo.update_rsvp(event_id, attendee_id, rsvp)
        if attendee is None:
            raise EventError.not_found("Attendee", attendee_id)
        self._push(event, created=False)
        return attendee

    def rsvp_summary(self, event_id: str) -> Dict[str, int]:
        return self.get_event(event_id).rsvp_counts()


def attendee_to_dict(attendee: EventAttendee) -> Dict[str, Any]:
    return {
        'id': attendee.id,
        'event_id': attendee.event_id,
        'name': attendee.name,
        'email': attendee.email,
        'phone_number': attendee.phone_number,
        'rsvp_status': attendee.rsvp_status.value,
    }


def event_to_dict(event: Event) -> Dict[str, Any]:
    return {
        'id': event.id,
        'title': event.title,
        'date': event.date.isoformat() if event.date else None,
        'location': event.location,
        'description': event.description,
        'duration': event.duration,
        'creator_id': event.creator_id,
        'is_private': event.is_private,
        'google_calendar_id': event.google_calendar_id,
        'google_calendar_link': event.google_calendar_link,
        'created_at': event.created_at.isoformat() if event.created_at else None,
        'attendees': [attendee_to_dict(a) for a in event.attendees],
        'rsvp_counts': event.rsvp_counts(),
    }
