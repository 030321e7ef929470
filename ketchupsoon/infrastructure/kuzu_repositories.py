"""
Kuzu repositories for friends, tags, hangouts, events and reminders.

Timestamps are stored as ISO-8601 UTC strings and list-valued properties as
JSON strings, so rows round-trip without relying on Kuzu's type inference for
empty lists or timezone handling.
"""

import json
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..domain.models import (
    Friend, Tag, Hangout, Event, EventAttendee, Reminder,
    CatchUpFrequency, CalendarVisibilityPreference, RSVPStatus, ReminderKind,
    new_id, now_utc, parse_datetime, format_datetime, ensure_utc,
)
from ..domain.repositories import (
    FriendRepository, TagRepository, HangoutRepository, EventRepository, ReminderRepository,
)
from ..utils.kuzu_manager import SafeKuzuManager, get_kuzu_manager, node_properties

logger = logging.getLogger(__name__)


def _dump_list(values: Optional[List[str]]) -> str:
    return json.dumps(list(values or []))


def _load_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        loaded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Discarding malformed list value: {raw!r}")
        return []
    return [str(v) for v in loaded] if isinstance(loaded, list) else []


def _update_params(params: Dict[str, Any]) -> Dict[str, Any]:
    # Kuzu rejects parameters the statement never references
    return {key: value for key, value in params.items() if key != 'created_at'}


class _KuzuRepository:
    """Shared lazy access to the SafeKuzuManager."""

    def __init__(self, manager: Optional[SafeKuzuManager] = None):
        # Lazy initialization - don't connect during startup
        self._safe_manager = manager

    @property
    def safe_manager(self) -> SafeKuzuManager:
        if self._safe_manager is None:
            self._safe_manager = get_kuzu_manager()
        return self._safe_manager

    def _query(self, query: str, params: Optional[Dict[str, Any]] = None, operation: str = "query"):
        return self.safe_manager.execute_query(query, params or {}, operation=operation)

    def _exists(self, label: str, node_id: str) -> bool:
        count = self.safe_manager.query_value(
            f"MATCH (n:{label} {{id: $id}}) RETURN COUNT(n) AS c",
            {"id": node_id}, operation=f"exists_{label.lower()}", default=0,
        )
        return int(count or 0) > 0


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------

def _friend_params(friend: Friend) -> Dict[str, Any]:
    return {
        'id': friend.id,
        'name': friend.name,
        'last_seen': format_datetime(friend.last_seen),
        'location': friend.location,
        'contact_identifier': friend.contact_identifier,
        'needs_to_connect_flag': bool(friend.needs_to_connect_flag),
        'phone_number': friend.phone_number,
        'email': friend.email,
        'additional_emails': _dump_list(friend.additional_emails),
        'catch_up_frequency': friend.catch_up_frequency.name if friend.catch_up_frequency else None,
        'calendar_integration_enabled': bool(friend.calendar_integration_enabled),
        'calendar_visibility_preference': friend.calendar_visibility_preference.value,
        'created_at': format_datetime(friend.created_at),
        'updated_at': format_datetime(friend.updated_at),
    }


def _friend_from_node(node: Dict[str, Any], tags: Optional[List[str]] = None) -> Friend:
    props = node_properties(node)
    return Friend(
        id=props.get('id'),
        name=props.get('name') or '',
        last_seen=parse_datetime(props.get('last_seen')),
        location=props.get('location'),
        contact_identifier=props.get('contact_identifier'),
        needs_to_connect_flag=bool(props.get('needs_to_connect_flag')),
        phone_number=props.get('phone_number'),
        email=props.get('email'),
        additional_emails=_load_list(props.get('additional_emails')),
        catch_up_frequency=CatchUpFrequency.parse(props.get('catch_up_frequency')),
        calendar_integration_enabled=bool(props.get('calendar_integration_enabled')),
        calendar_visibility_preference=CalendarVisibilityPreference(
            props.get('calendar_visibility_preference') or CalendarVisibilityPreference.NONE.value
        ),
        tags=sorted(tags or []),
        created_at=parse_datetime(props.get('created_at')) or now_utc(),
        updated_at=parse_datetime(props.get('updated_at')) or now_utc(),
    )


class KuzuFriendRepository(_KuzuRepository, FriendRepository):
    """Friend nodes, tagged via TAGGED and attending hangouts via ATTENDS."""

    def create(self, friend: Friend) -> Friend:
        friend.id = friend.id or new_id()
        self._query("""
            CREATE (f:Friend {
                id: $id,
                name: $name,
                last_seen: $last_seen,
                location: $location,
                contact_identifier: $contact_identifier,
                needs_to_connect_flag: $needs_to_connect_flag,
                phone_number: $phone_number,
                email: $email,
                additional_emails: $additional_emails,
                catch_up_frequency: $catch_up_frequency,
                calendar_integration_enabled: $calendar_integration_enabled,
                calendar_visibility_preference: $calendar_visibility_preference,
                created_at: $created_at,
                updated_at: $updated_at
            })
        """, _friend_params(friend), operation="create_friend")
        logger.info(f"Created friend {friend.name} ({friend.id})")
        return friend

    def _tag_names(self, friend_id: Optional[str] = None) -> Dict[str, List[str]]:
        if friend_id:
            rows = self._query(
                "MATCH (f:Friend {id: $id})-[:TAGGED]->(t:Tag) RETURN f.id AS friend_id, t.name AS name",
                {"id": friend_id}, operation="friend_tags",
            )
        else:
            rows = self._query(
                "MATCH (f:Friend)-[:TAGGED]->(t:Tag) RETURN f.id AS friend_id, t.name AS name",
                operation="all_friend_tags",
            )
        names: Dict[str, List[str]] = {}
        for row in rows:
            names.setdefault(row['friend_id'], []).append(row['name'])
        return names

    def get_by_id(self, friend_id: str) -> Optional[Friend]:
        rows = self._query("MATCH (f:Friend {id: $id}) RETURN f", {"id": friend_id}, operation="get_friend")
        if not rows:
            return None
        return _friend_from_node(rows[0]['f'], self._tag_names(friend_id).get(friend_id))

    def get_by_contact_identifier(self, contact_identifier: str) -> Optional[Friend]:
        rows = self._query(
            "MATCH (f:Friend) WHERE f.contact_identifier = $cid RETURN f LIMIT 1",
            {"cid": contact_identifier}, operation="get_friend_by_contact",
        )
        if not rows:
            return None
        friend_id = node_properties(rows[0]['f']).get('id')
        return _friend_from_node(rows[0]['f'], self._tag_names(friend_id).get(friend_id))

    def list_all(self) -> List[Friend]:
        rows = self._query("MATCH (f:Friend) RETURN f ORDER BY f.name", operation="list_friends")
        tags = self._tag_names()
        friends = []
        for row in rows:
            friend_id = node_properties(row['f']).get('id')
            friends.append(_friend_from_node(row['f'], tags.get(friend_id)))
        return friends

    def update(self, friend: Friend) -> Friend:
        friend.updated_at = now_utc()
        params = _update_params(_friend_params(friend))
        assignments = ', '.join(f"f.{key} = ${key}" for key in params if key != 'id')
        self._query(f"MATCH (f:Friend {{id: $id}}) SET {assignments}", params, operation="update_friend")
        return friend

    def delete(self, friend_id: str) -> bool:
        if not self._exists('Friend', friend_id):
            return False
        # Hangouts attended only by this friend go with them
        rows = self._query(
            "MATCH (f:Friend {id: $id})-[:ATTENDS]->(h:Hangout) RETURN h.id AS hangout_id",
            {"id": friend_id}, operation="friend_hangouts",
        )
        for row in rows:
            attendees = self.safe_manager.query_value(
                "MATCH (o:Friend)-[:ATTENDS]->(h:Hangout {id: $hid}) RETURN COUNT(o) AS c",
                {"hid": row['hangout_id']}, operation="hangout_attendance", default=0,
            )
            if int(attendees or 0) <= 1:
                self._query("MATCH (h:Hangout {id: $hid}) DETACH DELETE h",
                            {"hid": row['hangout_id']}, operation="cascade_delete_hangout")
        self._query("MATCH (r:Reminder) WHERE r.friend_id = $id DELETE r", {"id": friend_id},
                    operation="delete_friend_reminders")
        self._query("MATCH (f:Friend {id: $id}) DETACH DELETE f", {"id": friend_id}, operation="delete_friend")
        logger.info(f"Deleted friend {friend_id}")
        return True


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

def _tag_from_node(node: Dict[str, Any], friend_count: int = 0) -> Tag:
    props = node_properties(node)
    return Tag(
        id=props.get('id'),
        name=props.get('name') or '',
        is_predefined=bool(props.get('is_predefined')),
        friend_count=int(friend_count or 0),
    )


class KuzuTagRepository(_KuzuRepository, TagRepository):

    def create(self, tag: Tag) -> Tag:
        tag.id = tag.id or new_id()
        self._query(
            "CREATE (t:Tag {id: $id, name: $name, is_predefined: $is_predefined})",
            {"id": tag.id, "name": tag.name, "is_predefined": bool(tag.is_predefined)},
            operation="create_tag",
        )
        return tag

    def get_by_id(self, tag_id: str) -> Optional[Tag]:
        rows = self._query("MATCH (t:Tag {id: $id}) RETURN t", {"id": tag_id}, operation="get_tag")
        return _tag_from_node(rows[0]['t']) if rows else None

    def get_by_name(self, name: str) -> Optional[Tag]:
        rows = self._query(
            "MATCH (t:Tag) WHERE t.name = $name RETURN t LIMIT 1",
            {"name": Tag.normalize_name(name)}, operation="get_tag_by_name",
        )
        return _tag_from_node(rows[0]['t']) if rows else None

    def list_all(self) -> List[Tag]:
        rows = self._query("MATCH (t:Tag) RETURN t ORDER BY t.name", operation="list_tags")
        counts = {
            row['tag_id']: row['c'] for row in self._query(
                "MATCH (f:Friend)-[:TAGGED]->(t:Tag) RETURN t.id AS tag_id, COUNT(f) AS c",
                operation="tag_counts",
            )
        }
        tags = []
        for row in rows:
            tag_id = node_properties(row['t']).get('id')
            tags.append(_tag_from_node(row['t'], counts.get(tag_id, 0)))
        return tags

    def delete(self, tag_id: str) -> bool:
        if not self._exists('Tag', tag_id):
            return False
        self._query("MATCH (t:Tag {id: $id}) DETACH DELETE t", {"id": tag_id}, operation="delete_tag")
        return True

    def is_attached(self, tag_id: str, friend_id: str) -> bool:
        count = self.safe_manager.query_value(
            "MATCH (f:Friend {id: $fid})-[r:TAGGED]->(t:Tag {id: $tid}) RETURN COUNT(r) AS c",
            {"fid": friend_id, "tid": tag_id}, operation="tag_attached", default=0,
        )
        return int(count or 0) > 0

    def attach(self, tag_id: str, friend_id: str) -> bool:
        if self.is_attached(tag_id, friend_id):
            return False
        self._query("""
            MATCH (f:Friend {id: $fid}), (t:Tag {id: $tid})
            CREATE (f)-[:TAGGED]->(t)
        """, {"fid": friend_id, "tid": tag_id}, operation="attach_tag")
        return True

    def detach(self, tag_id: str, friend_id: str) -> bool:
        if not self.is_attached(tag_id, friend_id):
            return False
        self._query(
            "MATCH (f:Friend {id: $fid})-[r:TAGGED]->(t:Tag {id: $tid}) DELETE r",
            {"fid": friend_id, "tid": tag_id}, operation="detach_tag",
        )
        return True


# ---------------------------------------------------------------------------
# Hangouts
# ---------------------------------------------------------------------------

def _hangout_params(hangout: Hangout) -> Dict[str, Any]:
    return {
        'id': hangout.id,
        'start_date': format_datetime(hangout.date),
        'end_date': format_datetime(hangout.end_date),
        'title': hangout.title,
        'location': hangout.location,
        'is_scheduled': bool(hangout.is_scheduled),
        'is_completed': bool(hangout.is_completed),
        'needs_reschedule': bool(hangout.needs_reschedule),
        'original_hangout_id': hangout.original_hangout_id,
        'event_link': hangout.event_link,
        'event_token': hangout.event_token,
        'google_event_id': hangout.google_event_id,
        'google_event_link': hangout.google_event_link,
        'attendee_emails': _dump_list(hangout.attendee_emails),
        'created_at': format_datetime(hangout.created_at),
    }


def _hangout_from_node(node: Dict[str, Any], friend_ids: Optional[List[str]] = None) -> Hangout:
    props = node_properties(node)
    return Hangout(
        id=props.get('id'),
        date=parse_datetime(props.get('start_date')),
        end_date=parse_datetime(props.get('end_date')),
        title=props.get('title') or '',
        location=props.get('location') or '',
        is_scheduled=bool(props.get('is_scheduled')),
        is_completed=bool(props.get('is_completed')),
        needs_reschedule=bool(props.get('needs_reschedule')),
        original_hangout_id=props.get('original_hangout_id'),
        event_link=props.get('event_link'),
        event_token=props.get('event_token'),
        google_event_id=props.get('google_event_id'),
        google_event_link=props.get('google_event_link'),
        attendee_emails=_load_list(props.get('attendee_emails')),
        friend_ids=sorted(friend_ids or []),
        created_at=parse_datetime(props.get('created_at')) or now_utc(),
    )


class KuzuHangoutRepository(_KuzuRepository, HangoutRepository):

    def create(self, hangout: Hangout) -> Hangout:
        hangout.id = hangout.id or new_id()
        self._query("""
            CREATE (h:Hangout {
                id: $id,
                start_date: $start_date,
                end_date: $end_date,
                title: $title,
                location: $location,
                is_scheduled: $is_scheduled,
                is_completed: $is_completed,
                needs_reschedule: $needs_reschedule,
                original_hangout_id: $original_hangout_id,
                event_link: $event_link,
                event_token: $event_token,
                google_event_id: $google_event_id,
                google_event_link: $google_event_link,
                attendee_emails: $attendee_emails,
                created_at: $created_at
            })
        """, _hangout_params(hangout), operation="create_hangout")
        for friend_id in hangout.friend_ids:
            self._query("""
                MATCH (f:Friend {id: $fid}), (h:Hangout {id: $hid})
                CREATE (f)-[:ATTENDS]->(h)
            """, {"fid": friend_id, "hid": hangout.id}, operation="link_hangout_friend")
        logger.info(f"Created hangout '{hangout.title}' ({hangout.id}) with {len(hangout.friend_ids)} friends")
        return hangout

    def _friend_ids(self, hangout_id: Optional[str] = None) -> Dict[str, List[str]]:
        if hangout_id:
            rows = self._query(
                "MATCH (f:Friend)-[:ATTENDS]->(h:Hangout {id: $id}) RETURN h.id AS hangout_id, f.id AS friend_id",
                {"id": hangout_id}, operation="hangout_friends",
            )
        else:
            rows = self._query(
                "MATCH (f:Friend)-[:ATTENDS]->(h:Hangout) RETURN h.id AS hangout_id, f.id AS friend_id",
                operation="all_hangout_friends",
            )
        ids: Dict[str, List[str]] = {}
        for row in rows:
            ids.setdefault(row['hangout_id'], []).append(row['friend_id'])
        return ids

    def get_by_id(self, hangout_id: str) -> Optional[Hangout]:
        rows = self._query("MATCH (h:Hangout {id: $id}) RETURN h", {"id": hangout_id}, operation="get_hangout")
        if not rows:
            return None
        return _hangout_from_node(rows[0]['h'], self._friend_ids(hangout_id).get(hangout_id))

    def list_all(self) -> List[Hangout]:
        rows = self._query("MATCH (h:Hangout) RETURN h", operation="list_hangouts")
        friend_ids = self._friend_ids()
        hangouts = []
        for row in rows:
            hangout_id = node_properties(row['h']).get('id')
            hangouts.append(_hangout_from_node(row['h'], friend_ids.get(hangout_id)))
        hangouts.sort(key=lambda h: h.date)
        return hangouts

    def list_for_friend(self, friend_id: str) -> List[Hangout]:
        rows = self._query(
            "MATCH (f:Friend {id: $id})-[:ATTENDS]->(h:Hangout) RETURN h.id AS hangout_id",
            {"id": friend_id}, operation="friend_hangouts",
        )
        hangouts = [self.get_by_id(row['hangout_id']) for row in rows]
        return sorted((h for h in hangouts if h), key=lambda h: h.date)

    def update(self, hangout: Hangout) -> Hangout:
        params = _update_params(_hangout_params(hangout))
        assignments = ', '.join(f"h.{key} = ${key}" for key in params if key != 'id')
        self._query(f"MATCH (h:Hangout {{id: $id}}) SET {assignments}", params, operation="update_hangout")
        return hangout

    def delete(self, hangout_id: str) -> bool:
        if not self._exists('Hangout', hangout_id):
            return False
        self._query("MATCH (h:Hangout {id: $id}) DETACH DELETE h", {"id": hangout_id}, operation="delete_hangout")
        return True


# ---------------------------------------------------------------------------
# Events and attendees
# ---------------------------------------------------------------------------

def _attendee_from_node(node: Dict[str, Any]) -> EventAttendee:
    props = node_properties(node)
    return EventAttendee(
        id=props.get('id'),
        event_id=props.get('event_id') or '',
        name=props.get('name') or '',
        email=props.get('email'),
        phone_number=props.get('phone_number'),
        rsvp_status=RSVPStatus(props.get('rsvp_status') or RSVPStatus.PENDING.value),
    )


def _event_params(event: Event) -> Dict[str, Any]:
    return {
        'id': event.id,
        'title': event.title,
        'event_date': format_datetime(event.date),
        'location': event.location,
        'description': event.description,
        'duration': int(event.duration),
        'creator_id': event.creator_id,
        'is_private': bool(event.is_private),
        'google_calendar_id': event.google_calendar_id,
        'google_calendar_link': event.google_calendar_link,
        'created_at': format_datetime(event.created_at),
    }


def _event_from_node(node: Dict[str, Any], attendees: Optional[List[EventAttendee]] = None) -> Event:
    props = node_properties(node)
    return Event(
        id=props.get('id'),
        title=props.get('title') or '',
        date=parse_datetime(props.get('event_date')),
        location=props.get('location') or '',
        description=props.get('description') or '',
        duration=int(props.get('duration') or 0),
        creator_id=props.get('creator_id') or '',
        is_private=bool(props.get('is_private')),
        google_calendar_id=props.get('google_calendar_id'),
        google_calendar_link=props.get('google_calendar_link'),
        attendees=attendees or [],
        created_at=parse_datetime(props.get('created_at')) or now_utc(),
    )


class KuzuEventRepository(_KuzuRepository, EventRepository):

    def create(self, event: Event) -> Event:
        event.id = event.id or new_id()
        self._query("""
            CREATE (e:Event {
                id: $id,
                title: $title,
                event_date: $event_date,
                location: $location,
                description: $description,
                duration: $duration,
                creator_id: $creator_id,
                is_private: $is_private,
                google_calendar_id: $google_calendar_id,
                google_calendar_link: $google_calendar_link,
                created_at: $created_at
            })
        """, _event_params(event), operation="create_event")
        attendees = list(event.attendees)
        event.attendees = []
        for attendee in attendees:
            attendee.event_id = event.id
            event.attendees.append(self.add_attendee(attendee))
        return event

    def _attendees(self, event_id: str) -> List[EventAttendee]:
        rows = self._query(
            "MATCH (e:Event {id: $id})-[:HAS_ATTENDEE]->(a:EventAttendee) RETURN a ORDER BY a.name",
            {"id": event_id}, operation="event_attendees",
        )
        return [_attendee_from_node(row['a']) for row in rows]

    def get_by_id(self, event_id: str) -> Optional[Event]:
        rows = self._query("MATCH (e:Event {id: $id}) RETURN e", {"id": event_id}, operation="get_event")
        if not rows:
            return None
        return _event_from_node(rows[0]['e'], self._attendees(event_id))

    def list_all(self, creator_id: Optional[str] = None) -> List[Event]:
        if creator_id:
            rows = self._query(
                "MATCH (e:Event) WHERE e.creator_id = $creator_id RETURN e",
                {"creator_id": creator_id}, operation="list_events_by_creator",
            )
        else:
            rows = self._query("MATCH (e:Event) RETURN e", operation="list_events")
        events = []
        for row in rows:
            event_id = node_properties(row['e']).get('id')
            events.append(_event_from_node(row['e'], self._attendees(event_id)))
        events.sort(key=lambda e: e.date)
        return events

    def update(self, event: Event) -> Event:
        params = _update_params(_event_params(event))
        assignments = ', '.join(f"e.{key} = ${key}" for key in params if key != 'id')
        self._query(f"MATCH (e:Event {{id: $id}}) SET {assignments}", params, operation="update_event")
        return event

    def delete(self, event_id: str) -> bool:
        if not self._exists('Event', event_id):
            return False
        self._query("MATCH (a:EventAttendee) WHERE a.event_id = $id DETACH DELETE a",
                    {"id": event_id}, operation="delete_event_attendees")
        self._query("MATCH (e:Event {id: $id}) DETACH DELETE e", {"id": event_id}, operation="delete_event")
        return True

    def add_attendee(self, attendee: EventAttendee) -> EventAttendee:
        attendee.id = attendee.id or new_id()
        self._query("""
            CREATE (a:EventAttendee {
                id: $id,
                event_id: $event_id,
                name: $name,
                email: $email,
                phone_number: $phone_number,
                rsvp_status: $rsvp_status
            })
        """, {
            'id': attendee.id,
            'event_id': attendee.event_id,
            'name': attendee.name,
            'email': attendee.email,
            'phone_number': attendee.phone_number,
            'rsvp_status': attendee.rsvp_status.value,
        }, operation="create_attendee")
        self._query("""
            MATCH (e:Event {id: $eid}), (a:EventAttendee {id: $aid})
            CREATE (e)-[:HAS_ATTENDEE]->(a)
        """, {"eid": attendee.event_id, "aid": attendee.id}, operation="link_attendee")
        return attendee

    def _get_attendee(self, event_id: str, attendee_id: str) -> Optional[EventAttendee]:
        rows = self._query(
            "MATCH (e:Event {id: $eid})-[:HAS_ATTENDEE]->(a:EventAttendee {id: $aid}) RETURN a",
            {"eid": event_id, "aid": attendee_id}, operation="get_attendee",
        )
        return _attendee_from_node(rows[0]['a']) if rows else None

    def remove_attendee(self, event_id: str, attendee_id: str) -> bool:
        if self._get_attendee(event_id, attendee_id) is None:
            return False
        self._query("MATCH (a:EventAttendee {id: $aid}) DETACH DELETE a", {"aid": attendee_id},
                    operation="delete_attendee")
        return True

    def update_rsvp(self, event_id: str, attendee_id: str, status: RSVPStatus) -> Optional[EventAttendee]:
        attendee = self._get_attendee(event_id, attendee_id)
        if attendee is None:
            return None
        self._query("MATCH (a:EventAttendee {id: $aid}) SET a.rsvp_status = $status",
                    {"aid": attendee_id, "status": status.value}, operation="update_rsvp")
        attendee.rsvp_status = status
        return attendee


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

def _reminder_from_node(node: Dict[str, Any]) -> Reminder:
    props = node_properties(node)
    return Reminder(
        id=props.get('id') or '',
        kind=ReminderKind(props.get('kind') or ReminderKind.CATCH_UP.value),
        friend_id=props.get('friend_id') or '',
        title=props.get('title') or '',
        body=props.get('body') or '',
        fire_at=parse_datetime(props.get('fire_at')),
        created_at=parse_datetime(props.get('created_at')) or now_utc(),
    )


class KuzuReminderRepository(_KuzuRepository, ReminderRepository):

    def save(self, reminder: Reminder) -> Reminder:
        self.delete(reminder.id)
        self._query("""
            CREATE (r:Reminder {
                id: $id,
                kind: $kind,
                friend_id: $friend_id,
                title: $title,
                body: $body,
                fire_at: $fire_at,
                created_at: $created_at
            })
        """, {
            'id': reminder.id,
            'kind': reminder.kind.value,
            'friend_id': reminder.friend_id,
            'title': reminder.title,
            'body': reminder.body,
            'fire_at': format_datetime(reminder.fire_at),
            'created_at': format_datetime(reminder.created_at),
        }, operation="save_reminder")
        return reminder

    def get_by_id(self, reminder_id: str) -> Optional[Reminder]:
        rows = self._query("MATCH (r:Reminder {id: $id}) RETURN r", {"id": reminder_id}, operation="get_reminder")
        return _reminder_from_node(rows[0]['r']) if rows else None

    def list_all(self) -> List[Reminder]:
        rows = self._query("MATCH (r:Reminder) RETURN r", operation="list_reminders")
        reminders = [_reminder_from_node(row['r']) for row in rows]
        reminders.sort(key=lambda r: r.fire_at)
        return reminders

    def list_due(self, now: datetime) -> List[Reminder]:
        now = ensure_utc(now)
        return [r for r in self.list_all() if r.fire_at <= now]

    def delete(self, reminder_id: str) -> bool:
        if not self._exists('Reminder', reminder_id):
            return False
        self._query("MATCH (r:Reminder {id: $id}) DELETE r", {"id": reminder_id}, operation="delete_reminder")
        return True

    def _delete_where(self, where: str, params: Dict[str, Any], operation: str) -> int:
        count = self.safe_manager.query_value(
            f"MATCH (r:Reminder) WHERE {where} RETURN COUNT(r) AS c", params, operation=operation, default=0,
        )
        if count:
            self._query(f"MATCH (r:Reminder) WHERE {where} DELETE r", params, operation=operation)
        return int(count or 0)

    def delete_by_prefix(self, prefix: str) -> int:
        return self._delete_where("r.id STARTS WITH $prefix", {"prefix": prefix}, "delete_reminders_by_prefix")

    def delete_for_friend(self, friend_id: str) -> int:
        return self._delete_where("r.friend_id = $fid", {"fid": friend_id}, "delete_friend_reminders")

    def delete_all(self) -> int:
        count = self.safe_manager.query_value("MATCH (r:Reminder) RETURN COUNT(r) AS c",
                                              operation="count_reminders", default=0)
        self._query("MATCH (r:Reminder) DELETE r", operation="delete_all_reminders")
        return int(count or 0)
