"""Service-level tests running against a temporary Kuzu database."""
from datetime import datetime, timedelta, timezone

import pytest

from ketchupsoon.domain.errors import EventError, FriendError, HangoutError, TagError
from ketchupsoon.domain.models import now_utc
from ketchupsoon.services import (
    get_event_service, get_friend_service, get_hangout_service, get_reminder_service, get_tag_service,
)

UTC = timezone.utc


def test_predefined_tags_are_seeded_once(app):
    service = get_tag_service()
    assert service.ensure_predefined_tags() == []
    names = [t.name for t in service.list_tags()]
    for name in ("local", "longdistance", "work", "family", "school", "neighbors"):
        assert name in names


def test_create_tag_reuses_existing_name(app):
    friends = get_friend_service()
    tags = get_tag_service()
    friend = friends.create_friend({'name': 'Casey'})

    first = tags.create_tag("  Hiking ")
    second = tags.create_tag("hiking", friend_id=friend.id)

    assert first.id == second.id
    assert friends.get_friend(friend.id).tags == ["hiking"]
    with pytest.raises(TagError):
        tags.create_tag("   ")


def test_predefined_tags_cannot_be_deleted(app):
    tags = get_tag_service()
    work = next(t for t in tags.list_tags() if t.name == "work")
    with pytest.raises(TagError) as exc:
        tags.delete_tag(work.id)
    assert exc.value.status_code == 409


def test_delete_tags_aborts_batch_on_predefined_tag(app):
    tags = get_tag_service()
    custom = tags.create_tag("board games")
    family = next(t for t in tags.list_tags() if t.name == "family")

    with pytest.raises(TagError) as exc:
        tags.delete_tags([custom.id, family.id])

    assert exc.value.status_code == 409
    names = [t.name for t in tags.list_tags()]
    assert "board games" in names
    assert "family" in names


def test_tag_list_reflects_new_tags(app):
    tags = get_tag_service()
    before = tags.list_tags()
    assert tags.list_tags() is before

    tags.create_tag("pottery")

    assert "pottery" in [t.name for t in tags.list_tags()]


def test_toggle_tag(app):
    friend = get_friend_service().create_friend({'name': 'Morgan'})
    tags = get_tag_service()
    tag = tags.create_tag("book club")

    assert tags.toggle_tag(tag.id, friend.id) is True
    assert tags.toggle_tag(tag.id, friend.id) is False
    assert get_friend_service().get_friend(friend.id).tags == []


def test_friend_with_frequency_gets_catch_up_reminder(app):
    friend = get_friend_service().create_friend({
        'name': 'Riley',
        'catch_up_frequency': 'weekly',
        'tags': ['Work', 'climbing'],
    })
    assert friend.tags == ['climbing', 'work']
    ids = [r.id for r in get_reminder_service().pending()]
    assert f"catchup-{friend.id}" in ids


def test_mark_seen_moves_next_connect_date(app):
    service = get_friend_service()
    friend = service.create_friend({'name': 'Quinn', 'catch_up_frequency': 'Monthly'})
    seen = now_utc() - timedelta(days=2)

    updated = service.mark_seen(friend.id, seen)

    assert updated.next_connect_date == seen + timedelta(days=30)
    reminder = get_reminder_service().repository.get_by_id(f"catchup-{friend.id}")
    assert reminder is not None


def test_friend_fields_are_type_checked(app):
    service = get_friend_service()

    with pytest.raises(FriendError) as exc:
        service.create_friend({'name': 5})
    assert exc.value.code == "invalid_friend_name"

    with pytest.raises(FriendError) as exc:
        service.create_friend({'name': 'Pat', 'email': ['pat@example.com']})
    assert exc.value.code == "invalid_email"

    friend = service.create_friend({'name': 'Pat', 'additional_emails': 'Pat@Work.co'})
    assert friend.additional_emails == ['pat@work.co']
    assert service.get_friend(friend.id).additional_emails == ['pat@work.co']

    with pytest.raises(FriendError) as exc:
        service.update_friend(friend.id, {'tags': 7})
    assert exc.value.code == "invalid_tags"


def test_import_contacts_syncs_without_touching_wishlist(app):
    service = get_friend_service()
    csv_text = "name,phone,email,identifier\nAda,5551234567,ada@example.com,c-1\n"
    assert service.import_contacts(csv_text) == {'created': 1, 'updated': 0}

    ada = service.list_friends(search_text="ada")[0]
    service.toggle_wishlist(ada.id, True)

    updated_csv = "name,phone,email,identifier\nAda King,5559999999,ada@example.com,c-1\n"
    assert service.import_contacts(updated_csv) == {'created': 0, 'updated': 1}

    synced = service.get_friend(ada.id)
    assert synced.name == "Ada King"
    assert synced.phone_number == "15559999999"
    assert synced.needs_to_connect_flag is True


def test_ketchups_board_sections(app):
    friends = get_friend_service()
    hangouts = get_hangout_service()
    now = now_utc()

    booked = friends.create_friend({'name': 'Booked', 'catch_up_frequency': 'daily'})
    never = friends.create_friend({'name': 'Never Seen', 'catch_up_frequency': 'weekly'})
    stale = friends.create_friend({'name': 'Stale', 'catch_up_frequency': 'weekly',
                                   'last_seen': (now - timedelta(days=60)).isoformat()})
    friends.create_friend({'name': 'No Frequency'})

    upcoming = hangouts.create_hangout({'date': (now + timedelta(days=1)).isoformat(),
                                        'friend_ids': [booked.id]}, now=now)
    past = hangouts.create_hangout({'date': (now - timedelta(days=3)).isoformat(),
                                    'friend_ids': [stale.id]}, now=now)
    done = hangouts.create_hangout({'date': (now - timedelta(days=10)).isoformat(),
                                    'friend_ids': [stale.id]}, now=now)
    hangouts.mark_completed(done.id, now=now)

    board = hangouts.ketchups_board(now)

    assert [h.id for h in board['upcoming']] == [upcoming.id]
    assert [h.id for h in board['past']] == [past.id]
    assert [h.id for h in board['completed']] == [done.id]
    assert [f.id for f in board['check_ins']] == [never.id, stale.id]


def test_mark_completed_updates_last_seen_only_forward(app):
    friends = get_friend_service()
    hangouts = get_hangout_service()
    now = now_utc()
    recent = now - timedelta(days=1)
    friend = friends.create_friend({'name': 'Jamie', 'last_seen': recent.isoformat()})
    old = hangouts.create_hangout({'date': (now - timedelta(days=5)).isoformat(),
                                   'friend_ids': [friend.id]}, now=now)

    hangouts.mark_completed(old.id)

    assert friends.get_friend(friend.id).last_seen == recent
    assert hangouts.get_hangout(old.id).is_completed


def test_mark_completed_moves_last_seen_forward_and_clears_wishlist(app):
    friends = get_friend_service()
    hangouts = get_hangout_service()
    now = now_utc()
    friend = friends.create_friend({'name': 'Robin', 'catch_up_frequency': 'weekly',
                                    'last_seen': (now - timedelta(days=30)).isoformat(),
                                    'needs_to_connect_flag': True})
    hangout = hangouts.create_hangout({'date': (now - timedelta(days=2)).isoformat(),
                                       'friend_ids': [friend.id]}, now=now)

    hangouts.mark_completed(hangout.id, now=now)

    stored = friends.get_friend(friend.id)
    assert stored.last_seen == hangout.date
    assert stored.needs_to_connect_flag is False
    assert stored.next_connect_date == hangout.date + timedelta(days=7)


def test_resolve_missed_outcomes(app):
    friends = get_friend_service()
    hangouts = get_hangout_service()
    now = now_utc()
    friend = friends.create_friend({'name': 'Kit', 'needs_to_connect_flag': True})

    def missed():
        return hangouts.create_hangout({'date': (now - timedelta(days=1)).isoformat(),
                                        'friend_ids': [friend.id]}, now=now)

    flagged = hangouts.resolve_missed(missed().id, 'reschedule')
    assert flagged.needs_reschedule is True

    dropped = missed()
    assert hangouts.resolve_missed(dropped.id, 'hold_off') is None
    assert friends.get_friend(friend.id).needs_to_connect_flag is False
    with pytest.raises(HangoutError) as exc:
        hangouts.get_hangout(dropped.id)
    assert exc.value.status_code == 404

    dropped = missed()
    assert hangouts.resolve_missed(dropped.id, 'TO_CONNECT') is None
    assert friends.get_friend(friend.id).needs_to_connect_flag is True
    assert dropped.id not in [h.id for h in hangouts.list_hangouts()]

    with pytest.raises(HangoutError) as exc:
        hangouts.resolve_missed(flagged.id, 'shrug')
    assert exc.value.code == "invalid_outcome"


def test_create_hangout_rejects_bad_payload_types(app):
    friend = get_friend_service().create_friend({'name': 'Lee'})
    hangouts = get_hangout_service()
    start = (now_utc() + timedelta(days=1)).isoformat()

    with pytest.raises(HangoutError) as exc:
        hangouts.create_hangout({'date': start, 'friend_ids': [friend.id], 'duration': 'abc'})
    assert exc.value.code == "invalid_duration"

    with pytest.raises(HangoutError) as exc:
        hangouts.create_hangout({'date': start, 'friend_ids': [friend.id], 'title': 12})
    assert exc.value.code == "invalid_title"

    hangout = hangouts.create_hangout({'date': start, 'friend_ids': friend.id,
                                       'attendee_emails': 'lee@example.com'})
    assert hangout.friend_ids == [friend.id]
    assert hangout.attendee_emails == ['lee@example.com']


def test_create_hangout_validates_dates_and_friends(app):
    friend = get_friend_service().create_friend({'name': 'Alex', 'email': 'alex@example.com'})
    hangouts = get_hangout_service()
    start = now_utc() + timedelta(days=1)

    with pytest.raises(HangoutError) as exc:
        hangouts.create_hangout({'date': start.isoformat(), 'end_date': start.isoformat(),
                                 'friend_ids': [friend.id]})
    assert exc.value.code == "invalid_hangout_dates"

    with pytest.raises(HangoutError):
        hangouts.create_hangout({'date': start.isoformat(), 'friend_ids': []})

    hangout = hangouts.create_hangout({'date': start.isoformat(), 'friend_ids': [friend.id]})
    assert hangout.attendee_emails == ['alex@example.com']
    assert hangout.title == "Hangout with Alex"
    reminder_ids = [r.id for r in get_reminder_service().pending()]
    assert any(rid.startswith(f"hangout-{friend.id}-") for rid in reminder_ids)


def test_reschedule_creates_linked_copy(app):
    friend = get_friend_service().create_friend({'name': 'Sky'})
    hangouts = get_hangout_service()
    now = now_utc()
    original = hangouts.create_hangout({'date': (now + timedelta(days=1)).isoformat(),
                                        'friend_ids': [friend.id], 'title': 'Lunch'}, now=now)
    hangouts.mark_needs_reschedule(original.id)
    new_date = now + timedelta(days=7)

    replacement = hangouts.reschedule(original.id, new_date.isoformat(), 1800, now=now)

    assert replacement.original_hangout_id == original.id
    assert replacement.title == 'Lunch'
    assert replacement.friend_ids == [friend.id]
    old = hangouts.get_hangout(original.id)
    assert old.needs_reschedule is False
    assert old.is_scheduled is False
    assert [h.id for h in hangouts.upcoming_hangouts(now)] == [replacement.id]


def test_delete_hangout_cancels_reminders(app):
    friend = get_friend_service().create_friend({'name': 'Drew'})
    hangouts = get_hangout_service()
    hangout = hangouts.create_hangout({'date': (now_utc() + timedelta(days=2)).isoformat(),
                                       'friend_ids': [friend.id]})
    hangouts.delete_hangout(hangout.id)
    assert not any(r.id.startswith("hangout-") for r in get_reminder_service().pending())


def test_create_event_requires_fields(app):
    with pytest.raises(EventError) as exc:
        get_event_service().create_event({'title': 'No date'})
    assert exc.value.code == "missing_fields"
    assert "date" in exc.value.message


def test_update_rsvp_rejects_unknown_status(app):
    service = get_event_service()
    event = service.create_event({
        'title': 'Game night',
        'date': '2030-03-01T19:00:00Z',
        'creator_id': 'me',
        'attendees': [{'name': 'Ann', 'phone': '555-123-4567'}],
    })
    attendee = event.attendees[0]
    assert attendee.phone_number == "15551234567"

    with pytest.raises(EventError):
        service.update_rsvp(event.id, attendee.id, 'sure-why-not')
    assert service.update_rsvp(event.id, attendee.id, 'Maybe').rsvp_status.value == 'maybe'
    assert service.rsvp_summary(event.id)['maybe'] == 1


class FakeResponse:
    def __init__(self, status_code=201, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else []
        self.content = b'[]'
        self.text = ''
        self.reason = 'Created'

    def json(self):
        return self._payload


def test_event_push_goes_through_coordinator(app, monkeypatch):
    calls = []

    def fake_request(method, url, headers=None, params=None, json=None, timeout=None):
        calls.append((method, url, headers, json))
        return FakeResponse(payload=json if isinstance(json, list) else [json])

    monkeypatch.setattr("ketchupsoon.services.remote_backend.requests.request", fake_request)
    app.config.update(SUPABASE_URL="https://example.supabase.co", SUPABASE_KEY="anon-key")

    service = get_event_service()
    event = service.create_event({
        'title': 'Launch party',
        'date': '2030-04-01T20:00:00Z',
        'creator_id': 'me',
        'attendees': [{'name': 'Ann', 'email': 'ann@example.com'}],
    })
    assert calls == []

    assert service.coordinator.process_pending() == 1

    methods = [(c[0], c[1].rsplit('/', 1)[-1]) for c in calls]
    assert methods == [('POST', 'events'), ('POST', 'event_attendees')]
    headers = calls[0][2]
    assert headers['apikey'] == 'anon-key'
    assert headers['Authorization'] == 'Bearer anon-key'
    assert calls[0][3][0]['is_private'] is False
    assert calls[1][3][0]['rsvp_status'] == 'pending'
    assert calls[1][3][0]['event_id'] == event.id


def test_remote_failure_is_reported_not_raised(app, monkeypatch):
    def failing_request(method, url, **kwargs):
        return FakeResponse(status_code=500)

    monkeypatch.setattr("ketchupsoon.services.remote_backend.requests.request", failing_request)
    app.config.update(SUPABASE_URL="https://example.supabase.co", SUPABASE_KEY="anon-key")

    service = get_event_service()
    service.create_event({'title': 'Flaky', 'date': '2030-04-01T20:00:00Z', 'creator_id': 'me'})

    assert service.coordinator.process_pending() == 0
    assert service.coordinator.stats()['total_operations_failed'] == 1
    # Event stays stored locally
    assert [e.title for e in service.list_events()] == ['Flaky']


def _record_remote(app, monkeypatch):
    calls = []

    def fake_request(method, url, headers=None, params=None, json=None, timeout=None):
        calls.append((method, url.rsplit('/', 1)[-1], params, json))
        return FakeResponse(payload=json if isinstance(json, list) else [json])

    monkeypatch.setattr("ketchupsoon.services.remote_backend.requests.request", fake_request)
    app.config.update(SUPABASE_URL="https://example.supabase.co", SUPABASE_KEY="anon-key")
    return calls


def test_every_event_update_reaches_remote(app, monkeypatch):
    calls = _record_remote(app, monkeypatch)
    service = get_event_service()
    event = service.create_event({'title': 'A', 'date': '2030-05-01T18:00:00Z', 'creator_id': 'me'})
    service.coordinator.process_pending()

    service.update_event(event.id, {'title': 'B'})
    assert service.coordinator.process_pending() == 1
    service.update_event(event.id, {'title': 'C'})
    assert service.coordinator.process_pending() == 1

    patches = [c for c in calls if c[0] == 'PATCH']
    assert [c[3]['title'] for c in patches] == ['B', 'C']
    assert patches[0][2] == {'id': f"eq.{event.id}"}


def test_queued_updates_collapse_to_latest_state(app, monkeypatch):
    calls = _record_remote(app, monkeypatch)
    service = get_event_service()
    event = service.create_event({'title': 'A', 'date': '2030-05-01T18:00:00Z', 'creator_id': 'me'})
    service.coordinator.process_pending()

    service.update_event(event.id, {'title': 'B'})
    service.update_event(event.id, {'title': 'C'})
    assert service.coordinator.process_pending() == 1

    assert [c[3]['title'] for c in calls if c[0] == 'PATCH'] == ['C']


def test_attendee_changes_resync_remote_rows(app, monkeypatch):
    calls = _record_remote(app, monkeypatch)
    service = get_event_service()
    event = service.create_event({'title': 'Picnic', 'date': '2030-06-01T12:00:00Z', 'creator_id': 'me'})
    service.coordinator.process_pending()
    del calls[:]

    attendee = service.add_attendee(event.id, {'name': 'Bo', 'email': 'bo@example.com'})
    service.update_rsvp(event.id, attendee.id, 'accepted')
    assert service.coordinator.process_pending() == 1

    tables = [(c[0], c[1]) for c in calls]
    assert tables == [('PATCH', 'events'), ('DELETE', 'event_attendees'), ('POST', 'event_attendees')]
    assert calls[1][2] == {'event_id': f"eq.{event.id}"}
    rows = calls[2][3]
    assert [(r['name'], r['rsvp_status']) for r in rows] == [('Bo', 'accepted')]

    del calls[:]
    service.remove_attendee(event.id, attendee.id)
    service.coordinator.process_pending()
    assert [(c[0], c[1]) for c in calls] == [('PATCH', 'events'), ('DELETE', 'event_attendees')]
