"""Integration tests for the Kuzu repositories (temporary database per test)."""
from datetime import datetime, timedelta, timezone

from ketchupsoon.domain.models import (
    CatchUpFrequency, Event, EventAttendee, Friend, Hangout, Reminder, ReminderKind, RSVPStatus, Tag,
)
from ketchupsoon.infrastructure import (
    KuzuEventRepository, KuzuFriendRepository, KuzuHangoutRepository, KuzuReminderRepository, KuzuTagRepository,
)

UTC = timezone.utc


def test_friend_round_trip(app):
    repo = KuzuFriendRepository()
    friend = repo.create(Friend(
        name="Ada Lovelace",
        email="ada@example.com",
        additional_emails=["ada@work.example"],
        catch_up_frequency=CatchUpFrequency.MONTHLY,
        last_seen=datetime(2024, 3, 1, 12, tzinfo=UTC),
    ))

    loaded = repo.get_by_id(friend.id)
    assert loaded.name == "Ada Lovelace"
    assert loaded.additional_emails == ["ada@work.example"]
    assert loaded.catch_up_frequency is CatchUpFrequency.MONTHLY
    assert loaded.last_seen == datetime(2024, 3, 1, 12, tzinfo=UTC)

    loaded.needs_to_connect_flag = True
    repo.update(loaded)
    assert repo.get_by_id(friend.id).needs_to_connect_flag is True

    seen = datetime(2024, 4, 2, 9, tzinfo=UTC)
    loaded.last_seen = seen
    repo.update(loaded)
    reloaded = repo.get_by_id(friend.id)
    assert reloaded.last_seen == seen
    assert reloaded.created_at == loaded.created_at


def test_get_by_contact_identifier(app):
    repo = KuzuFriendRepository()
    repo.create(Friend(name="Linked", contact_identifier="contact-9"))
    assert repo.get_by_contact_identifier("contact-9").name == "Linked"
    assert repo.get_by_contact_identifier("missing") is None


def test_tags_attach_detach_and_counts(app):
    friends = KuzuFriendRepository()
    tags = KuzuTagRepository()
    friend = friends.create(Friend(name="Tagged"))
    tag = tags.create(Tag(name="Climbing"))

    assert tags.attach(tag.id, friend.id) is True
    assert tags.attach(tag.id, friend.id) is False
    assert friends.get_by_id(friend.id).tags == ["climbing"]

    counts = {t.name: t.friend_count for t in tags.list_all()}
    assert counts["climbing"] == 1

    assert tags.detach(tag.id, friend.id) is True
    assert friends.get_by_id(friend.id).tags == []


def test_deleting_tag_keeps_friends(app):
    friends = KuzuFriendRepository()
    tags = KuzuTagRepository()
    friend = friends.create(Friend(name="Stays"))
    tag = tags.create(Tag(name="temporary"))
    tags.attach(tag.id, friend.id)

    assert tags.delete(tag.id) is True
    assert tags.get_by_id(tag.id) is None
    assert friends.get_by_id(friend.id).tags == []


def test_deleting_friend_cascades_to_solo_hangouts(app):
    friends = KuzuFriendRepository()
    hangouts = KuzuHangoutRepository()
    reminders = KuzuReminderRepository()
    alice = friends.create(Friend(name="Alice"))
    bob = friends.create(Friend(name="Bob"))
    start = datetime(2024, 5, 1, 18, tzinfo=UTC)
    solo = hangouts.create(Hangout(date=start, title="Solo", friend_ids=[alice.id]))
    shared = hangouts.create(Hangout(date=start, title="Shared", friend_ids=[alice.id, bob.id]))
    reminders.save(Reminder(id=f"catchup-{alice.id}", friend_id=alice.id, fire_at=start))

    assert friends.delete(alice.id) is True

    assert hangouts.get_by_id(solo.id) is None
    remaining = hangouts.get_by_id(shared.id)
    assert remaining.friend_ids == [bob.id]
    assert reminders.list_all() == []


def test_hangout_round_trip_and_listing(app):
    friends = KuzuFriendRepository()
    hangouts = KuzuHangoutRepository()
    friend = friends.create(Friend(name="Pat"))
    later = hangouts.create(Hangout(date=datetime(2024, 6, 2, tzinfo=UTC), title="Later",
                                    friend_ids=[friend.id], attendee_emails=["pat@example.com"]))
    earlier = hangouts.create(Hangout(date=datetime(2024, 6, 1, tzinfo=UTC), title="Earlier",
                                      friend_ids=[friend.id]))

    assert [h.id for h in hangouts.list_all()] == [earlier.id, later.id]
    assert [h.id for h in hangouts.list_for_friend(friend.id)] == [earlier.id, later.id]

    loaded = hangouts.get_by_id(later.id)
    assert loaded.attendee_emails == ["pat@example.com"]
    assert loaded.end_date == later.date + timedelta(hours=1)

    loaded.is_completed = True
    hangouts.update(loaded)
    assert hangouts.get_by_id(later.id).is_completed is True


def test_event_with_attendees_and_rsvp(app):
    events = KuzuEventRepository()
    event = events.create(Event(
        title="Picnic",
        date=datetime(2024, 8, 1, 12, tzinfo=UTC),
        creator_id="user-1",
        attendees=[EventAttendee(name="Ann"), EventAttendee(name="Ben", email="ben@example.com")],
    ))

    loaded = events.get_by_id(event.id)
    assert [a.name for a in loaded.attendees] == ["Ann", "Ben"]
    assert all(a.rsvp_status is RSVPStatus.PENDING for a in loaded.attendees)

    ann = loaded.attendees[0]
    updated = events.update_rsvp(event.id, ann.id, RSVPStatus.ACCEPTED)
    assert updated.rsvp_status is RSVPStatus.ACCEPTED
    assert events.get_by_id(event.id).rsvp_counts()['accepted'] == 1

    loaded.title = "Beach picnic"
    loaded.duration = 90
    events.update(loaded)
    reloaded = events.get_by_id(event.id)
    assert (reloaded.title, reloaded.duration) == ("Beach picnic", 90)
    assert reloaded.created_at == loaded.created_at
    assert len(reloaded.attendees) == 2

    assert [e.id for e in events.list_all("user-1")] == [event.id]
    assert events.list_all("someone-else") == []

    assert events.delete(event.id) is True
    assert events.get_by_id(event.id) is None


def test_reminders_prefix_and_due(app):
    reminders = KuzuReminderRepository()
    now = datetime(2024, 1, 10, tzinfo=UTC)
    reminders.save(Reminder(id="catchup-a", friend_id="a", fire_at=now - timedelta(hours=1)))
    reminders.save(Reminder(id="catchup-b", friend_id="b", fire_at=now + timedelta(days=1)))
    reminders.save(Reminder(id="hangout-a-1", kind=ReminderKind.HANGOUT, friend_id="a", fire_at=now))

    assert [r.id for r in reminders.list_due(now)] == ["catchup-a", "hangout-a-1"]

    # save replaces by identifier
    reminders.save(Reminder(id="catchup-a", friend_id="a", fire_at=now + timedelta(days=2)))
    assert len(reminders.list_all()) == 3

    assert reminders.delete_by_prefix("catchup-") == 2
    assert [r.id for r in reminders.list_all()] == ["hangout-a-1"]
    assert reminders.delete_all() == 1
