"""Tests for catch-up and hangout reminders."""
from datetime import datetime, timedelta, timezone

import pytest

from ketchupsoon.domain.models import CatchUpFrequency, Friend, ReminderKind
from ketchupsoon.services.reminder_service import ReminderService, hangout_identifier

UTC = timezone.utc
NOW = datetime(2030, 1, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def service(reminder_repo, tmp_path):
    return ReminderService(reminder_repo, timezone_name='America/New_York', data_dir=str(tmp_path))


def _friend(**kwargs):
    defaults = dict(id="f1", name="Robin", catch_up_frequency=CatchUpFrequency.WEEKLY,
                    last_seen=datetime(2030, 1, 1, 15, 0, tzinfo=UTC))
    defaults.update(kwargs)
    return Friend(**defaults)


def test_catch_up_fires_at_ten_local_time(service):
    reminder = service.schedule_catch_up_reminder(_friend(), now=NOW)

    assert reminder.id == "catchup-f1"
    assert reminder.kind is ReminderKind.CATCH_UP
    # 10:00 EST on Jan 8th
    assert reminder.fire_at == datetime(2030, 1, 8, 15, 0, tzinfo=UTC)
    assert "Robin" in reminder.body


def test_catch_up_replaces_previous_reminder(service, reminder_repo):
    service.schedule_catch_up_reminder(_friend(), now=NOW)
    service.schedule_catch_up_reminder(_friend(catch_up_frequency=CatchUpFrequency.MONTHLY), now=NOW)

    assert list(reminder_repo.items) == ["catchup-f1"]
    assert reminder_repo.items["catchup-f1"].fire_at.date() == datetime(2030, 1, 31).date()


def test_catch_up_skipped_when_due_date_in_past(service, reminder_repo):
    friend = _friend(last_seen=NOW - timedelta(days=30))
    assert service.schedule_catch_up_reminder(friend, now=NOW) is None
    assert reminder_repo.items == {}


def test_catch_up_skipped_without_frequency(service, reminder_repo):
    assert service.schedule_catch_up_reminder(_friend(catch_up_frequency=None), now=NOW) is None
    assert reminder_repo.items == {}


def test_disabling_notifications_cancels_catch_ups(service, reminder_repo):
    service.schedule_catch_up_reminder(_friend(), now=NOW)
    service.schedule_hangout_reminder(_friend(), datetime(2030, 1, 5, 18, tzinfo=UTC))

    service.set_catch_up_notifications_enabled(False)

    assert [r.kind for r in reminder_repo.items.values()] == [ReminderKind.HANGOUT]
    assert service.schedule_catch_up_reminder(_friend(id="f2"), now=NOW) is None


def test_hangout_reminder_identifier_and_time(service):
    date = datetime(2030, 1, 1, 0, 0, tzinfo=UTC)
    reminder = service.schedule_hangout_reminder(_friend(), date, minutes_before=30)

    assert reminder.id == "hangout-f1-1893456000"
    assert reminder.id == hangout_identifier("f1", date)
    assert reminder.fire_at == date - timedelta(minutes=30)
    assert reminder.body == "You have a hangout with Robin in 30 minutes"


def test_hangout_reminder_uses_configured_default(service):
    service.update_settings({'hangout_reminder_minutes': 15})
    date = datetime(2030, 1, 3, 12, tzinfo=UTC)
    reminder = service.schedule_hangout_reminder(_friend(), date)
    assert reminder.fire_at == date - timedelta(minutes=15)


def test_pop_due_returns_and_removes(service, reminder_repo):
    service.schedule_hangout_reminder(_friend(), datetime(2030, 1, 2, 9, 30, tzinfo=UTC), minutes_before=60)
    service.schedule_hangout_reminder(_friend(), datetime(2030, 2, 1, tzinfo=UTC), minutes_before=60)

    due = service.pop_due(NOW)

    assert len(due) == 1
    assert len(reminder_repo.items) == 1
    assert service.due(NOW) == []
