import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import TestingConfig  # noqa: E402
from ketchupsoon import create_app  # noqa: E402
from ketchupsoon.domain.models import Reminder, ensure_utc  # noqa: E402
from ketchupsoon.domain.repositories import ReminderRepository  # noqa: E402
from ketchupsoon.services import reset_services  # noqa: E402
from ketchupsoon.utils.kuzu_manager import reset_kuzu_manager  # noqa: E402


@pytest.fixture
def app(tmp_path):
    """Flask app on a throwaway Kuzu database and data directory."""
    app = create_app(TestingConfig, {
        'DATA_DIR': str(tmp_path),
        'KUZU_DB_PATH': str(tmp_path / 'kuzu'),
    })
    with app.app_context():
        yield app
    reset_services()
    reset_kuzu_manager()


@pytest.fixture
def client(app):
    return app.test_client()


class InMemoryReminderRepository(ReminderRepository):
    def __init__(self):
        self.items: Dict[str, Reminder] = {}

    def save(self, reminder: Reminder) -> Reminder:
        self.items[reminder.id] = reminder
        return reminder

    def get_by_id(self, reminder_id: str) -> Optional[Reminder]:
        return self.items.get(reminder_id)

    def list_all(self) -> List[Reminder]:
        return sorted(self.items.values(), key=lambda r: r.fire_at)

    def list_due(self, now: datetime) -> List[Reminder]:
        return [r for r in self.list_all() if r.fire_at <= ensure_utc(now)]

    def delete(self, reminder_id: str) -> bool:
        return self.items.pop(reminder_id, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        doomed = [k for k in self.items if k.startswith(prefix)]
        for key in doomed:
            del self.items[key]
        return len(doomed)

    def delete_for_friend(self, friend_id: str) -> int:
        doomed = [k for k, r in self.items.items() if r.friend_id == friend_id]
        for key in doomed:
            del self.items[key]
        return len(doomed)

    def delete_all(self) -> int:
        count = len(self.items)
        self.items.clear()
        return count


@pytest.fixture
def reminder_repo():
    return InMemoryReminderRepository()
