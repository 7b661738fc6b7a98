"""
Pytest configuration and shared fixtures.
"""
import os
import sys
from unittest.mock import patch

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.config import settings
from services.notification_service import quiet_hours
from services.notification_service.database_service import NotificationDatabaseService
from services.notification_service.fcm_service import FCMService
from services.notification_service.service import NotificationService
from tests.helpers import FakeFirestore


@pytest.fixture(scope="function")
def fake_db() -> FakeFirestore:
    """Empty in-memory Firestore."""
    return FakeFirestore()


@pytest.fixture(scope="function")
def db_service(fake_db) -> NotificationDatabaseService:
    return NotificationDatabaseService(db=fake_db)


@pytest.fixture(scope="function")
def notification_service(db_service) -> NotificationService:
    return NotificationService(db_service=db_service, fcm_service=FCMService())


@pytest.fixture(scope="function")
def mock_send():
    """Patch FCM delivery; every call succeeds with a message id."""
    with patch(
        "services.notification_service.fcm_service.messaging.send",
        return_value="projects/bezkomprese/messages/1",
    ) as send:
        yield send


class Clock:
    """Controls the hour seen by the quiet-hours check."""

    def __init__(self, hour: int = 12):
        self.hour = hour


@pytest.fixture(autouse=True)
def clock(monkeypatch) -> Clock:
    """Default to noon so quiet hours never interfere unless a test says so."""
    state = Clock()
    monkeypatch.setattr(quiet_hours, "current_hour", lambda: state.hour)
    return state


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Reset settings to test values before each test."""
    monkeypatch.setattr(settings, "FRIEND_REQUEST_COOLDOWN_HOURS", 24)
    monkeypatch.setattr(settings, "SERVICE_REMINDERS_ENABLED", True)
    monkeypatch.setattr(settings, "SERVICE_OVERDUE_COOLOFF_DAYS", 7)
    monkeypatch.setattr(settings, "SENTRY_DSN", "")  # Disable Sentry in tests
