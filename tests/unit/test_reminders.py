"""
Unit tests for the daily reminder sweep.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from shared.config import settings
from services.notification_service import reminders
from services.notification_service.reminders import ReminderSweep, days_until
from tests.helpers import make_user, sent_messages

NOW = datetime(2026, 10, 18, 7, 0, tzinfo=timezone.utc)


@pytest.fixture
def sweep(notification_service) -> ReminderSweep:
    return ReminderSweep(notification_service)


@pytest.fixture
def owner(fake_db):
    fake_db.add("users", "owner", make_user("tok-owner", vehicleReminders=True))


def add_car(fake_db, reminders_list=None, car_id="c1", owner_id="owner", **extra):
    fake_db.add("cars", car_id, {
        "ownerId": owner_id,
        "name": "Octavka",
        "make": "Škoda",
        "model": "Octavia",
        "reminders": reminders_list or [],
        **extra,
    })


def stk(expiration_date, notify=True, reminder_type="stk"):
    return {"type": reminder_type, "expirationDate": expiration_date, "notifyEnabled": notify}


def add_service(fake_db, service_id="s1", car_id="c1", **fields):
    fake_db.add("service-records", service_id, {"carId": car_id, "title": "Výměna oleje", **fields})


@pytest.mark.unit
class TestDaysUntil:
    def test_rounds_up(self):
        assert days_until(NOW + timedelta(hours=1), NOW) == 1
        assert days_until(NOW + timedelta(days=30), NOW) == 30

    def test_past_within_a_day_is_zero(self):
        assert days_until(NOW - timedelta(hours=7), NOW) == 0

    def test_past(self):
        assert days_until(NOW - timedelta(days=2, hours=1), NOW) == -2


@pytest.mark.unit
@pytest.mark.usefixtures("owner")
class TestVehicleReminders:
    """Test document expiration reminders."""

    async def test_threshold_hit(self, fake_db, sweep, mock_send):
        add_car(fake_db, [stk("2027-01-16")])

        sent = await sweep.run(now=NOW)

        assert sent == 1
        message = sent_messages(mock_send)[0]
        assert message.token == "tok-owner"
        assert message.notification.title == "Platnost STK vyprší za 90 dní"
        assert "90 dní" in f"{message.notification.title} {message.notification.body}"
        assert message.notification.body == "Octavka (Škoda Octavia) - Platnost STK vyprší 16. 1. 2027"
        assert message.data == {"type": "vehicle_reminder", "carId": "c1", "reminderType": "stk"}
        assert message.android.notification.channel_id == "reminders"

    async def test_between_thresholds(self, fake_db, sweep, mock_send):
        add_car(fake_db, [stk((NOW + timedelta(days=45)).isoformat())])

        assert await sweep.run(now=NOW) == 0
        mock_send.assert_not_called()

    async def test_expiry_day(self, fake_db, sweep, mock_send):
        add_car(fake_db, [stk("2026-10-18")])

        sent = await sweep.run(now=NOW)

        assert sent == 1
        message = sent_messages(mock_send)[0]
        assert message.notification.title == "Platnost STK vyprší dnes!"
        assert message.notification.body == "Octavka (Škoda Octavia) - Platnost STK vyprší dnes!"

    async def test_zero_threshold_sends_twice(self, fake_db, sweep, mock_send, monkeypatch):
        monkeypatch.setitem(reminders.REMINDER_CONFIG, "stk", {"label": "Platnost STK", "warning_days": [0]})
        add_car(fake_db, [stk("2026-10-18")])

        sent = await sweep.run(now=NOW)

        assert sent == 2
        titles = [m.notification.title for m in sent_messages(mock_send)]
        assert titles == ["Platnost STK vyprší za 0 dní", "Platnost STK vyprší dnes!"]

    async def test_expiry_day_counted_even_if_delivery_fails(self, fake_db, sweep, mock_send):
        mock_send.side_effect = RuntimeError("FCM unavailable")
        add_car(fake_db, [stk("2026-10-18")])

        assert await sweep.run(now=NOW) == 1

    async def test_other_reminder_types(self, fake_db, sweep, mock_send):
        add_car(fake_db, [
            stk("2026-11-17", reminder_type="first_aid_kit"),
            stk("2026-12-17", reminder_type="liability_insurance"),
            stk("2026-11-17", reminder_type="winter_tires"),
        ])

        sent = await sweep.run(now=NOW)

        assert sent == 2
        titles = sorted(m.notification.title for m in sent_messages(mock_send))
        assert titles == ["Lékárnička vyprší za 30 dní", "Povinné ručení vyprší za 60 dní"]

    async def test_disabled_or_incomplete_reminders(self, fake_db, sweep, mock_send):
        add_car(fake_db, [stk("2027-01-16", notify=False), stk("")])

        assert await sweep.run(now=NOW) == 0

    async def test_user_without_vehicle_reminders(self, fake_db, sweep, mock_send):
        fake_db.add("users", "owner", make_user("tok-owner"))
        add_car(fake_db, [stk("2027-01-16")])

        assert await sweep.run(now=NOW) == 0
        mock_send.assert_not_called()

    async def test_vehicle_documents_are_not_written(self, fake_db, sweep, mock_send):
        add_car(fake_db, [stk("2027-01-16")])
        before = dict(fake_db.get("cars", "c1"))

        await sweep.run(now=NOW)

        assert fake_db.get("cars", "c1") == before

    async def test_errors_abort_quietly(self, sweep, notification_service, mock_send):
        notification_service.db_service.get_all_users = AsyncMock(side_effect=RuntimeError("firestore down"))

        assert await sweep.run(now=NOW) == 0


@pytest.mark.unit
@pytest.mark.usefixtures("owner")
class TestServiceReminders:
    """Test service record reminders."""

    @pytest.mark.parametrize("service_date,title", [
        ("2026-10-25", "🔧 Servis za 7 dní"),
        ("2026-10-21", "🔧 Servis za 3 dny"),
        ("2026-10-19", "🔧 Servis za 1 den"),
    ])
    async def test_upcoming_date(self, fake_db, sweep, mock_send, service_date, title):
        add_car(fake_db)
        add_service(fake_db, nextServiceDate=service_date)

        sent = await sweep.run(now=NOW)

        assert sent == 1
        message = sent_messages(mock_send)[0]
        assert message.notification.title == title
        assert message.data == {"type": "service_reminder", "carId": "c1", "serviceId": "s1"}
        assert message.android.notification.channel_id == "reminders"

    async def test_upcoming_date_body(self, fake_db, sweep, mock_send):
        add_car(fake_db)
        add_service(fake_db, nextServiceDate="2026-10-25")

        await sweep.run(now=NOW)

        assert sent_messages(mock_send)[0].notification.body == "Octavka: Výměna oleje - 25. 10. 2026"

    async def test_overdue_date_writes_back(self, fake_db, sweep, mock_send):
        add_car(fake_db)
        add_service(fake_db, nextServiceDate="2026-10-10")

        sent = await sweep.run(now=NOW)

        assert sent == 1
        message = sent_messages(mock_send)[0]
        assert message.notification.title == "🔧 Servis po termínu!"
        assert message.notification.body == "Octavka: Výměna oleje — termín vypršel 10. 10. 2026"
        assert fake_db.get("service-records", "s1")["lastServiceNotificationSent"] == NOW.isoformat()

    async def test_overdue_cooloff(self, fake_db, sweep, mock_send):
        add_car(fake_db)
        add_service(
            fake_db,
            nextServiceDate="2026-10-10",
            lastServiceNotificationSent=(NOW - timedelta(days=3)).isoformat(),
        )

        assert await sweep.run(now=NOW) == 0
        mock_send.assert_not_called()

    async def test_overdue_after_cooloff(self, fake_db, sweep, mock_send):
        add_car(fake_db)
        add_service(
            fake_db,
            nextServiceDate="2026-10-01",
            lastServiceNotificationSent=(NOW - timedelta(days=7)).isoformat(),
        )

        assert await sweep.run(now=NOW) == 1

    async def test_no_write_back_when_not_delivered(self, fake_db, sweep, mock_send):
        mock_send.side_effect = RuntimeError("FCM unavailable")
        add_car(fake_db)
        add_service(fake_db, nextServiceDate="2026-10-10")

        assert await sweep.run(now=NOW) == 0
        assert "lastServiceNotificationSent" not in fake_db.get("service-records", "s1")

    @pytest.mark.parametrize("current,expected_title", [
        (99_700, "🔧 Servis za 300 km"),
        (99_850, "🔧 Servis za 150 km"),
    ])
    async def test_mileage_brackets(self, fake_db, sweep, mock_send, current, expected_title):
        add_car(fake_db, currentMileage=current)
        add_service(fake_db, nextServiceMileage=100_000)

        assert await sweep.run(now=NOW) == 1
        message = sent_messages(mock_send)[0]
        assert message.notification.title == expected_title
        assert message.notification.body == "Octavka: Výměna oleje - při 100,000 km"

    async def test_mileage_far_away(self, fake_db, sweep, mock_send):
        add_car(fake_db, currentMileage=99_000)
        add_service(fake_db, nextServiceMileage=100_000)

        assert await sweep.run(now=NOW) == 0

    async def test_mileage_overdue(self, fake_db, sweep, mock_send):
        add_car(fake_db, currentMileage=100_250)
        add_service(fake_db, nextServiceMileage=100_000)

        assert await sweep.run(now=NOW) == 1
        message = sent_messages(mock_send)[0]
        assert message.notification.title == "🔧 Servis po termínu!"
        assert message.notification.body == "Octavka: Výměna oleje — nájezd překročen o 250 km"
        assert fake_db.get("service-records", "s1")["lastServiceNotificationSent"] == NOW.isoformat()

    async def test_date_overdue_skips_mileage(self, fake_db, sweep, mock_send):
        add_car(fake_db, currentMileage=100_250)
        add_service(fake_db, nextServiceDate="2026-10-10", nextServiceMileage=100_000)

        assert await sweep.run(now=NOW) == 1
        assert "termín vypršel" in sent_messages(mock_send)[0].notification.body

    async def test_other_cars_records_ignored(self, fake_db, sweep, mock_send):
        add_car(fake_db)
        add_service(fake_db, car_id="someone-elses", nextServiceDate="2026-10-19")

        assert await sweep.run(now=NOW) == 0

    async def test_service_reminders_disabled(self, fake_db, sweep, mock_send, monkeypatch):
        monkeypatch.setattr(settings, "SERVICE_REMINDERS_ENABLED", False)
        add_car(fake_db)
        add_service(fake_db, nextServiceDate="2026-10-19")

        assert await sweep.run(now=NOW) == 0
