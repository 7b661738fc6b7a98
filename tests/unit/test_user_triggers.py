"""
Unit tests for friend and badge triggers.
"""
from datetime import datetime, timedelta, timezone

import pytest

from shared.config import settings
from services.notification_service.triggers import UserTriggers
from services.notification_service.triggers.users import friend_lock_id, newly_added
from tests.helpers import make_user, make_settings, sent_messages, sent_tokens

PARAMS = {"userId": "adder"}


@pytest.fixture
def triggers(notification_service) -> UserTriggers:
    return UserTriggers(notification_service)


def friends_doc(friends, display_name="Adam"):
    return {"displayName": display_name, "friends": friends}


@pytest.mark.unit
class TestNewlyAdded:
    def test_appended_items(self):
        assert newly_added(["a", "b"], ["a", "b", "c", "d"]) == ["c", "d"]
        assert newly_added(["a", "b"], ["a", "b"]) == []

    def test_order_and_duplicates(self):
        assert newly_added(["a"], ["a", "c", "b", "c"]) == ["c", "b"]

    def test_removal_only(self):
        assert newly_added(["a", "b"], ["a"]) == []


@pytest.mark.unit
class TestFriendAdded:
    """Test notifications to newly added friends."""

    async def test_notifies_new_friends(self, fake_db, triggers, mock_send):
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))
        fake_db.add("users", "c", make_user("tok-c", friendRequests=False))

        sent = await triggers.on_friend_added(friends_doc(["a"]), friends_doc(["a", "b", "c"]), PARAMS)

        assert sent == 1
        message = sent_messages(mock_send)[0]
        assert message.token == "tok-b"
        assert message.notification.title == "👋 Nový přítel"
        assert message.notification.body == "Adam vás přidal(a) mezi přátele"
        assert message.data == {"type": "friend_request", "userId": "adder"}
        assert message.android.notification.channel_id == "default"

    async def test_lock_written_only_when_sent(self, fake_db, triggers, mock_send):
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))
        fake_db.add("users", "c", make_user("tok-c"))

        await triggers.on_friend_added(friends_doc([]), friends_doc(["b", "c"]), PARAMS)

        assert fake_db.get("notification_locks", friend_lock_id("adder", "b")) is not None
        assert fake_db.get("notification_locks", friend_lock_id("adder", "c")) is None

    async def test_cooldown_blocks_repeat(self, fake_db, triggers, mock_send):
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))
        fake_db.add(
            "notification_locks",
            "friend_req_adder_b",
            {"timestamp": datetime.now(timezone.utc) - timedelta(hours=1)},
        )

        sent = await triggers.on_friend_added(friends_doc([]), friends_doc(["b"]), PARAMS)

        assert sent == 0
        mock_send.assert_not_called()

    async def test_expired_cooldown(self, fake_db, triggers, mock_send):
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))
        fake_db.add(
            "notification_locks",
            "friend_req_adder_b",
            {"timestamp": datetime.now(timezone.utc) - timedelta(hours=25)},
        )

        sent = await triggers.on_friend_added(friends_doc([]), friends_doc(["b"]), PARAMS)

        assert sent == 1

    async def test_cooldown_disabled(self, fake_db, triggers, mock_send, monkeypatch):
        monkeypatch.setattr(settings, "FRIEND_REQUEST_COOLDOWN_HOURS", 0)
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))
        fake_db.add("notification_locks", "friend_req_adder_b", {"timestamp": datetime.now(timezone.utc)})

        sent = await triggers.on_friend_added(friends_doc([]), friends_doc(["b"]), PARAMS)

        assert sent == 1

    async def test_self_and_fallback_name(self, fake_db, triggers, mock_send):
        fake_db.add("users", "adder", make_user("tok-adder", friendRequests=True))
        fake_db.add("users", "b", make_user("tok-b", friendRequests=True))

        sent = await triggers.on_friend_added({"friends": []}, {"friends": ["adder", "b"]}, PARAMS)

        assert sent == 1
        assert sent_tokens(mock_send) == ["tok-b"]
        assert sent_messages(mock_send)[0].notification.body == "Někdo vás přidal(a) mezi přátele"

    async def test_no_new_friends(self, triggers, mock_send):
        assert await triggers.on_friend_added(friends_doc(["a", "b"]), friends_doc(["a"]), PARAMS) == 0


@pytest.mark.unit
class TestBadgeAwarded:
    """Test badge notifications to the user themselves."""

    def user_doc(self, badges, **flags):
        return {
            "fcmToken": "tok-me",
            "notificationSettings": make_settings(**flags),
            "badges": [{"id": badge_id} for badge_id in badges],
        }

    async def test_one_notification_per_new_badge(self, triggers, mock_send):
        before = self.user_doc(["early_adopter"], badgeNotifications=True)
        after = self.user_doc(["early_adopter", "socialite", "mystery"], badgeNotifications=True)

        sent = await triggers.on_badge_awarded(before, after, {"userId": "me"})

        assert sent == 2
        bodies = sorted(m.notification.body for m in sent_messages(mock_send))
        assert bodies == [
            'Získal jsi odznak "Socialite" - Více než 50 přátel',
            'Získal jsi odznak "mystery" - Speciální odznak',
        ]
        for message in sent_messages(mock_send):
            assert message.token == "tok-me"
            assert message.notification.title == "🏆 Nový odznak!"
            assert message.data["type"] == "badge_awarded"

    async def test_badge_notifications_disabled(self, triggers, mock_send):
        before = self.user_doc([])
        after = self.user_doc(["socialite"])

        assert await triggers.on_badge_awarded(before, after, {"userId": "me"}) == 0
        mock_send.assert_not_called()

    async def test_missing_token(self, triggers, mock_send):
        before = self.user_doc([], badgeNotifications=True)
        after = self.user_doc(["socialite"], badgeNotifications=True)
        del after["fcmToken"]

        assert await triggers.on_badge_awarded(before, after, {"userId": "me"}) == 0

    async def test_quiet_hours_apply(self, triggers, mock_send, clock):
        clock.hour = 23
        before = self.user_doc([], badgeNotifications=True, quiet=(22, 7))
        after = self.user_doc(["socialite"], badgeNotifications=True, quiet=(22, 7))

        assert await triggers.on_badge_awarded(before, after, {"userId": "me"}) == 0
        mock_send.assert_not_called()
