"""
User document triggers (users/{userId}).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from shared.config import settings
from ..localization import SOMEONE, badge_info
from ..models import NotificationCategory, NotificationType, UserProfile
from ..recipients import parse_settings
from ..service import NotificationService

logger = logging.getLogger(__name__)


def newly_added(before: List[str], after: List[str]) -> List[str]:
    """Items present after the update but not before, in their `after` order."""
    before_set = set(before)
    return [item for item in dict.fromkeys(after) if item not in before_set]


def friend_lock_id(adder_id: str, friend_id: str) -> str:
    return f"friend_req_{adder_id}_{friend_id}"


class UserTriggers:
    """Notifications derived from changes on a user's own profile document."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def on_friend_added(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """
        Notify users who were just added to this user's friend list.

        The trigger fires on the adder's document; the added friend is notified.
        """
        user_id = params.get("userId", "")
        try:
            before = UserProfile.model_validate(before_data or {})
            after = UserProfile.model_validate(after_data or {})

            new_friends = [f for f in newly_added(before.friends, after.friends) if f != user_id]
            if not new_friends:
                return 0

            logger.info(
                f"User {user_id} added {len(new_friends)} new friend(s). "
                f"Before: {len(before.friends)}, After: {len(after.friends)}"
            )
            adder_name = after.display_name or SOMEONE

            success_count = await self.notification_service.gather_sends(
                self._notify_new_friend(user_id, adder_name, friend_id) for friend_id in new_friends
            )
            logger.info(f"Friend notifications sent: {success_count}/{len(new_friends)}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling friend list change of {user_id}: {e}", exc_info=True)
            return 0

    async def _notify_new_friend(self, user_id: str, adder_name: str, friend_id: str) -> bool:
        db_service = self.notification_service.db_service
        lock_id = friend_lock_id(user_id, friend_id)
        cooldown = timedelta(hours=settings.FRIEND_REQUEST_COOLDOWN_HOURS)

        # Remove-and-add again should not spam the friend
        if cooldown:
            last_sent = await db_service.get_lock_timestamp(lock_id)
            if last_sent and datetime.now(timezone.utc) - last_sent < cooldown:
                logger.info(f"Skipping notification to {friend_id} from {user_id} due to cooldown.")
                return False

        friend = await self.notification_service.recipients.resolve_single(friend_id)
        if not self.notification_service.can_notify(friend, NotificationCategory.FRIEND_REQUESTS):
            logger.info(f"Skipping friend notification for {friend_id} - missing token or disabled.")
            return False

        if cooldown:
            await db_service.set_lock(lock_id, datetime.now(timezone.utc))

        logger.info(f"Sending friend notification to {friend_id} (from {user_id}).")
        return await self.notification_service.notify_user(
            friend_id,
            NotificationCategory.FRIEND_REQUESTS,
            title="👋 Nový přítel",
            body=f"{adder_name} vás přidal(a) mezi přátele",
            data={"type": NotificationType.FRIEND_REQUEST, "userId": user_id},
            user=friend,
        )

    async def on_badge_awarded(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """Notify the user about each newly earned badge."""
        user_id = params.get("userId", "")
        try:
            before = UserProfile.model_validate(before_data or {})
            after = UserProfile.model_validate(after_data or {})

            new_badge_ids = newly_added(
                [badge.id for badge in before.badges],
                [badge.id for badge in after.badges],
            )
            if not new_badge_ids:
                return 0

            logger.info(f"User {user_id} earned {len(new_badge_ids)} new badge(s)")

            # Settings come from the updated document itself, no extra read
            user_settings = parse_settings(user_id, after_data or {})
            if user_settings is None or not user_settings.allows(NotificationCategory.BADGE_NOTIFICATIONS):
                return 0
            if not after.fcm_token:
                return 0

            sends = []
            for badge_id in new_badge_ids:
                info = badge_info(badge_id)
                sends.append(
                    self.notification_service.send(
                        token=after.fcm_token,
                        title="🏆 Nový odznak!",
                        body=f'Získal jsi odznak "{info["name"]}" - {info["description"]}',
                        data={"type": NotificationType.BADGE_AWARDED, "badgeId": badge_id},
                        quiet_hours=user_settings.quiet_hours,
                    )
                )

            success_count = await self.notification_service.gather_sends(sends)
            logger.info(f"Badge notifications sent: {success_count}/{len(new_badge_ids)} to user {user_id}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling badges of {user_id}: {e}", exc_info=True)
            return 0
