"""
Recipient Resolver
Finds who can be notified: by category over all users, or a single user.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .database_service import NotificationDatabaseService
from .localization import DEFAULT_USER_NAME
from .models import NotificationCategory, NotificationSettings, Recipient, UserNotificationData
from .quiet_hours import is_quiet_hours

logger = logging.getLogger(__name__)


def parse_settings(user_id: str, data: Dict[str, Any]) -> Optional[NotificationSettings]:
    """Parse notificationSettings; malformed or missing settings mean 'cannot notify'."""
    raw = data.get("notificationSettings")
    if not raw:
        return None
    try:
        return NotificationSettings.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"⚠️ Malformed notificationSettings for user {user_id}: {e.error_count()} error(s)")
        return None


class RecipientResolver:
    """Resolves recipients and their notification data from user profiles."""

    def __init__(self, db_service: NotificationDatabaseService):
        self.db_service = db_service

    async def resolve_by_category(
        self, category: Union[NotificationCategory, str]
    ) -> List[Recipient]:
        """
        Get users with a notification category enabled.

        Keeps a user only if all of: token present, notifications enabled,
        category flag true, not currently inside quiet hours.
        The quiet-hours check runs for every category, including sosAlerts,
        even though the gateway exempts the alerts channel.
        """
        category = NotificationCategory(category)
        recipients = []

        for user_id, data in await self.db_service.get_all_users():
            token = data.get("fcmToken")
            if not token:
                continue
            settings = parse_settings(user_id, data)
            if settings is None or not settings.enabled:
                continue
            if is_quiet_hours(settings.quiet_hours):
                continue
            if not settings.category_enabled(category):
                continue
            recipients.append(
                Recipient(
                    uid=user_id,
                    token=token,
                    display_name=data.get("displayName") or DEFAULT_USER_NAME,
                    settings=settings,
                )
            )

        return recipients

    async def resolve_single(self, user_id: str) -> UserNotificationData:
        """Get a specific user's FCM token and settings."""
        data = await self.db_service.get_user(user_id)
        if data is None:
            return UserNotificationData()

        return UserNotificationData(
            token=data.get("fcmToken") or None,
            display_name=data.get("displayName") or DEFAULT_USER_NAME,
            settings=parse_settings(user_id, data),
        )
