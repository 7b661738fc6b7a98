"""
Notification Service
Glue between resolvers, the FCM gateway and the trigger handlers.
"""
import asyncio
import logging
from typing import Awaitable, Dict, Iterable, Optional, Union

from .database_service import NotificationDatabaseService
from .fcm_service import FCMService
from .models import Channel, NotificationCategory, UserNotificationData
from .recipients import RecipientResolver

logger = logging.getLogger(__name__)


class NotificationService:
    """Main service for notification operations."""

    def __init__(
        self,
        db_service: Optional[NotificationDatabaseService] = None,
        fcm_service: Optional[FCMService] = None,
    ):
        self.db_service = db_service or NotificationDatabaseService()
        self.fcm_service = fcm_service or FCMService()
        self.recipients = RecipientResolver(self.db_service)

    async def send(self, token, title, body, data=None, channel_id=Channel.DEFAULT, quiet_hours=None) -> bool:
        """Send one push through the gateway."""
        return await self.fcm_service.send(
            token=token,
            title=title,
            body=body,
            data=data,
            channel_id=channel_id,
            quiet_hours=quiet_hours,
        )

    @staticmethod
    def can_notify(user: UserNotificationData, category: Union[NotificationCategory, str]) -> bool:
        """Token present, notifications enabled and the category flag on."""
        if not user.token:
            return False
        if user.settings is None:
            return False
        return user.settings.allows(category)

    async def notify_user(
        self,
        user_id: str,
        category: Union[NotificationCategory, str],
        title: str,
        body: str,
        data: Optional[Dict] = None,
        channel_id: Union[Channel, str] = Channel.DEFAULT,
        user: Optional[UserNotificationData] = None,
    ) -> bool:
        """
        Notify a single user if their settings allow the category.

        Missing user, missing token and disabled settings are not errors:
        the user is skipped and False is returned.
        """
        if user is None:
            user = await self.recipients.resolve_single(user_id)
        if not self.can_notify(user, category):
            logger.debug(f"Skipping {category} notification for {user_id}")
            return False

        return await self.send(
            token=user.token,
            title=title,
            body=body,
            data=data,
            channel_id=channel_id,
            quiet_hours=user.settings.quiet_hours,
        )

    @staticmethod
    async def gather_sends(sends: Iterable[Awaitable[bool]]) -> int:
        """
        Run sends concurrently and wait for all of them to settle.

        Returns:
            int: number of sends that returned True; exceptions count as failures
        """
        results = await asyncio.gather(*sends, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"❌ Notification task failed: {result}", exc_info=result)
        return sum(1 for result in results if result is True)
