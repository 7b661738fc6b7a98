"""
Firebase Cloud Messaging Service
Push delivery gateway: one message to one device token.
"""
import asyncio
import logging
from typing import Dict, Optional, Union

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from .models import Channel, PushNotification, PushPayload, QuietHours
from .quiet_hours import is_quiet_hours

logger = logging.getLogger(__name__)

# Errors meaning the token itself is dead; FCM will never accept it again
INVALID_TOKEN_ERRORS = (messaging.UnregisteredError, messaging.SenderIdMismatchError)


def _token_prefix(token: str) -> str:
    return f"{token[:20]}..."


def is_invalid_token_error(error: Exception) -> bool:
    """Classify an FCM failure as an invalid/unregistered registration token."""
    if isinstance(error, INVALID_TOKEN_ERRORS):
        return True
    if isinstance(error, firebase_exceptions.InvalidArgumentError):
        return "registration token" in str(error).lower()
    return False


class FCMService:
    """Service for sending FCM notifications."""

    def __init__(self, app=None):
        # None means the default firebase_admin app
        self._app = app

    def build_message(self, payload: PushPayload) -> messaging.Message:
        """Build a single-target FCM message with Android/APNs hints."""
        return messaging.Message(
            token=payload.token,
            notification=messaging.Notification(
                title=payload.notification.title,
                body=payload.notification.body,
            ),
            data=payload.data,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    channel_id=payload.channel_id.value,
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        sound="default",
                        badge=1,
                    ),
                ),
            ),
        )

    async def send(
        self,
        token: Optional[str],
        title: str,
        body: str,
        data: Optional[Dict] = None,
        channel_id: Union[Channel, str] = Channel.DEFAULT,
        quiet_hours: Optional[QuietHours] = None,
    ) -> bool:
        """
        Send a push notification to a single device.

        Args:
            token: FCM token of the target device
            title: Notification title
            body: Notification body
            data: Deep-link data, values are stringified
            channel_id: Client notification channel
            quiet_hours: Recipient's quiet hours; ignored for the alerts channel

        Returns:
            bool: True if FCM accepted the message, False otherwise (never raises)
        """
        if not token:
            logger.warning("⚠️ Empty FCM token. Notification not sent.")
            return False

        try:
            channel = Channel(channel_id)
            # SOS must always go through
            if channel != Channel.ALERTS and is_quiet_hours(quiet_hours):
                logger.info(
                    f"Skipping notification, quiet hours active "
                    f"({quiet_hours.start_hour}:00-{quiet_hours.end_hour}:00)"
                )
                return False

            payload = PushPayload(
                token=token,
                notification=PushNotification(title=title, body=body),
                data=data or {},
                channel_id=channel,
            )
            message = self.build_message(payload)
            response = await asyncio.to_thread(messaging.send, message, app=self._app)
            logger.info(f"✅ Notification sent to token {_token_prefix(token)}: {response}")
            return True

        except Exception as e:
            if is_invalid_token_error(e):
                # TODO: delete dead tokens from users/{uid}.fcmToken once the gateway knows the owner uid
                logger.warning(f"⚠️ Invalid FCM token {_token_prefix(token)}, should be removed from database: {e}")
            else:
                logger.error(f"❌ Failed to send notification: {e}")
            return False
