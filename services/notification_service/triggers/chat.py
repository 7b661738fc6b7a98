"""
Chat trigger (chats/{roomId}/messages/{messageId}).
"""
import logging
from typing import Any, Dict

from ..localization import DEFAULT_USER_NAME, truncate
from ..models import Channel, ChatMessage, ChatRoom, NotificationCategory, NotificationType
from ..service import NotificationService

logger = logging.getLogger(__name__)


class ChatTriggers:
    """Notification for the other participant of a two-person chat room."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def on_new_chat_message(self, message_data: Dict[str, Any], params: Dict[str, str]) -> int:
        room_id = params.get("roomId", "")
        try:
            message = ChatMessage.model_validate(message_data or {})
            sender_id = message.sender_id

            room_data = await self.notification_service.db_service.get_chat_room(room_id)
            if room_data is None:
                logger.info(f"Chat room not found: {room_id}")
                return 0
            room = ChatRoom.model_validate(room_data)

            recipient_id = next((p for p in room.participants if p != sender_id), None)
            if not recipient_id:
                logger.info("No recipient found")
                return 0

            recipient = await self.notification_service.recipients.resolve_single(recipient_id)
            if not self.notification_service.can_notify(recipient, NotificationCategory.CHAT_MESSAGES):
                logger.info(f"Recipient {recipient_id} cannot be notified about chat messages")
                return 0

            sender_name = room.participant_names.get(sender_id) or DEFAULT_USER_NAME
            sent = await self.notification_service.notify_user(
                recipient_id,
                NotificationCategory.CHAT_MESSAGES,
                title=f"Nová zpráva od {sender_name}",
                body=truncate(message.text),
                data={
                    "type": NotificationType.CHAT_MESSAGE,
                    "roomId": room_id,
                    "senderId": sender_id,
                },
                channel_id=Channel.MESSAGES,
                user=recipient,
            )
            if sent:
                logger.info(f"Chat notification sent to {recipient_id} from {sender_id}")
            return int(sent)

        except Exception as e:
            logger.error(f"❌ Error handling chat message in room {room_id}: {e}", exc_info=True)
            return 0
