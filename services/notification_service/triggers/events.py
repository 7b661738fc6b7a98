"""
Event triggers (events/{eventId} and events/{eventId}/comments/{commentId}).
"""
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from shared.config import settings
from ..localization import (
    EVENT_CHANGE_LABELS,
    EVENT_TYPE_LABELS,
    SOMEONE,
    format_day_month,
    parse_date,
    truncate,
)
from ..models import (
    AppEvent,
    Channel,
    EventComment,
    NotificationCategory,
    NotificationSettings,
    NotificationType,
)
from ..service import NotificationService

logger = logging.getLogger(__name__)


def event_recipients(event: AppEvent) -> List[str]:
    """Participants plus the organizer, without duplicates, in stable order."""
    recipients = list(dict.fromkeys(event.participants))
    if event.creator_id and event.creator_id not in recipients:
        recipients.append(event.creator_id)
    return recipients


def participant_changes(before: AppEvent, after: AppEvent):
    """Return (joined, left) by set difference of the participant lists."""
    before_set = set(before.participants)
    after_set = set(after.participants)
    joined = [p for p in dict.fromkeys(after.participants) if p not in before_set]
    left = [p for p in dict.fromkeys(before.participants) if p not in after_set]
    return joined, left


def detect_event_changes(before: AppEvent, after: AppEvent) -> List[str]:
    """Human labels of the fields participants care about."""
    changes = []
    if before.title != after.title:
        changes.append(EVENT_CHANGE_LABELS["title"])
    if before.date != after.date or before.end_date != after.end_date:
        changes.append(EVENT_CHANGE_LABELS["date"])
    if before.location != after.location:
        changes.append(EVENT_CHANGE_LABELS["location"])
    return changes


class EventTriggers:
    """Notifications about events: comments, participation, edits and new events."""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def on_event_comment_created(self, comment_data: Dict[str, Any], params: Dict[str, str]) -> int:
        """Notify event participants and the organizer, except the comment author."""
        event_id = params.get("eventId", "")
        try:
            comment = EventComment.model_validate(comment_data or {})
            logger.info(f"New comment on event {event_id} by {comment.user_name}")

            event_data = await self.notification_service.db_service.get_event(event_id)
            if event_data is None:
                logger.info("Event not found, skipping notification")
                return 0
            event = AppEvent.model_validate(event_data)

            recipients = [uid for uid in event_recipients(event) if uid != comment.user_id]
            logger.info(f"Notifying {len(recipients)} participants")

            title = f"💬 {event.title}"
            body = f"{comment.user_name}: {truncate(comment.text)}"

            success_count = await self.notification_service.gather_sends(
                self.notification_service.notify_user(
                    uid,
                    NotificationCategory.EVENT_COMMENTS,
                    title=title,
                    body=body,
                    data={"type": NotificationType.EVENT_COMMENT, "eventId": event_id},
                )
                for uid in recipients
            )
            logger.info(f"Comment notifications sent: {success_count}/{len(recipients)}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling comment on event {event_id}: {e}", exc_info=True)
            return 0

    async def on_event_participation(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """
        Notify the organizer about participants joining or leaving.

        When somebody joined and somebody left in the same update, only the
        joins are reported.
        """
        event_id = params.get("eventId", "")
        try:
            before = AppEvent.model_validate(before_data or {})
            after = AppEvent.model_validate(after_data or {})

            joined, left = participant_changes(before, after)
            # The organizer joining or leaving their own event is their own action
            joined = [p for p in joined if p != after.creator_id]
            left = [p for p in left if p != after.creator_id]
            if not joined and not left:
                return 0

            logger.info(f"Event {event_id}: {len(joined)} joined, {len(left)} left")

            organizer = await self.notification_service.recipients.resolve_single(after.creator_id)
            if not self.notification_service.can_notify(organizer, NotificationCategory.EVENT_PARTICIPATION):
                return 0

            sent = 0
            for participant_id in joined:
                participant_name = await self._display_name(participant_id)
                if await self.notification_service.notify_user(
                    after.creator_id,
                    NotificationCategory.EVENT_PARTICIPATION,
                    title="👤 Nový účastník",
                    body=f"{participant_name} se přihlásil na {after.title}",
                    data={
                        "type": NotificationType.EVENT_PARTICIPANT_JOINED,
                        "eventId": event_id,
                        "participantId": participant_id,
                    },
                    user=organizer,
                ):
                    sent += 1
                logger.info(f"Notified organizer about {participant_name} joining event {event_id}")

            if left and not joined:
                left_names = [await self._display_name(participant_id) for participant_id in left]
                if await self.notification_service.notify_user(
                    after.creator_id,
                    NotificationCategory.EVENT_PARTICIPATION,
                    title="👋 Účastník se odhlásil",
                    body=f"{left_names[0]} se odhlásil z {after.title}",
                    data={"type": NotificationType.EVENT_PARTICIPANT_LEFT, "eventId": event_id},
                    user=organizer,
                ):
                    sent += 1
                logger.info(f"Notified organizer about participant leaving event {event_id}")

            return sent

        except Exception as e:
            logger.error(f"❌ Error handling participation change on event {event_id}: {e}", exc_info=True)
            return 0

    async def on_event_updated(
        self, before_data: Dict[str, Any], after_data: Dict[str, Any], params: Dict[str, str]
    ) -> int:
        """Notify participants about changes to title, date or location."""
        event_id = params.get("eventId", "")
        try:
            before = AppEvent.model_validate(before_data or {})
            after = AppEvent.model_validate(after_data or {})

            changes = detect_event_changes(before, after)
            if not changes:
                return 0

            change_text = ", ".join(changes)
            logger.info(f"Event {event_id} updated: {change_text}")

            # Only the organizer can edit unless the client records someone else
            editor_id = after.updated_by or after.creator_id
            recipients = [uid for uid in event_recipients(after) if uid != editor_id]
            if not recipients:
                logger.info("No recipients for event update notification")
                return 0

            logger.info(f"Notifying {len(recipients)} participants about event update")

            success_count = await self.notification_service.gather_sends(
                self.notification_service.notify_user(
                    uid,
                    NotificationCategory.EVENT_CHANGES,
                    title="📅 Změna v akci",
                    body=f"{after.title}: změněn {change_text}",
                    data={"type": NotificationType.EVENT_UPDATE, "eventId": event_id},
                )
                for uid in recipients
            )
            logger.info(f"Event update notifications sent: {success_count}/{len(recipients)}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling update of event {event_id}: {e}", exc_info=True)
            return 0

    async def on_new_event_created(self, event_data: Dict[str, Any], params: Dict[str, str]) -> int:
        """Notify users who follow new events of this event type."""
        event_id = params.get("eventId", "")
        try:
            event = AppEvent.model_validate(event_data or {})
            logger.info(f"New event created: {event.title} ({event.event_type})")

            type_label = EVENT_TYPE_LABELS.get(event.event_type, event.event_type)
            event_date = parse_date(event.date)
            date_text = format_day_month(event_date.astimezone(settings.timezone)) if event_date else ""

            sends = []
            for user_id, user_data in await self.notification_service.db_service.get_users_with_new_events_enabled():
                if user_id == event.creator_id:
                    continue
                try:
                    user_settings = NotificationSettings.model_validate(user_data.get("notificationSettings") or {})
                except ValidationError:
                    logger.warning(f"⚠️ Malformed notificationSettings for user {user_id}")
                    continue
                if event.event_type not in user_settings.new_events.types:
                    continue
                token = user_data.get("fcmToken")
                if not token:
                    continue

                sends.append(
                    self.notification_service.send(
                        token=token,
                        title=f"📅 Nová akce: {event.title}",
                        body=f"{type_label} - {date_text} v {event.location or ''}",
                        data={
                            "type": NotificationType.NEW_EVENT,
                            "eventId": event_id,
                            "eventType": event.event_type,
                        },
                        channel_id=Channel.EVENTS,
                        quiet_hours=user_settings.quiet_hours,
                    )
                )

            success_count = await self.notification_service.gather_sends(sends)
            logger.info(f"New event notifications sent: {success_count}/{len(sends)}")
            return success_count

        except Exception as e:
            logger.error(f"❌ Error handling new event {event_id}: {e}", exc_info=True)
            return 0

    async def _display_name(self, user_id: str) -> str:
        user = await self.notification_service.db_service.get_user(user_id)
        if not user:
            return SOMEONE
        return user.get("displayName") or SOMEONE
