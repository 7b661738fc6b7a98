"""
Cloud Functions entrypoint for BezKomprese push notifications.

Registers the Firestore triggers and the daily reminder sweep. Handlers are
thin adapters: they unwrap the snapshots and delegate to the trigger classes
in services.notification_service.
"""
import asyncio
import logging

from firebase_functions import firestore_fn, scheduler_fn

from shared.collections import (
    COLLECTION_CARS,
    COLLECTION_CHAT_MESSAGES,
    COLLECTION_CHATS,
    COLLECTION_EVENT_COMMENTS,
    COLLECTION_EVENTS,
    COLLECTION_HELP_BEACONS,
    COLLECTION_MARKETPLACE_LISTINGS,
    COLLECTION_USERS,
)
from shared.config import settings
from shared.firebase import initialize_firebase
from shared.logging_config import configure_logging
from shared.sentry_init import init_sentry
from services.notification_service.reminders import ReminderSweep
from services.notification_service.service import NotificationService
from services.notification_service.triggers import (
    BeaconTriggers,
    ChatTriggers,
    EventTriggers,
    MarketplaceTriggers,
    UserTriggers,
)

configure_logging()
init_sentry()
initialize_firebase()

logger = logging.getLogger(__name__)

REGION = settings.FUNCTIONS_REGION

BEACON_PATH = f"{COLLECTION_HELP_BEACONS}/{{beaconId}}"
EVENT_PATH = f"{COLLECTION_EVENTS}/{{eventId}}"
EVENT_COMMENT_PATH = f"{EVENT_PATH}/{COLLECTION_EVENT_COMMENTS}/{{commentId}}"
USER_PATH = f"{COLLECTION_USERS}/{{userId}}"
CHAT_MESSAGE_PATH = f"{COLLECTION_CHATS}/{{roomId}}/{COLLECTION_CHAT_MESSAGES}/{{messageId}}"
LISTING_PATH = f"{COLLECTION_MARKETPLACE_LISTINGS}/{{listingId}}"
CAR_PATH = f"{COLLECTION_CARS}/{{carId}}"

_notification_service = None


def get_notification_service() -> NotificationService:
    """Shared service instance, created on first invocation of a warm instance."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service


def _data(snapshot) -> dict:
    if snapshot is None:
        return {}
    return snapshot.to_dict() or {}


def _params(event) -> dict:
    return dict(event.params or {})


# ---------------------------------------------------------------------------
# Help beacons
# ---------------------------------------------------------------------------

@firestore_fn.on_document_created(document=BEACON_PATH, region=REGION)
def on_sos_beacon_created(event: firestore_fn.Event[firestore_fn.DocumentSnapshot]) -> None:
    triggers = BeaconTriggers(get_notification_service())
    asyncio.run(triggers.on_sos_beacon_created(_data(event.data), _params(event)))


@firestore_fn.on_document_updated(document=BEACON_PATH, region=REGION)
def on_beacon_status_change(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = BeaconTriggers(get_notification_service())
    asyncio.run(
        triggers.on_beacon_status_change(_data(event.data.before), _data(event.data.after), _params(event))
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@firestore_fn.on_document_created(document=EVENT_COMMENT_PATH, region=REGION)
def on_event_comment_created(event: firestore_fn.Event[firestore_fn.DocumentSnapshot]) -> None:
    triggers = EventTriggers(get_notification_service())
    asyncio.run(triggers.on_event_comment_created(_data(event.data), _params(event)))


@firestore_fn.on_document_updated(document=EVENT_PATH, region=REGION)
def on_event_participation(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = EventTriggers(get_notification_service())
    asyncio.run(
        triggers.on_event_participation(_data(event.data.before), _data(event.data.after), _params(event))
    )


@firestore_fn.on_document_updated(document=EVENT_PATH, region=REGION)
def on_event_updated(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = EventTriggers(get_notification_service())
    asyncio.run(
        triggers.on_event_updated(_data(event.data.before), _data(event.data.after), _params(event))
    )


@firestore_fn.on_document_created(document=EVENT_PATH, region=REGION)
def on_new_event_created(event: firestore_fn.Event[firestore_fn.DocumentSnapshot]) -> None:
    triggers = EventTriggers(get_notification_service())
    asyncio.run(triggers.on_new_event_created(_data(event.data), _params(event)))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@firestore_fn.on_document_updated(document=USER_PATH, region=REGION)
def on_friend_added(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = UserTriggers(get_notification_service())
    asyncio.run(triggers.on_friend_added(_data(event.data.before), _data(event.data.after), _params(event)))


@firestore_fn.on_document_updated(document=USER_PATH, region=REGION)
def on_badge_awarded(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = UserTriggers(get_notification_service())
    asyncio.run(triggers.on_badge_awarded(_data(event.data.before), _data(event.data.after), _params(event)))


# ---------------------------------------------------------------------------
# Chat and marketplace
# ---------------------------------------------------------------------------

@firestore_fn.on_document_created(document=CHAT_MESSAGE_PATH, region=REGION)
def on_new_chat_message(event: firestore_fn.Event[firestore_fn.DocumentSnapshot]) -> None:
    triggers = ChatTriggers(get_notification_service())
    asyncio.run(triggers.on_new_chat_message(_data(event.data), _params(event)))


@firestore_fn.on_document_created(document=LISTING_PATH, region=REGION)
def on_marketplace_listing_created(event: firestore_fn.Event[firestore_fn.DocumentSnapshot]) -> None:
    triggers = MarketplaceTriggers(get_notification_service())
    asyncio.run(triggers.on_listing_created(_data(event.data), _params(event)))


@firestore_fn.on_document_updated(document=CAR_PATH, region=REGION)
def on_car_for_sale(event: firestore_fn.Event[firestore_fn.Change[firestore_fn.DocumentSnapshot]]) -> None:
    triggers = MarketplaceTriggers(get_notification_service())
    asyncio.run(triggers.on_car_for_sale(_data(event.data.before), _data(event.data.after), _params(event)))


# ---------------------------------------------------------------------------
# Scheduled
# ---------------------------------------------------------------------------

@scheduler_fn.on_schedule(
    schedule=settings.REMINDER_SCHEDULE,
    timezone=scheduler_fn.Timezone(settings.NOTIFICATION_TIMEZONE),
    region=REGION,
)
def check_vehicle_reminders(event: scheduler_fn.ScheduledEvent) -> None:
    sweep = ReminderSweep(get_notification_service())
    sent = asyncio.run(sweep.run())
    logger.info(f"Reminder sweep finished with {sent} notification(s)")
