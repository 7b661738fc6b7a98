"""
Notification Service Models
Pydantic views of the Firestore documents the triggers consume.
Only the fields relevant to notification logic are modelled; missing
optional fields fall back to empty/false defaults.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Channel(str, Enum):
    """Android notification channels registered by the client app."""
    DEFAULT = "default"
    ALERTS = "alerts"  # SOS only, exempt from quiet hours
    MESSAGES = "messages"
    MARKETPLACE = "marketplace"
    EVENTS = "events"
    REMINDERS = "reminders"


class NotificationType(str, Enum):
    """Routing discriminant sent in data.type, used by the client for deep-linking."""
    BADGE_AWARDED = "badge_awarded"
    BEACON_HELP_COMING = "beacon_help_coming"
    BEACON_RESOLVED = "beacon_resolved"
    EVENT_COMMENT = "event_comment"
    EVENT_PARTICIPANT_JOINED = "event_participant_joined"
    EVENT_PARTICIPANT_LEFT = "event_participant_left"
    EVENT_UPDATE = "event_update"
    FRIEND_REQUEST = "friend_request"
    MARKETPLACE_LISTING = "marketplace_listing"
    CAR_FOR_SALE = "car_for_sale"
    CHAT_MESSAGE = "chat_message"
    NEW_EVENT = "new_event"
    SOS_BEACON = "sos_beacon"
    VEHICLE_REMINDER = "vehicle_reminder"
    SERVICE_REMINDER = "service_reminder"


class NotificationCategory(str, Enum):
    """Per-category opt-in flags inside notificationSettings."""
    SOS_ALERTS = "sosAlerts"
    FRIEND_REQUESTS = "friendRequests"
    EVENT_COMMENTS = "eventComments"
    EVENT_CHANGES = "eventChanges"
    EVENT_PARTICIPATION = "eventParticipation"
    APP_UPDATES = "appUpdates"
    VEHICLE_REMINDERS = "vehicleReminders"
    MARKETPLACE_NOTIFICATIONS = "marketplaceNotifications"
    BADGE_NOTIFICATIONS = "badgeNotifications"
    CHAT_MESSAGES = "chatMessages"


class BeaconStatus(str, Enum):
    ACTIVE = "active"
    HELP_COMING = "help_coming"
    RESOLVED = "resolved"


class EventType(str, Enum):
    MINISRAZ = "minisraz"
    VELKY_SRAZ = "velky_sraz"
    TRACKDAY = "trackday"
    VYJIZDKA = "vyjizdka"


class ReminderType(str, Enum):
    STK = "stk"
    FIRST_AID_KIT = "first_aid_kit"
    HIGHWAY_VIGNETTE = "highway_vignette"
    LIABILITY_INSURANCE = "liability_insurance"


class FirestoreModel(BaseModel):
    """Base for document views: camelCase aliases, unknown fields ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------

class QuietHours(FirestoreModel):
    enabled: bool = False
    start_hour: int = Field(22, alias="startHour", ge=0, le=23)
    end_hour: int = Field(7, alias="endHour", ge=0, le=23)

    @field_validator("enabled", mode="before")
    @classmethod
    def _literal_true(cls, v):
        return v is True

    @field_validator("start_hour", "end_hour", mode="before")
    @classmethod
    def _default_hour(cls, v, info):
        return cls.model_fields[info.field_name].default if v is None else v


class NewEventsSettings(FirestoreModel):
    enabled: bool = False
    types: List[str] = Field(default_factory=list)

    @field_validator("enabled", mode="before")
    @classmethod
    def _literal_true(cls, v):
        return v is True

    @field_validator("types", mode="before")
    @classmethod
    def _none_types(cls, v):
        return v or []


class NotificationSettings(FirestoreModel):
    """Embedded users/{uid}.notificationSettings object."""
    enabled: bool = False
    sos_alerts: bool = Field(False, alias="sosAlerts")
    friend_requests: bool = Field(False, alias="friendRequests")
    event_comments: bool = Field(False, alias="eventComments")
    event_changes: bool = Field(False, alias="eventChanges")
    event_participation: bool = Field(False, alias="eventParticipation")
    app_updates: bool = Field(False, alias="appUpdates")
    vehicle_reminders: bool = Field(False, alias="vehicleReminders")
    marketplace_notifications: bool = Field(False, alias="marketplaceNotifications")
    badge_notifications: bool = Field(False, alias="badgeNotifications")
    chat_messages: bool = Field(False, alias="chatMessages")
    digest_mode: bool = Field(False, alias="digestMode")
    new_events: NewEventsSettings = Field(default_factory=NewEventsSettings, alias="newEvents")
    quiet_hours: QuietHours = Field(default_factory=QuietHours, alias="quietHours")

    @field_validator(
        "enabled", "sos_alerts", "friend_requests", "event_comments", "event_changes",
        "event_participation", "app_updates", "vehicle_reminders", "marketplace_notifications",
        "badge_notifications", "chat_messages", "digest_mode",
        mode="before",
    )
    @classmethod
    def _literal_true(cls, v):
        # Flags are on only when stored as boolean true; "yes" or 1 mean off
        return v is True

    @field_validator("new_events", "quiet_hours", mode="before")
    @classmethod
    def _none_section(cls, v):
        return {} if v is None else v

    def category_enabled(self, category: Union[NotificationCategory, str]) -> bool:
        """True only when the category flag is literally true (missing means off)."""
        category = NotificationCategory(category)
        for name, field in type(self).model_fields.items():
            if field.alias == category.value:
                return getattr(self, name) is True
        return False

    def allows(self, category: Union[NotificationCategory, str]) -> bool:
        """Master switch and category flag must both be on."""
        return self.enabled and self.category_enabled(category)


class UserProfile(FirestoreModel):
    uid: str = ""
    fcm_token: Optional[str] = Field(None, alias="fcmToken")
    display_name: Optional[str] = Field(None, alias="displayName")
    notification_settings: Optional[NotificationSettings] = Field(None, alias="notificationSettings")
    friends: List[str] = Field(default_factory=list)
    badges: List["UserBadge"] = Field(default_factory=list)


class UserBadge(FirestoreModel):
    id: str
    earned_at: Optional[str] = Field(None, alias="earnedAt")


UserProfile.model_rebuild()


class UserNotificationData(BaseModel):
    """Result of a point lookup; token=None/settings=None means cannot notify."""
    token: Optional[str] = None
    display_name: str = "Uživatel"
    settings: Optional[NotificationSettings] = None


class Recipient(BaseModel):
    """A user selected by a category scan."""
    uid: str
    token: str
    display_name: str = "Uživatel"
    settings: NotificationSettings


# ---------------------------------------------------------------------------
# Documents that trigger notifications
# ---------------------------------------------------------------------------

class HelpBeacon(FirestoreModel):
    user_id: str = Field("", alias="userId")
    display_name: str = Field("", alias="displayName")
    beacon_type: str = Field("", alias="beaconType")
    description: Optional[str] = None
    status: Optional[str] = None
    helper_id: Optional[str] = Field(None, alias="helperId")
    helper_name: Optional[str] = Field(None, alias="helperName")


class AppEvent(FirestoreModel):
    title: str = ""
    creator_id: str = Field("", alias="creatorId")
    date: Optional[str] = None
    end_date: Optional[str] = Field(None, alias="endDate")
    location: Optional[str] = None
    event_type: str = Field("", alias="eventType")
    participants: List[str] = Field(default_factory=list)
    updated_by: Optional[str] = Field(None, alias="updatedBy")

    @field_validator("date", "end_date", mode="before")
    @classmethod
    def _stringify_date(cls, v):
        # Dates are ISO strings written by the client; Timestamps are normalised
        if isinstance(v, datetime):
            return v.isoformat()
        return v

    @field_validator("participants", mode="before")
    @classmethod
    def _none_participants(cls, v):
        return v or []


class EventComment(FirestoreModel):
    user_id: str = Field("", alias="userId")
    user_name: str = Field("", alias="userName")
    text: str = ""


class ChatRoom(FirestoreModel):
    participants: List[str] = Field(default_factory=list)
    participant_names: Dict[str, str] = Field(default_factory=dict, alias="participantNames")


class ChatMessage(FirestoreModel):
    sender_id: str = Field("", alias="senderId")
    text: str = ""


class MarketplaceListing(FirestoreModel):
    user_id: str = Field("", alias="userId")
    user_name: str = Field("", alias="userName")
    type: str = ""
    title: str = ""
    price: Optional[float] = None
    is_active: bool = Field(False, alias="isActive")


class VehicleReminder(FirestoreModel):
    type: str
    expiration_date: Optional[str] = Field(None, alias="expirationDate")
    notify_enabled: bool = Field(False, alias="notifyEnabled")


class Car(FirestoreModel):
    id: str = ""
    owner_id: str = Field("", alias="ownerId")
    name: str = ""
    make: str = ""
    model: str = ""
    reminders: List[VehicleReminder] = Field(default_factory=list)
    current_mileage: Optional[int] = Field(None, alias="currentMileage")
    for_sale: Optional[bool] = Field(None, alias="forSale")
    sale_price: Optional[float] = Field(None, alias="salePrice")

    @field_validator("reminders", mode="before")
    @classmethod
    def _none_reminders(cls, v):
        return v or []

    @field_validator("current_mileage", mode="before")
    @classmethod
    def _whole_km(cls, v):
        return round(v) if isinstance(v, float) else v


class ServiceRecord(FirestoreModel):
    id: str = ""
    car_id: str = Field("", alias="carId")
    title: str = ""
    next_service_mileage: Optional[int] = Field(None, alias="nextServiceMileage")
    next_service_date: Optional[str] = Field(None, alias="nextServiceDate")
    last_service_notification_sent: Optional[str] = Field(None, alias="lastServiceNotificationSent")

    @field_validator("next_service_mileage", mode="before")
    @classmethod
    def _whole_km(cls, v):
        return round(v) if isinstance(v, float) else v


# ---------------------------------------------------------------------------
# Wire payload
# ---------------------------------------------------------------------------

class PushNotification(BaseModel):
    title: str
    body: str


class PushPayload(BaseModel):
    """Single-token FCM payload: notification block, string data, channel."""
    token: str
    notification: PushNotification
    data: Dict[str, str] = Field(default_factory=dict)
    channel_id: Channel = Field(Channel.DEFAULT, alias="channelId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("data", mode="before")
    @classmethod
    def _stringify_values(cls, v):
        # FCM rejects non-string data values
        return {str(k): "" if val is None else str(getattr(val, "value", val)) for k, val in (v or {}).items()}
