"""
Notification Database Service
Handles Firestore operations for notifications.
The Firestore client is synchronous; every call runs in a worker thread
so concurrent per-recipient lookups do not block the event loop.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from google.cloud.firestore_v1.base_query import FieldFilter

from shared.collections import (
    COLLECTION_CARS,
    COLLECTION_CHATS,
    COLLECTION_EVENTS,
    COLLECTION_NOTIFICATION_LOCKS,
    COLLECTION_SERVICE_RECORDS,
    COLLECTION_USERS,
)
from shared.firebase import get_firestore

logger = logging.getLogger(__name__)

# (document id, document data)
Document = Tuple[str, Dict[str, Any]]


def _to_documents(snapshots) -> List[Document]:
    return [(snapshot.id, snapshot.to_dict() or {}) for snapshot in snapshots]


class NotificationDatabaseService:
    """Service for notification Firestore operations."""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = get_firestore()
        return self._db

    async def _get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Point lookup; None when the document does not exist."""
        snapshot = await asyncio.to_thread(
            self.db.collection(collection).document(document_id).get
        )
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def _stream(self, query) -> List[Document]:
        return await asyncio.to_thread(lambda: _to_documents(query.stream()))

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user document."""
        if not user_id:
            return None
        return await self._get(COLLECTION_USERS, user_id)

    async def get_all_users(self) -> List[Document]:
        """Full scan of the users collection."""
        return await self._stream(self.db.collection(COLLECTION_USERS))

    async def get_users_with_new_events_enabled(self) -> List[Document]:
        """Indexed pre-filter for new-event notifications (reduces reads)."""
        query = (
            self.db.collection(COLLECTION_USERS)
            .where(filter=FieldFilter("notificationSettings.enabled", "==", True))
            .where(filter=FieldFilter("notificationSettings.newEvents.enabled", "==", True))
        )
        return await self._stream(query)

    async def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Get an event document."""
        return await self._get(COLLECTION_EVENTS, event_id)

    async def get_chat_room(self, room_id: str) -> Optional[Dict[str, Any]]:
        """Get a chat room document."""
        return await self._get(COLLECTION_CHATS, room_id)

    async def get_user_cars(self, owner_id: str) -> List[Document]:
        """Get all cars owned by a user."""
        query = self.db.collection(COLLECTION_CARS).where(filter=FieldFilter("ownerId", "==", owner_id))
        return await self._stream(query)

    async def get_service_records(self, car_id: str) -> List[Document]:
        """Get all service records of a car."""
        query = self.db.collection(COLLECTION_SERVICE_RECORDS).where(filter=FieldFilter("carId", "==", car_id))
        return await self._stream(query)

    async def mark_service_notified(self, service_id: str, sent_at: datetime) -> None:
        """Record when an overdue service notification went out (cool-off tracking)."""
        await asyncio.to_thread(
            self.db.collection(COLLECTION_SERVICE_RECORDS).document(service_id).update,
            {"lastServiceNotificationSent": sent_at.isoformat()},
        )

    async def get_lock_timestamp(self, lock_id: str) -> Optional[datetime]:
        """Get the timestamp of a notification lock, if any."""
        lock = await self._get(COLLECTION_NOTIFICATION_LOCKS, lock_id)
        if not lock or not isinstance(lock.get("timestamp"), datetime):
            return None
        timestamp = lock["timestamp"]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return timestamp

    async def set_lock(self, lock_id: str, timestamp: datetime) -> None:
        """Create or refresh a notification lock."""
        await asyncio.to_thread(
            self.db.collection(COLLECTION_NOTIFICATION_LOCKS).document(lock_id).set,
            {"timestamp": timestamp},
        )
