"""Firestore collection names read and written by the notification functions.

Firestore has no DDL; these constants are the single source of truth for
the paths the triggers are bound to and the queries issue.
"""

COLLECTION_USERS = "users"
COLLECTION_EVENTS = "events"
COLLECTION_EVENT_COMMENTS = "comments"  # events/{eventId}/comments
COLLECTION_HELP_BEACONS = "helpBeacons"
COLLECTION_CHATS = "chats"
COLLECTION_CHAT_MESSAGES = "messages"  # chats/{roomId}/messages
COLLECTION_MARKETPLACE_LISTINGS = "marketplace-listings"
COLLECTION_CARS = "cars"
COLLECTION_SERVICE_RECORDS = "service-records"
COLLECTION_NOTIFICATION_LOCKS = "notification_locks"
