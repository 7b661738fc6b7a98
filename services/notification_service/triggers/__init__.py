"""
Firestore trigger handlers.
Each handler takes raw document data plus path parameters and returns
the number of notifications delivered.
"""
from .beacons import BeaconTriggers
from .chat import ChatTriggers
from .events import EventTriggers
from .marketplace import MarketplaceTriggers
from .users import UserTriggers

__all__ = [
    "BeaconTriggers",
    "ChatTriggers",
    "EventTriggers",
    "MarketplaceTriggers",
    "UserTriggers",
]
