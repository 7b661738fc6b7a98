"""
Shared modules for the BezKomprese notification functions.
"""
from .config import settings
from .firebase import initialize_firebase, get_firestore

__all__ = [
    "settings",
    "initialize_firebase",
    "get_firestore",
]
