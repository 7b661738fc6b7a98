"""
Shared Firebase bootstrap for the notification functions.
Initializes the firebase_admin default app and hands out the Firestore client.
"""
import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .config import settings

logger = logging.getLogger(__name__)

_firestore_client = None


def initialize_firebase() -> firebase_admin.App:
    """
    Initialize the default Firebase app once.

    Credentials are looked up in this order:
    - FIREBASE_SERVICE_ACCOUNT_PATH (key file on disk)
    - FIREBASE_SERVICE_ACCOUNT_JSON (key as JSON string)
    - application default credentials (Cloud Functions runtime)
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    service_account_path = settings.FIREBASE_SERVICE_ACCOUNT_PATH

    if service_account_path and os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        app = firebase_admin.initialize_app(cred, options)
        logger.info("✅ Firebase Admin SDK initialized from service account file")
    elif settings.FIREBASE_SERVICE_ACCOUNT_JSON:
        cred = credentials.Certificate(json.loads(settings.FIREBASE_SERVICE_ACCOUNT_JSON))
        app = firebase_admin.initialize_app(cred, options)
        logger.info("✅ Firebase Admin SDK initialized from JSON")
    else:
        app = firebase_admin.initialize_app(options=options)
        logger.info("✅ Firebase Admin SDK initialized with default credentials")
    return app


def get_firestore(app: Optional[firebase_admin.App] = None):
    """
    Get the Firestore client, initializing Firebase on first use.

    Usage:
        db = get_firestore()
        snapshot = db.collection("users").document(uid).get()
    """
    global _firestore_client
    if app is not None:
        return firestore.client(app)
    if _firestore_client is None:
        _firestore_client = firestore.client(initialize_firebase())
    return _firestore_client
