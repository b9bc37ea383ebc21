import asyncio
import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, messaging

from voiceflow.core.config import settings

logger = logging.getLogger(__name__)


class FCMManager:
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(FCMManager, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._initialize_firebase()
            FCMManager._initialized = True

    @property
    def is_ready(self) -> bool:
        return bool(firebase_admin._apps)

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK once with ENV or JSON file"""
        if firebase_admin._apps:
            return

        # 1. Environment variable (production)
        if settings.FIREBASE_SERVICE_ACCOUNT:
            try:
                cred = credentials.Certificate(json.loads(settings.FIREBASE_SERVICE_ACCOUNT))
                firebase_admin.initialize_app(cred)
                logger.info("✅ Firebase Admin SDK initialized from ENV")
                return
            except (ValueError, IOError) as e:
                logger.warning(f"⚠️ Failed to parse FIREBASE_SERVICE_ACCOUNT JSON: {e}")

        # 2. Local JSON file (development)
        cred_path = os.path.join(os.path.dirname(__file__), "..", "..", settings.FIREBASE_CREDENTIALS)
        if not os.path.exists(cred_path):
            logger.warning(f"⚠️ FIREBASE_SERVICE_ACCOUNT missing and credentials file not found at {cred_path}")
            return
        try:
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
            logger.info("✅ Firebase Admin SDK initialized from local file")
        except (ValueError, IOError) as e:
            logger.error(f"❌ CRITICAL: Failed to initialize Firebase: {e}")

    async def send_notification(self, token: str, title: str, body: str, data: dict = None):
        """
        Send a data-only push notification to a device token (async).
        Returns the message id, or None when nothing was sent.
        """
        if not token:
            logger.warning("⚠️ No FCM token provided")
            return None
        if not title or not title.strip() or not body or not body.strip():
            logger.warning(f"⚠️ Notification title/body missing for '{title}'. Skipping.")
            return None

        data_payload = dict(data or {})
        data_payload['notification_title'] = title
        data_payload['notification_body'] = body

        # Data-only: no notification block, the client renders it
        message = messaging.Message(
            data=data_payload,
            token=token,
            android=messaging.AndroidConfig(priority='high'),
            apns=messaging.APNSConfig(headers={'apns-priority': '10'})
        )

        try:
            response = await asyncio.to_thread(messaging.send, message)
            logger.info(f"✅ Successfully sent notification: {response}")
            return response
        except messaging.UnregisteredError:
            logger.warning(f"⚠️ Token is invalid/unregistered: {token[:20]}...")
            return None
        except Exception as e:
            logger.error(f"❌ Failed to send notification: {e}")
            return None
