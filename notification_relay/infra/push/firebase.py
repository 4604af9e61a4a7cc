"""Firebase Cloud Messaging push client.

The client owns a named ``firebase_admin`` app, so it is constructed once at
startup and handed to the dispatcher instead of living in module state.
Delivery failures are returned as ``SingleDeliveryResult`` values; ``send``
never raises for provider errors.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError

from notification_relay.features.notifications.schemas import (
    SingleDeliveryResult,
    token_preview,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from notification_relay.core.settings import FirebaseSettings

logger = logging.getLogger(__name__)

FIREBASE_NOT_INITIALIZED = "Firebase not initialized"
NO_DEVICE_TOKEN = "No device token provided"

# Delivery priority hints expected by existing clients
ANDROID_PRIORITY = "high"
APNS_HEADERS = {"apns-priority": "10"}


def build_message(
    token: str,
    notification: Mapping[str, Any],
    data: Mapping[str, str] | None,
) -> messaging.Message:
    """Build the provider message for one device."""
    return messaging.Message(
        token=token,
        notification=messaging.Notification(
            title=notification.get("title"),
            body=notification.get("body"),
        ),
        data=dict(data) if data else None,
        android=messaging.AndroidConfig(priority=ANDROID_PRIORITY),
        apns=messaging.APNSConfig(headers=dict(APNS_HEADERS)),
    )


class FirebasePushClient:
    """Sends push notifications through the Firebase Admin SDK.

    Example:
        client = FirebasePushClient(get_firebase_settings())
        if not client.initialize():
            logger.warning("Push disabled; sends will fail")
        result = await client.send(token, {"title": "Hi"}, {"k": "v"})
    """

    def __init__(self, settings: FirebaseSettings) -> None:
        self._settings = settings
        self._app: firebase_admin.App | None = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._app is not None

    @property
    def app_name(self) -> str:
        return self._settings.app_name

    def initialize(self) -> bool:
        """Initialize the Firebase app once.

        Returns:
            True when the client is ready to send, False when credentials are
            missing or rejected by the SDK. A failed call leaves the client
            uninitialized so it can be retried.
        """
        with self._lock:
            if self._app is not None:
                return True

            missing = self._settings.missing_fields()
            if missing:
                logger.error(
                    "Firebase credentials incomplete, push client disabled",
                    extra={"missing": missing},
                )
                return False

            logger.info(
                "Initializing Firebase Admin SDK",
                extra={"firebase_project": self._settings.project_id, "firebase_app": self.app_name},
            )
            try:
                credential = credentials.Certificate(self._settings.to_service_account())
                self._app = firebase_admin.initialize_app(
                    credential,
                    options={"projectId": self._settings.project_id},
                    name=self.app_name,
                )
            except (ValueError, FirebaseError) as exc:
                logger.exception(
                    "Error initializing Firebase",
                    extra={"firebase_app": self.app_name, "error": str(exc)},
                )
                return False

            logger.info("Firebase Admin SDK initialized", extra={"firebase_app": self.app_name})
            return True

    async def send(
        self,
        token: str,
        notification: Mapping[str, Any],
        data: Mapping[str, str] | None = None,
    ) -> SingleDeliveryResult:
        """Send one notification to one device.

        Args:
            token: FCM registration token.
            notification: Mapping with ``title`` and optional ``body``.
            data: Already string-valued data payload, or None.

        Returns:
            Result carrying the provider message id, or the failure reason.
        """
        app = self._app
        if app is None:
            return SingleDeliveryResult.failure(FIREBASE_NOT_INITIALIZED)
        if not token:
            return SingleDeliveryResult.failure(NO_DEVICE_TOKEN)

        message = build_message(token, notification, data)
        timeout = self._settings.send_timeout
        try:
            message_id = await asyncio.wait_for(
                asyncio.to_thread(messaging.send, message, app=app),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning(
                "Push send timed out",
                extra={"token": token_preview(token), "timeout": timeout},
            )
            return SingleDeliveryResult.failure(f"Send timed out after {timeout}s", code="timeout")
        except FirebaseError as exc:
            logger.warning(
                "Push provider rejected message",
                extra={"token": token_preview(token), "code": exc.code, "error": str(exc)},
            )
            return SingleDeliveryResult.failure(str(exc), code=exc.code)
        except (GoogleAuthError, ValueError, OSError) as exc:
            # Credential refresh and token endpoint errors reach here unwrapped
            logger.warning(
                "Push send failed",
                extra={"token": token_preview(token), "error": str(exc)},
            )
            return SingleDeliveryResult.failure(str(exc))

        logger.debug("Message sent", extra={"token": token_preview(token), "message_id": message_id})
        return SingleDeliveryResult(success=True, message_id=message_id)

    def close(self) -> None:
        """Release the named Firebase app."""
        with self._lock:
            if self._app is None:
                return
            app, self._app = self._app, None
        firebase_admin.delete_app(app)
        logger.info("Firebase app released", extra={"firebase_app": self.app_name})
