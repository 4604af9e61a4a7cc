"""Push provider clients."""

from notification_relay.infra.push.firebase import (
    FIREBASE_NOT_INITIALIZED,
    NO_DEVICE_TOKEN,
    FirebasePushClient,
    build_message,
)

__all__ = [
    "FIREBASE_NOT_INITIALIZED",
    "NO_DEVICE_TOKEN",
    "FirebasePushClient",
    "build_message",
]
