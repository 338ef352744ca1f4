from pushwire.webpush.ece import RandomSource
from pushwire.webpush.errors import (
    DecryptionError,
    InvalidSubscriptionError,
    PayloadTooLargeError,
    VapidConfigError,
    WebPushError,
)
from pushwire.webpush.models import (
    DeletionSignal,
    DeliveryOutcome,
    DeliveryResult,
    NotificationPayload,
    PushSubscription,
)
from pushwire.webpush.outcome import DeliveryOutcomeHandler
from pushwire.webpush.sender import WebPushSender
from pushwire.webpush.transport import PushTransport
from pushwire.webpush.vapid import VapidKeyPair, load_vapid_keys

__all__ = [
    "DecryptionError",
    "DeletionSignal",
    "DeliveryOutcome",
    "DeliveryOutcomeHandler",
    "DeliveryResult",
    "InvalidSubscriptionError",
    "NotificationPayload",
    "PayloadTooLargeError",
    "PushSubscription",
    "PushTransport",
    "RandomSource",
    "VapidConfigError",
    "VapidKeyPair",
    "WebPushError",
    "WebPushSender",
    "load_vapid_keys",
]
