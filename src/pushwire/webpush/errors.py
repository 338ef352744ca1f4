"""Exceptions raised by the Web Push core."""


class WebPushError(Exception):
    """Base class for all Web Push failures."""


class VapidConfigError(WebPushError):
    """The deployment VAPID keypair or subject is missing or malformed."""


class InvalidSubscriptionError(WebPushError):
    """A subscription's endpoint, public key or auth secret is unusable."""


class PayloadTooLargeError(WebPushError):
    """The plaintext does not fit in a single aes128gcm record."""


class DecryptionError(WebPushError):
    """An encrypted record failed authentication or has bad padding."""
