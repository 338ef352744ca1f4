"""Compose signing, encryption and transport into a single send."""

import asyncio
import time
from collections.abc import Callable, Sequence

import structlog

from pushwire.webpush import ece
from pushwire.webpush.codec import b64url_decode
from pushwire.webpush.errors import InvalidSubscriptionError, WebPushError
from pushwire.webpush.models import (
    DeliveryOutcome,
    DeliveryResult,
    EncryptedRecord,
    NotificationPayload,
    PushSubscription,
)
from pushwire.webpush.transport import PushTransport
from pushwire.webpush.vapid import (
    VapidKeyPair,
    audience_for,
    sign_vapid,
    validate_subject,
)

logger = structlog.get_logger()


def _decode_key(subscription: PushSubscription, name: str) -> bytes:
    try:
        return b64url_decode(getattr(subscription, name))
    except ValueError as e:
        msg = f"subscription {name} is not valid base64url"
        raise InvalidSubscriptionError(msg) from e


class WebPushSender:
    """Send encrypted notifications to push subscriptions.

    Per-message faults (bad keys, oversized payload, HTTP errors) come
    back as ``transientFailure`` results; they never raise and never
    affect other subscriptions in a batch.
    """

    def __init__(
        self,
        keys: VapidKeyPair,
        subject: str,
        transport: PushTransport,
        rng: ece.RandomSource | None = None,
        ttl: int = 86_400,
        max_concurrency: int = 8,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._keys = keys
        self._subject = validate_subject(subject)
        self._transport = transport
        self._rng = rng or ece.RandomSource()
        if max_concurrency < 1:
            msg = f"max_concurrency must be at least 1, got {max_concurrency}"
            raise ValueError(msg)
        self._ttl = ttl
        self._max_concurrency = max_concurrency
        self._clock = clock

    @property
    def public_key(self) -> str:
        """Application server key handed to browsers at subscribe time."""
        return self._keys.public_key

    def encrypt_payload(
        self,
        subscription: PushSubscription,
        data: bytes,
    ) -> EncryptedRecord:
        """Encrypt raw bytes for one subscription (fresh key and salt)."""
        ua_public = _decode_key(subscription, "p256dh")
        auth_secret = _decode_key(subscription, "auth")

        ephemeral_public, shared_secret = ece.agree(ua_public, self._rng)
        salt = self._rng.salt()
        keys = ece.derive(shared_secret, auth_secret, ua_public, ephemeral_public, salt)
        return ece.encrypt(data, keys, salt, ephemeral_public)

    def send_push_message(
        self,
        subscription: PushSubscription,
        payload: NotificationPayload,
    ) -> DeliveryResult:
        """Encrypt, sign and deliver one notification."""
        try:
            record = self.encrypt_payload(subscription, payload.to_bytes())
            assertion = sign_vapid(
                audience_for(subscription.endpoint),
                self._subject,
                self._keys,
                self._clock(),
            )
        except (WebPushError, ValueError) as e:
            logger.warning(
                "push_message_rejected",
                endpoint=subscription.endpoint,
                error=str(e),
            )
            return DeliveryResult(subscription, DeliveryOutcome.TRANSIENT_FAILURE)

        result = self._transport.send(subscription, record, assertion, self._ttl)
        logger.debug(
            "push_sent",
            endpoint=subscription.endpoint,
            outcome=result.outcome.value,
        )
        return result

    async def send_batch(
        self,
        subscriptions: Sequence[PushSubscription],
        payload: NotificationPayload,
    ) -> list[DeliveryResult]:
        """Deliver to many subscriptions in parallel worker threads.

        Results come back in the order of ``subscriptions``.
        """
        sem = asyncio.Semaphore(self._max_concurrency)

        async def _one(sub: PushSubscription) -> DeliveryResult:
            async with sem:
                try:
                    return await asyncio.to_thread(
                        self.send_push_message, sub, payload
                    )
                except Exception:
                    logger.exception("push_send_crashed", endpoint=sub.endpoint)
                    return DeliveryResult(sub, DeliveryOutcome.TRANSIENT_FAILURE)

        return list(await asyncio.gather(*(_one(s) for s in subscriptions)))
