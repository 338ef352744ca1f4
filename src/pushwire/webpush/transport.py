"""HTTP delivery of encrypted records to a push service."""

from http import HTTPStatus

import httpx
import structlog

from pushwire.webpush.models import (
    DeliveryOutcome,
    DeliveryResult,
    EncryptedRecord,
    PushSubscription,
    VapidAssertion,
)

logger = structlog.get_logger()

_GONE_STATUSES = {HTTPStatus.NOT_FOUND, HTTPStatus.GONE}


def classify_status(status_code: int) -> DeliveryOutcome:
    """Map a push service response code to a delivery outcome."""
    if 200 <= status_code < 300:
        return DeliveryOutcome.DELIVERED
    if status_code in _GONE_STATUSES:
        return DeliveryOutcome.GONE
    return DeliveryOutcome.TRANSIENT_FAILURE


class PushTransport:
    """POSTs one record per call; never retries.

    Owns a single ``httpx.Client`` shared by every send, so it is safe
    to call from worker threads concurrently.
    """

    def __init__(
        self,
        timeout_s: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_s))

    def send(
        self,
        subscription: PushSubscription,
        record: EncryptedRecord,
        assertion: VapidAssertion,
        ttl: int,
    ) -> DeliveryResult:
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Encoding": "aes128gcm",
            "TTL": str(ttl),
            "Authorization": assertion.authorization,
        }
        try:
            resp = self._client.post(
                subscription.endpoint,
                content=record.to_bytes(),
                headers=headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                "push_request_failed",
                endpoint=subscription.endpoint,
                error=str(e),
            )
            return DeliveryResult(subscription, DeliveryOutcome.TRANSIENT_FAILURE)

        outcome = classify_status(resp.status_code)
        if outcome is DeliveryOutcome.TRANSIENT_FAILURE:
            logger.warning(
                "push_rejected",
                endpoint=subscription.endpoint,
                status=resp.status_code,
                detail=resp.text[:200],
            )
        return DeliveryResult(subscription, outcome, resp.status_code)

    def close(self) -> None:
        self._client.close()
