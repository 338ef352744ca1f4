from collections.abc import Callable
from dataclasses import dataclass

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from pushwire.config import Settings, override_settings
from pushwire.webpush.codec import b64url_encode
from pushwire.webpush.ece import public_bytes
from pushwire.webpush.models import PushSubscription
from pushwire.webpush.sender import WebPushSender
from pushwire.webpush.transport import PushTransport
from pushwire.webpush.vapid import (
    VapidKeyPair,
    generate_vapid_keys,
    load_vapid_keys,
)

FIXED_NOW = 1_700_000_000.0


@dataclass
class Receiver:
    """A fake browser: holds the keys a real user agent would keep."""

    private_key: ec.EllipticCurvePrivateKey
    auth_secret: bytes

    def subscription(self, endpoint: str) -> PushSubscription:
        return PushSubscription(
            endpoint=endpoint,
            p256dh=b64url_encode(public_bytes(self.private_key.public_key())),
            auth=b64url_encode(self.auth_secret),
        )


@pytest.fixture(autouse=True)
def _test_settings(tmp_path):
    """Override settings so tests use an isolated state dir."""
    override_settings(
        Settings(
            state_dir=str(tmp_path),
            vapid_public_key="",
            vapid_private_key="",
        )
    )
    yield
    override_settings(None)


@pytest.fixture(scope="session")
def vapid_keys() -> VapidKeyPair:
    public_key, private_key = generate_vapid_keys()
    return load_vapid_keys(public_key, private_key)


@pytest.fixture
def receiver() -> Receiver:
    return Receiver(
        private_key=ec.generate_private_key(ec.SECP256R1()),
        auth_secret=bytes(range(16)),
    )


@pytest.fixture
def make_sender(
    vapid_keys: VapidKeyPair,
) -> Callable[..., WebPushSender]:
    """Build a sender whose push network is an httpx mock handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return WebPushSender(
            keys=vapid_keys,
            subject="mailto:test@example.com",
            transport=PushTransport(client=client),
            **kwargs,
        )

    return _make
