"""VAPID key management and JWT signing for Web Push (RFC 8292)."""

import json
from dataclasses import dataclass
from urllib.parse import urlsplit

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)
from py_vapid import Vapid02

from pushwire.webpush.codec import b64url_decode, b64url_encode
from pushwire.webpush.errors import (
    InvalidSubscriptionError,
    VapidConfigError,
)
from pushwire.webpush.models import VapidAssertion

# Push services reject tokens that expire more than 24h out.
TOKEN_LIFETIME_S = 86_400

_JWT_HEADER = {"typ": "JWT", "alg": "ES256"}
_COORD_SIZE = 32


@dataclass(frozen=True)
class VapidKeyPair:
    """The deployment's signing identity.

    Built once at startup and passed to the sender; nothing in the
    request path ever generates or mutates it.
    """

    private_key: ec.EllipticCurvePrivateKey
    public_key: str


def _public_key_b64url(private_key: ec.EllipticCurvePrivateKey) -> str:
    """Extract application server key as URL-safe base64."""
    raw = private_key.public_key().public_bytes(
        encoding=Encoding.X962,
        format=PublicFormat.UncompressedPoint,
    )
    return b64url_encode(raw)


def load_vapid_keys(public_key: str, private_key: str) -> VapidKeyPair:
    """Parse a base64url VAPID keypair from configuration.

    Args:
        public_key: Uncompressed P-256 point (65 bytes) as base64url.
        private_key: Raw 32-byte private scalar as base64url.

    Raises:
        VapidConfigError: a half is missing, malformed, or the two
            halves do not belong together.
    """
    if not public_key or not private_key:
        msg = "VAPID public and private keys must both be configured"
        raise VapidConfigError(msg)

    try:
        raw = b64url_decode(private_key)
    except ValueError as e:
        msg = "VAPID private key is not valid base64url"
        raise VapidConfigError(msg) from e
    if len(raw) != _COORD_SIZE:
        msg = f"VAPID private key must be {_COORD_SIZE} bytes, got {len(raw)}"
        raise VapidConfigError(msg)

    try:
        key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
    except ValueError as e:
        msg = "VAPID private key is not a valid P-256 scalar"
        raise VapidConfigError(msg) from e

    derived = _public_key_b64url(key)
    if derived != public_key.strip().rstrip("="):
        msg = "VAPID public key does not match the private key"
        raise VapidConfigError(msg)
    return VapidKeyPair(private_key=key, public_key=derived)


def validate_subject(subject: str) -> str:
    """Check the ``sub`` claim is a contact URI push services accept."""
    if not subject.startswith(("mailto:", "https:")):
        msg = f"VAPID subject must be a mailto: or https: URI, got {subject!r}"
        raise VapidConfigError(msg)
    return subject


def generate_vapid_keys() -> tuple[str, str]:
    """Create a fresh VAPID keypair.

    Operator tooling only; the service never calls this while running.

    Returns:
        (public_key, private_key), both base64url without padding.
    """
    vapid = Vapid02()
    vapid.generate_keys()
    scalar = vapid.private_key.private_numbers().private_value
    private = b64url_encode(scalar.to_bytes(_COORD_SIZE, "big"))
    return _public_key_b64url(vapid.private_key), private


def audience_for(endpoint: str) -> str:
    """Origin (scheme://host[:port]) of a push endpoint.

    Userinfo, path and query never reach the ``aud`` claim.
    """
    try:
        parts = urlsplit(endpoint)
        host = parts.hostname
        port = parts.port
    except ValueError as e:
        msg = f"push endpoint is not a valid URL: {endpoint!r}"
        raise InvalidSubscriptionError(msg) from e
    if not parts.scheme or not host:
        msg = f"push endpoint is not an absolute URL: {endpoint!r}"
        raise InvalidSubscriptionError(msg)

    if ":" in host:
        host = f"[{host}]"
    origin = f"{parts.scheme.lower()}://{host}"
    return origin if port is None else f"{origin}:{port}"


def _segment(obj: dict) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode())


def sign_vapid(
    audience: str,
    subject: str,
    keys: VapidKeyPair,
    now: float,
) -> VapidAssertion:
    """Build the ES256 JWT that identifies this server to a push service."""
    claims = {
        "aud": audience,
        "exp": int(now) + TOKEN_LIFETIME_S,
        "sub": subject,
    }
    signing_input = f"{_segment(_JWT_HEADER)}.{_segment(claims)}"
    der = keys.private_key.sign(
        signing_input.encode("ascii"),
        ec.ECDSA(hashes.SHA256()),
    )
    # JWS wants the fixed-width r || s form, not DER
    r, s = decode_dss_signature(der)
    raw_sig = r.to_bytes(_COORD_SIZE, "big") + s.to_bytes(_COORD_SIZE, "big")
    return VapidAssertion(
        token=f"{signing_input}.{b64url_encode(raw_sig)}",
        public_key=keys.public_key,
    )
