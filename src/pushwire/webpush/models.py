"""Value types flowing through the Web Push pipeline."""

import json
import struct
from dataclasses import dataclass
from enum import StrEnum

from pushwire.webpush.errors import DecryptionError

# salt(16) || rs(uint32 BE) || idlen(uint8)
_HEADER = struct.Struct("!16sIB")

SALT_SIZE = 16
DEFAULT_RECORD_SIZE = 4096


class DeliveryOutcome(StrEnum):
    """How the push network answered a single delivery."""

    DELIVERED = "delivered"
    GONE = "gone"
    TRANSIENT_FAILURE = "transientFailure"


@dataclass(frozen=True)
class PushSubscription:
    """A browser push registration: opaque endpoint plus its key material.

    Keys never change for the lifetime of a subscription; new keys mean a
    new subscription.
    """

    endpoint: str
    p256dh: str
    auth: str


@dataclass(frozen=True)
class NotificationPayload:
    """Plaintext notification as shown by the service worker."""

    title: str
    body: str
    icon: str | None = None

    def to_bytes(self) -> bytes:
        data = {"title": self.title, "body": self.body}
        if self.icon is not None:
            data["icon"] = self.icon
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode()


@dataclass(frozen=True)
class VapidAssertion:
    """Signed VAPID JWT and the public key that verifies it."""

    token: str
    public_key: str

    @property
    def authorization(self) -> str:
        """Value of the ``Authorization`` header (RFC 8292 ``vapid`` scheme)."""
        return f"vapid t={self.token}, k={self.public_key}"


@dataclass(frozen=True)
class DerivedKeys:
    """Per-message content-encryption key and nonce."""

    cek: bytes
    nonce: bytes


@dataclass(frozen=True)
class EncryptedRecord:
    """A single aes128gcm record: the complete HTTP request body."""

    salt: bytes
    record_size: int
    key_id: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        header = _HEADER.pack(self.salt, self.record_size, len(self.key_id))
        return header + self.key_id + self.ciphertext

    @classmethod
    def from_bytes(cls, body: bytes) -> "EncryptedRecord":
        """Parse a request body back into its header fields and ciphertext."""
        if len(body) < _HEADER.size:
            msg = f"record too short ({len(body)} bytes)"
            raise DecryptionError(msg)
        salt, record_size, id_len = _HEADER.unpack_from(body)
        key_end = _HEADER.size + id_len
        if len(body) < key_end:
            msg = "record truncated inside key id"
            raise DecryptionError(msg)
        return cls(
            salt=salt,
            record_size=record_size,
            key_id=body[_HEADER.size : key_end],
            ciphertext=body[key_end:],
        )


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one send, kept together with its subscription."""

    subscription: PushSubscription
    outcome: DeliveryOutcome
    status_code: int | None = None


@dataclass(frozen=True)
class DeletionSignal:
    """Instruction to the storage owner to drop a dead subscription."""

    endpoint: str
