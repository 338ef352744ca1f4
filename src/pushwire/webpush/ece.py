"""Message encryption for Web Push (RFC 8291 over RFC 8188 aes128gcm).

Sender side is split into the three steps of the construction so each
can be exercised on its own:

    agree()   ephemeral ECDH with the subscriber key
    derive()  auth-secret HKDF, then salt HKDF into CEK + nonce
    encrypt() pad, AES-128-GCM, prepend the record header

``decrypt()`` is the user-agent side, used to check our own output.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)

from pushwire.webpush.errors import (
    DecryptionError,
    InvalidSubscriptionError,
    PayloadTooLargeError,
)
from pushwire.webpush.models import (
    DEFAULT_RECORD_SIZE,
    SALT_SIZE,
    DerivedKeys,
    EncryptedRecord,
)

AUTH_SECRET_SIZE = 16
KEY_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
IKM_SIZE = 32

# Last (and only) record delimiter
LAST_RECORD = b"\x02"

_KEY_INFO = b"WebPush: info\x00"
_CEK_INFO = b"Content-Encoding: aes128gcm\x00"
_NONCE_INFO = b"Content-Encoding: nonce\x00"


class RandomSource:
    """Per-message randomness: ephemeral keys and record salts.

    Tests substitute a subclass returning fixed values.
    """

    def ephemeral_key(self) -> ec.EllipticCurvePrivateKey:
        return ec.generate_private_key(ec.SECP256R1())

    def salt(self, size: int = SALT_SIZE) -> bytes:
        return os.urandom(size)


def public_bytes(key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed X9.62 point (65 bytes for P-256)."""
    return key.public_bytes(
        encoding=Encoding.X962,
        format=PublicFormat.UncompressedPoint,
    )


def load_public_key(raw: bytes) -> ec.EllipticCurvePublicKey:
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
    except ValueError as e:
        msg = "subscriber public key is not a valid P-256 point"
        raise InvalidSubscriptionError(msg) from e


def _hkdf(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    ).derive(ikm)


def agree(
    subscriber_public_key: bytes,
    rng: RandomSource | None = None,
) -> tuple[bytes, bytes]:
    """Generate an ephemeral keypair and run ECDH with the subscriber.

    Returns:
        (ephemeral_public_key, shared_secret)
    """
    peer = load_public_key(subscriber_public_key)
    ephemeral = (rng or RandomSource()).ephemeral_key()
    shared_secret = ephemeral.exchange(ec.ECDH(), peer)
    return public_bytes(ephemeral.public_key()), shared_secret


def derive(
    shared_secret: bytes,
    auth_secret: bytes,
    subscriber_public_key: bytes,
    ephemeral_public_key: bytes,
    salt: bytes,
) -> DerivedKeys:
    """Derive the content-encryption key and nonce for one message."""
    if len(auth_secret) != AUTH_SECRET_SIZE:
        msg = f"auth secret must be {AUTH_SECRET_SIZE} bytes, got {len(auth_secret)}"
        raise InvalidSubscriptionError(msg)
    if len(salt) != SALT_SIZE:
        msg = f"salt must be {SALT_SIZE} bytes, got {len(salt)}"
        raise ValueError(msg)

    key_info = _KEY_INFO + subscriber_public_key + ephemeral_public_key
    ikm = _hkdf(auth_secret, shared_secret, key_info, IKM_SIZE)
    return DerivedKeys(
        cek=_hkdf(salt, ikm, _CEK_INFO, KEY_SIZE),
        nonce=_hkdf(salt, ikm, _NONCE_INFO, NONCE_SIZE),
    )


def max_plaintext_size(record_size: int = DEFAULT_RECORD_SIZE) -> int:
    return record_size - TAG_SIZE - len(LAST_RECORD)


def encrypt(
    plaintext: bytes,
    keys: DerivedKeys,
    salt: bytes,
    ephemeral_public_key: bytes,
    record_size: int = DEFAULT_RECORD_SIZE,
) -> EncryptedRecord:
    """Seal a payload into a single aes128gcm record."""
    limit = max_plaintext_size(record_size)
    if len(plaintext) > limit:
        msg = f"payload is {len(plaintext)} bytes, single record holds {limit}"
        raise PayloadTooLargeError(msg)

    ciphertext = AESGCM(keys.cek).encrypt(keys.nonce, plaintext + LAST_RECORD, None)
    return EncryptedRecord(
        salt=salt,
        record_size=record_size,
        key_id=ephemeral_public_key,
        ciphertext=ciphertext,
    )


def decrypt(
    body: bytes,
    receiver_private_key: ec.EllipticCurvePrivateKey,
    auth_secret: bytes,
) -> bytes:
    """Open a single-record body as the user agent would."""
    record = EncryptedRecord.from_bytes(body)
    shared_secret = receiver_private_key.exchange(
        ec.ECDH(), load_public_key(record.key_id)
    )
    keys = derive(
        shared_secret,
        auth_secret,
        public_bytes(receiver_private_key.public_key()),
        record.key_id,
        record.salt,
    )
    try:
        padded = AESGCM(keys.cek).decrypt(keys.nonce, record.ciphertext, None)
    except InvalidTag as e:
        msg = "record failed authentication"
        raise DecryptionError(msg) from e

    content = padded.rstrip(b"\x00")
    if not content.endswith(LAST_RECORD):
        msg = "missing last-record delimiter"
        raise DecryptionError(msg)
    return content[: -len(LAST_RECORD)]
