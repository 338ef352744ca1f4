"""Unpadded URL-safe base64, the text encoding used for all push key material."""

import base64


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without ``=`` padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """Decode base64url text, tolerating missing padding.

    Raises:
        ValueError: text contains characters outside the alphabet.
    """
    stripped = text.strip().rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
