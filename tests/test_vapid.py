"""Tests for VAPID key loading and JWT signing."""

import json

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    encode_dss_signature,
)

from pushwire.webpush.codec import b64url_decode, b64url_encode
from pushwire.webpush.errors import (
    InvalidSubscriptionError,
    VapidConfigError,
)
from pushwire.webpush.vapid import (
    TOKEN_LIFETIME_S,
    audience_for,
    generate_vapid_keys,
    load_vapid_keys,
    sign_vapid,
    validate_subject,
)

NOW = 1_700_000_000.0


def _claims(token: str) -> tuple[dict, dict]:
    header, payload, _ = token.split(".")
    return json.loads(b64url_decode(header)), json.loads(b64url_decode(payload))


class TestLoadKeys:
    def test_generated_pair_loads(self):
        public_key, private_key = generate_vapid_keys()
        keys = load_vapid_keys(public_key, private_key)
        assert keys.public_key == public_key
        assert len(b64url_decode(public_key)) == 65

    def test_missing_half_rejected(self):
        public_key, _ = generate_vapid_keys()
        with pytest.raises(VapidConfigError):
            load_vapid_keys(public_key, "")

    def test_mismatched_halves_rejected(self):
        public_a, _ = generate_vapid_keys()
        _, private_b = generate_vapid_keys()
        with pytest.raises(VapidConfigError, match="does not match"):
            load_vapid_keys(public_a, private_b)

    def test_wrong_length_rejected(self):
        public_key, _ = generate_vapid_keys()
        with pytest.raises(VapidConfigError, match="32 bytes"):
            load_vapid_keys(public_key, b64url_encode(b"\x01" * 31))

    def test_not_base64_rejected(self):
        public_key, _ = generate_vapid_keys()
        with pytest.raises(VapidConfigError):
            load_vapid_keys(public_key, "not*base64")


class TestSubject:
    def test_mailto_ok(self):
        assert validate_subject("mailto:a@b.c") == "mailto:a@b.c"

    def test_plain_address_rejected(self):
        with pytest.raises(VapidConfigError):
            validate_subject("a@b.c")


class TestAudience:
    def test_origin_only(self):
        assert audience_for("https://push.example/abc/def?x=1") == "https://push.example"

    def test_keeps_port(self):
        assert audience_for("https://push.example:8443/abc") == "https://push.example:8443"

    def test_drops_userinfo(self):
        assert audience_for("https://u:p@push.example/x") == "https://push.example"

    def test_lowercases_scheme_and_host(self):
        assert audience_for("HTTPS://Push.Example/x") == "https://push.example"

    def test_ipv6_host_keeps_brackets(self):
        assert audience_for("https://[2001:db8::1]:8443/x") == "https://[2001:db8::1]:8443"

    def test_bad_port_rejected(self):
        with pytest.raises(InvalidSubscriptionError):
            audience_for("https://push.example:99999/x")

    def test_relative_endpoint_rejected(self):
        with pytest.raises(InvalidSubscriptionError):
            audience_for("/just/a/path")


class TestSign:
    def test_claims(self, vapid_keys):
        assertion = sign_vapid("https://push.example", "mailto:a@b.c", vapid_keys, NOW)
        header, claims = _claims(assertion.token)
        assert header == {"typ": "JWT", "alg": "ES256"}
        assert claims == {
            "aud": "https://push.example",
            "exp": int(NOW) + TOKEN_LIFETIME_S,
            "sub": "mailto:a@b.c",
        }

    def test_expiry_within_a_day(self, vapid_keys):
        assertion = sign_vapid("https://push.example", "mailto:a@b.c", vapid_keys, NOW)
        _, claims = _claims(assertion.token)
        assert claims["exp"] - NOW <= 86_400

    def test_no_padding(self, vapid_keys):
        assertion = sign_vapid("https://push.example", "mailto:a@b.c", vapid_keys, NOW)
        assert "=" not in assertion.token
        assert assertion.token.count(".") == 2

    def test_signature_verifies(self, vapid_keys):
        assertion = sign_vapid("https://push.example", "mailto:a@b.c", vapid_keys, NOW)
        signing_input, sig = assertion.token.rsplit(".", 1)
        raw = b64url_decode(sig)
        assert len(raw) == 64

        public = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256R1(), b64url_decode(assertion.public_key)
        )
        der = encode_dss_signature(
            int.from_bytes(raw[:32], "big"), int.from_bytes(raw[32:], "big")
        )
        # raises InvalidSignature on failure
        public.verify(der, signing_input.encode(), ec.ECDSA(hashes.SHA256()))

    def test_authorization_header(self, vapid_keys):
        assertion = sign_vapid("https://push.example", "mailto:a@b.c", vapid_keys, NOW)
        assert assertion.authorization == (
            f"vapid t={assertion.token}, k={vapid_keys.public_key}"
        )
