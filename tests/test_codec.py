import pytest

from pushwire.webpush.codec import b64url_decode, b64url_encode


def test_encode_is_unpadded_and_url_safe() -> None:
    text = b64url_encode(b"\xfb\xff\xfe")
    assert text == "-__-"
    assert "=" not in b64url_encode(b"\x00")


def test_decode_accepts_missing_padding() -> None:
    assert b64url_decode("AA") == b"\x00"
    assert b64url_decode("AA==") == b"\x00"


def test_decode_url_alphabet() -> None:
    assert b64url_decode("-__-") == b"\xfb\xff\xfe"


@pytest.mark.parametrize("bad", ["a*b", "has space", "A"])
def test_decode_rejects_garbage(bad: str) -> None:
    with pytest.raises(ValueError):
        b64url_decode(bad)
