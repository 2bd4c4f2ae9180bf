"""
Key decoding, signature checks and random token formats.
"""
import base64

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from conftest import b64, raw_public_key
from kuurier.core.crypto import INVITE_CODE_CHARSET, fingerprint, generate_challenge, generate_invite_code
from kuurier.core.errors import InvalidPublicKeyError, InvalidSignatureEncodingError
from kuurier.core.security import decode_public_key, decode_signature, verify_signature


# ---------------------------------------------------------------------------
# Public key decoding
# ---------------------------------------------------------------------------

def test_decode_public_key_accepts_32_bytes():
    key = raw_public_key(Ed25519PrivateKey.generate())
    assert decode_public_key(b64(key)) == key


@pytest.mark.parametrize("value", [
    "not-valid-base64!!!",
    base64.b64encode(b"tooshort").decode(),
    base64.b64encode(b"x" * 33).decode(),
    "",
])
def test_decode_public_key_rejects_bad_input(value):
    with pytest.raises(InvalidPublicKeyError):
        decode_public_key(value)


def test_decode_signature_rejects_garbage():
    with pytest.raises(InvalidSignatureEncodingError):
        decode_signature("***")


# ---------------------------------------------------------------------------
# Signature verification
# ---------------------------------------------------------------------------

def test_verify_signature_round_trip():
    private_key = Ed25519PrivateKey.generate()
    sig = private_key.sign(b"challenge-text")
    assert verify_signature(raw_public_key(private_key), sig, "challenge-text")


def test_verify_signature_wrong_message():
    private_key = Ed25519PrivateKey.generate()
    sig = private_key.sign(b"challenge-a")
    assert not verify_signature(raw_public_key(private_key), sig, "challenge-b")


def test_verify_signature_wrong_key():
    signer = Ed25519PrivateKey.generate()
    other = Ed25519PrivateKey.generate()
    sig = signer.sign(b"challenge")
    assert not verify_signature(raw_public_key(other), sig, "challenge")


def test_verify_signature_truncated_signature():
    private_key = Ed25519PrivateKey.generate()
    sig = private_key.sign(b"challenge")[:40]
    assert not verify_signature(raw_public_key(private_key), sig, "challenge")


# ---------------------------------------------------------------------------
# Random tokens
# ---------------------------------------------------------------------------

def test_challenge_is_64_hex_chars_and_unique():
    challenges = {generate_challenge() for _ in range(50)}
    assert len(challenges) == 50
    for c in challenges:
        assert len(c) == 64
        int(c, 16)


def test_invite_code_format():
    for _ in range(200):
        code = generate_invite_code()
        assert code.startswith("KUU-")
        suffix = code[4:]
        assert len(suffix) == 6
        assert all(ch in INVITE_CODE_CHARSET for ch in suffix)


def test_invite_charset_has_no_ambiguous_characters():
    for ch in "0O1I":
        assert ch not in INVITE_CODE_CHARSET


def test_fingerprint_is_keyed():
    assert fingerprint(b"a" * 32, "ua|en|gzip") != fingerprint(b"b" * 32, "ua|en|gzip")
    assert len(fingerprint(b"a" * 32, "ua|en|gzip")) == 32
