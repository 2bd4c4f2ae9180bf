# kuurier/core/security.py

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from kuurier.core.errors import InvalidPublicKeyError, InvalidSignatureEncodingError

PUBLIC_KEY_SIZE = 32   # Ed25519
SIGNATURE_SIZE = 64


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


def decode_public_key(public_key_b64: str) -> bytes:
    """Decode a base64 Ed25519 public key, rejecting anything that is not 32 bytes."""
    try:
        key_bytes = _b64decode(public_key_b64)
    except (binascii.Error, ValueError, UnicodeEncodeError):
        raise InvalidPublicKeyError()
    if len(key_bytes) != PUBLIC_KEY_SIZE:
        raise InvalidPublicKeyError()
    return key_bytes


def decode_signature(signature_b64: str) -> bytes:
    try:
        return _b64decode(signature_b64)
    except (binascii.Error, ValueError, UnicodeEncodeError):
        raise InvalidSignatureEncodingError()


def verify_signature(public_key: bytes, signature: bytes, data: str) -> bool:
    """
    Verify an Ed25519 signature over the exact UTF-8 bytes of `data`.

    Any mismatch (wrong key, wrong data, malformed signature) is a plain
    False so callers cannot tell which part was wrong.
    """
    if len(signature) != SIGNATURE_SIZE:
        return False
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
        key.verify(signature, data.encode("utf-8"))
        return True
    except (InvalidSignature, ValueError):
        return False
