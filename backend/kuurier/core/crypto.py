# kuurier/core/crypto.py

import hashlib
import hmac
import secrets

# Ambiguous characters 0/O and 1/I are left out
INVITE_CODE_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 6
INVITE_CODE_PREFIX = "KUU-"

CHALLENGE_BYTES = 32


def generate_challenge() -> str:
    """32 random bytes, hex encoded (64 chars)."""
    return secrets.token_hex(CHALLENGE_BYTES)


def generate_invite_code() -> str:
    """KUU-XXXXXX with a uniformly drawn suffix."""
    suffix = "".join(secrets.choice(INVITE_CODE_CHARSET) for _ in range(INVITE_CODE_LENGTH))
    return f"{INVITE_CODE_PREFIX}{suffix}"


def fingerprint(secret: bytes, data: str) -> str:
    """
    HMAC-SHA256 of request-derived data, truncated to 32 hex chars.
    Used to key anonymous rate limits without storing IPs.
    """
    mac = hmac.new(secret, data.encode("utf-8"), hashlib.sha256)
    return mac.hexdigest()[:32]
