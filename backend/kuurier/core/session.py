# kuurier/core/session.py

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from kuurier.core.errors import AuthenticationError, TokenSigningError

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "trust_score", "iat", "exp"]


@dataclass(frozen=True)
class SessionClaims:
    """
    What a bearer token asserts. The trust score is a snapshot taken at
    issue time and goes stale until the user re-authenticates.
    """

    subject_id: str
    trust_score: int
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> dict:
        return {
            "sub": self.subject_id,
            "trust_score": self.trust_score,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        subject_id = payload["sub"]
        trust_score = payload["trust_score"]
        if not isinstance(subject_id, str) or not subject_id:
            raise AuthenticationError("invalid token claims")
        if isinstance(trust_score, bool) or not isinstance(trust_score, (int, float)):
            raise AuthenticationError("invalid token claims")
        return cls(
            subject_id=subject_id,
            trust_score=int(trust_score),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def issue_token(secret: bytes, user_id: str, trust_score: int, duration_hours: int) -> tuple:
    """Sign a token for `user_id`. Returns (token, claims)."""
    now = datetime.now(timezone.utc).replace(microsecond=0)
    claims = SessionClaims(
        subject_id=user_id,
        trust_score=trust_score,
        issued_at=now,
        expires_at=now + timedelta(hours=duration_hours),
    )
    try:
        token = jwt.encode(claims.to_payload(), secret, algorithm=ALGORITHM)
    except Exception as e:
        raise TokenSigningError() from e
    return token, claims


def decode_token(secret: bytes, token: str) -> SessionClaims:
    """Validate signature, algorithm and expiry, then return the typed claims."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError()
    return SessionClaims.from_payload(payload)
