# kuurier/api/deps.py

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from kuurier.core.config import get_settings
from kuurier.core.errors import (
    AuthenticationError,
    InsufficientTrustError,
    RateLimitExceededError,
    UserNotFoundError,
)
from kuurier.core.session import SessionClaims, decode_token
from kuurier.infra.postgres import get_db
from kuurier.models.user import User


def get_session_claims(request: Request) -> SessionClaims:
    """Extract and validate the bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthenticationError("authorization header required")

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise AuthenticationError("invalid authorization header format")

    claims = decode_token(get_settings().jwt_secret, parts[1])
    request.state.user_id = claims.subject_id
    return claims


def rate_limited_session(request: Request, claims: SessionClaims = Depends(get_session_claims)) -> SessionClaims:
    """Authenticated caller, counted against the per-subject request limit."""
    if not request.app.state.subject_limiter.allow(f"ratelimit:{claims.subject_id}"):
        raise RateLimitExceededError()
    return claims


def require_trust(min_score: int, live: bool = False, error: Optional[str] = None):
    """
    Dependency factory gating an endpoint on a minimum trust score.

    By default the snapshot in the token is compared, which costs no store
    read but can be stale until re-authentication. `live=True` re-reads the
    user's current score instead.
    """

    def dependency(
        claims: SessionClaims = Depends(rate_limited_session),
        db: Session = Depends(get_db),
    ) -> SessionClaims:
        current = claims.trust_score
        if live:
            current = db.query(User.trust_score).filter(User.id == claims.subject_id).scalar()
            if current is None:
                raise UserNotFoundError()
        if current < min_score:
            raise InsufficientTrustError(required=min_score, current=current, error=error)
        return claims

    return dependency
