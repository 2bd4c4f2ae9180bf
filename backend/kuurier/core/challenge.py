# kuurier/core/challenge.py

from datetime import timedelta
from typing import Tuple

from loguru import logger
from sqlalchemy import update
from sqlalchemy.orm import Session

from kuurier.core.config import CHALLENGE_EXPIRY_MINUTES, get_settings
from kuurier.core.crypto import generate_challenge
from kuurier.core.errors import InvalidChallengeError, InvalidSignatureError, UserNotFoundError
from kuurier.core.security import decode_signature, verify_signature
from kuurier.core.session import SessionClaims, issue_token
from kuurier.infra.postgres import transaction
from kuurier.models.base import utcnow
from kuurier.models.challenge import Challenge
from kuurier.models.user import User


def create_challenge(db: Session, user_id: str) -> Challenge:
    """Add a fresh challenge for `user_id` to the session. Caller commits."""
    challenge = Challenge(
        user_id=user_id,
        challenge=generate_challenge(),
        expires_at=utcnow() + timedelta(minutes=CHALLENGE_EXPIRY_MINUTES),
    )
    db.add(challenge)
    return challenge


def issue_challenge(db: Session, public_key: bytes) -> Tuple[User, Challenge]:
    """Mint a challenge for the user owning `public_key`."""
    user = db.query(User).filter(User.public_key == public_key).first()
    if user is None:
        raise UserNotFoundError()

    with transaction(db):
        challenge = create_challenge(db, user.id)
    return user, challenge


def verify_challenge(db: Session, user_id: str, challenge: str, signature_b64: str) -> Tuple[str, SessionClaims]:
    """
    Check a signed challenge and exchange it for a bearer token.

    The challenge row must exist, belong to the user, be unused and
    unexpired. It is consumed with a conditional update so two concurrent
    verifications of the same challenge cannot both succeed.
    """
    signature = decode_signature(signature_b64)
    now = utcnow()

    row = (
        db.query(Challenge.id, User.public_key)
        .join(User, User.id == Challenge.user_id)
        .filter(
            Challenge.user_id == user_id,
            Challenge.challenge == challenge,
            Challenge.used_at.is_(None),
            Challenge.expires_at > now,
        )
        .first()
    )
    if row is None:
        raise InvalidChallengeError()

    challenge_id, public_key = row
    if not verify_signature(public_key, signature, challenge):
        raise InvalidSignatureError()

    with transaction(db):
        result = db.execute(
            update(Challenge)
            .where(Challenge.id == challenge_id, Challenge.used_at.is_(None))
            .values(used_at=now)
        )
        if result.rowcount != 1:
            # Consumed by a concurrent verification
            raise InvalidChallengeError()

    # Embed the trust score as of now, not as of the challenge
    trust_score = db.query(User.trust_score).filter(User.id == user_id).scalar()

    settings = get_settings()
    token, claims = issue_token(settings.jwt_secret, user_id, trust_score, settings.token_duration_hours)
    logger.info(f"Session issued for user {user_id}")
    return token, claims
