# kuurier/core/invites.py

from datetime import timedelta

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kuurier.core.config import (
    BASE_INVITE_ALLOWANCE,
    INVITE_CODE_EXPIRY_DAYS,
    INVITES_PER_TRUST_INCREMENT,
    MIN_TRUST_TO_INVITE,
    TRUST_INCREMENT_SIZE,
)
from kuurier.core.crypto import generate_invite_code
from kuurier.core.errors import (
    InsufficientTrustError,
    InviteExpiredError,
    InviteGenerationError,
    InviteLimitError,
    InviteNotFoundError,
    InviteNotRevocableError,
    InviteUsedError,
    UserNotFoundError,
)
from kuurier.infra.postgres import transaction
from kuurier.models.base import unix_seconds, utcnow
from kuurier.models.invite_code import InviteCode, InviteStatus
from kuurier.models.user import User

# Retries on the (astronomically unlikely) event of a code collision
MAX_CODE_ATTEMPTS = 5


def calculate_invite_allowance(trust_score: int) -> int:
    """Lifetime invite allowance: 0 below 30, then 3 plus 1 per 20 trust."""
    if trust_score < MIN_TRUST_TO_INVITE:
        return 0
    extra_trust = trust_score - MIN_TRUST_TO_INVITE
    return BASE_INVITE_ALLOWANCE + (extra_trust // TRUST_INCREMENT_SIZE) * INVITES_PER_TRUST_INCREMENT


def count_invites(db: Session, inviter_id: str) -> dict:
    """Count an inviter's codes by derived status."""
    now = utcnow()
    counts = {status: 0 for status in InviteStatus}
    for invite in db.query(InviteCode).filter(InviteCode.inviter_id == inviter_id).all():
        counts[invite.status(now)] += 1
    return counts


def lookup_redeemable(db: Session, code: str) -> InviteCode:
    """
    Resolve `code` to an invite that can still be redeemed, or raise the
    specific reason it cannot.
    """
    invite = db.query(InviteCode).filter(InviteCode.code == code).first()
    if invite is None:
        raise InviteNotFoundError(
            message="This invite code does not exist. You need an invite from an existing member to join."
        )

    status = invite.status()
    if status is InviteStatus.USED:
        raise InviteUsedError(message="This invite code has already been used.")
    if status is InviteStatus.EXPIRED:
        raise InviteExpiredError(message="This invite code has expired. Ask your contact for a new one.")
    return invite


def _live_trust(db: Session, user_id: str) -> int:
    trust_score = db.query(User.trust_score).filter(User.id == user_id).scalar()
    if trust_score is None:
        raise UserNotFoundError()
    return trust_score


def generate_invite(db: Session, inviter_id: str) -> InviteCode:
    """
    Create a new invite code if the inviter is under their allowance.

    Active and used codes both count against the allowance; expired unused
    codes and revoked codes do not.
    """
    trust_score = _live_trust(db, inviter_id)
    if trust_score < MIN_TRUST_TO_INVITE:
        raise InsufficientTrustError(
            required=MIN_TRUST_TO_INVITE,
            current=trust_score,
            error="insufficient trust to generate invites",
        )

    allowance = calculate_invite_allowance(trust_score)
    counts = count_invites(db, inviter_id)
    active, used = counts[InviteStatus.ACTIVE], counts[InviteStatus.USED]
    if active + used >= allowance:
        raise InviteLimitError(allowance=allowance, active=active, used=used)

    for attempt in range(MAX_CODE_ATTEMPTS):
        invite = InviteCode(
            code=generate_invite_code(),
            inviter_id=inviter_id,
            expires_at=utcnow() + timedelta(days=INVITE_CODE_EXPIRY_DAYS),
        )
        try:
            with transaction(db):
                db.add(invite)
        except IntegrityError:
            logger.warning(f"Invite code collision, retrying (attempt {attempt + 1})")
            continue
        logger.info(f"Invite generated by user {inviter_id}")
        return invite

    raise InviteGenerationError()


def list_invites(db: Session, inviter_id: str) -> dict:
    """All of an inviter's codes, newest first, with allowance bookkeeping."""
    trust_score = _live_trust(db, inviter_id)
    now = utcnow()

    invites = []
    counts = {status: 0 for status in InviteStatus}
    rows = (
        db.query(InviteCode)
        .filter(InviteCode.inviter_id == inviter_id)
        .order_by(InviteCode.created_at.desc())
        .all()
    )
    for invite in rows:
        status = invite.status(now)
        counts[status] += 1
        invites.append({
            "id": invite.id,
            "code": invite.code,
            "inviter_id": invite.inviter_id,
            "invitee_id": invite.invitee_id,
            "created_at": unix_seconds(invite.created_at),
            "expires_at": unix_seconds(invite.expires_at),
            "used_at": unix_seconds(invite.used_at),
            "status": status.value,
        })

    allowance = calculate_invite_allowance(trust_score)
    active, used = counts[InviteStatus.ACTIVE], counts[InviteStatus.USED]
    return {
        "invites": invites,
        "total_allowance": allowance,
        "used_count": used,
        "active_count": active,
        "available_to_make": max(0, allowance - active - used),
    }


def invite_stats(db: Session, inviter_id: str) -> dict:
    trust_score = _live_trust(db, inviter_id)
    allowance = calculate_invite_allowance(trust_score)
    counts = count_invites(db, inviter_id)
    active, used = counts[InviteStatus.ACTIVE], counts[InviteStatus.USED]
    return {
        "trust_score": trust_score,
        "total_allowance": allowance,
        "active_invites": active,
        "used_invites": used,
        "expired_invites": counts[InviteStatus.EXPIRED],
        "available_to_make": max(0, allowance - active - used),
    }


def revoke_invite(db: Session, inviter_id: str, code: str) -> None:
    """Delete an unused code owned by `inviter_id`, freeing its allowance slot."""
    with transaction(db):
        result = db.execute(
            delete(InviteCode)
            .where(
                InviteCode.code == code,
                InviteCode.inviter_id == inviter_id,
                InviteCode.used_at.is_(None),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InviteNotRevocableError()
    logger.info(f"Invite revoked by user {inviter_id}")


def validate_invite(db: Session, code: str) -> InviteCode:
    """Public check used by clients before asking for a keypair."""
    return lookup_redeemable(db, code)
