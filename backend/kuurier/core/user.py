# kuurier/core/user.py

from dataclasses import dataclass
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kuurier.core import invites, trust
from kuurier.core.challenge import create_challenge
from kuurier.core.config import INITIAL_TRUST_SCORE
from kuurier.core.errors import InviteUsedError, UserNotFoundError, ValidationError
from kuurier.infra.postgres import transaction
from kuurier.models.base import unix_seconds, utcnow
from kuurier.models.challenge import Challenge
from kuurier.models.invite_code import InviteCode
from kuurier.models.user import User
from kuurier.models.vouch import Vouch, VouchType

# Collaborator domains (posts, events, alerts...) register a callable
# taking (db, user_id) that deletes the rows they own for that user.
# Hooks run inside the account deletion transaction, before core rows go.
DeletionHook = Callable[[Session, str], None]
account_deletion_hooks: List[DeletionHook] = []


def register_deletion_hook(hook: DeletionHook) -> DeletionHook:
    account_deletion_hooks.append(hook)
    return hook


@dataclass
class RegistrationResult:
    user_id: str
    challenge: str
    trust_score: int
    created: bool


def get_user_by_public_key(db: Session, public_key: bytes) -> Optional[User]:
    return db.query(User).filter(User.public_key == public_key).first()


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UserNotFoundError()
    return user


def register_or_login(db: Session, public_key: bytes, invite_code: Optional[str]) -> RegistrationResult:
    """
    Single entry point for a public key.

    Known key: login. The invite code is ignored and a fresh challenge
    issued. Unknown key: the invite code is redeemed. User creation,
    invite consumption and the automatic invite vouch commit together.
    """
    existing = get_user_by_public_key(db, public_key)
    if existing is not None:
        with transaction(db):
            challenge = create_challenge(db, existing.id)
        return RegistrationResult(
            user_id=existing.id,
            challenge=challenge.challenge,
            trust_score=existing.trust_score,
            created=False,
        )

    if not invite_code:
        raise ValidationError(
            "invite code required",
            message="You need an invite from an existing member to join.",
        )

    invite = invites.lookup_redeemable(db, invite_code)
    inviter_id = invite.inviter_id
    now = utcnow()

    try:
        with transaction(db):
            user = User(
                public_key=public_key,
                created_at=now,
                trust_score=INITIAL_TRUST_SCORE,
                is_verified=False,
                invited_by=inviter_id,
                invite_code_used=invite.code,
            )
            db.add(user)
            db.flush()

            consumed = db.execute(
                update(InviteCode)
                .where(InviteCode.id == invite.id, InviteCode.used_at.is_(None))
                .values(used_at=now, invitee_id=user.id)
                .execution_options(synchronize_session=False)
            )
            if consumed.rowcount != 1:
                # Redeemed by a concurrent registration
                raise InviteUsedError(message="This invite code has already been used.")

            trust.record_vouch(db, inviter_id, user.id, VouchType.INVITE)
            challenge = create_challenge(db, user.id)
    except IntegrityError:
        # Same key registered concurrently; continue as a login to that account
        if get_user_by_public_key(db, public_key) is None:
            raise
        logger.info("Concurrent registration of one key, continuing as login")
        return register_or_login(db, public_key, None)

    logger.info(f"User {user.id} registered via invite from {inviter_id}")
    return RegistrationResult(
        user_id=user.id,
        challenge=challenge.challenge,
        trust_score=INITIAL_TRUST_SCORE,
        created=True,
    )


def get_profile(db: Session, user_id: str) -> dict:
    user = get_user(db, user_id)
    return {
        "id": user.id,
        "trust_score": user.trust_score,
        "is_verified": user.is_verified,
        "created_at": unix_seconds(user.created_at),
        "vouch_count": trust.count_vouches_received(db, user_id),
    }


def delete_account(db: Session, user_id: str) -> None:
    """
    Permanently remove a user and everything they own, in one transaction.

    Users who lose a vouch from the deleted account get their trust
    recomputed. References from invitees are nulled, not cascaded.
    """
    get_user(db, user_id)

    with transaction(db):
        for hook in account_deletion_hooks:
            hook(db, user_id)

        affected = [
            row.vouchee_id
            for row in db.query(Vouch.vouchee_id).filter(Vouch.voucher_id == user_id).all()
        ]

        db.execute(delete(Challenge).where(Challenge.user_id == user_id))
        db.execute(delete(Vouch).where(or_(Vouch.voucher_id == user_id, Vouch.vouchee_id == user_id)))
        db.execute(delete(InviteCode).where(InviteCode.inviter_id == user_id))
        db.query(InviteCode).filter(InviteCode.invitee_id == user_id).update(
            {InviteCode.invitee_id: None}, synchronize_session=False
        )
        db.query(User).filter(User.invited_by == user_id).update(
            {User.invited_by: None}, synchronize_session=False
        )
        db.execute(delete(User).where(User.id == user_id))

        for vouchee_id in affected:
            trust.recompute_trust(db, vouchee_id)

    logger.info(f"Account {user_id} deleted")
