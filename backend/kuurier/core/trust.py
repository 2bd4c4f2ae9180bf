# kuurier/core/trust.py

from typing import Dict, List

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from kuurier.core.config import MIN_TRUST_TO_VOUCH, TRUST_PER_VOUCH
from kuurier.core.errors import InsufficientTrustError, SelfVouchError, UserNotFoundError
from kuurier.infra.postgres import transaction
from kuurier.models.base import unix_seconds, utcnow
from kuurier.models.user import User
from kuurier.models.vouch import Vouch, VouchType

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def trust_score_for(vouch_count: int) -> int:
    """Trust is 10 points per incoming vouch. No decay, weighting or cap."""
    return TRUST_PER_VOUCH * vouch_count


def count_vouches_received(db: Session, user_id: str) -> int:
    return db.query(func.count()).select_from(Vouch).filter(Vouch.vouchee_id == user_id).scalar()


def record_vouch(db: Session, voucher_id: str, vouchee_id: str, vouch_type: VouchType) -> bool:
    """
    Insert a vouch edge, ignoring a duplicate (voucher, vouchee) pair.

    Relies on the table's primary key so concurrent duplicates collapse to
    one row. Returns True when a new edge was written. Does not commit.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Unsupported database dialect for vouch insert: {dialect}")

    stmt = (
        insert(Vouch.__table__)
        .values(
            voucher_id=voucher_id,
            vouchee_id=vouchee_id,
            created_at=utcnow(),
            vouch_type=vouch_type,
        )
        .on_conflict_do_nothing(index_elements=["voucher_id", "vouchee_id"])
    )
    result = db.execute(stmt)
    return result.rowcount == 1


def recompute_trust(db: Session, user_id: str) -> None:
    """
    Persist the user's trust score from the full vouch set.

    A single UPDATE with an aggregate subquery, so racing recomputations
    all converge on the ledger rather than applying deltas. Does not commit.
    """
    vouch_count = (
        db.query(func.count())
        .select_from(Vouch)
        .filter(Vouch.vouchee_id == user_id)
        .scalar_subquery()
    )
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(trust_score=trust_score_for(vouch_count))
        .execution_options(synchronize_session=False)
    )


def vouch(db: Session, voucher_id: str, vouchee_id: str) -> bool:
    """
    Vouch for another user. Requires live trust >= MIN_TRUST_TO_VOUCH.

    A repeated vouch is a no-op. Returns True if a new edge was recorded.
    """
    if voucher_id == vouchee_id:
        raise SelfVouchError()

    voucher_trust = db.query(User.trust_score).filter(User.id == voucher_id).scalar()
    if voucher_trust is None:
        raise UserNotFoundError()
    if voucher_trust < MIN_TRUST_TO_VOUCH:
        raise InsufficientTrustError(
            required=MIN_TRUST_TO_VOUCH,
            current=voucher_trust,
            error="insufficient trust to vouch for others",
        )

    if db.query(User.id).filter(User.id == vouchee_id).first() is None:
        raise UserNotFoundError()

    with transaction(db):
        created = record_vouch(db, voucher_id, vouchee_id, VouchType.MANUAL)
        recompute_trust(db, vouchee_id)

    if created:
        logger.info(f"Vouch recorded {voucher_id} -> {vouchee_id}")
    return created


def list_vouches(db: Session, user_id: str) -> Dict[str, List[dict]]:
    received = (
        db.query(Vouch)
        .filter(Vouch.vouchee_id == user_id)
        .order_by(Vouch.created_at.desc())
        .all()
    )
    given = (
        db.query(Vouch)
        .filter(Vouch.voucher_id == user_id)
        .order_by(Vouch.created_at.desc())
        .all()
    )
    return {
        "received": [
            {"from": v.voucher_id, "type": v.vouch_type.value, "created_at": unix_seconds(v.created_at)}
            for v in received
        ],
        "given": [
            {"to": v.vouchee_id, "type": v.vouch_type.value, "created_at": unix_seconds(v.created_at)}
            for v in given
        ],
    }
