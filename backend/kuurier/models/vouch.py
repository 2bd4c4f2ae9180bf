# kuurier/models/vouch.py

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, String

from kuurier.models.base import Base, utcnow


class VouchType(str, enum.Enum):
    INVITE = "invite"   # automatic, created when an invite is redeemed
    MANUAL = "manual"   # explicit vouch from a trusted member


class Vouch(Base):
    __tablename__ = "vouches"

    voucher_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    vouchee_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    vouch_type = Column(
        Enum(VouchType, name="vouch_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=VouchType.MANUAL,
    )

    __table_args__ = (
        CheckConstraint("voucher_id != vouchee_id", name="no_self_vouch"),
    )
