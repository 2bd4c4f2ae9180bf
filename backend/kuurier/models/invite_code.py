# kuurier/models/invite_code.py

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, String

from kuurier.models.base import Base, utcnow


class InviteStatus(str, enum.Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class InviteCode(Base):
    __tablename__ = "invite_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(10), unique=True, nullable=False, index=True)
    inviter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invitee_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)

    def status(self, now: Optional[datetime] = None) -> InviteStatus:
        if self.used_at is not None:
            return InviteStatus.USED
        if self.expires_at <= (now or utcnow()):
            return InviteStatus.EXPIRED
        return InviteStatus.ACTIVE
