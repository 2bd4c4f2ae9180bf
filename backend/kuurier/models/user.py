# kuurier/models/user.py

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, LargeBinary, String

from kuurier.models.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Raw 32-byte Ed25519 verification key; one user per key
    public_key = Column(LargeBinary, unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    trust_score = Column(Integer, default=0, nullable=False)
    # Set out of band, never by the auth flow
    is_verified = Column(Boolean, default=False, nullable=False)
    invited_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invite_code_used = Column(String(10), nullable=True)
