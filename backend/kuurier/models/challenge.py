# kuurier/models/challenge.py

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from kuurier.models.base import Base, utcnow


class Challenge(Base):
    __tablename__ = "auth_challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_auth_challenges_lookup", "user_id", "challenge", "expires_at"),
    )
