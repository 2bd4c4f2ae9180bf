"""Shared fixtures: in-memory SQLite store, app client and user/invite factories."""

import base64
import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-testing-must-be-at-least-32-chars")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kuurier.core.circuit_breaker import limiter  # noqa: E402
from kuurier.core.config import get_settings  # noqa: E402
from kuurier.core.session import issue_token  # noqa: E402
from kuurier.infra.postgres import get_db  # noqa: E402
from kuurier.main import app  # noqa: E402
from kuurier.models import Base, InviteCode, User  # noqa: E402
from kuurier.models.base import utcnow  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.subject_limiter.reset()
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def raw_public_key(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def sign_b64(private_key: Ed25519PrivateKey, message: str) -> str:
    return b64(private_key.sign(message.encode("utf-8")))


@pytest.fixture
def make_user(db):
    """Create a user directly in the store. Returns (user, private_key)."""

    def _make(trust_score: int = 0, **kwargs):
        private_key = Ed25519PrivateKey.generate()
        user = User(public_key=raw_public_key(private_key), trust_score=trust_score, **kwargs)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, private_key

    return _make


@pytest.fixture
def make_invite(db):
    def _make(inviter: User, code: str = "KUU-ABC123", expires_in: timedelta = timedelta(days=7), used_by=None):
        invite = InviteCode(
            code=code,
            inviter_id=inviter.id,
            expires_at=utcnow() + expires_in,
        )
        if used_by is not None:
            invite.used_at = utcnow()
            invite.invitee_id = used_by.id
        db.add(invite)
        db.commit()
        db.refresh(invite)
        return invite

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, trust_score: int = 0) -> dict:
        token, _ = issue_token(get_settings().jwt_secret, user_id, trust_score, 1)
        return {"Authorization": f"Bearer {token}"}

    return _headers
