# kuurier/api/auth.py

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kuurier.core.challenge import issue_challenge, verify_challenge
from kuurier.core.circuit_breaker import PUBLIC_AUTH_LIMIT, limiter
from kuurier.core.security import decode_public_key
from kuurier.core.user import register_or_login
from kuurier.infra.postgres import get_db
from kuurier.models.base import unix_seconds

router = APIRouter(prefix="/auth")


class RegisterSchema(BaseModel):
    public_key: str = Field(min_length=1)     # base64 Ed25519 public key
    invite_code: Optional[str] = None         # required for new users only


class ChallengeSchema(BaseModel):
    public_key: str = Field(min_length=1)


class VerifySchema(BaseModel):
    user_id: str = Field(min_length=1)
    challenge: str = Field(min_length=1)
    signature: str = Field(min_length=1)      # base64 Ed25519 signature


@router.post("/register")
@limiter.limit(PUBLIC_AUTH_LIMIT)
def register_endpoint(request: Request, payload: RegisterSchema, db: Session = Depends(get_db)):
    """Register with an invite code, or log in if the key is already known."""
    public_key = decode_public_key(payload.public_key)
    result = register_or_login(db, public_key, payload.invite_code)

    return JSONResponse(
        status_code=201 if result.created else 200,
        content={
            "user_id": result.user_id,
            "challenge": result.challenge,
            "trust_score": result.trust_score,
        },
    )


@router.post("/challenge")
@limiter.limit(PUBLIC_AUTH_LIMIT)
def challenge_endpoint(request: Request, payload: ChallengeSchema, db: Session = Depends(get_db)):
    public_key = decode_public_key(payload.public_key)
    user, challenge = issue_challenge(db, public_key)

    return {
        "user_id": user.id,
        "challenge": challenge.challenge,
        "expires_at": unix_seconds(challenge.expires_at),
    }


@router.post("/verify")
@limiter.limit(PUBLIC_AUTH_LIMIT)
def verify_endpoint(request: Request, payload: VerifySchema, db: Session = Depends(get_db)):
    """Exchange a signed challenge for a bearer token."""
    token, claims = verify_challenge(db, payload.user_id, payload.challenge, payload.signature)

    return {
        "token": token,
        "expires_at": unix_seconds(claims.expires_at),
    }
