# kuurier/api/invites.py

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from kuurier.api.deps import rate_limited_session, require_trust
from kuurier.core import invites
from kuurier.core.circuit_breaker import PUBLIC_AUTH_LIMIT, limiter
from kuurier.core.config import MIN_TRUST_TO_INVITE
from kuurier.core.errors import InviteExpiredError, InviteNotFoundError, InviteUsedError
from kuurier.core.session import SessionClaims
from kuurier.infra.postgres import get_db
from kuurier.models.base import unix_seconds

router = APIRouter(prefix="/invites")
public_router = APIRouter(prefix="/invites")


@router.get("")
def list_invites(claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    return invites.list_invites(db, claims.subject_id)


@router.post("", status_code=201)
def generate_invite(
    claims: SessionClaims = Depends(
        require_trust(MIN_TRUST_TO_INVITE, live=True, error="insufficient trust to generate invites")
    ),
    db: Session = Depends(get_db),
):
    invite = invites.generate_invite(db, claims.subject_id)
    return {
        "id": invite.id,
        "code": invite.code,
        "expires_at": unix_seconds(invite.expires_at),
        "message": "Share this code with someone you trust",
    }


@router.get("/stats")
def get_invite_stats(claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    return invites.invite_stats(db, claims.subject_id)


@router.delete("/{code}")
def revoke_invite(code: str, claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    invites.revoke_invite(db, claims.subject_id, code)
    return {"message": "invite revoked"}


@public_router.get("/validate/{code}")
@limiter.limit(PUBLIC_AUTH_LIMIT)
def validate_invite(request: Request, code: str, db: Session = Depends(get_db)):
    """Public check so a client can show whether a shared code still works."""
    try:
        invite = invites.validate_invite(db, code)
    except InviteNotFoundError:
        return JSONResponse(status_code=404, content={
            "valid": False,
            "error": "invalid invite code",
            "message": "This invite code does not exist",
        })
    except (InviteUsedError, InviteExpiredError) as e:
        return JSONResponse(status_code=410, content={
            "valid": False,
            "error": e.error,
            "message": e.message,
        })

    return {
        "valid": True,
        "expires_at": unix_seconds(invite.expires_at),
        "message": "Invite code is valid",
    }
