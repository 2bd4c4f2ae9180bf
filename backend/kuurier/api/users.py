# kuurier/api/users.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kuurier.api.deps import rate_limited_session
from kuurier.core import trust
from kuurier.core.session import SessionClaims
from kuurier.core.user import delete_account, get_profile
from kuurier.infra.postgres import get_db

router = APIRouter()


@router.get("/me")
def get_current_user(claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    return get_profile(db, claims.subject_id)


@router.delete("/me")
def delete_current_user(claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    """Permanently delete the caller's account and everything it owns."""
    delete_account(db, claims.subject_id)
    return {"message": "account deleted"}


@router.post("/vouch/{user_id}")
def vouch_for_user(user_id: str, claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    # Trust floor is checked against live trust inside trust.vouch
    trust.vouch(db, claims.subject_id, user_id)
    return {"message": "vouch recorded"}


@router.get("/vouches")
def get_vouches(claims: SessionClaims = Depends(rate_limited_session), db: Session = Depends(get_db)):
    return trust.list_vouches(db, claims.subject_id)
