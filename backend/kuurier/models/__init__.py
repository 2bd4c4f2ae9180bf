from kuurier.models.base import Base
from kuurier.models.challenge import Challenge
from kuurier.models.invite_code import InviteCode, InviteStatus
from kuurier.models.user import User
from kuurier.models.vouch import Vouch, VouchType

__all__ = [
    "Base",
    "Challenge",
    "InviteCode",
    "InviteStatus",
    "User",
    "Vouch",
    "VouchType",
]
