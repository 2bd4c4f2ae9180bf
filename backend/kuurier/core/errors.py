# kuurier/core/errors.py

from typing import Any, Dict, Optional


class KuurierError(Exception):
    """
    Base for every error surfaced to a caller.

    `error` is the short, stable string clients switch on; `message` is
    optional human text; `extra` is merged into the response body.
    """

    status_code = 400
    error = "bad request"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None, **extra: Any):
        self.error = error or self.error
        self.message = message
        self.extra = extra
        super().__init__(self.error)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        body.update(self.extra)
        return body


# ---------- input validation ----------

class ValidationError(KuurierError):
    status_code = 400
    error = "invalid request body"


class InvalidPublicKeyError(ValidationError):
    error = "invalid public key"


class InvalidSignatureEncodingError(ValidationError):
    error = "invalid signature encoding"


# ---------- not found ----------

class NotFoundError(KuurierError):
    status_code = 404
    error = "not found"


class UserNotFoundError(NotFoundError):
    error = "user not found"


class InviteNotFoundError(NotFoundError):
    error = "invalid invite code"


# ---------- state conflicts ----------

class InviteUsedError(KuurierError):
    status_code = 400
    error = "invite already used"


class InviteExpiredError(KuurierError):
    status_code = 400
    error = "invite expired"


class InvalidChallengeError(KuurierError):
    status_code = 401
    error = "invalid or expired challenge"


class SelfVouchError(KuurierError):
    status_code = 400
    error = "cannot vouch for yourself"


class InviteNotRevocableError(NotFoundError):
    error = "invite not found or already used"


# ---------- authorization ----------

class AuthenticationError(KuurierError):
    status_code = 401
    error = "invalid token"


class InsufficientTrustError(KuurierError):
    status_code = 403
    error = "insufficient trust level"

    def __init__(self, required: int, current: int, error: Optional[str] = None, message: Optional[str] = None):
        super().__init__(error=error, message=message, required=required, current=current)
        self.required = required
        self.current = current


class InviteLimitError(KuurierError):
    status_code = 403
    error = "invite limit reached"

    def __init__(self, allowance: int, active: int, used: int):
        super().__init__(
            message="Increase your trust score to get more invites",
            total_allowance=allowance,
            active=active,
            used=used,
        )


class RateLimitExceededError(KuurierError):
    status_code = 429
    error = "rate limit exceeded"
    headers = {"Retry-After": "60"}


# ---------- cryptographic failure ----------

class InvalidSignatureError(KuurierError):
    status_code = 401
    error = "invalid signature"


# ---------- faults ----------

class TokenSigningError(KuurierError):
    status_code = 500
    error = "failed to generate token"

class InviteGenerationError(KuurierError):
    status_code = 500
    error = "failed to generate invite code"
