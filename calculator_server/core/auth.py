# calculator_server/core/auth.py

"""
Bearer token resolution shared by the mandatory and optional auth dependencies.

resolve_identity never raises for auth problems. It returns an AuthResult tagged
as authenticated, anonymous (no token sent) or rejected (with the reason), and
each caller decides what a rejection means for its endpoint.
"""

import logging
from dataclasses import dataclass
from sqlalchemy.orm import Session

from calculator_server.config import Settings
from calculator_server.core.errors import CalculatorServerError, InactiveAccount
from calculator_server.core.security import decode_access_token
from calculator_server.core.users import get_user


logger = logging.getLogger(__name__)

AUTHENTICATED = "authenticated"
ANONYMOUS = "anonymous"
REJECTED = "rejected"


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str
    email: str


@dataclass(frozen=True)
class AuthResult:
    status: str
    identity: Identity | None = None
    error: CalculatorServerError | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == AUTHENTICATED


def resolve_identity(db: Session, token: str | None, settings: Settings) -> AuthResult:
    if not token:
        return AuthResult(ANONYMOUS)

    try:
        claims = decode_access_token(token, settings)
    except CalculatorServerError as e:
        logger.warning("Rejected bearer token: %s", e.message)
        return AuthResult(REJECTED, error=e)

    user = get_user(db, claims.userId)
    if user is None or not user.is_active:
        logger.warning("Token for missing or inactive user id=%s", claims.userId)
        return AuthResult(REJECTED, error=InactiveAccount())

    return AuthResult(
        AUTHENTICATED,
        identity=Identity(user_id=user.id, username=user.username, email=user.email),
    )
