# calculator_server/api/deps.py

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from calculator_server.config import Settings
from calculator_server.core.auth import ANONYMOUS, Identity, resolve_identity
from calculator_server.core.errors import TokenInvalid
from calculator_server.database import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """
    Mandatory auth: only a verified token for an active user gets through.
    """
    result = resolve_identity(db, token, settings)
    if result.status == ANONYMOUS:
        raise TokenInvalid("No token provided. Please log in.")
    if not result.is_authenticated:
        raise result.error
    return result.identity


def get_optional_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Identity | None:
    """
    Optional auth: any auth problem degrades to an anonymous caller.
    """
    result = resolve_identity(db, token, settings)
    return result.identity if result.is_authenticated else None
