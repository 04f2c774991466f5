# calculator_server/core/security.py

from datetime import datetime, timedelta, timezone
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from calculator_server.config import Settings
from calculator_server.core.errors import TokenExpired, TokenInvalid


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenClaims(BaseModel):
    """
    Decoded payload of a verified access token.
    """
    sub: str
    userId: int
    username: str
    iat: int
    exp: int
    iss: str
    aud: str


# -------------------------------
# Password hashing
# -------------------------------

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or corrupt hash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# -------------------------------
# Access tokens
# -------------------------------

def create_access_token(
    user_id: int,
    username: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {
        "sub": str(user_id),
        "userId": user_id,
        "username": username,
        "iat": now,
        "exp": expire,
        "iss": settings.token_issuer,
        "aud": settings.token_audience,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """
    Verifies signature, expiry, issuer and audience of a token and returns its claims.
    Raises TokenExpired once the token is past its expiry and TokenInvalid for anything else.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.token_audience,
            issuer=settings.token_issuer,
        )
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise TokenInvalid()

    try:
        return TokenClaims(**payload)
    except ValidationError:
        raise TokenInvalid()


def expires_in_label(settings: Settings) -> str:
    minutes = settings.access_token_expire_minutes
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes}m"
