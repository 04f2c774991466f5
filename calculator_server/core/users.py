# calculator_server/core/users.py

import logging
from datetime import datetime, timezone
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from calculator_server.core.errors import DuplicateIdentity, InvalidCredentials, NotFound
from calculator_server.core.security import get_password_hash, verify_password
from calculator_server.models.user import User, utcnow


logger = logging.getLogger(__name__)


def isoformat(value: datetime | None) -> str | None:
    """
    Renders a stored (naive UTC) timestamp as ISO-8601 with an explicit offset.
    """
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()


def public_user(user: User) -> dict:
    """
    Output representation of a user. The password hash is never included.
    """
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "isActive": user.is_active,
        "lastLogin": isoformat(user.last_login),
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


# -------------------------------
# Lookups
# -------------------------------

def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def find_by_login_identifier(db: Session, identifier: str) -> User | None:
    """
    Finds an active user by username or email.
    """
    return db.query(User).filter(
        or_(User.username == identifier, func.lower(User.email) == identifier.lower()),
        User.is_active.is_(True),
    ).first()


def _duplicate_field(db: Session, username: str | None, email: str | None, exclude_id: int | None = None) -> str | None:
    if email:
        owner = get_user_by_email(db, email)
        if owner and owner.id != exclude_id:
            return "email"
    if username:
        owner = get_user_by_username(db, username)
        if owner and owner.id != exclude_id:
            return "username"
    return None


def _commit_unique(db: Session, username: str | None, email: str | None, exclude_id: int | None = None):
    """
    Commits the session; a unique constraint violation becomes DuplicateIdentity.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        field = _duplicate_field(db, username, email, exclude_id) or "username"
        raise DuplicateIdentity(field)


# -------------------------------
# Writes
# -------------------------------

def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    email = email.lower()
    field = _duplicate_field(db, username, email)
    if field:
        raise DuplicateIdentity(field)

    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    _commit_unique(db, username, email)
    db.refresh(user)
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


def update_profile(
    db: Session,
    user_id: int,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")

    if email is not None:
        email = email.lower()
        if _duplicate_field(db, None, email, exclude_id=user_id):
            raise DuplicateIdentity("email")
        user.email = email
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name

    _commit_unique(db, None, email, exclude_id=user_id)
    db.refresh(user)
    return user


def set_password(db: Session, user_id: int, new_password: str) -> None:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    user.hashed_password = get_password_hash(new_password)
    db.commit()


def touch_last_login(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    user.last_login = utcnow()
    db.commit()


# -------------------------------
# Credential checks
# -------------------------------

def authenticate_user(db: Session, identifier: str, password: str) -> User:
    """
    Returns the user for a username/email and password pair.
    Unknown identifiers, inactive accounts and wrong passwords all raise the
    same InvalidCredentials error.
    """
    user = find_by_login_identifier(db, identifier)
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt for %r", identifier)
        raise InvalidCredentials()

    touch_last_login(db, user.id)
    db.refresh(user)
    logger.info("User %s logged in", user.username)
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    if not verify_password(current_password, user.hashed_password):
        logger.warning("Rejected password change for user id=%s", user_id)
        raise InvalidCredentials()

    set_password(db, user_id, new_password)
    logger.info("Password changed for user %s", user.username)
