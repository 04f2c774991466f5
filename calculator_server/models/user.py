# calculator_server/models/user.py

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from . import Base


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime, the form every timestamp column stores.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# -------------------------------
# User Model
# -------------------------------

class User(Base):
    """
    Database model for application users.
    Stores login identity, the bcrypt password hash and profile fields.
    Username and email are unique at the database level.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    calculations = relationship(
        "Calculation",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
