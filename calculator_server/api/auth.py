# calculator_server/api/auth.py

import re
from typing import Annotated
from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from calculator_server.api.deps import get_current_user, get_settings
from calculator_server.config import Settings
from calculator_server.core import users
from calculator_server.core.auth import Identity
from calculator_server.core.errors import NotFound
from calculator_server.core.history import get_user_stats
from calculator_server.core.security import create_access_token, expires_in_label
from calculator_server.database import get_db


router = APIRouter(prefix="/api/auth", tags=["auth"])

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter and one digit"
        )
    return value


Password = Annotated[str, Field(min_length=6), AfterValidator(check_password_strength)]


# -------------------------------
# Request Schemas
# -------------------------------

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: Password
    firstName: str | None = Field(None, max_length=50)
    lastName: str | None = Field(None, max_length=50)


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("login")
    @classmethod
    def strip_login(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username or email is required")
        return v


class UpdateProfileRequest(BaseModel):
    email: EmailStr | None = None
    firstName: str | None = Field(None, max_length=50)
    lastName: str | None = Field(None, max_length=50)


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: Password


class Token(BaseModel):
    access_token: str
    token_type: str


def _session_payload(user, settings: Settings) -> dict:
    return {
        "user": users.public_user(user),
        "token": create_access_token(user.id, user.username, settings),
        "expiresIn": expires_in_label(settings),
    }


# -------------------------------
# Endpoints
# -------------------------------

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = users.create_user(
        db,
        username=req.username,
        email=req.email,
        password=req.password,
        first_name=req.firstName,
        last_name=req.lastName,
    )
    return {
        "success": True,
        "message": "User registered successfully",
        "data": _session_payload(user, settings),
    }


@router.post("/login")
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = users.authenticate_user(db, req.login, req.password)
    return {
        "success": True,
        "message": "Login successful",
        "data": _session_payload(user, settings),
    }


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = users.authenticate_user(db, form_data.username, form_data.password)
    access_token = create_access_token(user.id, user.username, settings)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/profile")
def read_profile(current_user: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    user = users.get_user(db, current_user.user_id)
    if user is None:
        raise NotFound("User profile not found")
    return {
        "success": True,
        "data": {
            "user": users.public_user(user),
            "stats": get_user_stats(db, user.id),
        },
    }


@router.put("/profile")
def update_profile(
    req: UpdateProfileRequest,
    current_user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = users.update_profile(
        db,
        current_user.user_id,
        first_name=req.firstName,
        last_name=req.lastName,
        email=req.email,
    )
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": users.public_user(user)},
    }


@router.put("/change-password")
def change_password(
    req: ChangePasswordRequest,
    current_user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    users.change_password(db, current_user.user_id, req.currentPassword, req.newPassword)
    return {"success": True, "message": "Password changed successfully"}
