"""Request/response schemas for auth and user management endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.models.user import default_preferences

RoleName = Literal["admin", "editor", "viewer"]


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class CurrentUser(BaseModel):
    """Authenticated user (id, username, name, role) for dependency injection."""

    model_config = {"from_attributes": True}

    id: int
    username: str
    name: str
    role: str


class UserPreferences(BaseModel):
    """UI settings stored per user."""

    theme: str = Field(default="light", min_length=1, max_length=32)
    language: str = Field(default="pt-BR", min_length=1, max_length=16)


class UserOut(BaseModel):
    """Public view of a user; never includes the password hash."""

    model_config = {"from_attributes": True}

    id: int
    name: str
    username: str
    role: str
    is_active: bool
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_login: datetime | None = None
    created_at: datetime | None = None

    @field_validator("preferences", mode="before")
    @classmethod
    def fill_missing_preferences(cls, v: object) -> object:
        if v is None:
            return default_preferences()
        if isinstance(v, dict):
            return {**default_preferences(), **v}
        return v


class LoginResponse(BaseModel):
    """JWT returned after successful login, with the user it identifies."""

    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserOut


class VerifyResponse(BaseModel):
    """Response for GET /auth/verify."""

    user: UserOut


class UserCreate(BaseModel):
    """Body for POST /users (admin only)."""

    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=4, max_length=128)
    role: RoleName = "viewer"


class UserUpdate(BaseModel):
    """Body for PUT /users/{id} (admin only). Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=4, max_length=128)
    role: RoleName | None = None
    is_active: bool | None = None
    preferences: UserPreferences | None = Field(
        default=None, description="Only the keys sent are changed"
    )
