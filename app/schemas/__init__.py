"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    UserCreate,
    UserOut,
    UserUpdate,
    VerifyResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.images import (
    ImageDeleteResponse,
    ImageUploadResponse,
    MultiImageUploadResponse,
)
from app.schemas.posts import (
    ALL_CATEGORIES,
    CATEGORIES,
    Category,
    PostDeleteResponse,
    PostOut,
    PostWrite,
)

__all__ = [
    "ALL_CATEGORIES",
    "CATEGORIES",
    "Category",
    "CurrentUser",
    "HealthResponse",
    "ImageDeleteResponse",
    "ImageUploadResponse",
    "LoginRequest",
    "LoginResponse",
    "MultiImageUploadResponse",
    "PostDeleteResponse",
    "PostOut",
    "PostWrite",
    "UserCreate",
    "UserOut",
    "UserUpdate",
    "VerifyResponse",
]
