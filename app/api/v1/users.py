"""User management endpoints (admin only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.auth import require_admin
from app.core.database import get_db
from app.schemas.auth import CurrentUser, UserCreate, UserOut, UserUpdate
from app.services.users import create_user, list_users, update_user

router = APIRouter()


@router.get("", response_model=list[UserOut])
def get_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> list[UserOut]:
    """List all users. Password hashes are never returned."""
    return [UserOut.model_validate(u) for u in list_users(db)]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def post_user(
    body: UserCreate,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserOut:
    """Create a user. Usernames are unique case-insensitively (409 on collision)."""
    user = create_user(
        db,
        name=body.name,
        username=body.username,
        password=body.password,
        role=body.role,
    )
    return UserOut.model_validate(user)


@router.put("/{user_id}", response_model=UserOut)
def put_user(
    user_id: int,
    body: UserUpdate,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserOut:
    """Update name, username, password, role, preferences or active flag. Users are never deleted."""
    user = update_user(db, user_id, body.model_dump(exclude_unset=True))
    return UserOut.model_validate(user)
