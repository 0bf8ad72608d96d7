"""JWT login/verify endpoints and auth dependencies (get_current_user, require_operation)."""

import logging
from collections.abc import Callable
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import DatabaseMonitor, connectivity_guard, get_db, get_db_monitor
from app.core.permissions import Operation, is_allowed
from app.core.security import create_access_token, decode_access_token
from app.models.user import User
from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    UserOut,
    VerifyResponse,
)
from app.services.users import (
    find_by_username,
    get_user,
    normalize_password,
    record_login,
    verify_user_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str, db: Session, monitor: DatabaseMonitor) -> User:
    """
    Verify the token, then re-load the user so deactivation takes effect immediately.
    An unreachable database is a 503, not a failed authentication.
    """
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    sub = payload.get("sub")
    if not sub:
        raise _unauthorized("Invalid token payload")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")
    with connectivity_guard(db, monitor):
        user = get_user(db, user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User is inactive")
    return user


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns a JWT and the user.
    Include the token in the Authorization header as: Bearer <token>
    """
    with connectivity_guard(db, monitor):
        user = find_by_username(db, body.username)
    if (
        user is None
        or not user.is_active
        or not verify_user_password(user, normalize_password(body.password))
    ):
        logger.info("Login failed for username=%s", body.username.strip().lower())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    with connectivity_guard(db, monitor):
        record_login(db, user)
    token = create_access_token(
        sub=user.id, role=user.role, username=user.username, name=user.name
    )
    logger.info("Login succeeded for user id=%s", user.id)
    return LoginResponse(token=token, token_type="bearer", user=UserOut.model_validate(user))


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT for an active user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    user = _user_from_token(credentials.credentials, db, monitor)
    return CurrentUser.model_validate(user)


def require_operation(operation: Operation) -> Callable[..., CurrentUser]:
    """Dependency factory: authenticated user whose role permits operation, else 403."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not is_allowed(current_user.role, operation):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return dependency


require_editor = require_operation(Operation.EDITOR_WRITE)
require_admin = require_operation(Operation.ADMIN_ONLY)


@router.get("/verify", response_model=VerifyResponse)
def verify(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> VerifyResponse:
    """Return the user the Bearer token identifies, re-read from the database."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    user = _user_from_token(credentials.credentials, db, monitor)
    return VerifyResponse(user=UserOut.model_validate(user))
