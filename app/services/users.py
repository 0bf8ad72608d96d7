"""Credential store: user lookup, creation, update, login bookkeeping, and first-run seeding."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.permissions import ROLE_VALUES
from app.core.security import (
    NAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
    verify_password,
)
from app.models import User
from app.models.user import default_preferences

logger = logging.getLogger(__name__)

# Accounts created on first run when missing: (name, username, password, role).
SEED_USERS: tuple[tuple[str, str, str, str], ...] = (
    ("Almir", "almir", "1515", "admin"),
)


class UserValidationError(AppError):
    """Raised when user fields fail validation."""

    status_code = 400


class DuplicateUsernameError(AppError):
    """Raised when a username collides (case-insensitively) with an existing user."""

    status_code = 409


class UserNotFoundError(AppError):
    """Raised when no user has the requested id."""

    status_code = 404


def normalize_username(username: str) -> str:
    return username.strip().lower()


def _validate_name(name: str) -> str:
    name = name.strip()
    if not name or len(name) > NAME_MAX_LEN:
        raise UserValidationError("Invalid name length.")
    return name


def _validate_username(username: str) -> str:
    username = normalize_username(username)
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        raise UserValidationError("Invalid username length.")
    return username


def normalize_password(password: str) -> str:
    """Surrounding whitespace is never part of a password, at login or when setting one."""
    return password.strip()


def _validate_password(password: str) -> str:
    password = normalize_password(password)
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise UserValidationError(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters."
        )
    return password


def _merge_preferences(current: dict | None, updates: dict[str, Any]) -> dict[str, str]:
    # A new dict, so the JSON column registers the change.
    merged = {**default_preferences(), **(current or {})}
    for key, value in updates.items():
        if key not in merged:
            raise UserValidationError(f"Unknown preference {key!r}.")
        if not isinstance(value, str) or not value.strip():
            raise UserValidationError(f"Preference {key!r} must be a non-empty string.")
        merged[key] = value.strip()
    return merged


def _validate_role(role: str) -> str:
    if role not in ROLE_VALUES:
        raise UserValidationError(f"role must be one of {sorted(ROLE_VALUES)}, got {role!r}")
    return role


def find_by_username(db: Session, username: str) -> User | None:
    """Case-insensitive, trimmed exact match on username."""
    return (
        db.query(User)
        .filter(func.lower(User.username) == normalize_username(username))
        .first()
    )


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id).all()


def _commit_user(db: Session, user: User) -> User:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateUsernameError(
            f"Username '{user.username}' is already taken.", cause=e
        ) from e
    db.refresh(user)
    return user


def create_user(db: Session, name: str, username: str, password: str, role: str) -> User:
    """
    Validate, hash, persist. Only the bcrypt hash of the password is stored.

    Raises UserValidationError or DuplicateUsernameError.
    """
    name = _validate_name(name)
    username = _validate_username(username)
    password = _validate_password(password)
    role = _validate_role(role)
    if find_by_username(db, username) is not None:
        raise DuplicateUsernameError(f"Username '{username}' is already taken.")

    user = User(
        name=name,
        username=username,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(user)
    _commit_user(db, user)
    logger.info("Created user id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


def update_user(db: Session, user_id: int, fields: dict[str, Any]) -> User:
    """
    Apply the provided fields (name, username, password, role, is_active, preferences).
    preferences is merged key by key into the stored value.

    Same pipeline as create_user: every field is validated before the password
    is hashed and anything is written.
    """
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError("User not found.")

    changes: dict[str, Any] = {}
    if fields.get("name") is not None:
        changes["name"] = _validate_name(fields["name"])
    if fields.get("username") is not None:
        username = _validate_username(fields["username"])
        existing = find_by_username(db, username)
        if existing is not None and existing.id != user.id:
            raise DuplicateUsernameError(f"Username '{username}' is already taken.")
        changes["username"] = username
    if fields.get("role") is not None:
        changes["role"] = _validate_role(fields["role"])
    if fields.get("is_active") is not None:
        changes["is_active"] = bool(fields["is_active"])
    if fields.get("preferences") is not None:
        changes["preferences"] = _merge_preferences(user.preferences, fields["preferences"])
    if fields.get("password") is not None:
        changes["password_hash"] = hash_password(_validate_password(fields["password"]))

    for key, value in changes.items():
        setattr(user, key, value)
    _commit_user(db, user)
    logger.info("Updated user id=%s fields=%s", user.id, sorted(changes))
    return user


def verify_user_password(user: User, candidate: str) -> bool:
    """Compare candidate against the stored hash (bcrypt, constant effort)."""
    return verify_password(candidate, user.password_hash)


def record_login(db: Session, user: User) -> None:
    user.last_login = datetime.now(UTC)
    db.commit()


def seed_users(db: Session) -> int:
    """Create any seed account that does not exist yet. Returns how many were created."""
    created = 0
    for name, username, password, role in SEED_USERS:
        if find_by_username(db, username) is not None:
            continue
        create_user(db, name=name, username=username, password=password, role=role)
        created += 1
    if created:
        logger.info("Seeded %s user(s)", created)
    return created
