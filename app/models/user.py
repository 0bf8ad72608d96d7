"""ORM model for application users (auth and RBAC)."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, func

from app.models.base import Base

DEFAULT_PREFERENCES = {"theme": "light", "language": "pt-BR"}


def default_preferences() -> dict[str, str]:
    return dict(DEFAULT_PREFERENCES)


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin', 'editor' or 'viewer'. username is stored lowercase and trimmed.
    Users are never deleted; is_active=False locks the account out.
    preferences holds UI settings (theme, language) the front end reads back.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="viewer")
    is_active = Column(Boolean, nullable=False, default=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
