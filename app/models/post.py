"""ORM model for site posts (news, events, announcements)."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class Post(Base):
    """
    A post in one of the fixed categories.

    images holds image URLs or references in display order. Deleting a post only
    clears is_active; the row stays addressable by id.
    """

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(512), nullable=False)
    text = Column(Text, nullable=False)
    category = Column(String(64), nullable=False, index=True)
    images = Column(JSON, nullable=False, default=list)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    author = Column(String(255), nullable=False, default="Admin")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
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
