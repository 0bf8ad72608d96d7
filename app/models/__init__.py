"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.image import StoredImage
from app.models.post import Post
from app.models.user import User

__all__ = ["Base", "Post", "StoredImage", "User"]
