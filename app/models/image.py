"""ORM model for images kept in the database (IMAGE_STORAGE=database)."""

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, func

from app.models.base import Base


class StoredImage(Base):
    """Uploaded image bytes; id is the opaque reference handed to clients."""

    __tablename__ = "stored_images"

    id = Column(String(64), primary_key=True)
    filename = Column(String(255), nullable=False, default="")
    content_type = Column(String(127), nullable=False)
    size = Column(Integer, nullable=False)
    data = Column(LargeBinary, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
