"""Image storage backends: files on local disk or rows in the stored_images table."""

import logging
import mimetypes
import re
import secrets
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from sqlalchemy.orm import Session

from app.models import StoredImage

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# References are single path segments; anything else cannot name a stored image.
_REFERENCE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")

IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg", ".avif", ".heic", ".ico", ".tif", ".tiff"}
)
DEFAULT_MEDIA_TYPE = "application/octet-stream"


def is_valid_reference(reference: str) -> bool:
    return bool(_REFERENCE_RE.match(reference)) and ".." not in reference


class ImageStore(Protocol):
    """Operations the image service needs from a storage backend."""

    name: str

    def save(self, data: bytes, content_type: str, filename: str) -> str:
        """Store bytes and return a new reference (never the caller's filename)."""
        ...

    def open(self, reference: str) -> tuple[bytes, str] | None:
        """Return (bytes, media type), or None when absent."""
        ...

    def delete(self, reference: str) -> bool:
        """Remove the image; False when it did not exist."""
        ...

    def list_references(self) -> set[str]:
        ...


def _extension_for(filename: str, content_type: str) -> str:
    """
    Extension that makes open() report content_type again. The declared type
    wins over the filename; the filename only helps for types mimetypes lacks.
    """
    guessed = mimetypes.guess_extension(content_type or "") or ""
    if guessed in IMAGE_EXTENSIONS:
        return guessed
    ext = Path(filename or "").suffix.lower()
    if ext in IMAGE_EXTENSIONS and mimetypes.guess_type(f"x{ext}")[0] == content_type:
        return ext
    return ""


class LocalImageStore:
    """Images as files under root, named <unix-ms>-<random hex><ext>."""

    name = "local"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, reference: str) -> Path | None:
        if not is_valid_reference(reference):
            return None
        return self.root / reference

    def save(self, data: bytes, content_type: str, filename: str) -> str:
        ext = _extension_for(filename, content_type)
        while True:
            reference = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"
            path = self.root / reference
            if not path.exists():
                break
        path.write_bytes(data)
        return reference

    def open(self, reference: str) -> tuple[bytes, str] | None:
        path = self._path(reference)
        if path is None or not path.is_file():
            return None
        media_type = mimetypes.guess_type(path.name)[0] or DEFAULT_MEDIA_TYPE
        return path.read_bytes(), media_type

    def delete(self, reference: str) -> bool:
        path = self._path(reference)
        if path is None or not path.is_file():
            return False
        path.unlink()
        return True

    def list_references(self) -> set[str]:
        return {p.name for p in self.root.iterdir() if p.is_file() and is_valid_reference(p.name)}


class DatabaseImageStore:
    """Images as rows in stored_images; the reference is a UUID hex."""

    name = "database"

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def save(self, data: bytes, content_type: str, filename: str) -> str:
        reference = uuid.uuid4().hex
        db = self._session_factory()
        try:
            db.add(
                StoredImage(
                    id=reference,
                    filename=(filename or "")[:255],
                    content_type=content_type,
                    size=len(data),
                    data=data,
                )
            )
            db.commit()
        finally:
            db.close()
        return reference

    def open(self, reference: str) -> tuple[bytes, str] | None:
        if not is_valid_reference(reference):
            return None
        db = self._session_factory()
        try:
            row = db.query(StoredImage).filter(StoredImage.id == reference).first()
            if row is None:
                return None
            return bytes(row.data), row.content_type
        finally:
            db.close()

    def delete(self, reference: str) -> bool:
        if not is_valid_reference(reference):
            return False
        db = self._session_factory()
        try:
            deleted = (
                db.query(StoredImage)
                .filter(StoredImage.id == reference)
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted > 0
        finally:
            db.close()

    def list_references(self) -> set[str]:
        db = self._session_factory()
        try:
            return {row[0] for row in db.query(StoredImage.id).all()}
        finally:
            db.close()


def build_image_store(settings: "Settings", session_factory: Callable[[], Session]) -> ImageStore:
    """Return the backend selected by IMAGE_STORAGE."""
    if settings.IMAGE_STORAGE == "database":
        logger.info("Image storage: database (stored_images table)")
        return DatabaseImageStore(session_factory)
    logger.info("Image storage: local directory %s", Path(settings.UPLOAD_DIR).absolute())
    return LocalImageStore(settings.UPLOAD_DIR)
