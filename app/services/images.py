"""Image service: validated upload, serving, explicit deletion, and the orphaned-image sweep."""

import logging
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.models import Post
from app.services.image_store import ImageStore

logger = logging.getLogger(__name__)

# References are immutable once created, so clients may cache them for a year.
IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"
# SVG may embed script; it must never run with the API origin.
SVG_CONTENT_SECURITY_POLICY = "default-src 'none'; style-src 'unsafe-inline'; sandbox"


class ImageValidationError(AppError):
    """Raised when an upload is empty or malformed."""

    status_code = 400


class UnsupportedMediaTypeError(AppError):
    """Raised when the declared media type is not an image type."""

    status_code = 415


class ImageTooLargeError(AppError):
    """Raised when an upload exceeds the size ceiling."""

    status_code = 413


class ImageNotFoundError(AppError):
    """Raised when no stored image has the requested reference."""

    status_code = 404


def image_url(reference: str, api_prefix: str) -> str:
    """Public URL that serves the image with the given reference."""
    return f"{api_prefix}/images/{reference}"


def reference_from_url(value: str) -> str:
    """Reference named by an image URL or bare reference: its last path segment."""
    path = urlparse(value.strip()).path
    return path.rstrip("/").rsplit("/", 1)[-1]


def upload_image(
    store: ImageStore,
    data: bytes,
    filename: str,
    content_type: str | None,
    max_bytes: int,
) -> str:
    """
    Validate and store one image; return its reference.

    Raises UnsupportedMediaTypeError for non-image declared types, ImageTooLargeError
    beyond max_bytes, ImageValidationError for empty payloads.
    """
    media_type = (content_type or "").split(";")[0].strip().lower()
    if not media_type.startswith("image/"):
        raise UnsupportedMediaTypeError(
            f"Only image uploads are allowed (got {media_type or 'no content type'})."
        )
    if not data:
        raise ImageValidationError("Uploaded file is empty.")
    if len(data) > max_bytes:
        raise ImageTooLargeError(
            f"Image size must not exceed {max_bytes // (1024 * 1024)} MB."
        )
    reference = store.save(data, media_type, filename)
    logger.info(
        "Stored image reference=%s size=%s type=%s backend=%s",
        reference,
        len(data),
        media_type,
        store.name,
    )
    return reference


def serve_image(store: ImageStore, reference: str) -> tuple[bytes, str]:
    """Return (bytes, media type). Raises ImageNotFoundError."""
    found = store.open(reference)
    if found is None:
        raise ImageNotFoundError("Image not found.")
    return found


def image_response_headers(media_type: str) -> dict[str, str]:
    """Headers for serving a stored image of media_type."""
    headers = {"Cache-Control": IMAGE_CACHE_CONTROL, "X-Content-Type-Options": "nosniff"}
    if media_type == "image/svg+xml":
        headers["Content-Security-Policy"] = SVG_CONTENT_SECURITY_POLICY
    return headers


def delete_image(store: ImageStore, reference: str) -> None:
    """
    Remove an image unconditionally, even if posts still reference it.
    Raises ImageNotFoundError when absent.
    """
    if not store.delete(reference):
        raise ImageNotFoundError("Image not found.")
    logger.info("Deleted image reference=%s backend=%s", reference, store.name)


def live_references(db: Session) -> set[str]:
    """
    References used by active posts.

    Soft-deleted posts do not keep their images alive: the images stay
    addressable only until the next sweep. Deletion is not reversible through
    the API, so nothing can bring such a post back to need them.
    """
    refs: set[str] = set()
    for (images,) in db.query(Post.images).filter(Post.is_active.is_(True)).all():
        for value in images or []:
            if isinstance(value, str) and value.strip():
                refs.add(reference_from_url(value))
    return refs


def sweep_orphans(db: Session, store: ImageStore) -> list[str]:
    """
    Delete every stored image that no active post references.

    Returns the deleted references. Idempotent: a second run with no
    intervening writes deletes nothing. If the post query fails nothing is deleted.
    """
    referenced = live_references(db)
    orphans = sorted(store.list_references() - referenced)
    deleted: list[str] = []
    for reference in orphans:
        if store.delete(reference):
            deleted.append(reference)
    if deleted:
        logger.info(
            "Orphan sweep: referenced=%s deleted=%s backend=%s",
            len(referenced),
            len(deleted),
            store.name,
        )
    return deleted
