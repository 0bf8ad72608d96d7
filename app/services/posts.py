"""Content store: active-post listing, category counts, CRUD with soft delete, and outage fallback."""

import logging
from datetime import UTC, datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import (
    UNAVAILABLE_MESSAGE,
    DatabaseMonitor,
    connectivity_guard,
    is_connectivity_error,
)
from app.core.errors import AppError, InvalidIdError, ServiceUnavailableError
from app.models import Post
from app.schemas.posts import ALL_CATEGORIES, CATEGORIES, PostWrite

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Site em manutenção"
PLACEHOLDER_TEXT = "As publicações voltarão em instantes."


class PostNotFoundError(AppError):
    """Raised when no post has the requested id."""

    status_code = 404


def parse_post_id(raw: str | int) -> int:
    """Return the integer id, or raise InvalidIdError before any lookup."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    else:
        s = str(raw).strip()
        if not (s.isascii() and s.isdigit()):
            raise InvalidIdError(f"Invalid post id: {raw!r}")
        value = int(s)
    if value < 1:
        raise InvalidIdError(f"Invalid post id: {raw!r}")
    return value


def _normalize_category_filter(category: str | None) -> str | None:
    """None means no filter; "all" (any case) and blank also mean no filter."""
    if category is None:
        return None
    s = category.strip()
    if not s or s.lower() == ALL_CATEGORIES:
        return None
    return s


def _placeholder_post(category: str | None) -> Post:
    """Synthetic, never-persisted post shown while the database is unreachable."""
    now = datetime.now(UTC)
    return Post(
        id=0,
        title=PLACEHOLDER_TITLE,
        text=PLACEHOLDER_TEXT,
        category=category if category in CATEGORIES else CATEGORIES[0],
        images=[],
        date=now,
        author="Admin",
        is_active=True,
        created_at=now,
        updated_at=now,
    )


def _require_available(monitor: DatabaseMonitor) -> None:
    if not monitor.state.is_available:
        raise ServiceUnavailableError(UNAVAILABLE_MESSAGE)


def list_posts(
    db: Session,
    monitor: DatabaseMonitor,
    category: str | None = None,
) -> list[Post]:
    """
    Active posts, newest event date first (ties: newest id first).

    An unknown category yields an empty list. While the database is unreachable
    a single placeholder post is returned instead of failing.
    """
    category = _normalize_category_filter(category)
    if category is not None and category not in CATEGORIES:
        return []
    if not monitor.state.is_available:
        return [_placeholder_post(category)]

    query = db.query(Post).filter(Post.is_active.is_(True))
    if category is not None:
        query = query.filter(Post.category == category)
    try:
        return query.order_by(Post.date.desc(), Post.id.desc()).all()
    except SQLAlchemyError as e:
        if not is_connectivity_error(e):
            raise
        monitor.mark_disconnected(e)
        logger.warning("Serving placeholder post list; database unreachable")
        return [_placeholder_post(category)]


def count_by_category(db: Session, monitor: DatabaseMonitor) -> dict[str, int]:
    """Active-post count for every fixed category; zero counts are included, never omitted."""
    result = {c: 0 for c in CATEGORIES}
    if not monitor.state.is_available:
        return result
    try:
        rows = (
            db.query(Post.category, func.count(Post.id))
            .filter(Post.is_active.is_(True))
            .group_by(Post.category)
            .all()
        )
    except SQLAlchemyError as e:
        if not is_connectivity_error(e):
            raise
        monitor.mark_disconnected(e)
        return result
    for category, count in rows:
        if category in result:
            result[category] = count
    return result


def get_post(db: Session, monitor: DatabaseMonitor, post_id: int) -> Post:
    """Return the post whether active or not. Raises PostNotFoundError."""
    _require_available(monitor)
    with connectivity_guard(db, monitor):
        post = db.query(Post).filter(Post.id == post_id).first()
    if post is None:
        raise PostNotFoundError("Post not found.")
    return post


def create_post(
    db: Session,
    monitor: DatabaseMonitor,
    author: str,
    fields: PostWrite,
) -> Post:
    """Persist a new active post. author comes from the authenticated caller."""
    _require_available(monitor)
    post = Post(
        title=fields.title,
        text=fields.text,
        category=fields.category,
        date=fields.date,
        images=list(fields.images),
        author=author,
        is_active=True,
    )
    with connectivity_guard(db, monitor):
        db.add(post)
        db.commit()
        db.refresh(post)
    logger.info("Created post id=%s category=%s author=%s", post.id, post.category, author)
    return post


def update_post(
    db: Session,
    monitor: DatabaseMonitor,
    post_id: int,
    fields: PostWrite,
) -> Post:
    """Full replace of title, text, category, date and images."""
    _require_available(monitor)
    with connectivity_guard(db, monitor):
        post = db.query(Post).filter(Post.id == post_id).first()
        if post is None:
            raise PostNotFoundError("Post not found.")
        post.title = fields.title
        post.text = fields.text
        post.category = fields.category
        post.date = fields.date
        post.images = list(fields.images)
        post.updated_at = datetime.now(UTC)
        db.commit()
        db.refresh(post)
    logger.info("Updated post id=%s", post.id)
    return post


def soft_delete_post(db: Session, monitor: DatabaseMonitor, post_id: int) -> Post:
    """Mark the post inactive. The row and its images stay addressable."""
    _require_available(monitor)
    with connectivity_guard(db, monitor):
        post = db.query(Post).filter(Post.id == post_id).first()
        if post is None:
            raise PostNotFoundError("Post not found.")
        post.is_active = False
        post.updated_at = datetime.now(UTC)
        db.commit()
        db.refresh(post)
    logger.info("Soft-deleted post id=%s", post.id)
    return post
