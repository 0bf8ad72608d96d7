"""Posts endpoints: public reads, editor/admin writes with soft delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_sweeper
from app.api.v1.auth import require_editor
from app.core.database import DatabaseMonitor, get_db, get_db_monitor
from app.schemas.auth import CurrentUser
from app.schemas.posts import PostDeleteResponse, PostOut, PostWrite
from app.services.posts import (
    count_by_category,
    create_post,
    get_post,
    list_posts,
    parse_post_id,
    soft_delete_post,
    update_post,
)
from app.services.sweeper import OrphanSweeper

router = APIRouter()


@router.get("", response_model=list[PostOut])
def get_posts(
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
    category: Annotated[str | None, Query(description="Category name, or 'all'")] = None,
) -> list[PostOut]:
    """
    Active posts, newest event date first. Unknown categories return an empty list.
    While the database is unreachable a single placeholder post is returned.
    """
    return [PostOut.model_validate(p) for p in list_posts(db, monitor, category)]


@router.get("/count", response_model=dict[str, int])
def get_post_counts(
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> dict[str, int]:
    """Active-post count for each of the six categories (zeros included)."""
    return count_by_category(db, monitor)


@router.get("/{post_id}", response_model=PostOut)
def get_post_by_id(
    post_id: str,
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> PostOut:
    """Return a post by id, including soft-deleted ones (is_active=false)."""
    return PostOut.model_validate(get_post(db, monitor, parse_post_id(post_id)))


@router.post("", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def post_post(
    body: PostWrite,
    user: Annotated[CurrentUser, Depends(require_editor)],
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
    sweeper: Annotated[OrphanSweeper | None, Depends(get_sweeper)],
) -> PostOut:
    """Create a post. The author is the authenticated user's name, never client input."""
    post = create_post(db, monitor, author=user.name, fields=body)
    if sweeper is not None:
        sweeper.trigger()
    return PostOut.model_validate(post)


@router.put("/{post_id}", response_model=PostOut)
def put_post(
    post_id: str,
    body: PostWrite,
    _user: Annotated[CurrentUser, Depends(require_editor)],
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
    sweeper: Annotated[OrphanSweeper | None, Depends(get_sweeper)],
) -> PostOut:
    """Replace title, text, category, date and images of a post."""
    post = update_post(db, monitor, parse_post_id(post_id), body)
    if sweeper is not None:
        sweeper.trigger()
    return PostOut.model_validate(post)


@router.delete("/{post_id}", response_model=PostDeleteResponse)
def delete_post(
    post_id: str,
    _user: Annotated[CurrentUser, Depends(require_editor)],
    db: Annotated[Session, Depends(get_db)],
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
) -> PostDeleteResponse:
    """Soft delete: the post leaves public listings but stays retrievable by id."""
    post = soft_delete_post(db, monitor, parse_post_id(post_id))
    return PostDeleteResponse(message="Post deleted.", post=PostOut.model_validate(post))
