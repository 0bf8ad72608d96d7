"""Dependency wiring for shared, process-wide services (image store, orphan sweeper)."""

from functools import lru_cache

from fastapi import Request

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.image_store import ImageStore, build_image_store
from app.services.sweeper import OrphanSweeper


@lru_cache
def get_image_store() -> ImageStore:
    """Return the singleton image store selected by IMAGE_STORAGE."""
    return build_image_store(get_settings(), SessionLocal)


def get_sweeper(request: Request) -> OrphanSweeper | None:
    """Sweeper started by the app lifespan, or None when sweeping is disabled or not started."""
    return getattr(request.app.state, "sweeper", None)
