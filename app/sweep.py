"""
CLI entrypoint for a one-off orphaned-image sweep. Run from cron, e.g.:

  python -m app.sweep

Or hourly: 0 * * * * cd /path/to/ipb-api && .venv/bin/python -m app.sweep

The API process already sweeps on its own schedule; use this when it runs
with IMAGE_SWEEP_ENABLED=false or to reclaim space immediately.
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.image_store import build_image_store
from app.services.images import sweep_orphans

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete every stored image not referenced by an active post."""
    settings = get_settings()
    store = build_image_store(settings, SessionLocal)
    db = SessionLocal()
    try:
        deleted = sweep_orphans(db, store)
        logger.info("Sweep completed: images_deleted=%s", len(deleted))
        return 0
    except Exception as e:
        logger.exception("Sweep job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
