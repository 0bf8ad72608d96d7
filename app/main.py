"""FastAPI application entrypoint. No business logic; only wiring, lifespan, and error handlers."""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.dependencies import get_image_store
from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.database import SessionLocal, db_monitor, engine
from app.core.scheduler import build_scheduler
from app.core.errors import AppError
from app.models import Base
from app.services.sweeper import OrphanSweeper
from app.services.users import seed_users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def _prepare_database() -> None:
    """Create tables and seed accounts once the database answers. Safe to repeat."""
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
    if settings.SEED_USERS_ENABLED:
        db = SessionLocal()
        try:
            seed_users(db)
        finally:
            db.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start connectivity monitoring and the orphan sweep on one scheduler; stop it on shutdown."""
    db_monitor.on_connect = _prepare_database
    if not await asyncio.to_thread(db_monitor.check):
        logger.warning("Starting without database; public reads will serve fallback content")

    scheduler = build_scheduler()
    db_monitor.schedule(scheduler)
    sweeper: OrphanSweeper | None = None
    if settings.IMAGE_SWEEP_ENABLED:
        sweeper = OrphanSweeper(
            SessionLocal,
            get_image_store(),
            interval_sec=settings.IMAGE_SWEEP_INTERVAL_SEC,
            delay_sec=settings.IMAGE_SWEEP_DELAY_SEC,
        )
        sweeper.schedule(scheduler)
    app.state.sweeper = sweeper
    scheduler.start()
    logger.info("Scheduler started with jobs: %s", [job.id for job in scheduler.get_jobs()])

    yield

    app.state.sweeper = None
    if sweeper is not None:
        sweeper.unschedule()
    db_monitor.unschedule()
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")


app = FastAPI(
    title="IPB API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": errors})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "IPB API", "status": "online", "database": db_monitor.state.status}
