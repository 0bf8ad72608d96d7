"""Database engine, session management, and connection-state monitoring."""

import logging
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

RECONNECT_JOB_ID = "db-reconnect-probe"
UNAVAILABLE_MESSAGE = "Database temporarily unavailable."

ConnectionStatus = Literal["unknown", "connected", "disconnected"]


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite must share one connection or every session sees an empty database.
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,
        "connect_args": {"connect_timeout": settings.DB_CONNECT_TIMEOUT_SEC},
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def is_connectivity_error(exc: BaseException) -> bool:
    """True when exc means the database could not be reached (as opposed to a bad query)."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@dataclass(frozen=True)
class ReconnectPolicy:
    """Fixed-interval reconnect policy. max_attempts=None retries forever."""

    interval_sec: float = 10.0
    max_attempts: int | None = None

    def should_retry(self, consecutive_failures: int) -> bool:
        return self.max_attempts is None or consecutive_failures < self.max_attempts


@dataclass
class ConnectionState:
    """Last known connectivity of the primary database."""

    status: ConnectionStatus = "unknown"
    last_error: str | None = None
    last_checked_at: datetime | None = None
    consecutive_failures: int = 0

    @property
    def is_available(self) -> bool:
        """Optimistic: only a confirmed outage makes the store unavailable."""
        return self.status != "disconnected"


class DatabaseMonitor:
    """
    Owns the ConnectionState for an engine.

    check() probes the database once. schedule() registers probe() as an
    interval job, which doubles as the reconnect loop while the database is down.
    Services call mark_disconnected() when a query fails with a connectivity error.
    """

    def __init__(
        self,
        bind: Engine,
        policy: ReconnectPolicy | None = None,
        on_connect: Callable[[], None] | None = None,
    ) -> None:
        self._engine = bind
        self.policy = policy or ReconnectPolicy()
        self.state = ConnectionState()
        # Called on every transition into "connected" (startup and each reconnect).
        self.on_connect = on_connect
        self._job: Job | None = None

    def check(self) -> bool:
        """Run a trivial query to verify the database is reachable; update state."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            self.mark_disconnected(e)
            return False
        self.mark_connected()
        return True

    def mark_connected(self) -> None:
        transitioned = self.state.status != "connected"
        self.state.status = "connected"
        self.state.last_error = None
        self.state.consecutive_failures = 0
        self.state.last_checked_at = datetime.now(UTC)
        if not transitioned:
            return
        logger.info("Database connected")
        if self.on_connect is not None:
            try:
                self.on_connect()
            except SQLAlchemyError as e:
                logger.exception("on_connect hook failed: %s", e)

    def mark_disconnected(self, exc: BaseException) -> None:
        if self.state.status != "disconnected":
            logger.warning("Database unreachable: %s", exc)
        self.state.status = "disconnected"
        self.state.last_error = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        self.state.consecutive_failures += 1
        self.state.last_checked_at = datetime.now(UTC)

    def probe(self) -> bool:
        """Scheduled check. Removes its own job once the retry cap is hit."""
        if self.check():
            return True
        if not self.policy.should_retry(self.state.consecutive_failures):
            logger.error(
                "Giving up reconnecting after %s attempts",
                self.state.consecutive_failures,
            )
            self.unschedule()
        return False

    def schedule(self, scheduler: BaseScheduler) -> Job:
        """Probe every policy interval on scheduler."""
        self._job = scheduler.add_job(
            self.probe,
            IntervalTrigger(seconds=self.policy.interval_sec),
            id=RECONNECT_JOB_ID,
            replace_existing=True,
        )
        return self._job

    def unschedule(self) -> None:
        job, self._job = self._job, None
        if job is None:
            return
        try:
            job.remove()
        except JobLookupError:
            pass


db_monitor = DatabaseMonitor(
    engine,
    ReconnectPolicy(
        interval_sec=settings.DB_RECONNECT_INTERVAL_SEC,
        max_attempts=settings.DB_RECONNECT_MAX_ATTEMPTS,
    ),
)


def get_db_monitor() -> DatabaseMonitor:
    """Dependency returning the process-wide database monitor."""
    return db_monitor


@contextmanager
def connectivity_guard(db: Session, monitor: DatabaseMonitor) -> Iterator[None]:
    """Turn connectivity failures into ServiceUnavailableError and record the outage."""
    try:
        yield
    except SQLAlchemyError as e:
        if not is_connectivity_error(e):
            raise
        db.rollback()
        monitor.mark_disconnected(e)
        raise ServiceUnavailableError(UNAVAILABLE_MESSAGE, cause=e) from e
