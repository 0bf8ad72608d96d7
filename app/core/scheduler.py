"""APScheduler setup for in-process background jobs (reconnect probe, image sweep)."""

from apscheduler.schedulers.asyncio import AsyncIOScheduler


def build_scheduler() -> AsyncIOScheduler:
    """
    One scheduler per running app; start() binds it to the running event loop.

    Sync job functions run in the loop's default thread pool, so blocking
    database work never stalls request handling. A job that is still running
    when it comes due again is skipped, and missed runs collapse into one.
    """
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )
