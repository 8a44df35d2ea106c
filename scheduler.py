"""
Background scheduler for periodic maintenance.

Jobs:
  - Purge expired assessment progress sessions (hourly)
"""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from db_stores import ProgressStoreDB, StoreError


def purge_expired_progress(app) -> int:
    """Delete progress sessions past their expiry. Returns the number removed."""
    with app.app_context():
        try:
            return ProgressStoreDB(app.config.get("PROGRESS_TTL_DAYS", 7)).purge_expired()
        except StoreError as e:
            app.logger.error("Progress purge failed: %s", e)
            return 0


def init_scheduler(app) -> BackgroundScheduler:
    """Start the background scheduler and register the maintenance jobs."""
    scheduler = BackgroundScheduler(daemon=True)

    scheduler.add_job(
        func=purge_expired_progress,
        args=[app],
        trigger="interval",
        hours=app.config.get("PROGRESS_PURGE_INTERVAL_HOURS", 1),
        id="purge_expired_progress",
        replace_existing=True,
    )

    scheduler.start()
    app.logger.info("Scheduler started (progress purge)")
    return scheduler
