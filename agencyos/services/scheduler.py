"""
Background Job Scheduler.

WHAT: Configures and manages APScheduler for background tasks.

WHY: Some work is not triggered by any HTTP request:
1. Due-date workflows must fire as a deadline approaches
2. Pending invitations past their expiry are moved to ``expired``

HOW: Uses APScheduler's AsyncIOScheduler with an in-memory job store. Each
job opens its own database session, commits on success and rolls back on
failure; job errors are logged and never stop the scheduler.

Example:
    # In the FastAPI lifespan:
    await start_scheduler()
    ...
    await shutdown_scheduler()
"""

import logging
from typing import Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.config import settings
from agencyos.db.session import AsyncSessionLocal
from agencyos.services.invitation_service import InvitationService
from agencyos.services.workflow_engine import WorkflowEngine


logger = logging.getLogger(__name__)

INVITATION_EXPIRY_INTERVAL_SECONDS = 3600

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


# ============================================================================
# Jobs
# ============================================================================


async def run_due_date_check(
    session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
) -> int:
    """
    Run due_date_approaching workflows once.

    Returns:
        Number of workflow executions (0 on failure)
    """
    async with session_factory() as session:
        try:
            executed = await WorkflowEngine(session).check_due_dates()
            await session.commit()
            return executed
        except Exception as e:
            await session.rollback()
            logger.error(f"Due date check failed: {e}", exc_info=True)
            return 0


async def run_invitation_expiry(
    session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
) -> int:
    """
    Mark pending invitations past their expiry as expired.

    Returns:
        Number of invitations expired (0 on failure)
    """
    async with session_factory() as session:
        try:
            expired = await InvitationService(session).expire_stale()
            await session.commit()
            return expired
        except Exception as e:
            await session.rollback()
            logger.error(f"Invitation expiry job failed: {e}", exc_info=True)
            return 0


# ============================================================================
# Lifecycle
# ============================================================================


async def start_scheduler() -> None:
    """
    Start the background job scheduler.

    HOW:
    1. Creates AsyncIOScheduler with memory job store
    2. Registers the due-date and invitation expiry jobs
    3. Starts the scheduler
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running")
        return

    _scheduler = AsyncIOScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": AsyncIOExecutor()},
        job_defaults={
            "coalesce": True,  # Combine multiple missed runs into one
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
        timezone="UTC",
    )

    _scheduler.add_job(
        func=run_due_date_check,
        trigger=IntervalTrigger(seconds=settings.DUE_DATE_CHECK_INTERVAL_SECONDS),
        id="due_date_workflows",
        name="Due date workflows",
        replace_existing=True,
    )
    _scheduler.add_job(
        func=run_invitation_expiry,
        trigger=IntervalTrigger(seconds=INVITATION_EXPIRY_INTERVAL_SECONDS),
        id="invitation_expiry",
        name="Invitation expiry",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info(
        f"Scheduler started with due date check every "
        f"{settings.DUE_DATE_CHECK_INTERVAL_SECONDS} seconds"
    )


async def shutdown_scheduler() -> None:
    """Gracefully stop the scheduler, waiting for running jobs."""
    global _scheduler

    if _scheduler is None or not _scheduler.running:
        logger.info("Scheduler not running")
        _scheduler = None
        return

    logger.info("Shutting down scheduler...")
    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler shut down successfully")


def get_scheduler_status() -> dict:
    """
    Get scheduler status information.

    Returns:
        Dict with scheduler status and job details
    """
    if _scheduler is None:
        return {"running": False, "jobs": [], "message": "Scheduler not initialized"}

    jobs = [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        }
        for job in _scheduler.get_jobs()
    ]

    return {
        "running": _scheduler.running,
        "jobs": jobs,
        "message": "Scheduler is running" if _scheduler.running else "Scheduler is paused",
    }
