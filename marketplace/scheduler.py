"""
Scheduled housekeeping jobs.

Runs inside the FastAPI process on the same event loop:
- sweep_name_cache evicts expired display names
- purge_expired_attempts deletes checkout attempts past their TTL
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from marketplace.core.config import Settings
from marketplace.services.attempt_ledger import AttemptLedger
from marketplace.services.name_cache import NameCache

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def sweep_name_cache_task(name_cache: NameCache) -> int:
    """Evict stale display names"""
    evicted = name_cache.sweep()
    if evicted:
        logger.info(f"Name cache sweep removed {evicted} entries, {len(name_cache)} left")
    return evicted


async def purge_expired_attempts_task(attempts: AttemptLedger) -> int:
    """Delete checkout attempts older than their TTL"""
    try:
        return await attempts.purge_expired()
    except Exception as e:
        logger.exception(f"Error in attempt purge task: {str(e)}")
        return 0


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(name_cache: NameCache, attempts: AttemptLedger, settings: Settings) -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        sweep_name_cache_task,
        IntervalTrigger(seconds=settings.NAME_CACHE_SWEEP_SECONDS),
        args=[name_cache],
        id="sweep_name_cache",
        name="Sweep Name Cache",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        purge_expired_attempts_task,
        IntervalTrigger(seconds=settings.ATTEMPT_PURGE_INTERVAL_SECONDS),
        args=[attempts],
        id="purge_expired_attempts",
        name="Purge Expired Checkout Attempts",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(
        f"Scheduled name cache sweep every {settings.NAME_CACHE_SWEEP_SECONDS}s "
        f"and attempt purge every {settings.ATTEMPT_PURGE_INTERVAL_SECONDS}s"
    )
    return scheduler


async def start_scheduler(name_cache: NameCache, attempts: AttemptLedger, settings: Settings):
    """Start the scheduler"""
    global scheduler

    if scheduler is None:
        scheduler = create_scheduler(name_cache, attempts, settings)

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")

        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")
    scheduler = None


async def get_scheduler_status():
    """Get current scheduler status and job information"""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs_info = []
    for job in scheduler.get_jobs():
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs_info
    }
