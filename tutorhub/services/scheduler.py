"""
APScheduler Configuration

Manages scheduled jobs for report snapshots and snapshot retention.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from tutorhub import config
from tutorhub.services.report_snapshots import get_report_snapshot_service
from tutorhub.store import RecordStore

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Record store the jobs read from, set by start_scheduler()
_store: Optional[RecordStore] = None


async def snapshot_teacher_reports():
    """
    Hourly job to store the monthly report figures of every teacher.

    Logs execution summary including teachers processed and duration.
    """
    logger.info("Starting hourly report snapshot")

    if _store is None:
        logger.warning("Report snapshot skipped: no record store configured")
        return

    try:
        service = get_report_snapshot_service()
        summary = await service.snapshot_all_teachers(_store, period="month")

        logger.info(
            f"Report snapshots saved: {summary['snapshots_created']} of "
            f"{summary['teachers_processed']} teachers in {summary['duration_ms']:.2f}ms"
        )

    except Exception as e:
        logger.error(f"Failed to snapshot teacher reports: {e}", exc_info=True)


async def cleanup_report_snapshots():
    """Daily job to delete snapshots past the retention window."""
    logger.info("Starting daily report snapshot cleanup")

    try:
        service = get_report_snapshot_service()
        await service.cleanup_old_snapshots(days=config.REPORT_SNAPSHOT_RETENTION_DAYS)
    except Exception as e:
        logger.error(f"Failed to clean up report snapshots: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Report snapshot: Every hour at :05
        - Snapshot cleanup: Every day at 03:30
    """
    scheduler.add_job(
        snapshot_teacher_reports,
        trigger=CronTrigger(hour='*', minute=5),
        id='report_snapshot',
        name='Snapshot Teacher Reports',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one instance at a time
    )

    scheduler.add_job(
        cleanup_report_snapshots,
        trigger=CronTrigger(hour=3, minute=30),
        id='report_snapshot_cleanup',
        name='Clean Up Report Snapshots',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    logger.info("Scheduler configured with report snapshot and cleanup jobs")


def start_scheduler(store: RecordStore):
    """Start the APScheduler"""
    global _store
    _store = store
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
