"""
Scheduler for automated campaign syncs

Uses APScheduler to re-sync every active Meta/TikTok integration on a cron
schedule. Disabled unless ENABLE_SCHEDULED_SYNC is set.
"""
import time
from typing import Dict, List, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from adsync.config import get_settings
from adsync.errors import AdSyncError
from adsync.models.base import SessionLocal
from adsync.models.integration import Integration
from adsync.services.campaign_sync_service import sync_platform
from adsync.services.integration_service import list_active_integrations
from adsync.utils.logger import log

settings = get_settings()
scheduler = AsyncIOScheduler()


def _sync_targets(integrations: List[Integration]) -> List[Tuple[str, str, str]]:
    """
    One (org_id, platform, user_id) per org and vendor.

    The org-level credential is preferred; otherwise the first user-level one.
    """
    chosen: Dict[Tuple[str, str], Integration] = {}
    for integration in integrations:
        key = (integration.org_id, integration.integration_type)
        current = chosen.get(key)
        if current is None or (current.user_id and not integration.user_id):
            chosen[key] = integration
    return [(org_id, platform, i.user_id) for (org_id, platform), i in chosen.items()]


async def sync_all_integrations() -> Dict[str, int]:
    """Sync every active integration; one failing org/vendor does not stop the rest"""
    start = time.time()
    synced, failed, campaigns = 0, 0, 0

    db = SessionLocal()
    try:
        targets = _sync_targets(list_active_integrations(db))
        log.info(f"Scheduled sync starting for {len(targets)} org/vendor pair(s)")

        for org_id, platform, user_id in targets:
            try:
                result = await sync_platform(db, platform, org_id, user_id)
                synced += 1
                campaigns += result.synced_count
            except AdSyncError as e:
                failed += 1
                log.error(f"Scheduled {platform} sync failed for org {org_id}: {e}")
            except Exception as e:
                failed += 1
                db.rollback()
                log.exception(f"Unexpected error in scheduled {platform} sync for org {org_id}: {e}")
    finally:
        db.close()

    log.info(
        f"Scheduled sync completed: {synced} ok, {failed} failed, "
        f"{campaigns} campaigns in {time.time() - start:.1f}s"
    )
    return {"synced": synced, "failed": failed, "campaigns": campaigns}


def setup_scheduler():
    """Register the campaign sync job on the configured cron expression"""
    scheduler.add_job(
        sync_all_integrations,
        trigger=CronTrigger.from_crontab(settings.scheduled_sync_cron, timezone=settings.scheduler_timezone),
        id='campaign_sync',
        name='Meta & TikTok Campaign Sync',
        replace_existing=True,
        max_instances=1
    )
    log.info(f"Scheduler configured: campaign sync '{settings.scheduled_sync_cron}' ({settings.scheduler_timezone})")


def start_scheduler() -> bool:
    """Start the scheduler when scheduled sync is enabled"""
    if not settings.enable_scheduled_sync:
        log.info("Scheduled sync disabled")
        return False
    setup_scheduler()
    scheduler.start()
    log.info("Scheduler started")
    return True


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        log.info("Scheduler stopped")


def get_scheduled_jobs() -> list:
    """List scheduled jobs with their next run time"""
    jobs = []

    for job in scheduler.get_jobs():
        # Pending jobs (scheduler not started) have no next_run_time yet
        next_run = getattr(job, 'next_run_time', None)

        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': next_run.isoformat() if next_run else None,
            'trigger': str(job.trigger)
        })

    return jobs
