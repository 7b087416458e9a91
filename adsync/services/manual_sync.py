"""
Manual "Sync now" trigger

Per-organization idle -> syncing -> idle state. A second trigger while a sync
is running is rejected instead of queued.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Set

import httpx
from sqlalchemy.orm import Session

from adsync.errors import AdSyncError, SyncInProgressError
from adsync.services import integration_service
from adsync.services.campaign_merge_service import default_window, unified_campaigns
from adsync.services.campaign_sync_service import sync_platform
from adsync.services.organization_service import get_primary_org_id
from adsync.utils.logger import log

SYNC_PLATFORMS = ("meta", "tiktok")


class ManualSyncTrigger:
    """Runs Meta and TikTok syncs for an org, then refreshes the merged list"""

    def __init__(self):
        self._syncing: Set[str] = set()

    def state(self, org_id: str) -> str:
        return "syncing" if org_id in self._syncing else "idle"

    async def trigger(
        self,
        db: Session,
        user_id: str,
        org_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> Dict[str, Any]:
        """
        `date_from`/`date_to` only select the refreshed dashboard view; the vendor
        syncs always cover the configured lookback window.

        Returns:
            The refreshed dashboard payload plus `synced_count`.

        Raises:
            SyncInProgressError: a sync for the org is already running
            AdSyncError: every attempted vendor failed (first failure is raised)
        """
        org_id = org_id or get_primary_org_id(db, user_id)
        if org_id in self._syncing:
            raise SyncInProgressError("Sync already in progress")

        if date_from is None or date_to is None:
            date_from, date_to = default_window()

        self._syncing.add(org_id)
        try:
            synced_count = 0
            attempted: List[str] = []
            failures: List[AdSyncError] = []

            for platform in SYNC_PLATFORMS:
                if integration_service.get_active_integration(db, org_id, platform, user_id) is None:
                    continue
                attempted.append(platform)
                try:
                    # Metrics are replaced wholesale, so always pull the full lookback window
                    result = await sync_platform(db, platform, org_id, user_id, transport=transport)
                    synced_count += result.synced_count
                except AdSyncError as e:
                    log.error(f"Manual sync: {platform} failed for org {org_id}: {e}")
                    failures.append(e)

            if attempted and len(failures) == len(attempted):
                raise failures[0]

            log.info(f"Manual sync for org {org_id}: {synced_count} campaigns from {attempted or 'no vendors'}")
        finally:
            self._syncing.discard(org_id)

        payload = await unified_campaigns(
            db, user_id, date_from, date_to, org_id=org_id, transport=transport
        )
        payload["synced_count"] = synced_count
        return payload


manual_sync_trigger = ManualSyncTrigger()
