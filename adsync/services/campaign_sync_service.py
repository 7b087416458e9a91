"""
Campaign Sync Service
Pulls campaigns and daily metrics from Meta/TikTok and persists them.

Pipeline per vendor: credentials -> adapter fetch -> status/objective mapping
-> campaign upsert -> metrics replace. Each campaign's upsert and metrics
replace share one transaction; one campaign failing does not stop the rest.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adsync.config import get_settings
from adsync.connectors import get_connector, validate_meta_token
from adsync.connectors.base import InsightRow, VendorCampaign
from adsync.errors import NotFoundError, PersistenceError, ValidationError
from adsync.models.campaign import Campaign, Metric
from adsync.services import integration_service
from adsync.services.date_ranges import lookback_window, meta_date_range, tiktok_date_range
from adsync.services.status_mapping import map_status, stored_objective
from adsync.utils.logger import log

settings = get_settings()

# One sync at a time per (org, platform) within this process. Entries live only
# while a sync holds or waits on them.
_sync_locks: Dict[Tuple[str, str], asyncio.Lock] = {}
_sync_lock_users: Dict[Tuple[str, str], int] = {}


@asynccontextmanager
async def _sync_lock(org_id: str, platform: str):
    key = (org_id, platform)
    lock = _sync_locks.setdefault(key, asyncio.Lock())
    _sync_lock_users[key] = _sync_lock_users.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _sync_lock_users[key] -= 1
        if not _sync_lock_users[key]:
            del _sync_lock_users[key]
            del _sync_locks[key]


@dataclass
class SyncResult:
    """Outcome of one vendor sync for one organization"""
    platform: str
    org_id: str
    synced_count: int = 0
    total_campaigns: int = 0
    accounts: List[str] = field(default_factory=list)
    failed_campaigns: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "platform": self.platform,
            "synced_count": self.synced_count,
            "total_campaigns": self.total_campaigns,
        }


# ── Campaign upsert ──────────────────────────────────────────

def find_campaign(
    db: Session,
    org_id: str,
    platform: str,
    name: str,
    external_id: Optional[str] = None
) -> Optional[Campaign]:
    """Match on vendor id first, then exact (case-sensitive) name for legacy rows"""
    scoped = db.query(Campaign).filter(Campaign.org_id == org_id, Campaign.platform == platform)

    if external_id:
        match = scoped.filter(Campaign.external_id == external_id).first()
        if match:
            return match

    query = scoped.filter(Campaign.name == name)
    if external_id:
        # Don't steal a row that already belongs to another vendor campaign
        query = query.filter(Campaign.external_id.is_(None))
    return query.order_by(Campaign.created_at).first()


def upsert_campaign(
    db: Session,
    org_id: str,
    platform: str,
    name: str,
    status: str,
    objective: str,
    acting_user: str,
    budget: Optional[float] = None,
    external_id: Optional[str] = None
) -> Tuple[Campaign, bool]:
    """
    Update the matching campaign or insert a new one. Does not commit.

    Returns:
        (campaign, created)
    """
    campaign = find_campaign(db, org_id, platform, name, external_id)

    if campaign is not None:
        campaign.status = status
        campaign.objective = objective
        campaign.updated_at = datetime.utcnow()
        if external_id and not campaign.external_id:
            campaign.external_id = external_id
        db.flush()
        return campaign, False

    campaign = Campaign(
        org_id=org_id,
        name=name,
        status=status,
        objective=objective,
        budget=Decimal(str(budget)) if budget is not None else Decimal("0"),
        platform=platform,
        external_id=external_id,
        created_by=acting_user,
        location_targeting={},
        audience_targeting={},
    )
    db.add(campaign)
    db.flush()
    return campaign, True


# ── Metrics reconciliation ───────────────────────────────────

def replace_metrics(db: Session, campaign_id: str, rows: List[InsightRow]) -> int:
    """Delete every metric row of the campaign and insert `rows`. Does not commit."""
    db.query(Metric).filter(Metric.campaign_id == campaign_id).delete(synchronize_session=False)

    for row in rows:
        db.add(Metric(
            campaign_id=campaign_id,
            date=row.date,
            impressions=row.impressions,
            clicks=row.clicks,
            spend=Decimal(str(round(row.spend, 2))),
            leads=row.leads,
        ))
    db.flush()
    return len(rows)


def persist_campaign(
    db: Session,
    org_id: str,
    platform: str,
    vendor_campaign: VendorCampaign,
    insights: Optional[List[InsightRow]],
    acting_user: str
) -> Campaign:
    """
    Upsert one vendor campaign and replace its metrics in a single transaction.

    `insights=None` means the insight fetch failed: the campaign row is still
    refreshed but existing metrics are left untouched.

    Raises:
        PersistenceError: the transaction was rolled back
    """
    try:
        campaign, created = upsert_campaign(
            db,
            org_id=org_id,
            platform=platform,
            name=vendor_campaign.name,
            status=map_status(platform, vendor_campaign.status),
            objective=stored_objective(platform, vendor_campaign.objective),
            acting_user=acting_user,
            budget=vendor_campaign.budget,
            external_id=vendor_campaign.external_id,
        )
        if insights is not None:
            replace_metrics(db, campaign.id, insights)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to save campaign {vendor_campaign.name}: {e}") from e

    log.debug(f"{platform}: {'created' if created else 'updated'} campaign {campaign.name}")
    return campaign


# ── Vendor sync pipeline ─────────────────────────────────────

async def _discover_account(connector, platform: str) -> Tuple[str, str]:
    accounts = await connector.list_accounts()
    if not accounts:
        raise NotFoundError(f"No ad accounts found for this {integration_service.vendor_label(platform)} token")
    first = accounts[0]
    log.info(f"{platform}: using first account {first['id']} ({first['name']})")
    return first["id"], first["name"]


async def sync_platform(
    db: Session,
    platform: str,
    org_id: Optional[str],
    acting_user: Optional[str],
    date_range: Optional[str] = None,
    access_token: Optional[str] = None,
    account_id: Optional[str] = None,
    save_connection: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> SyncResult:
    """
    Sync one vendor's campaigns and metrics into `org_id`.

    Args:
        db: Database session
        platform: "meta" or "tiktok"
        org_id: Target organization
        acting_user: Recorded as created_by on new campaigns
        date_range: Vendor date-range token, defaults to the configured lookback
        access_token: Token supplied with the request (else the stored one)
        account_id: Ad account / advertiser id (else stored ids, else first found)
        save_connection: Store a supplied token as the caller's integration
        transport: httpx transport override for the vendor adapter

    Raises:
        ValidationError, NotFoundError: before any vendor call
        VendorAuthError, VendorApiError: vendor failure, aborts this vendor
    """
    integration_service.validate_platform(platform)
    if not org_id:
        raise ValidationError("Organization ID is required")

    credentials = integration_service.resolve_credentials(
        db, org_id, platform, acting_user, access_token=access_token, account_id=account_id
    )
    if platform == "meta":
        validate_meta_token(credentials.access_token)

    if not date_range:
        start, end = lookback_window(settings.metrics_lookback_days)
        date_range = meta_date_range(start, end) if platform == "meta" else tiktok_date_range(start, end)
    acting_user = acting_user or "system"

    async with _sync_lock(org_id, platform):
        started = time.time()
        result = SyncResult(platform=platform, org_id=org_id)
        connector = get_connector(platform, credentials.access_token, transport=transport)

        account_ids = list(credentials.account_ids)
        account_name = credentials.account_name
        if not account_ids:
            discovered_id, account_name = await _discover_account(connector, platform)
            account_ids = [discovered_id]

        integration_id = credentials.integration_id
        if credentials.supplied and save_connection:
            integration = integration_service.save_connection(
                db, org_id, platform, acting_user if acting_user != "system" else None,
                credentials.access_token, account_ids, account_name,
            )
            integration_id = integration.id

        for account in account_ids:
            fetched = await connector.fetch(account, date_range)
            result.accounts.append(account)
            result.total_campaigns += len(fetched.campaigns)

            for vendor_campaign in fetched.campaigns:
                insights = fetched.insights_by_campaign.get(vendor_campaign.external_id)
                try:
                    persist_campaign(db, org_id, platform, vendor_campaign, insights, acting_user)
                except PersistenceError as e:
                    log.error(f"{platform}: {e}")
                    result.failed_campaigns.append(vendor_campaign.name)
                    continue

                if insights is None:
                    result.failed_campaigns.append(vendor_campaign.name)
                    continue
                result.synced_count += 1

        integration_service.touch_last_sync(db, integration_id)
        result.duration_seconds = time.time() - started

    log.info(
        f"{platform} sync for org {org_id}: {result.synced_count}/{result.total_campaigns} campaigns "
        f"from {len(result.accounts)} account(s) in {result.duration_seconds:.1f}s "
        f"[{connector.get_status()['requests']} requests]"
    )
    if result.failed_campaigns:
        log.warning(f"{platform} sync skipped {len(result.failed_campaigns)} campaign(s): {result.failed_campaigns[:5]}")
    return result
