"""
Cross-platform campaign merge

Combines live Meta/TikTok campaign totals with campaigns persisted in the
store into one list for the dashboard. Live entries win on a name collision
(case-insensitive, whitespace-trimmed, platform ignored).
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session

from adsync.connectors import get_connector
from adsync.connectors.base import InsightRow, VendorFetchResult
from adsync.errors import VendorApiError
from adsync.models.campaign import Campaign, Metric
from adsync.services import integration_service
from adsync.services.date_ranges import meta_date_range, tiktok_date_range
from adsync.services.organization_service import get_primary_org_id
from adsync.services.status_mapping import apply_schedule_end, map_status, normalize_objective
from adsync.utils.helpers import calculate_cpc, calculate_ctr, format_rate, parse_datetime
from adsync.utils.logger import log

PLATFORM_FILTERS = ("all", "meta", "tiktok")


@dataclass
class UnifiedCampaign:
    """One dashboard row"""
    id: str
    name: str
    platform: Optional[str]
    status: str
    objective: str
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: int = 0
    end_date: Optional[str] = None
    source: str = "stored"  # live, stored

    @property
    def ctr(self) -> float:
        return calculate_ctr(self.clicks, self.impressions)

    @property
    def cpc(self) -> float:
        return calculate_cpc(self.spend, self.clicks)

    @property
    def merge_key(self) -> str:
        return merge_key(self.name)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "status": self.status,
            "objective": self.objective,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "spend": format_rate(self.spend),
            "leads": self.leads,
            "ctr": format_rate(self.ctr),
            "cpc": format_rate(self.cpc),
            "end_date": self.end_date,
            "source": self.source,
        }


def merge_key(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def merge_campaigns(
    meta_live: Iterable[UnifiedCampaign],
    tiktok_live: Iterable[UnifiedCampaign],
    persisted: Iterable[UnifiedCampaign]
) -> List[UnifiedCampaign]:
    """
    Live Meta entries, then live TikTok entries (vendor order), then persisted
    entries whose name matches no live entry.
    """
    live = list(meta_live) + list(tiktok_live)
    live_keys = {c.merge_key for c in live}
    return live + [c for c in persisted if c.merge_key not in live_keys]


def filter_platform(campaigns: List[UnifiedCampaign], platform: str = "all") -> List[UnifiedCampaign]:
    if platform == "all":
        return campaigns
    return [c for c in campaigns if c.platform == platform]


def summarize(campaigns: Iterable[UnifiedCampaign]) -> Dict[str, Any]:
    """Dashboard totals across the given rows"""
    campaigns = list(campaigns)
    impressions = sum(c.impressions for c in campaigns)
    clicks = sum(c.clicks for c in campaigns)
    spend = sum(c.spend for c in campaigns)
    return {
        "total_campaigns": len(campaigns),
        "active_campaigns": sum(1 for c in campaigns if c.status == "active"),
        "impressions": impressions,
        "clicks": clicks,
        "spend": format_rate(spend),
        "leads": sum(c.leads for c in campaigns),
        "ctr": format_rate(calculate_ctr(clicks, impressions)),
        "cpc": format_rate(calculate_cpc(spend, clicks)),
    }


# ── Persisted campaigns ──────────────────────────────────────

def load_persisted_campaigns(db: Session, org_id: str) -> List[UnifiedCampaign]:
    """Every campaign of the org with its metrics summed over all stored days"""
    totals = (
        db.query(
            Metric.campaign_id,
            func.coalesce(func.sum(Metric.impressions), 0),
            func.coalesce(func.sum(Metric.clicks), 0),
            func.coalesce(func.sum(Metric.spend), 0),
            func.coalesce(func.sum(Metric.leads), 0),
        )
        .join(Campaign, Campaign.id == Metric.campaign_id)
        .filter(Campaign.org_id == org_id)
        .group_by(Metric.campaign_id)
        .all()
    )
    by_campaign = {row[0]: row[1:] for row in totals}

    campaigns = (
        db.query(Campaign)
        .filter(Campaign.org_id == org_id)
        .order_by(Campaign.created_at, Campaign.id)
        .all()
    )

    rows = []
    for campaign in campaigns:
        impressions, clicks, spend, leads = by_campaign.get(campaign.id, (0, 0, 0, 0))
        rows.append(UnifiedCampaign(
            id=campaign.id,
            name=campaign.name,
            platform=campaign.platform,
            status=(campaign.status or "unknown").lower(),
            objective=normalize_objective(campaign.objective),
            impressions=int(impressions),
            clicks=int(clicks),
            spend=float(spend),
            leads=int(leads),
            end_date=campaign.end_date.isoformat() if campaign.end_date else None,
            source="stored",
        ))
    return rows


# ── Live campaigns ───────────────────────────────────────────

def _sum_rows(rows: Optional[List[InsightRow]]) -> Dict[str, Any]:
    rows = rows or []
    return {
        "impressions": sum(r.impressions for r in rows),
        "clicks": sum(r.clicks for r in rows),
        "spend": sum(r.spend for r in rows),
        "leads": sum(r.leads for r in rows),
    }


def build_live_campaigns(platform: str, fetched: VendorFetchResult) -> List[UnifiedCampaign]:
    """Dashboard rows from one account's fetch, in vendor order"""
    rows = []
    for campaign in fetched.campaigns:
        totals = _sum_rows(fetched.insights_by_campaign.get(campaign.external_id))
        end_time = parse_datetime(campaign.end_time)
        rows.append(UnifiedCampaign(
            id=campaign.external_id,
            name=campaign.name,
            platform=platform,
            status=apply_schedule_end(map_status(platform, campaign.status), campaign.end_time),
            objective=normalize_objective(campaign.objective),
            end_date=end_time.date().isoformat() if end_time else None,
            source="live",
            **totals,
        ))
    return rows


async def fetch_live_campaigns(
    db: Session,
    org_id: str,
    platform: str,
    user_id: Optional[str],
    date_range: str,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> List[UnifiedCampaign]:
    """
    Live campaign totals across every stored account of the vendor.

    Nothing is persisted. An account failing with a vendor API error is
    skipped; an auth error propagates.

    Raises:
        NotFoundError: no stored integration for the vendor
        VendorAuthError: stored credential rejected
    """
    credentials = integration_service.resolve_credentials(db, org_id, platform, user_id)
    connector = get_connector(platform, credentials.access_token, transport=transport)

    campaigns: List[UnifiedCampaign] = []
    for account_id in credentials.account_ids:
        try:
            fetched = await connector.fetch(account_id, date_range)
        except VendorApiError as e:
            log.warning(f"{platform} live: skipping account {account_id}: {e}")
            continue
        campaigns.extend(build_live_campaigns(platform, fetched))

    log.info(f"{platform} live: {len(campaigns)} campaigns across {len(credentials.account_ids)} account(s)")
    return campaigns


# ── Unified dashboard ────────────────────────────────────────

def default_window(today: Optional[date] = None):
    today = today or date.today()
    return today - timedelta(days=30), today


async def unified_campaigns(
    db: Session,
    user_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    platform: str = "all",
    org_id: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """
    Dashboard payload: merged campaign rows plus summary totals.

    Live data is fetched for each connected vendor; a vendor that fails for any
    reason is logged and only persisted rows are shown for it.
    """
    if platform not in PLATFORM_FILTERS:
        platform = "all"

    org_id = org_id or get_primary_org_id(db, user_id)
    if date_from is None or date_to is None:
        date_from, date_to = default_window()
    if date_from > date_to:
        date_from, date_to = date_to, date_from

    persisted = load_persisted_campaigns(db, org_id)

    tokens = {
        "meta": meta_date_range(date_from, date_to),
        "tiktok": tiktok_date_range(date_from, date_to),
    }
    live: Dict[str, List[UnifiedCampaign]] = {"meta": [], "tiktok": []}

    for vendor, token in tokens.items():
        if integration_service.get_active_integration(db, org_id, vendor, user_id) is None:
            continue
        try:
            live[vendor] = await fetch_live_campaigns(db, org_id, vendor, user_id, token, transport=transport)
        except Exception as e:
            log.error(f"Error fetching {vendor} campaigns for org {org_id}: {e}")

    merged = merge_campaigns(live["meta"], live["tiktok"], persisted)
    visible = filter_platform(merged, platform)

    log.info(
        f"Unified campaigns for org {org_id}: {len(merged)} total "
        f"({len(live['meta']) + len(live['tiktok'])} live, {len(merged) - len(live['meta']) - len(live['tiktok'])} stored)"
    )

    return {
        "success": True,
        "org_id": org_id,
        "platform": platform,
        "date_range": {"from": date_from.isoformat(), "to": date_to.isoformat()},
        "campaigns": [c.as_dict() for c in visible],
        "summary": summarize(visible),
    }
