"""
Campaign dashboard and campaign management endpoints
"""
from datetime import date
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from adsync.api.deps import get_vendor_transport, require_user, resolve_org
from adsync.errors import ValidationError
from adsync.models.base import get_db
from adsync.services import campaign_service
from adsync.services.campaign_merge_service import fetch_live_campaigns, summarize, unified_campaigns
from adsync.services.integration_service import validate_platform
from adsync.utils.logger import log

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


# ── Schemas ──────────────────────────────────────────────

class CreateCampaignRequest(BaseModel):
    org_id: str | None = None
    name: str
    objective: str = ""
    budget: float | None = None
    start_date: date | None = None
    end_date: date | None = None
    location_targeting: Dict[str, Any] = Field(default_factory=dict)
    audience_targeting: Dict[str, Any] = Field(default_factory=dict)
    ad_copy: str | None = None
    cta_button: str | None = None
    creative_assets: List[Any] | None = None
    platform: str | None = None
    job_id: str | None = None


# ── Dashboard ────────────────────────────────────────────

@router.get("/unified")
async def get_unified_campaigns(
    date_from: date | None = Query(None, description="Range start (default: 30 days ago)"),
    date_to: date | None = Query(None, description="Range end (default: today)"),
    platform: str = Query("all", description="all, meta or tiktok"),
    org_id: str | None = Query(None, description="Defaults to the caller's primary org"),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """
    Live Meta/TikTok campaigns merged with stored ones, plus summary totals.

    Live rows win over stored rows with the same (case-insensitive) name.
    """
    if platform not in ("all", "meta", "tiktok"):
        raise ValidationError(f"Invalid platform filter: {platform}")
    org_id = resolve_org(db, user_id, org_id)
    return await unified_campaigns(
        db, user_id, date_from, date_to, platform=platform, org_id=org_id, transport=transport
    )


@router.get("/live/{platform}")
async def get_live_campaigns(
    platform: str,
    date_range: str | None = Query(None, description="Vendor date-range token, e.g. last_7d or 2024-01-01|2024-01-31"),
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """Campaign totals straight from the vendor for every stored account; nothing is saved"""
    validate_platform(platform)
    org_id = resolve_org(db, user_id, org_id)
    date_range = date_range or "last_7d"

    campaigns = await fetch_live_campaigns(db, org_id, platform, user_id, date_range, transport=transport)
    log.info(f"Live {platform} campaigns for org {org_id}: {len(campaigns)}")
    return {
        "success": True,
        "platform": platform,
        "date_range": date_range,
        "campaigns": [c.as_dict() for c in campaigns],
        "total_campaigns": len(campaigns),
        "summary": summarize(campaigns),
    }


# ── Campaign CRUD ────────────────────────────────────────

@router.get("")
async def list_campaigns(
    org_id: str | None = Query(None),
    platform: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    campaigns = campaign_service.list_campaigns(db, org_id, platform)
    return {
        "success": True,
        "campaigns": [campaign_service.campaign_to_dict(c) for c in campaigns],
        "total_campaigns": len(campaigns),
    }


@router.post("", status_code=201)
async def create_campaign(
    body: CreateCampaignRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Save a wizard campaign as a draft"""
    org_id = resolve_org(db, user_id, body.org_id)
    fields = body.model_dump(exclude={"org_id"})
    campaign = campaign_service.create_campaign(db, org_id, user_id, **fields)
    log.info(f"Campaign '{campaign.name}' created in org {org_id} by {user_id}")
    return {"success": True, "campaign": campaign_service.campaign_to_dict(campaign)}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    return {"success": True, "campaign": campaign_service.campaign_detail(db, org_id, campaign_id)}


@router.post("/{campaign_id}/pause")
async def pause_campaign(
    campaign_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    campaign = campaign_service.set_status(db, org_id, campaign_id, "paused")
    return {"success": True, "campaign": campaign_service.campaign_to_dict(campaign)}


@router.post("/{campaign_id}/resume")
async def resume_campaign(
    campaign_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    campaign = campaign_service.set_status(db, org_id, campaign_id, "active")
    return {"success": True, "campaign": campaign_service.campaign_to_dict(campaign)}


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    campaign_service.delete_campaign(db, org_id, campaign_id)
    log.info(f"Campaign {campaign_id} deleted from org {org_id} by {user_id}")
    return {"success": True}
