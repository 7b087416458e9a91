"""
Campaign wizard CRUD and status actions
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from adsync.errors import NotFoundError, ValidationError
from adsync.models.campaign import CAMPAIGN_STATUSES, PLATFORMS, Campaign, Metric
from adsync.utils.helpers import calculate_cpc, calculate_ctr, format_rate, to_float


def campaign_to_dict(campaign: Campaign) -> Dict[str, Any]:
    return {
        "id": campaign.id,
        "org_id": campaign.org_id,
        "name": campaign.name,
        "status": campaign.status,
        "objective": campaign.objective,
        "budget": format_rate(to_float(campaign.budget)),
        "platform": campaign.platform,
        "external_id": campaign.external_id,
        "start_date": campaign.start_date.isoformat() if campaign.start_date else None,
        "end_date": campaign.end_date.isoformat() if campaign.end_date else None,
        "location_targeting": campaign.location_targeting or {},
        "audience_targeting": campaign.audience_targeting or {},
        "ad_copy": campaign.ad_copy,
        "cta_button": campaign.cta_button,
        "creative_assets": campaign.creative_assets,
        "job_id": campaign.job_id,
        "created_by": campaign.created_by,
        "created_at": campaign.created_at.isoformat() if campaign.created_at else None,
        "updated_at": campaign.updated_at.isoformat() if campaign.updated_at else None,
    }


def _parse_budget(budget: Any) -> Decimal:
    if budget in (None, ""):
        return Decimal("0")
    try:
        value = Decimal(str(budget))
    except InvalidOperation:
        raise ValidationError(f"Invalid budget: {budget}")
    if value < 0:
        raise ValidationError("Budget cannot be negative")
    return value


def create_campaign(
    db: Session,
    org_id: str,
    created_by: str,
    name: str,
    objective: str = "",
    budget: Any = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    location_targeting: Optional[Dict[str, Any]] = None,
    audience_targeting: Optional[Dict[str, Any]] = None,
    ad_copy: Optional[str] = None,
    cta_button: Optional[str] = None,
    creative_assets: Optional[Any] = None,
    platform: Optional[str] = None,
    job_id: Optional[str] = None
) -> Campaign:
    """Wizard campaigns always start as drafts"""
    if not (name or "").strip():
        raise ValidationError("Campaign name is required")
    if platform is not None and platform not in PLATFORMS:
        raise ValidationError(f"Unsupported platform: {platform}")
    if start_date and end_date and end_date < start_date:
        raise ValidationError("End date must be on or after start date")

    campaign = Campaign(
        org_id=org_id,
        name=name.strip(),
        status="draft",
        objective=objective or "",
        budget=_parse_budget(budget),
        platform=platform,
        start_date=start_date,
        end_date=end_date,
        location_targeting=location_targeting or {},
        audience_targeting=audience_targeting or {},
        ad_copy=ad_copy,
        cta_button=cta_button,
        creative_assets=creative_assets,
        job_id=job_id,
        created_by=created_by,
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


def list_campaigns(db: Session, org_id: str, platform: Optional[str] = None) -> List[Campaign]:
    query = db.query(Campaign).filter(Campaign.org_id == org_id)
    if platform:
        query = query.filter(Campaign.platform == platform)
    return query.order_by(Campaign.created_at.desc(), Campaign.id).all()


def get_campaign(db: Session, org_id: str, campaign_id: str) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.org_id == org_id, Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFoundError("Campaign not found")
    return campaign


def campaign_detail(db: Session, org_id: str, campaign_id: str) -> Dict[str, Any]:
    """Campaign with its daily metrics (oldest first) and totals"""
    campaign = get_campaign(db, org_id, campaign_id)
    metrics = (
        db.query(Metric)
        .filter(Metric.campaign_id == campaign.id)
        .order_by(Metric.date)
        .all()
    )

    impressions = sum(m.impressions or 0 for m in metrics)
    clicks = sum(m.clicks or 0 for m in metrics)
    spend = sum(to_float(m.spend) for m in metrics)

    detail = campaign_to_dict(campaign)
    detail["metrics"] = [
        {
            "date": m.date.isoformat() if m.date else None,
            "impressions": m.impressions,
            "clicks": m.clicks,
            "spend": format_rate(to_float(m.spend)),
            "leads": m.leads,
        }
        for m in metrics
    ]
    detail["totals"] = {
        "impressions": impressions,
        "clicks": clicks,
        "spend": format_rate(spend),
        "leads": sum(m.leads or 0 for m in metrics),
        "ctr": format_rate(calculate_ctr(clicks, impressions)),
        "cpc": format_rate(calculate_cpc(spend, clicks)),
    }
    return detail


def set_status(db: Session, org_id: str, campaign_id: str, status: str) -> Campaign:
    if status not in CAMPAIGN_STATUSES:
        raise ValidationError(f"Invalid status: {status}")
    campaign = get_campaign(db, org_id, campaign_id)
    campaign.status = status
    campaign.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, org_id: str, campaign_id: str) -> None:
    campaign = get_campaign(db, org_id, campaign_id)
    # SQLite does not enforce ON DELETE CASCADE without the foreign_keys pragma
    db.query(Metric).filter(Metric.campaign_id == campaign.id).delete(synchronize_session=False)
    db.delete(campaign)
    db.commit()
