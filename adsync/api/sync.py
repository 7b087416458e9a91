"""
Campaign synchronization endpoints
"""
from datetime import date
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from adsync.api.deps import get_vendor_transport, require_user, resolve_org
from adsync.models.base import get_db
from adsync.services.campaign_sync_service import sync_platform
from adsync.services.manual_sync import manual_sync_trigger
from adsync.services.organization_service import require_membership
from adsync.utils.logger import log

router = APIRouter(prefix="/sync", tags=["sync"])


# ── Schemas ──────────────────────────────────────────────

class MetaSyncRequest(BaseModel):
    org_id: str | None = None
    date_range: str | None = None
    access_token: str | None = None
    ad_account_id: str | None = None
    save_connection: bool = True


class TikTokSyncRequest(BaseModel):
    org_id: str | None = None
    date_range: str | None = None
    access_token: str | None = None
    advertiser_id: str | None = None
    save_connection: bool = True


class ManualSyncRequest(BaseModel):
    org_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None


# ── Vendor syncs ─────────────────────────────────────────

async def _run_vendor_sync(
    platform: str,
    org_id: Optional[str],
    user_id: str,
    date_range: Optional[str],
    access_token: Optional[str],
    account_id: Optional[str],
    save_connection: bool,
    db: Session,
    transport: Optional[httpx.AsyncBaseTransport]
):
    if org_id:
        require_membership(db, user_id, org_id)

    result = await sync_platform(
        db,
        platform,
        org_id,
        user_id,
        date_range=date_range,
        access_token=access_token,
        account_id=account_id,
        save_connection=save_connection,
        transport=transport,
    )
    return result.to_response()


@router.post("/meta")
async def sync_meta(
    body: MetaSyncRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """
    Pull Meta campaigns and daily metrics into the organization.

    Uses the token in the body when given (stored as the caller's integration
    unless save_connection is false), else the stored integration.
    """
    log.info(f"Meta sync requested by {user_id} for org {body.org_id}")
    return await _run_vendor_sync(
        "meta", body.org_id, user_id, body.date_range, body.access_token,
        body.ad_account_id, body.save_connection, db, transport,
    )


@router.post("/tiktok")
async def sync_tiktok(
    body: TikTokSyncRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """Pull TikTok campaigns and daily metrics into the organization"""
    log.info(f"TikTok sync requested by {user_id} for org {body.org_id}")
    return await _run_vendor_sync(
        "tiktok", body.org_id, user_id, body.date_range, body.access_token,
        body.advertiser_id, body.save_connection, db, transport,
    )


# ── Manual "Sync now" ────────────────────────────────────

@router.post("/manual")
async def manual_sync(
    body: ManualSyncRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """
    Sync every connected vendor for the org, then return the refreshed
    unified campaign list. 409 while a sync for the org is running.
    """
    org_id = resolve_org(db, user_id, body.org_id)
    return await manual_sync_trigger.trigger(
        db, user_id, org_id=org_id, date_from=body.date_from, date_to=body.date_to, transport=transport
    )


@router.get("/manual/status")
async def manual_sync_status(
    org_id: str | None = None,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org_id = resolve_org(db, user_id, org_id)
    return {"org_id": org_id, "state": manual_sync_trigger.state(org_id)}
