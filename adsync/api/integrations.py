"""
Vendor integration endpoints: connect, disconnect, status, account discovery
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from adsync.api.deps import get_vendor_transport, require_user, resolve_org
from adsync.connectors import get_connector, validate_meta_token
from adsync.errors import NotFoundError
from adsync.models.base import get_db
from adsync.services import integration_service
from adsync.utils.logger import log

router = APIRouter(prefix="/integrations", tags=["integrations"])


class ConnectRequest(BaseModel):
    org_id: str | None = None
    access_token: str
    ad_account_ids: List[str] | None = None
    account_name: str | None = None


class DisconnectRequest(BaseModel):
    org_id: str | None = None


class DiscoverRequest(BaseModel):
    access_token: str


@router.get("/status")
async def get_all_status(
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Connection state of every vendor for the caller"""
    org_id = resolve_org(db, user_id, org_id)
    return {
        "org_id": org_id,
        "integrations": {
            platform: integration_service.integration_status(db, org_id, platform, user_id)
            for platform in integration_service.VENDOR_LABELS
        },
    }


@router.get("/{platform}/status")
async def get_status(
    platform: str,
    org_id: str | None = Query(None),
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    integration_service.validate_platform(platform)
    org_id = resolve_org(db, user_id, org_id)
    return integration_service.integration_status(db, org_id, platform, user_id)


@router.post("/{platform}/accounts")
async def discover_accounts(
    platform: str,
    body: DiscoverRequest,
    user_id: str = Depends(require_user),
    transport=Depends(get_vendor_transport),
):
    """Ad accounts (Meta) or advertisers (TikTok) the token can reach"""
    integration_service.validate_platform(platform)
    if platform == "meta":
        validate_meta_token(body.access_token)

    accounts = await get_connector(platform, body.access_token, transport=transport).list_accounts()
    return {"success": True, "platform": platform, "accounts": accounts}


@router.post("/{platform}/connect")
async def connect(
    platform: str,
    body: ConnectRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
    transport=Depends(get_vendor_transport),
):
    """
    Store the caller's credential for the vendor.

    Without explicit account ids the first reachable account is used.
    """
    integration_service.validate_platform(platform)
    org_id = resolve_org(db, user_id, body.org_id)
    if platform == "meta":
        validate_meta_token(body.access_token)

    account_ids = body.ad_account_ids or []
    account_name = body.account_name
    if not account_ids:
        accounts = await get_connector(platform, body.access_token, transport=transport).list_accounts()
        if not accounts:
            raise NotFoundError(
                f"No ad accounts found for this {integration_service.vendor_label(platform)} token"
            )
        account_ids = [accounts[0]["id"]]
        account_name = account_name or accounts[0]["name"]

    integration_service.save_connection(
        db, org_id, platform, user_id, body.access_token, account_ids, account_name
    )
    log.info(f"{platform} connected for org {org_id} by {user_id} ({len(account_ids)} account(s))")
    return {
        "success": True,
        **integration_service.integration_status(db, org_id, platform, user_id),
    }


@router.post("/{platform}/disconnect")
async def disconnect(
    platform: str,
    body: DisconnectRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    integration_service.validate_platform(platform)
    org_id = resolve_org(db, user_id, body.org_id)
    integration_service.disconnect(db, org_id, platform, user_id)
    log.info(f"{platform} disconnected for org {org_id} by {user_id}")
    return {"success": True, "platform": platform, "connected": False}
