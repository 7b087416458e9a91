"""
Integration credential store

Resolves which stored Meta/TikTok credential a sync should use and keeps the
connect/disconnect lifecycle. Tokens are never returned to API callers.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from adsync.errors import NotFoundError, ValidationError
from adsync.models.campaign import PLATFORMS
from adsync.models.integration import Integration

VENDOR_LABELS = {
    "meta": "Meta",
    "tiktok": "TikTok",
}


def vendor_label(platform: str) -> str:
    return VENDOR_LABELS.get(platform, platform.capitalize())


def validate_platform(platform: str) -> str:
    if platform not in PLATFORMS:
        raise ValidationError(f"Unsupported platform: {platform}")
    return platform


def missing_integration_message(platform: str) -> str:
    label = vendor_label(platform)
    return f"No {label} integration found. Please connect your {label} account first."


@dataclass
class Credentials:
    """Access token plus the account ids a sync should cover"""
    platform: str
    access_token: str
    account_ids: List[str] = field(default_factory=list)
    account_name: Optional[str] = None
    integration_id: Optional[str] = None
    supplied: bool = False  # True when the token came with the request


def get_active_integration(
    db: Session,
    org_id: str,
    platform: str,
    user_id: Optional[str] = None
) -> Optional[Integration]:
    """Caller's own active credential, else the org-level one (user_id NULL)"""
    base = db.query(Integration).filter(
        Integration.org_id == org_id,
        Integration.integration_type == platform,
        Integration.status == "active",
    )

    if user_id:
        own = base.filter(Integration.user_id == user_id).order_by(Integration.updated_at.desc()).first()
        if own:
            return own

    return base.filter(Integration.user_id.is_(None)).order_by(Integration.updated_at.desc()).first()


def resolve_credentials(
    db: Session,
    org_id: str,
    platform: str,
    user_id: Optional[str] = None,
    access_token: Optional[str] = None,
    account_id: Optional[str] = None
) -> Credentials:
    """
    Credentials for a sync request.

    A token in the request wins over stored ones. Without one, the stored
    credential is used; if there is none, NotFoundError is raised before any
    vendor call is made.
    """
    if access_token:
        return Credentials(
            platform=platform,
            access_token=access_token,
            account_ids=[str(account_id)] if account_id else [],
            supplied=True,
        )

    integration = get_active_integration(db, org_id, platform, user_id)
    if integration is None or not integration.access_token:
        raise NotFoundError(missing_integration_message(platform))

    account_ids = [str(account_id)] if account_id else integration.account_ids
    return Credentials(
        platform=platform,
        access_token=integration.access_token,
        account_ids=account_ids,
        account_name=integration.account_name,
        integration_id=integration.id,
    )


def save_connection(
    db: Session,
    org_id: str,
    platform: str,
    user_id: Optional[str],
    access_token: str,
    account_ids: List[str],
    account_name: Optional[str] = None,
    commit: bool = True
) -> Integration:
    """Create or refresh the caller's own credential for (org, platform)"""
    validate_platform(platform)
    if not access_token:
        raise ValidationError("Access token is required")

    integration = (
        db.query(Integration)
        .filter(
            Integration.org_id == org_id,
            Integration.integration_type == platform,
            Integration.user_id == user_id if user_id else Integration.user_id.is_(None),
        )
        .first()
    )

    if integration is None:
        integration = Integration(org_id=org_id, user_id=user_id, integration_type=platform)
        db.add(integration)

    integration.access_token = access_token
    integration.ad_account_id = [str(a) for a in account_ids]
    if account_name is not None:
        integration.account_name = account_name
    integration.status = "active"

    if commit:
        db.commit()
        db.refresh(integration)
    else:
        db.flush()
    return integration


def disconnect(db: Session, org_id: str, platform: str, user_id: Optional[str]) -> Integration:
    """Mark the credential the caller would sync with as inactive"""
    integration = get_active_integration(db, org_id, platform, user_id)
    if integration is None:
        raise NotFoundError(missing_integration_message(platform))

    integration.status = "inactive"
    db.commit()
    db.refresh(integration)
    return integration


def touch_last_sync(db: Session, integration_id: Optional[str], when: Optional[datetime] = None) -> None:
    if not integration_id:
        return
    integration = db.query(Integration).filter(Integration.id == integration_id).first()
    if integration:
        integration.last_sync_at = when or datetime.utcnow()
        db.commit()


def integration_status(db: Session, org_id: str, platform: str, user_id: Optional[str]) -> Dict[str, Any]:
    integration = get_active_integration(db, org_id, platform, user_id)
    if integration is None:
        return {"platform": platform, "connected": False}

    return {
        "platform": platform,
        "connected": True,
        "scope": "user" if integration.user_id else "organization",
        "account_name": integration.account_name,
        "ad_account_ids": integration.account_ids,
        "last_sync_at": integration.last_sync_at.isoformat() if integration.last_sync_at else None,
    }


def list_active_integrations(db: Session) -> List[Integration]:
    return (
        db.query(Integration)
        .filter(Integration.status == "active")
        .order_by(Integration.org_id, Integration.integration_type)
        .all()
    )
