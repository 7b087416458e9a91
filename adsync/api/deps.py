"""
Shared router dependencies
"""
from typing import Optional

import httpx
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from adsync.models.base import get_db
from adsync.services.organization_service import get_primary_org_id, require_membership


def require_user(request: Request) -> str:
    """Dependency: caller's user id, 401 if the middleware found none"""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id


def get_vendor_transport() -> Optional[httpx.AsyncBaseTransport]:
    """httpx transport for vendor calls; None = real network"""
    return None


def org_member(org_id: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)) -> str:
    """Dependency for /{org_id}/ routes: the org id once the caller's membership is checked"""
    require_membership(db, user_id, org_id)
    return org_id


def resolve_org(db: Session, user_id: str, org_id: Optional[str] = None) -> str:
    """Requested org (membership checked) or the caller's primary org"""
    if org_id:
        require_membership(db, user_id, org_id)
        return org_id
    return get_primary_org_id(db, user_id)
