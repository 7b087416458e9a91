"""
Organization, membership and invite endpoints
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from adsync.api.deps import org_member, require_user
from adsync.models.base import get_db
from adsync.services import organization_service

router = APIRouter(tags=["organizations"])


class CreateOrganizationRequest(BaseModel):
    name: str
    slug: str | None = None


class CreateInviteRequest(BaseModel):
    email: str
    role: str = "member"
    ad_account_ids: List[str] | None = None


@router.get("/organizations/me")
async def my_organizations(user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    """Caller's memberships and primary organization"""
    return organization_service.membership_summary(db, user_id)


@router.post("/organizations", status_code=201)
async def create_organization(
    body: CreateOrganizationRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db),
):
    org = organization_service.create_organization(db, body.name, user_id, slug=body.slug)
    return {"success": True, "organization": {"id": org.id, "name": org.name, "slug": org.slug}}


@router.post("/organizations/{org_id}/invites", status_code=201)
async def create_invite(
    body: CreateInviteRequest,
    org_id: str = Depends(org_member),
    db: Session = Depends(get_db),
):
    invite = organization_service.create_invite(db, org_id, body.email, body.role, body.ad_account_ids)
    return {
        "success": True,
        "invite": {"token": invite.token, "email": invite.email, "role": invite.role, "org_id": invite.org_id},
    }


@router.get("/invites/{token}")
async def invite_details(token: str, db: Session = Depends(get_db)):
    """Public: who the invite is for and which organization it joins"""
    return organization_service.get_invite_details(db, token)


@router.post("/invites/{token}/accept")
async def accept_invite(token: str, user_id: str = Depends(require_user), db: Session = Depends(get_db)):
    member = organization_service.accept_invite(db, token, user_id)
    return {"success": True, "org_id": member.org_id, "role": member.role}
