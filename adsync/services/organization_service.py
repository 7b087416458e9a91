"""
Organization membership and invite handling
"""
import re
import secrets
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from adsync.errors import NotFoundError, ValidationError
from adsync.models.organization import Invite, Member, Organization
from adsync.utils.logger import log

MEMBER_ROLES = ("owner", "admin", "member")
_ROLE_RANK = {role: rank for rank, role in enumerate(MEMBER_ROLES)}


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def resolve_primary_org(memberships: Iterable[Any]) -> Optional[str]:
    """
    Pick the org a multi-membership user lands in.

    owner beats admin beats member; unknown roles rank last. Ties keep the
    first membership found. Accepts Member rows or {"org_id", "role"} dicts.
    """
    best_org = None
    best_rank = None
    for membership in memberships:
        rank = _ROLE_RANK.get(_field(membership, "role"), len(MEMBER_ROLES))
        if best_rank is None or rank < best_rank:
            best_org, best_rank = _field(membership, "org_id"), rank
    return best_org


def list_memberships(db: Session, user_id: str) -> List[Member]:
    return (
        db.query(Member)
        .filter(Member.user_id == user_id)
        .order_by(Member.created_at, Member.id)
        .all()
    )


def get_primary_org_id(db: Session, user_id: str) -> str:
    org_id = resolve_primary_org(list_memberships(db, user_id))
    if not org_id:
        raise NotFoundError("No organization found for this user")
    return org_id


def require_membership(db: Session, user_id: str, org_id: str) -> Member:
    """Membership of `user_id` in `org_id`; other tenants' orgs look like missing ones"""
    member = (
        db.query(Member)
        .filter(Member.user_id == user_id, Member.org_id == org_id)
        .first()
    )
    if not member:
        raise NotFoundError("Organization not found")
    return member


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "org"


def create_organization(db: Session, name: str, owner_user_id: str, slug: Optional[str] = None) -> Organization:
    """Create an organization with the caller as owner"""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name is required")

    base_slug = _slugify(slug or name)
    candidate = base_slug
    suffix = 2
    while db.query(Organization).filter(Organization.slug == candidate).first():
        candidate = f"{base_slug}-{suffix}"
        suffix += 1

    org = Organization(name=name, slug=candidate)
    db.add(org)
    db.flush()
    db.add(Member(user_id=owner_user_id, org_id=org.id, role="owner"))
    db.commit()
    db.refresh(org)

    log.info(f"Created organization {org.slug} for user {owner_user_id}")
    return org


def membership_summary(db: Session, user_id: str) -> Dict[str, Any]:
    """Memberships with org names plus the resolved primary org"""
    memberships = list_memberships(db, user_id)
    org_ids = [m.org_id for m in memberships]
    orgs = {
        o.id: o for o in db.query(Organization).filter(Organization.id.in_(org_ids)).all()
    } if org_ids else {}

    return {
        "primary_org_id": resolve_primary_org(memberships),
        "memberships": [
            {
                "org_id": m.org_id,
                "org_name": orgs[m.org_id].name if m.org_id in orgs else None,
                "role": m.role,
            }
            for m in memberships
        ],
    }


# ── Invites ──────────────────────────────────────────────────

def create_invite(
    db: Session,
    org_id: str,
    email: str,
    role: str = "member",
    ad_account_ids: Optional[List[str]] = None
) -> Invite:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if role not in MEMBER_ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if not db.query(Organization).filter(Organization.id == org_id).first():
        raise NotFoundError("Organization not found")

    invite = Invite(
        token=secrets.token_urlsafe(32),
        email=email,
        role=role,
        org_id=org_id,
        ad_account_id=ad_account_ids or None,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)

    log.info(f"Created {role} invite for {email} in org {org_id}")
    return invite


def _get_invite(db: Session, token: Optional[str]) -> Invite:
    token = (token or "").strip()
    if not token:
        raise ValidationError("Missing invite token")
    invite = db.query(Invite).filter(Invite.token == token).first()
    if not invite:
        raise NotFoundError("Invalid or expired invitation.")
    return invite


def get_invite_details(db: Session, token: Optional[str]) -> Dict[str, Any]:
    invite = _get_invite(db, token)
    org = db.query(Organization).filter(Organization.id == invite.org_id).first()
    return {
        "email": invite.email,
        "role": invite.role,
        "org_id": invite.org_id,
        "org_name": org.name if org else None,
    }


def accept_invite(db: Session, token: Optional[str], user_id: str) -> Member:
    """
    Join the invite's org with the invite's role, then delete the invite.

    An existing membership is kept as is.
    """
    invite = _get_invite(db, token)

    member = (
        db.query(Member)
        .filter(Member.user_id == user_id, Member.org_id == invite.org_id)
        .first()
    )
    if member is None:
        member = Member(user_id=user_id, org_id=invite.org_id, role=invite.role)
        db.add(member)

    db.delete(invite)
    db.commit()
    db.refresh(member)

    log.info(f"User {user_id} joined org {member.org_id} as {member.role}")
    return member
