"""
Organization membership and invite tests.

Guards against:
1. Multi-org users landing in an org where they are not owner
2. Non-members being able to address another tenant's org
3. Invites being reusable after acceptance
"""
import pytest

from adsync.errors import NotFoundError, ValidationError
from adsync.models.organization import Invite, Member
from adsync.services.organization_service import (
    accept_invite,
    create_invite,
    create_organization,
    get_invite_details,
    get_primary_org_id,
    membership_summary,
    require_membership,
    resolve_primary_org,
)


# ---------------------------------------------------------------------------
# Primary org resolution
# ---------------------------------------------------------------------------

def test_owner_beats_admin_beats_member():
    memberships = [
        {"org_id": "m", "role": "member"},
        {"org_id": "a", "role": "admin"},
        {"org_id": "o", "role": "owner"},
    ]
    assert resolve_primary_org(memberships) == "o"
    assert resolve_primary_org(memberships[:2]) == "a"


def test_ties_keep_first_membership():
    memberships = [{"org_id": "first", "role": "admin"}, {"org_id": "second", "role": "admin"}]
    assert resolve_primary_org(memberships) == "first"


def test_unknown_roles_rank_last():
    memberships = [{"org_id": "x", "role": "guest"}, {"org_id": "y", "role": "member"}]
    assert resolve_primary_org(memberships) == "y"
    assert resolve_primary_org([{"org_id": "x", "role": "guest"}]) == "x"


def test_no_memberships():
    assert resolve_primary_org([]) is None


def test_primary_org_from_store(db, make_org):
    make_org(user_id="user-1", role="member", name="Agency")
    owned = make_org(user_id="user-1", role="owner", name="Own Shop")

    assert get_primary_org_id(db, "user-1") == owned.id
    with pytest.raises(NotFoundError):
        get_primary_org_id(db, "nobody")


def test_require_membership_hides_other_tenants(db, make_org):
    other = make_org(user_id="user-2", name="Other Co")

    with pytest.raises(NotFoundError) as exc_info:
        require_membership(db, "user-1", other.id)
    assert str(exc_info.value) == "Organization not found"
    assert require_membership(db, "user-2", other.id).role == "owner"


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

def test_create_organization_makes_caller_owner_with_unique_slug(db):
    first = create_organization(db, "Acme Recruiting", "user-1")
    second = create_organization(db, "Acme Recruiting", "user-2")

    assert first.slug == "acme-recruiting"
    assert second.slug == "acme-recruiting-2"
    assert db.query(Member).filter(Member.org_id == first.id).one().role == "owner"


def test_create_organization_requires_name(db):
    with pytest.raises(ValidationError):
        create_organization(db, "   ", "user-1")


def test_membership_summary(db, make_org):
    org = make_org(user_id="user-1", role="admin", name="Acme")

    summary = membership_summary(db, "user-1")

    assert summary["primary_org_id"] == org.id
    assert summary["memberships"] == [{"org_id": org.id, "org_name": "Acme", "role": "admin"}]


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

def test_invite_details_and_accept(db, make_org):
    org = make_org(name="Acme")
    invite = create_invite(db, org.id, " New.Hire@Example.com ", role="admin", ad_account_ids=["act_1"])

    details = get_invite_details(db, invite.token)
    assert details == {"email": "new.hire@example.com", "role": "admin", "org_id": org.id, "org_name": "Acme"}

    member = accept_invite(db, invite.token, "user-9")

    assert member.org_id == org.id
    assert member.role == "admin"
    assert db.query(Invite).count() == 0
    with pytest.raises(NotFoundError) as exc_info:
        get_invite_details(db, invite.token)
    assert str(exc_info.value) == "Invalid or expired invitation."


def test_accept_keeps_existing_membership(db, make_org):
    org = make_org(user_id="user-1", role="owner")
    invite = create_invite(db, org.id, "owner@example.com", role="member")

    member = accept_invite(db, invite.token, "user-1")

    assert member.role == "owner"
    assert db.query(Member).filter(Member.org_id == org.id).count() == 1


def test_invite_validation(db, make_org):
    org = make_org()
    with pytest.raises(ValidationError):
        create_invite(db, org.id, "not-an-email")
    with pytest.raises(ValidationError):
        create_invite(db, org.id, "a@example.com", role="superuser")
    with pytest.raises(NotFoundError):
        create_invite(db, "missing-org", "a@example.com")
    with pytest.raises(ValidationError) as exc_info:
        get_invite_details(db, "")
    assert str(exc_info.value) == "Missing invite token"
