"""
HTTP API tests.

Guards against:
1. Endpoints reachable without a bearer token
2. Errors leaking as FastAPI's {"detail": ...} instead of {"success": false, "error": ...}
3. Vendor auth failures surfacing as generic 500s
4. Callers addressing organizations they are not a member of
5. Bearer tokens accepted without a valid signature
"""
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from adsync.api.deps import get_vendor_transport
from adsync.api.jobs import get_private_sheets_factory, get_sheets_connector
from adsync.connectors.google_sheets import GoogleSheetsConnector, PrivateSheetsConnector
from adsync.main import app
from adsync.models.campaign import Campaign
from adsync.services.manual_sync import manual_sync_trigger

client = TestClient(app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def _use_transport(transport):
    app.dependency_overrides[get_vendor_transport] = lambda: transport


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_health_is_public():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_authorization_header():
    response = client.post("/sync/meta", json={})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Authorization header is required"}


def test_malformed_token():
    response = client.get("/organizations/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized - invalid token"


def test_token_with_wrong_signature_is_rejected(make_org):
    make_org()
    forged = jwt.encode({"sub": "user-1"}, "someone-elses-secret", algorithm="HS256")
    response = client.get("/organizations/me", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized - invalid token"


def test_expired_token_is_rejected(make_org):
    make_org()
    expired = jwt.encode({"sub": "user-1", "exp": int(time.time()) - 60}, "test-secret", algorithm="HS256")
    response = client.get("/organizations/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_unsigned_token_is_rejected(make_org):
    make_org()
    unsigned = jwt.encode({"sub": "user-1"}, "test-secret", algorithm="HS256").rsplit(".", 1)[0] + ".signature"
    response = client.get("/organizations/me", headers={"Authorization": f"Bearer {unsigned}"})
    assert response.status_code == 401


def test_organizations_me(make_org, auth_headers):
    org = make_org(name="Acme")
    response = client.get("/organizations/me", headers=auth_headers())
    assert response.status_code == 200
    assert response.json()["primary_org_id"] == org.id


# ---------------------------------------------------------------------------
# Vendor sync
# ---------------------------------------------------------------------------

def test_meta_sync_without_integration(make_org, auth_headers, recording_transport, meta_api):
    org = make_org()
    transport = recording_transport(meta_api([]))
    _use_transport(transport)

    response = client.post("/sync/meta", json={"org_id": org.id}, headers=auth_headers())

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "No Meta integration found. Please connect your Meta account first.",
    }
    assert transport.requests == []


def test_sync_requires_org_id(auth_headers):
    response = client.post("/sync/tiktok", json={}, headers=auth_headers())
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Organization ID is required"}


def test_sync_rejects_non_member(make_org, auth_headers):
    other = make_org(user_id="user-2", name="Other Co")
    response = client.post("/sync/meta", json={"org_id": other.id}, headers=auth_headers("user-1"))
    assert response.status_code == 404
    assert response.json()["error"] == "Organization not found"


def test_meta_sync_success(make_org, make_integration, auth_headers, meta_api):
    org = make_org()
    make_integration(org.id, "meta")
    _use_transport(httpx.MockTransport(meta_api(
        campaigns=[{"id": "c1", "name": "Q1 Hiring", "status": "ACTIVE"}],
        insights={"c1": [{"date_start": "2024-03-01", "impressions": "10", "clicks": "1", "spend": "1.00"}]},
    )))

    response = client.post("/sync/meta", json={"org_id": org.id, "date_range": "last_7d"}, headers=auth_headers())

    assert response.status_code == 200
    assert response.json() == {"success": True, "platform": "meta", "synced_count": 1, "total_campaigns": 1}


def test_vendor_auth_failure_asks_to_reconnect(make_org, make_integration, auth_headers):
    org = make_org()
    make_integration(org.id, "meta")
    _use_transport(httpx.MockTransport(lambda request: httpx.Response(
        400, json={"error": {"message": "Session has expired", "type": "OAuthException", "code": 190}}
    )))

    response = client.post("/sync/meta", json={"org_id": org.id}, headers=auth_headers())

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert "reconnect" in response.json()["error"]


def test_vendor_outage_is_bad_gateway(make_org, make_integration, auth_headers):
    org = make_org()
    make_integration(org.id, "tiktok", access_token="tt", account_ids=("adv_1",))
    _use_transport(httpx.MockTransport(lambda request: httpx.Response(
        500, json={"code": 51000, "message": "Internal error"}
    )))

    response = client.post("/sync/tiktok", json={"org_id": org.id}, headers=auth_headers())

    assert response.status_code == 502
    assert "Internal error" in response.json()["error"]


def test_manual_sync_conflict(make_org, auth_headers):
    org = make_org()
    manual_sync_trigger._syncing.add(org.id)

    response = client.post("/sync/manual", json={}, headers=auth_headers())

    assert response.status_code == 409
    assert response.json() == {"success": False, "error": "Sync already in progress"}
    status = client.get("/sync/manual/status", headers=auth_headers()).json()
    assert status == {"org_id": org.id, "state": "syncing"}


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------

def test_unified_campaigns_endpoint(make_org, make_integration, auth_headers, meta_api):
    org = make_org()
    make_integration(org.id, "meta")
    _use_transport(httpx.MockTransport(meta_api(
        campaigns=[{"id": "c1", "name": "Q1 Hiring", "status": "ACTIVE"}],
        insights={"c1": [{"date_start": "2024-03-01", "impressions": "1000", "clicks": "50", "spend": "25.00"}]},
    )))

    response = client.get(
        "/campaigns/unified",
        params={"date_from": "2024-03-01", "date_to": "2024-03-31", "platform": "meta"},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date_range"] == {"from": "2024-03-01", "to": "2024-03-31"}
    assert body["campaigns"][0]["ctr"] == "5.00"
    assert body["summary"]["cpc"] == "0.50"


def test_unified_rejects_unknown_platform(make_org, auth_headers):
    make_org()
    response = client.get("/campaigns/unified", params={"platform": "snap"}, headers=auth_headers())
    assert response.status_code == 400


def test_campaign_wizard_lifecycle(db, make_org, auth_headers):
    org = make_org()
    headers = auth_headers()

    created = client.post("/campaigns", json={
        "name": "Nurses Utrecht",
        "objective": "OUTCOME_LEADS",
        "budget": 250,
        "start_date": "2024-04-01",
        "end_date": "2024-04-30",
        "platform": "meta",
    }, headers=headers)
    assert created.status_code == 201
    campaign = created.json()["campaign"]
    assert campaign["status"] == "draft"
    assert campaign["budget"] == "250.00"

    paused = client.post(f"/campaigns/{campaign['id']}/pause", headers=headers)
    assert paused.json()["campaign"]["status"] == "paused"

    detail = client.get(f"/campaigns/{campaign['id']}", headers=headers).json()["campaign"]
    assert detail["metrics"] == []
    assert detail["totals"]["ctr"] == "0.00"

    assert client.delete(f"/campaigns/{campaign['id']}", headers=headers).json() == {"success": True}
    assert db.query(Campaign).filter(Campaign.org_id == org.id).count() == 0
    missing = client.get(f"/campaigns/{campaign['id']}", headers=headers)
    assert missing.status_code == 404


def test_campaign_end_before_start_is_rejected(make_org, auth_headers):
    make_org()
    response = client.post("/campaigns", json={
        "name": "Backwards", "start_date": "2024-04-30", "end_date": "2024-04-01",
    }, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["success"] is False


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------

def test_connect_discovers_first_account_then_disconnect(make_org, auth_headers, tiktok_api):
    make_org()
    _use_transport(httpx.MockTransport(tiktok_api(
        campaigns=[], advertisers=[{"advertiser_id": "adv_7", "advertiser_name": "Shop"}]
    )))
    headers = auth_headers()

    connected = client.post("/integrations/tiktok/connect", json={"access_token": "tt-token"}, headers=headers)
    assert connected.status_code == 200
    assert connected.json()["ad_account_ids"] == ["adv_7"]
    assert connected.json()["scope"] == "user"

    status = client.get("/integrations/status", headers=headers).json()
    assert status["integrations"]["tiktok"]["connected"] is True
    assert status["integrations"]["meta"] == {"platform": "meta", "connected": False}

    client.post("/integrations/tiktok/disconnect", json={}, headers=headers)
    assert client.get("/integrations/tiktok/status", headers=headers).json()["connected"] is False


def test_connect_rejects_malformed_meta_token(make_org, auth_headers):
    make_org()
    response = client.post("/integrations/meta/connect", json={"access_token": "abc"}, headers=auth_headers())
    assert response.status_code == 400
    assert "EAA" in response.json()["error"]


# ---------------------------------------------------------------------------
# Organizations and invites
# ---------------------------------------------------------------------------

def test_invite_flow(make_org, auth_headers):
    org = make_org(name="Acme")

    created = client.post(
        f"/organizations/{org.id}/invites", json={"email": "new@example.com"}, headers=auth_headers()
    )
    assert created.status_code == 201
    token = created.json()["invite"]["token"]

    details = client.get(f"/invites/{token}")
    assert details.status_code == 200
    assert details.json()["org_name"] == "Acme"

    accepted = client.post(f"/invites/{token}/accept", headers=auth_headers("user-new"))
    assert accepted.json() == {"success": True, "org_id": org.id, "role": "member"}

    gone = client.get(f"/invites/{token}")
    assert gone.status_code == 404
    assert gone.json()["error"] == "Invalid or expired invitation."


def test_invite_requires_membership(make_org, auth_headers):
    other = make_org(user_id="user-2", name="Other Co")
    response = client.post(
        f"/organizations/{other.id}/invites", json={"email": "x@example.com"}, headers=auth_headers("user-1")
    )
    assert response.status_code == 404


def test_create_organization(auth_headers):
    response = client.post("/organizations", json={"name": "New Agency"}, headers=auth_headers("user-5"))
    assert response.status_code == 201
    assert response.json()["organization"]["slug"] == "new-agency"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

def test_job_sheet_sync(make_org, auth_headers):
    make_org()
    csv_text = "job_id,job_title,company_name\r\nJ-1,Driver,Acme\r\nJ-2,Nurse,\r\n"
    transport = httpx.MockTransport(lambda request: httpx.Response(
        200, text=csv_text, headers={"content-type": "text/csv"}
    ))
    app.dependency_overrides[get_sheets_connector] = lambda: GoogleSheetsConnector(transport=transport)
    headers = auth_headers()

    response = client.post("/jobs/sync-sheet", json={"sheet_id": "abc"}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "synced_count": 2, "total_rows": 2}
    jobs = client.get("/jobs", headers=headers).json()
    assert jobs["total"] == 2


def test_job_sheet_sync_rejects_other_types(make_org, auth_headers):
    make_org()
    response = client.post("/jobs/sync-sheet", json={"sheet_id": "abc", "sync_type": "candidates"}, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["error"] == 'Invalid sync_type. Use "jobs".'


class _StaticGoogleApi:
    """sheets/drive service stand-in that always returns `result`"""

    def __init__(self, result):
        self.result = result

    def spreadsheets(self):
        return self

    def values(self):
        return self

    def files(self):
        return self

    def get(self, **kwargs):
        return self

    def list(self, **kwargs):
        return self

    def execute(self):
        return self.result


def test_private_sheet_sync_and_picker(make_org, auth_headers):
    make_org()
    tokens = []

    def factory(access_token):
        tokens.append(access_token)
        return PrivateSheetsConnector(
            access_token,
            sheets_service=_StaticGoogleApi({"values": [["Job ID", "Job Title"], ["J-1", "Chef"]]}),
            drive_service=_StaticGoogleApi({"files": [{"id": "s1", "name": "Vacancies", "modifiedTime": "2024-05-02T10:00:00Z"}]}),
        )

    app.dependency_overrides[get_private_sheets_factory] = lambda: factory
    headers = auth_headers()

    listed = client.post("/jobs/sheets", json={"access_token": "ya29.a"}, headers=headers)
    assert listed.status_code == 200
    assert listed.json()["sheets"] == [{"id": "s1", "name": "Vacancies", "modified_time": "2024-05-02T10:00:00Z"}]

    synced = client.post("/jobs/sync-private-sheet", json={"sheet_id": "s1", "access_token": "ya29.a"}, headers=headers)
    assert synced.status_code == 200
    assert synced.json()["synced_count"] == 1
    assert tokens == ["ya29.a", "ya29.a"]


def test_private_sheet_sync_requires_token(make_org, auth_headers):
    make_org()
    response = client.post("/jobs/sync-private-sheet", json={"sheet_id": "s1", "access_token": ""}, headers=auth_headers())
    assert response.status_code == 400
    assert response.json()["error"] == "Google access token is required"
