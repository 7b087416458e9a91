"""
Shared test setup: throwaway SQLite database, no log files, no backoff sleeps.

Environment overrides must be set before anything imports adsync.
"""
import json
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="adsync-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'adsync-test.db')}"
os.environ["LOG_DIR"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENABLE_SCHEDULED_SYNC"] = "false"
os.environ["VENDOR_RETRY_BASE_DELAY"] = "0"
os.environ["VENDOR_RETRY_MAX_DELAY"] = "0"
os.environ["JWT_SECRET"] = "test-secret"

import httpx  # noqa: E402
import pytest  # noqa: E402
from jose import jwt  # noqa: E402

import adsync.models  # noqa: E402,F401
from adsync.models.base import Base, SessionLocal, engine  # noqa: E402
from adsync.models.integration import Integration  # noqa: E402
from adsync.models.organization import Member, Organization  # noqa: E402
from adsync.services.manual_sync import manual_sync_trigger  # noqa: E402


@pytest.fixture(autouse=True)
def db():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    manual_sync_trigger._syncing.clear()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_org(db):
    """Create an org with one member: make_org(user_id, role="owner", name=...)"""
    def _make(user_id="user-1", role="owner", name="Acme Recruiting"):
        org = Organization(name=name, slug=f"{name.lower().replace(' ', '-')}-{user_id}")
        db.add(org)
        db.flush()
        db.add(Member(user_id=user_id, org_id=org.id, role=role))
        db.commit()
        return org
    return _make


@pytest.fixture
def make_integration(db):
    """Store a vendor credential: make_integration(org_id, platform, token, accounts, user_id=None)"""
    def _make(org_id, platform="meta", access_token="EAAtesttoken", account_ids=("act_1",), user_id=None, status="active"):
        integration = Integration(
            org_id=org_id,
            user_id=user_id,
            integration_type=platform,
            access_token=access_token,
            ad_account_id=list(account_ids),
            account_name=f"{platform} account",
            status=status,
        )
        db.add(integration)
        db.commit()
        return integration
    return _make


def make_jwt(user_id: str, secret: str = "test-secret", **claims) -> str:
    """HS256 token for `user_id`, signed with the test secret unless told otherwise"""
    return jwt.encode({"sub": user_id, **claims}, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    def _headers(user_id="user-1"):
        return {"Authorization": f"Bearer {make_jwt(user_id)}"}
    return _headers


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served"""

    def __init__(self, handler):
        self.requests = []

        def _record(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def recording_transport():
    return RecordingTransport


# ---------------------------------------------------------------------------
# Fake vendor APIs
# ---------------------------------------------------------------------------

def _meta_api(campaigns, insights=None, accounts=None, failing=()):
    """
    Graph API stand-in.

    insights: {campaign_id: [insight rows]}; failing: campaign ids whose
    insights request returns HTTP 500.
    """
    insights = insights or {}
    accounts = accounts if accounts is not None else [{"id": "act_1", "name": "Main account"}]

    def handler(request):
        path = request.url.path
        if path.endswith("/me/adaccounts"):
            return httpx.Response(200, json={"data": accounts})
        if path.endswith("/campaigns"):
            return httpx.Response(200, json={"data": campaigns})
        if path.endswith("/insights"):
            campaign_id = path.rstrip("/").split("/")[-2]
            if campaign_id in failing:
                return httpx.Response(500, json={"error": {"message": "Service temporarily unavailable", "code": 2}})
            return httpx.Response(200, json={"data": insights.get(campaign_id, [])})
        return httpx.Response(404, json={"error": {"message": f"Unknown path {path}", "code": 803}})

    return handler


def _tiktok_api(campaigns, report_rows=None, advertisers=None):
    """
    TikTok Business API stand-in.

    report_rows: {campaign_id: [{"dimensions": ..., "metrics": ...}]}
    """
    report_rows = report_rows or {}
    advertisers = advertisers if advertisers is not None else [{"advertiser_id": "adv_1", "advertiser_name": "Main"}]

    def ok(data):
        return httpx.Response(200, json={"code": 0, "message": "OK", "request_id": "r1", "data": data})

    def handler(request):
        path = request.url.path
        if path.endswith("/oauth2/advertiser/get/"):
            return ok({"list": advertisers})
        if path.endswith("/campaign/get/"):
            return ok({"list": campaigns, "page_info": {"page": 1, "total_page": 1}})
        if path.endswith("/report/integrated/get/"):
            body = json.loads(request.content)
            campaign_ids = json.loads(body["filtering"][0]["filter_value"])
            rows = [r for cid in campaign_ids for r in report_rows.get(cid, [])]
            return ok({"list": rows, "page_info": {"page": 1, "total_page": 1}})
        return httpx.Response(404, json={"code": 40404, "message": f"Unknown path {path}"})

    return handler


@pytest.fixture
def meta_api():
    return _meta_api


@pytest.fixture
def tiktok_api():
    return _tiktok_api
