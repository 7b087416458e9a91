"""
Manual "Sync now" tests.

Guards against:
1. Overlapping syncs for the same organization
2. One vendor failing hiding the other vendor's results
3. The syncing flag sticking after a failure
4. A narrow dashboard range wiping stored metric history
"""
import asyncio
from datetime import date, timedelta

import httpx
import pytest

from adsync.errors import SyncInProgressError, VendorAuthError
from adsync.models.campaign import Metric
from adsync.services.manual_sync import ManualSyncTrigger

META_CAMPAIGNS = [
    {"id": "c1", "name": "Q1 Hiring", "status": "ACTIVE"},
    {"id": "c2", "name": "Drivers", "status": "PAUSED"},
]
TIKTOK_CAMPAIGNS = [{"campaign_id": "t1", "campaign_name": "Warehouse Staff", "status": "CAMPAIGN_STATUS_ENABLE"}]


def _run(coro):
    return asyncio.run(coro)


def _expired(request):
    return httpx.Response(400, json={"error": {"message": "Session has expired", "type": "OAuthException", "code": 190}})


def _both_vendors(meta_handler, tiktok_handler):
    def handler(request):
        if "tiktok" in request.url.host:
            return tiktok_handler(request)
        return meta_handler(request)
    return httpx.MockTransport(handler)


@pytest.fixture
def connected_org(make_org, make_integration):
    org = make_org()
    make_integration(org.id, "meta")
    make_integration(org.id, "tiktok", access_token="tt-token", account_ids=("adv_1",))
    return org


def test_counts_are_summed_across_vendors(db, connected_org, meta_api, tiktok_api):
    trigger = ManualSyncTrigger()
    transport = _both_vendors(meta_api(META_CAMPAIGNS), tiktok_api(TIKTOK_CAMPAIGNS))

    payload = _run(trigger.trigger(db, "user-1", transport=transport))

    assert payload["success"] is True
    assert payload["synced_count"] == 3
    assert payload["summary"]["total_campaigns"] == 3
    assert trigger.state(connected_org.id) == "idle"


def test_one_vendor_failing_keeps_the_other(db, connected_org, tiktok_api):
    trigger = ManualSyncTrigger()
    transport = _both_vendors(_expired, tiktok_api(TIKTOK_CAMPAIGNS))

    payload = _run(trigger.trigger(db, "user-1", org_id=connected_org.id, transport=transport))

    assert payload["synced_count"] == 1
    assert [c["name"] for c in payload["campaigns"]] == ["Warehouse Staff"]


def test_all_vendors_failing_raises_and_resets_state(db, connected_org):
    trigger = ManualSyncTrigger()
    transport = _both_vendors(_expired, lambda request: httpx.Response(200, json={"code": 40105, "message": "revoked"}))

    with pytest.raises(VendorAuthError) as exc_info:
        _run(trigger.trigger(db, "user-1", transport=transport))

    assert exc_info.value.vendor == "meta"
    assert trigger.state(connected_org.id) == "idle"


def test_second_trigger_while_syncing_is_rejected(db, connected_org, recording_transport, meta_api):
    trigger = ManualSyncTrigger()
    trigger._syncing.add(connected_org.id)
    transport = recording_transport(meta_api(META_CAMPAIGNS))

    with pytest.raises(SyncInProgressError) as exc_info:
        _run(trigger.trigger(db, "user-1", transport=transport))

    assert str(exc_info.value) == "Sync already in progress"
    assert transport.requests == []
    assert trigger.state(connected_org.id) == "syncing"


def test_org_without_integrations_returns_stored_view(db, make_org):
    org = make_org()

    payload = _run(ManualSyncTrigger().trigger(db, "user-1"))

    assert payload["org_id"] == org.id
    assert payload["synced_count"] == 0
    assert payload["campaigns"] == []


def _daily_insights(request):
    """Graph API stand-in whose insight rows follow the requested date_preset"""
    path = request.url.path
    if path.endswith("/campaigns"):
        return httpx.Response(200, json={"data": [META_CAMPAIGNS[0]]})
    if path.endswith("/insights"):
        days = {"today": 1, "last_30d": 30}.get(request.url.params.get("date_preset"), 7)
        today = date.today()
        rows = [
            {"date_start": (today - timedelta(days=n)).isoformat(), "impressions": "100", "clicks": "5", "spend": "2.50"}
            for n in range(days)
        ]
        return httpx.Response(200, json={"data": rows})
    return httpx.Response(404, json={"error": {"message": f"Unknown path {path}", "code": 803}})


def test_narrow_range_keeps_metric_history(db, make_org, make_integration, recording_transport):
    org = make_org()
    make_integration(org.id, "meta")
    transport = recording_transport(_daily_insights)
    trigger = ManualSyncTrigger()

    _run(trigger.trigger(db, "user-1", transport=transport))
    before = db.query(Metric).count()
    transport.requests.clear()

    today = date.today()
    payload = _run(trigger.trigger(db, "user-1", date_from=today, date_to=today, transport=transport))

    db.expire_all()
    assert before == 30
    assert db.query(Metric).count() == 30
    assert payload["synced_count"] == 1
    presets = [
        r.url.params.get("date_preset") for r in transport.requests if r.url.path.endswith("/insights")
    ]
    # One lookback fetch for the sync, one fetch for today's live view
    assert sorted(presets) == ["last_30d", "today"]
