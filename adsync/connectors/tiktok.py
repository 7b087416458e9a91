"""
TikTok Business API connector

Every TikTok response is {"code", "message", "request_id", "data"}; code 0
means success; failures usually still come back with HTTP 200.
"""
import json
from typing import Any, Dict, List

import httpx

from adsync.config import get_settings
from adsync.connectors.base import BaseAdConnector, InsightRow, VendorCampaign
from adsync.errors import VendorApiError, VendorAuthError
from adsync.services.date_ranges import tiktok_report_window
from adsync.utils.helpers import as_date, to_float, to_int
from adsync.utils.logger import log

settings = get_settings()

# No permission / expired / missing / revoked access token
TIKTOK_AUTH_ERROR_CODES = {40001, 40102, 40104, 40105}
TIKTOK_RATE_LIMIT_CODES = {40100}
TIKTOK_SERVER_ERROR_FLOOR = 50000

# Report spend comes back in cents
TIKTOK_SPEND_DIVISOR = 100.0


class TikTokAdsConnector(BaseAdConnector):
    """TikTok Business API adapter"""

    vendor = "tiktok"

    def __init__(self, access_token: str, **kwargs):
        super().__init__(access_token, **kwargs)
        self.base_url = settings.tiktok_base_url.rstrip("/")
        self.page_size = settings.tiktok_page_size

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _check_payload(self, status_code: int, payload: Dict[str, Any]) -> None:
        code = payload.get("code")
        message = payload.get("message") or "Unknown error"

        if status_code in (401, 403) or code in TIKTOK_AUTH_ERROR_CODES:
            raise VendorAuthError(self.vendor, message, code=code, http_status=status_code)

        if code == 0 and status_code < 400:
            return

        http_status = status_code if status_code >= 400 else None
        if code in TIKTOK_RATE_LIMIT_CODES:
            http_status = 429
        elif isinstance(code, int) and code >= TIKTOK_SERVER_ERROR_FLOOR:
            http_status = http_status or 503

        raise VendorApiError(self.vendor, message, code=code, http_status=http_status)

    async def list_accounts(self) -> List[Dict[str, Any]]:
        """Advertisers authorized for the token, as [{"id", "name"}]"""
        async with self._client() as client:
            payload = await self._request(client, "GET", self._url("oauth2/advertiser/get/"))

        advertisers = (payload.get("data") or {}).get("list") or []
        log.info(f"tiktok: token can reach {len(advertisers)} advertisers")
        return [
            {"id": str(a.get("advertiser_id")), "name": a.get("advertiser_name") or ""}
            for a in advertisers
            if a.get("advertiser_id")
        ]

    async def fetch_campaigns(self, client: httpx.AsyncClient, account_id: str) -> List[VendorCampaign]:
        campaigns: List[VendorCampaign] = []
        page = 1

        while True:
            payload = await self._request(
                client,
                "GET",
                self._url("campaign/get/"),
                params={"advertiser_id": account_id, "page": page, "page_size": self.page_size},
            )
            data = payload.get("data") or {}

            for row in data.get("list") or []:
                if not row.get("campaign_id"):
                    continue
                budget = row.get("budget")
                campaigns.append(VendorCampaign(
                    external_id=str(row["campaign_id"]),
                    name=row.get("campaign_name") or "",
                    status=row.get("status"),
                    objective=row.get("objective_type"),
                    budget=to_float(budget) if budget is not None else None,
                    end_time=row.get("schedule_end_time"),
                    account_id=account_id,
                ))

            total_pages = to_int((data.get("page_info") or {}).get("total_page")) or 1
            if page >= total_pages:
                break
            page += 1

        return campaigns

    async def fetch_campaign_insights(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        campaign: VendorCampaign,
        date_range: str
    ) -> List[InsightRow]:
        start_date, end_date = tiktok_report_window(date_range)
        rows: List[Dict[str, Any]] = []
        page = 1

        while True:
            payload = await self._request(
                client,
                "POST",
                self._url("report/integrated/get/"),
                json={
                    "advertiser_id": account_id,
                    "service_type": "AUCTION",
                    "report_type": "BASIC",
                    "data_level": "AUCTION_CAMPAIGN",
                    "dimensions": ["campaign_id", "stat_time_day"],
                    "metrics": ["spend", "impressions", "clicks", "conversion"],
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "filtering": [{
                        "field_name": "campaign_ids",
                        "filter_type": "IN",
                        "filter_value": json.dumps([campaign.external_id]),
                    }],
                    "page": page,
                    "page_size": self.page_size,
                },
            )
            data = payload.get("data") or {}
            rows.extend(data.get("list") or [])

            total_pages = to_int((data.get("page_info") or {}).get("total_page")) or 1
            if page >= total_pages:
                break
            page += 1

        insights = []
        for row in rows:
            dims = row.get("dimensions") or {}
            metrics = row.get("metrics") or {}
            day = dims.get("stat_time_day")
            insights.append(InsightRow(
                date=as_date(day) if day else None,
                impressions=to_int(metrics.get("impressions")),
                clicks=to_int(metrics.get("clicks")),
                spend=to_float(metrics.get("spend")) / TIKTOK_SPEND_DIVISOR,
                leads=to_int(metrics.get("conversion")),
            ))
        return insights
