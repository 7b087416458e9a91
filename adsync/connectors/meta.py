"""
Meta (Facebook) Graph API connector

Pulls ad accounts, campaigns and per-campaign insights. Insights are requested
with time_increment=1 so each row is one calendar day; live views sum them.
"""
from typing import Any, Dict, List, Optional

import httpx

from adsync.config import get_settings
from adsync.connectors.base import BaseAdConnector, InsightRow, VendorCampaign
from adsync.errors import ValidationError, VendorApiError, VendorAuthError
from adsync.services.date_ranges import meta_date_params
from adsync.utils.helpers import as_date, to_float, to_int
from adsync.utils.logger import log

settings = get_settings()

# OAuthException family and permission errors
META_AUTH_ERROR_CODES = {102, 190, 10}
META_PERMISSION_CODE_RANGE = range(200, 300)
# Application/user/account-level throttling
META_RATE_LIMIT_CODES = {4, 17, 32, 613, 80004}

META_TOKEN_PREFIX = "EAA"

CAMPAIGN_FIELDS = "id,name,status,objective,daily_budget,lifetime_budget,start_time,stop_time"
INSIGHT_FIELDS = "campaign_id,impressions,clicks,spend,actions,date_start,date_stop"


def validate_meta_token(access_token: Optional[str]) -> None:
    """Meta user/system tokens always start with EAA (EAAG, EAAB, ...)"""
    if not access_token or not access_token.startswith(META_TOKEN_PREFIX):
        raise ValidationError("Invalid Meta access token format. Must start with EAA or EAAG.")


def _lead_count(actions: Optional[List[Dict[str, Any]]]) -> int:
    for action in actions or []:
        if action.get("action_type") == "lead":
            return to_int(action.get("value"))
    return 0


class MetaAdsConnector(BaseAdConnector):
    """Meta Graph API adapter"""

    vendor = "meta"

    def __init__(self, access_token: str, **kwargs):
        super().__init__(access_token, **kwargs)
        self.base_url = f"{settings.meta_graph_base_url.rstrip('/')}/{settings.meta_graph_api_version}"
        self.page_limit = settings.meta_page_limit

    def _default_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _check_payload(self, status_code: int, payload: Dict[str, Any]) -> None:
        """
        Graph API errors arrive as {"error": {"message", "type", "code", ...}},
        sometimes with HTTP 200.
        """
        error = payload.get("error")

        if error is None:
            if status_code in (401, 403):
                raise VendorAuthError(self.vendor, f"HTTP {status_code}", http_status=status_code)
            if status_code >= 400:
                raise VendorApiError(self.vendor, f"HTTP {status_code}", http_status=status_code)
            return

        if not isinstance(error, dict):
            error = {"message": str(error)}

        code = error.get("code")
        message = error.get("message") or "Unknown error"

        if (
            status_code in (401, 403)
            or code in META_AUTH_ERROR_CODES
            or (isinstance(code, int) and code in META_PERMISSION_CODE_RANGE)
            or (error.get("type") == "OAuthException" and code not in META_RATE_LIMIT_CODES)
        ):
            raise VendorAuthError(self.vendor, message, code=code, http_status=status_code)

        http_status = status_code if status_code >= 400 else None
        if code in META_RATE_LIMIT_CODES:
            http_status = 429

        raise VendorApiError(self.vendor, message, code=code, http_status=http_status)

    async def _get_paged(self, client: httpx.AsyncClient, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Follow paging.next until exhausted"""
        rows: List[Dict[str, Any]] = []
        url = self._url(path)
        query: Optional[Dict[str, Any]] = {**params, "access_token": self.access_token}

        while url:
            payload = await self._request(client, "GET", url, params=query)
            rows.extend(payload.get("data") or [])
            url = (payload.get("paging") or {}).get("next")
            # next already embeds every query param, token included
            query = None

        return rows

    async def list_accounts(self) -> List[Dict[str, Any]]:
        """Ad accounts reachable with the token, as [{"id", "name"}]"""
        async with self._client() as client:
            accounts = await self._get_paged(client, "me/adaccounts", {"fields": "id,name", "limit": self.page_limit})
        log.info(f"meta: token can reach {len(accounts)} ad accounts")
        return [{"id": str(a.get("id")), "name": a.get("name") or ""} for a in accounts if a.get("id")]

    async def fetch_campaigns(self, client: httpx.AsyncClient, account_id: str) -> List[VendorCampaign]:
        rows = await self._get_paged(
            client,
            f"{account_id}/campaigns",
            {"fields": CAMPAIGN_FIELDS, "limit": self.page_limit},
        )

        campaigns = []
        for row in rows:
            if not row.get("id"):
                continue
            campaigns.append(VendorCampaign(
                external_id=str(row["id"]),
                name=row.get("name") or "",
                status=row.get("status"),
                objective=row.get("objective"),
                end_time=row.get("stop_time"),
                account_id=account_id,
            ))
        return campaigns

    async def fetch_campaign_insights(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        campaign: VendorCampaign,
        date_range: str
    ) -> List[InsightRow]:
        params = {
            "fields": INSIGHT_FIELDS,
            "time_increment": 1,
            "limit": self.page_limit,
            **meta_date_params(date_range),
        }
        rows = await self._get_paged(client, f"{campaign.external_id}/insights", params)

        insights = []
        for row in rows:
            day = row.get("date_start")
            insights.append(InsightRow(
                date=as_date(day) if day else None,
                impressions=to_int(row.get("impressions")),
                clicks=to_int(row.get("clicks")),
                spend=to_float(row.get("spend")),
                leads=_lead_count(row.get("actions")),
            ))
        return insights
