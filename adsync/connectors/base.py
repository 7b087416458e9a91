"""
Base connector for ad vendor APIs

Vendor adapters inherit from this class. It owns the HTTP plumbing shared by
Meta and TikTok: per-call timeout, bounded retry with backoff, JSON decoding,
error classification into VendorAuthError / VendorApiError, and the bounded
concurrency used to fan out per-campaign insight requests.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from adsync.config import get_settings
from adsync.errors import VendorApiError, VendorAuthError, VendorError
from adsync.utils.logger import log
from adsync.utils.retry import RetryContext

settings = get_settings()


@dataclass
class VendorCampaign:
    """Campaign as reported by a vendor, before any status/objective mapping"""
    external_id: str
    name: str
    status: Optional[str] = None
    objective: Optional[str] = None
    budget: Optional[float] = None
    end_time: Optional[str] = None
    account_id: Optional[str] = None


@dataclass
class InsightRow:
    """One time-bucketed performance record, spend in major currency units"""
    date: Optional[date]
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: int = 0


@dataclass
class VendorFetchResult:
    """Campaigns plus their insights, keyed by vendor campaign id"""
    campaigns: List[VendorCampaign] = field(default_factory=list)
    insights_by_campaign: Dict[str, List[InsightRow]] = field(default_factory=dict)
    insight_errors: Dict[str, str] = field(default_factory=dict)


class BaseAdConnector(ABC):
    """Base class for Meta/TikTok adapters"""

    vendor = "vendor"

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        concurrency: Optional[int] = None
    ):
        """
        Args:
            access_token: Vendor access token (opaque secret)
            transport: Optional httpx transport (tests inject a MockTransport)
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request for retryable failures
            base_delay: Initial backoff delay in seconds
            max_delay: Backoff cap in seconds
            concurrency: Parallel insight requests per fetch
        """
        self.access_token = access_token
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.vendor_request_timeout
        self.max_attempts = max_attempts if max_attempts is not None else settings.vendor_retry_max_attempts
        self.base_delay = base_delay if base_delay is not None else settings.vendor_retry_base_delay
        self.max_delay = max_delay if max_delay is not None else settings.vendor_retry_max_delay
        self.concurrency = max(1, concurrency if concurrency is not None else settings.sync_insights_concurrency)

        self.request_count = 0
        self.retry_count = 0
        self.error_count = 0

    # ── Vendor-specific hooks ────────────────────────────────

    @abstractmethod
    def _default_headers(self) -> Dict[str, str]:
        """Headers sent with every request"""

    @abstractmethod
    def _check_payload(self, status_code: int, payload: Dict[str, Any]) -> None:
        """Raise VendorAuthError/VendorApiError if the response signals a failure"""

    @abstractmethod
    async def list_accounts(self) -> List[Dict[str, Any]]:
        """Ad accounts / advertisers reachable with the token"""

    @abstractmethod
    async def fetch_campaigns(self, client: httpx.AsyncClient, account_id: str) -> List[VendorCampaign]:
        """All campaigns in one account"""

    @abstractmethod
    async def fetch_campaign_insights(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        campaign: VendorCampaign,
        date_range: str
    ) -> List[InsightRow]:
        """Daily insight rows for one campaign"""

    # ── HTTP plumbing ────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._default_headers(),
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    async def _send_once(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        self.request_count += 1
        response = await client.request(method, url, **kwargs)

        try:
            payload = response.json()
        except ValueError:
            if response.status_code in (401, 403):
                raise VendorAuthError(self.vendor, f"HTTP {response.status_code}", http_status=response.status_code)
            raise VendorApiError(
                self.vendor,
                f"non-JSON response (HTTP {response.status_code})",
                http_status=response.status_code,
            )

        if not isinstance(payload, dict):
            raise VendorApiError(self.vendor, "unexpected response shape", http_status=response.status_code)

        self._check_payload(response.status_code, payload)
        return payload

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Send one request with retry on transient failures.

        Timeouts and transport errors that survive all attempts are raised as
        VendorApiError so callers only ever see the vendor error taxonomy.
        """
        async with RetryContext(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            label=f"{self.vendor} {method}",
        ) as ctx:
            try:
                return await ctx.execute(self._send_once, client, method, url, **kwargs)
            except httpx.TimeoutException as e:
                self.error_count += 1
                raise VendorApiError(self.vendor, f"request timed out after {self.timeout:.0f}s") from e
            except httpx.TransportError as e:
                self.error_count += 1
                raise VendorApiError(self.vendor, f"request failed: {e}") from e
            except VendorError:
                self.error_count += 1
                raise
            finally:
                self.retry_count += max(0, ctx.stats.attempts - 1)

    # ── Fetch pipeline ───────────────────────────────────────

    async def fetch(self, account_id: str, date_range: str) -> VendorFetchResult:
        """
        Fetch campaigns and their insights for one account.

        Insight requests fan out with at most `self.concurrency` in flight.
        A failing campaign is logged and recorded in `insight_errors`; an auth
        failure aborts the whole fetch.
        """
        result = VendorFetchResult()

        async with self._client() as client:
            campaigns = await self.fetch_campaigns(client, account_id)
            result.campaigns = campaigns
            log.info(f"{self.vendor}: {len(campaigns)} campaigns in account {account_id}")

            semaphore = asyncio.Semaphore(self.concurrency)

            async def _guarded(campaign: VendorCampaign):
                async with semaphore:
                    try:
                        rows = await self.fetch_campaign_insights(client, account_id, campaign, date_range)
                        return campaign.external_id, rows, None
                    except VendorAuthError:
                        raise
                    except VendorApiError as e:
                        log.warning(f"{self.vendor}: insights failed for campaign {campaign.name}: {e}")
                        return campaign.external_id, None, str(e)

            outcomes = await asyncio.gather(*[_guarded(c) for c in campaigns])

        for campaign_id, rows, error in outcomes:
            if error is not None:
                result.insight_errors[campaign_id] = error
            else:
                result.insights_by_campaign[campaign_id] = rows

        return result

    def get_status(self) -> Dict[str, Any]:
        """Request counters for logging"""
        return {
            "vendor": self.vendor,
            "requests": self.request_count,
            "retries": self.retry_count,
            "errors": self.error_count,
            "retry_config": {
                "max_attempts": self.max_attempts,
                "base_delay": self.base_delay,
                "max_delay": self.max_delay,
            },
        }
