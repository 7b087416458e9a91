"""
Google Sheets readers

GoogleSheetsConnector downloads a sheet through its CSV export link; the sheet
must be shared as "anyone with the link can view" (private sheets redirect to
a login page). PrivateSheetsConnector reads sheets the user has granted access
to through the Sheets and Drive APIs, using the user's OAuth access token.
"""
import asyncio
import csv
import io
from typing import Any, Dict, List, Optional

import google_auth_httplib2
import httplib2
import httpx
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from adsync.config import get_settings
from adsync.errors import ValidationError, VendorApiError, VendorAuthError
from adsync.utils.logger import log
from adsync.utils.retry import RetryContext

settings = get_settings()

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


def clean_rows(raw_rows: List[List[Any]]) -> List[List[str]]:
    """Strip every cell and drop rows with no content"""
    return [
        [str(cell).strip() for cell in row]
        for row in raw_rows
        if any(str(cell).strip() for cell in row)
    ]


class GoogleSheetsConnector:
    """Fetches rows from a publicly viewable Google Sheet"""

    vendor = "google_sheets"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.vendor_request_timeout

    def export_url(self, sheet_id: str) -> str:
        return settings.sheets_csv_export_url.format(sheet_id=sheet_id)

    async def _download(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url)
        if response.status_code >= 400:
            raise VendorApiError(
                self.vendor,
                f"Failed to fetch Google Sheets data: HTTP {response.status_code}. "
                "Make sure the sheet is publicly viewable.",
                http_status=response.status_code,
            )
        if "text/html" in response.headers.get("content-type", ""):
            raise VendorApiError(self.vendor, "Sheet is not publicly viewable.")
        return response.text

    async def fetch_rows(self, sheet_id: str) -> List[List[str]]:
        """
        All non-blank rows of the sheet's first tab, header row first.

        Raises:
            ValidationError: no sheet id, or the sheet is empty
            VendorApiError: download failed
        """
        if not sheet_id:
            raise ValidationError("sheet_id is required")

        url = self.export_url(sheet_id)
        log.info(f"Fetching Google Sheet {sheet_id}")

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            async with RetryContext(
                max_attempts=settings.vendor_retry_max_attempts,
                base_delay=settings.vendor_retry_base_delay,
                max_delay=settings.vendor_retry_max_delay,
                label="google_sheets GET",
            ) as ctx:
                try:
                    text = await ctx.execute(self._download, client, url)
                except httpx.HTTPError as e:
                    raise VendorApiError(self.vendor, f"request failed: {e}") from e

        rows = clean_rows(list(csv.reader(io.StringIO(text))))
        if not rows:
            raise ValidationError("No data found in Google Sheets")

        log.info(f"Google Sheet {sheet_id}: {len(rows) - 1} data rows")
        return rows


class PrivateSheetsConnector:
    """
    Reads private sheets with the user's Google OAuth access token.

    The token needs the spreadsheets.readonly scope for `fetch_rows` and
    drive.metadata.readonly for `list_spreadsheets`. Pre-built API service
    objects can be passed in instead of a token-backed build.
    """

    vendor = "google"

    def __init__(
        self,
        access_token: str,
        sheets_service: Any = None,
        drive_service: Any = None,
        timeout: Optional[float] = None
    ):
        if not access_token:
            raise ValidationError("Google access token is required")
        self.access_token = access_token
        self.timeout = timeout if timeout is not None else settings.vendor_request_timeout
        self._sheets = sheets_service
        self._drive = drive_service

    def _build(self, api: str, version: str):
        # httplib2 has no default timeout; bound every call
        http = httplib2.Http(timeout=self.timeout)
        authed_http = google_auth_httplib2.AuthorizedHttp(Credentials(token=self.access_token), http=http)
        return build(api, version, http=authed_http, cache_discovery=False)

    @property
    def sheets(self):
        if self._sheets is None:
            self._sheets = self._build("sheets", "v4")
        return self._sheets

    @property
    def drive(self):
        if self._drive is None:
            self._drive = self._build("drive", "v3")
        return self._drive

    async def _execute_once(self, request) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(asyncio.to_thread(request.execute), timeout=self.timeout)
        except HttpError as e:
            status = e.resp.status
            if status in (401, 403):
                raise VendorAuthError(self.vendor, e.reason or f"HTTP {status}", http_status=status) from e
            raise VendorApiError(self.vendor, e.reason or f"HTTP {status}", http_status=status) from e
        except asyncio.TimeoutError as e:
            raise VendorApiError(self.vendor, f"request timed out after {self.timeout:.0f}s") from e

    async def _execute(self, request, label: str) -> Dict[str, Any]:
        async with RetryContext(
            max_attempts=settings.vendor_retry_max_attempts,
            base_delay=settings.vendor_retry_base_delay,
            max_delay=settings.vendor_retry_max_delay,
            label=f"google_sheets {label}",
        ) as ctx:
            return await ctx.execute(self._execute_once, request)

    async def fetch_rows(self, sheet_id: str, sheet_range: str = "A:Z") -> List[List[str]]:
        """
        Non-blank rows of `sheet_range` (first tab unless the range names one).

        Raises:
            ValidationError: no sheet id, or the range is empty
            VendorAuthError: token expired or lacks access to the sheet
            VendorApiError: any other Sheets API failure
        """
        if not sheet_id:
            raise ValidationError("sheet_id is required")

        log.info(f"Fetching private Google Sheet {sheet_id} ({sheet_range})")
        request = self.sheets.spreadsheets().values().get(spreadsheetId=sheet_id, range=sheet_range)
        result = await self._execute(request, "values.get")

        rows = clean_rows(result.get("values", []))
        if not rows:
            raise ValidationError("No data found in Google Sheets")

        log.info(f"Google Sheet {sheet_id}: {len(rows) - 1} data rows")
        return rows

    async def list_spreadsheets(self, page_size: int = 50) -> List[Dict[str, Any]]:
        """The user's spreadsheets, most recently modified first"""
        request = self.drive.files().list(
            q=f'mimeType="{SPREADSHEET_MIME_TYPE}"',
            fields="files(id,name,modifiedTime)",
            orderBy="modifiedTime desc",
            pageSize=page_size,
        )
        result = await self._execute(request, "files.list")

        return [
            {"id": f.get("id"), "name": f.get("name"), "modified_time": f.get("modifiedTime")}
            for f in result.get("files", [])
        ]
