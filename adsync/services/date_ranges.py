"""
Date-range normalization

Converts a dashboard-selected {from, to} range into each vendor's date-range
vocabulary, and back into concrete request parameters.
"""
import json
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Tuple, Union

from adsync.utils.helpers import as_date

DateLike = Union[date, datetime, str]

META_NAMED_PRESETS = ("today", "yesterday", "last_7d", "last_14d", "last_30d", "maximum")
TIKTOK_PRESETS = {
    "last_7d": 7,
    "last_30d": 30,
    "last_90d": 90,
}
TIKTOK_DEFAULT_DAYS = 30

_META_SPAN_PRESETS = {
    7: "last_7d",
    14: "last_14d",
    30: "last_30d",
}


def days_between(date_from: DateLike, date_to: DateLike) -> int:
    """Whole calendar days from `date_from` to `date_to` (time of day ignored)"""
    return (as_date(date_to) - as_date(date_from)).days


def _explicit_range(date_from: date, date_to: date) -> str:
    return f"{date_from.isoformat()}|{date_to.isoformat()}"


def meta_date_range(
    date_from: DateLike,
    date_to: DateLike,
    today: Optional[date] = None
) -> str:
    """
    Meta date-range token for a selected range.

    Returns a named preset (today, yesterday, last_7d, last_14d, last_30d) or an
    explicit "YYYY-MM-DD|YYYY-MM-DD" pair.
    """
    start = as_date(date_from)
    end = as_date(date_to)
    today = today or date.today()
    diff = (end - start).days

    if diff == 0:
        if start == today:
            return "today"
        return _explicit_range(start, start)

    if diff == 1:
        if start == today - timedelta(days=1):
            return "yesterday"
        return _explicit_range(start, end)

    if diff in _META_SPAN_PRESETS:
        return _META_SPAN_PRESETS[diff]

    return _explicit_range(start, end)


def tiktok_date_range(date_from: DateLike, date_to: DateLike) -> str:
    """TikTok bucketed preset: <=7 days -> last_7d, <=30 -> last_30d, else last_90d"""
    diff = days_between(date_from, date_to)
    if diff <= 7:
        return "last_7d"
    if diff <= 30:
        return "last_30d"
    return "last_90d"


def is_explicit_range(token: str) -> bool:
    return "|" in (token or "")


def split_explicit_range(token: str) -> Tuple[date, date]:
    """Parse a "from|to" token into dates, earliest first"""
    raw_from, raw_to = token.split("|", 1)
    start, end = as_date(raw_from.strip()), as_date(raw_to.strip())
    if start > end:
        start, end = end, start
    return start, end


def meta_date_params(token: Optional[str]) -> Dict[str, str]:
    """
    Graph API query params for a Meta date-range token.

    Unknown tokens fall back to last_7d.
    """
    if token and is_explicit_range(token):
        since, until = split_explicit_range(token)
        return {"time_range": json.dumps({"since": since.isoformat(), "until": until.isoformat()})}
    if token in META_NAMED_PRESETS:
        return {"date_preset": token}
    return {"date_preset": "last_7d"}


def tiktok_report_window(token: Optional[str], today: Optional[date] = None) -> Tuple[date, date]:
    """
    Concrete (start_date, end_date) for a TikTok preset.

    Explicit "from|to" pairs are honoured when passed programmatically; the
    dashboard only ever sends presets.
    """
    today = today or date.today()
    if token and is_explicit_range(token):
        return split_explicit_range(token)
    days = TIKTOK_PRESETS.get(token or "", TIKTOK_DEFAULT_DAYS)
    return today - timedelta(days=days), today


def lookback_window(days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Sync lookback window ending today"""
    today = today or date.today()
    return today - timedelta(days=days), today
