"""
Helper utilities
"""
from datetime import date, datetime
from typing import Any, Optional, Union

from dateutil import parser as date_parser


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def calculate_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate as a percentage (0-100), 0 when there are no impressions"""
    return safe_divide(clicks, impressions) * 100


def calculate_cpc(spend: float, clicks: float) -> float:
    """Cost per click, 0 when there are no clicks"""
    return safe_divide(spend, clicks)


def format_rate(value: Optional[float]) -> str:
    """Two-decimal display string used for CTR/CPC/spend in dashboard payloads"""
    return f"{(value or 0.0):.2f}"


def to_int(value: Any) -> int:
    """Parse vendor numeric strings ("1500", "12.0", None) into ints"""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def to_float(value: Any) -> float:
    """Parse vendor numeric strings into floats"""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def as_date(value: Union[date, datetime, str]) -> date:
    """Calendar date for a date, datetime or ISO-ish string (time of day dropped)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(value).date()


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse vendor timestamps, None on empty or unparseable input"""
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
