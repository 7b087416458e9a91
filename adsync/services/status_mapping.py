"""
Vendor status/objective mapping into the internal vocabulary

The per-vendor fallbacks differ on purpose: unknown Meta statuses become
"draft", unknown TikTok statuses become "paused".
"""
from datetime import datetime, timezone
from typing import Optional

from adsync.utils.helpers import parse_datetime

NORMALIZED_STATUSES = frozenset({"active", "paused", "draft", "deleted", "archived"})

META_STATUS_MAP = {
    "ACTIVE": "active",
    "PAUSED": "paused",
    "DELETED": "deleted",
    "ARCHIVED": "archived",
}
META_DEFAULT_STATUS = "draft"

TIKTOK_STATUS_MAP = {
    "CAMPAIGN_STATUS_ENABLE": "active",
    "CAMPAIGN_STATUS_DISABLE": "paused",
    "CAMPAIGN_STATUS_DELETE": "deleted",
}
TIKTOK_DEFAULT_STATUS = "paused"

META_DEFAULT_OBJECTIVE = "OUTCOME_TRAFFIC"
TIKTOK_DEFAULT_OBJECTIVE = "TRAFFIC"

OBJECTIVE_PREFIXES = ("OUTCOME_",)


def map_meta_status(status: Optional[str]) -> str:
    return META_STATUS_MAP.get(status or "", META_DEFAULT_STATUS)


def map_tiktok_status(status: Optional[str]) -> str:
    return TIKTOK_STATUS_MAP.get(status or "", TIKTOK_DEFAULT_STATUS)


def map_status(platform: str, status: Optional[str]) -> str:
    """Dispatch to the vendor mapper for `platform`"""
    if platform == "meta":
        return map_meta_status(status)
    if platform == "tiktok":
        return map_tiktok_status(status)
    raise ValueError(f"Unknown platform: {platform}")


def normalize_objective(objective: Optional[str]) -> str:
    """
    Display form of a vendor objective.

    "OUTCOME_LEAD_GENERATION" -> "lead generation", "REACH" -> "reach".
    """
    if not objective:
        return "unknown"
    value = objective.strip()
    for prefix in OBJECTIVE_PREFIXES:
        if value.upper().startswith(prefix):
            value = value[len(prefix):]
    return value.lower().replace("_", " ").strip()


def stored_objective(platform: str, objective: Optional[str]) -> str:
    """
    Objective as persisted on synced campaigns.

    Meta rows keep the raw vendor string, TikTok rows store the display form.
    """
    if platform == "meta":
        return objective or META_DEFAULT_OBJECTIVE
    return normalize_objective(objective or TIKTOK_DEFAULT_OBJECTIVE)


def apply_schedule_end(status: str, end_time: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Live views report running campaigns whose scheduled end has passed as "finished".

    Only active/paused statuses are affected.
    """
    if status not in ("active", "paused") or not end_time:
        return status
    end = parse_datetime(end_time)
    if end is None:
        return status
    now = now or datetime.now(timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return "finished" if end < now else status
