"""
Vendor connectors: Meta Graph API, TikTok Business API, Google Sheets
"""
from adsync.connectors.base import BaseAdConnector, InsightRow, VendorCampaign, VendorFetchResult
from adsync.connectors.meta import MetaAdsConnector, validate_meta_token
from adsync.connectors.tiktok import TikTokAdsConnector
from adsync.connectors.google_sheets import GoogleSheetsConnector, PrivateSheetsConnector

CONNECTORS = {
    "meta": MetaAdsConnector,
    "tiktok": TikTokAdsConnector,
}


def get_connector(platform: str, access_token: str, **kwargs) -> BaseAdConnector:
    """Adapter instance for a platform name ("meta" or "tiktok")"""
    try:
        connector_cls = CONNECTORS[platform]
    except KeyError:
        raise ValueError(f"Unsupported platform: {platform}")
    return connector_cls(access_token, **kwargs)


__all__ = [
    "BaseAdConnector",
    "InsightRow",
    "VendorCampaign",
    "VendorFetchResult",
    "MetaAdsConnector",
    "TikTokAdsConnector",
    "GoogleSheetsConnector",
    "PrivateSheetsConnector",
    "CONNECTORS",
    "get_connector",
    "validate_meta_token",
]
