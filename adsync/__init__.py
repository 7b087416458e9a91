"""adsync - Meta/TikTok campaign sync for recruitment advertising dashboards"""

__version__ = "1.0.0"
