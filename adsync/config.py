"""
Configuration management for the adsync service
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "adsync Campaign Sync API"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"  # Empty = stdout only

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Auth (bearer JWTs signed by the auth provider)
    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None  # e.g. "authenticated"; None skips the aud check

    # Database
    database_url: str = "sqlite:///./adsync.db"
    db_pool_size: int = 5  # Server databases only
    db_max_overflow: int = 10
    db_pool_recycle: int = 300  # seconds
    db_sqlite_busy_timeout: float = 60.0  # seconds a SQLite writer waits for the file lock

    # Meta Graph API
    meta_graph_base_url: str = "https://graph.facebook.com"
    meta_graph_api_version: str = "v19.0"
    meta_page_limit: int = 100

    # TikTok Business API
    tiktok_base_url: str = "https://business-api.tiktok.com/open_api/v1.3"
    tiktok_page_size: int = 100

    # Vendor HTTP behaviour
    vendor_request_timeout: float = 30.0  # seconds per call
    vendor_retry_max_attempts: int = 3
    vendor_retry_base_delay: float = 1.0  # seconds
    vendor_retry_max_delay: float = 30.0  # seconds
    sync_insights_concurrency: int = 4  # Parallel insight fetches per vendor sync

    # Sync behaviour
    metrics_lookback_days: int = 30  # Default sync window

    # Scheduled sync
    enable_scheduled_sync: bool = False
    scheduled_sync_cron: str = "0 */6 * * *"
    scheduler_timezone: str = "UTC"

    # Jobs spreadsheet import (public CSV export)
    sheets_csv_export_url: str = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"
    sheets_default_id: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
