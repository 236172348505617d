"""
Configuration management for perfsync
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "perfsync Metrics Sync"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = True

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    database_url: str = "sqlite:///./perfsync.db"

    # Google Sheets
    # OAuth bearer token used by scheduled and bulk syncs. Manual triggers may
    # pass their own token instead.
    google_sheets_access_token: Optional[str] = None
    sheets_default_range: str = "A:Z"
    sheets_api_timeout_seconds: int = 30

    # Sync retry policy (fetch only)
    sync_max_attempts: int = 3
    sync_base_delay_seconds: float = 2.0
    sync_max_delay_seconds: float = 60.0

    # Sync Schedules
    enable_scheduler: bool = True
    sync_all_schedule: str = "0 18 * * 0"  # Sundays 6 PM
    sync_timezone: str = "America/Chicago"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
