from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "EMSConsole"
    backend_base_url: str = "http://127.0.0.1:8080"
    backend_timeout_seconds: float = 15.0
    location_timeout_seconds: float = 10.0
    display_timezone: str = "Asia/Colombo"
    cors_allow_origins: str = "http://127.0.0.1:3000,http://localhost:3000"
    ticket_page_size: int = 10
    job_card_page_size: int = 12
    employee_lookup_size: int = 100
    report_employee_lookup_size: int = 1000
    report_default_days: int = 7
    build_version: str = "unknown"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_cors_origins() -> list[str]:
    raw = get_settings().cors_allow_origins
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_backend_base_url() -> str:
    return get_settings().backend_base_url.rstrip("/")


def get_display_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().display_timezone)
