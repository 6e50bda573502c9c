"""Configuration objects for the availability agent."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables.

    The settle delays were tuned by hand against the live booking engine and
    are expected to drift; keep them overridable rather than trusting the
    defaults.
    """

    booking_url: str = Field(
        default="https://live.ipms247.com/booking/book-rooms-blytonbungalow",
        validation_alias="AVAILABILITY_BOOKING_URL",
    )
    headless: bool = Field(default=True, validation_alias="AVAILABILITY_HEADLESS")
    browser_args: list[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"],
        validation_alias="AVAILABILITY_BROWSER_ARGS",
        description="Extra Chromium flags; the defaults are required inside Docker.",
    )
    timezone: str = Field(default="UTC", validation_alias="AVAILABILITY_TIMEZONE")

    navigation_timeout_ms: int = Field(default=60_000, validation_alias="AVAILABILITY_NAVIGATION_TIMEOUT_MS")
    search_navigation_timeout_ms: int = Field(
        default=5_000,
        validation_alias="AVAILABILITY_SEARCH_NAVIGATION_TIMEOUT_MS",
    )
    selector_timeout_ms: int = Field(default=10_000, validation_alias="AVAILABILITY_SELECTOR_TIMEOUT_MS")
    table_timeout_ms: int = Field(default=15_000, validation_alias="AVAILABILITY_TABLE_TIMEOUT_MS")

    search_settle_ms: int = Field(default=3_000, validation_alias="AVAILABILITY_SEARCH_SETTLE_MS")
    check_settle_ms: int = Field(default=2_000, validation_alias="AVAILABILITY_CHECK_SETTLE_MS")
    room_settle_ms: int = Field(default=3_000, validation_alias="AVAILABILITY_ROOM_SETTLE_MS")
    skip_settle_ms: int = Field(default=1_000, validation_alias="AVAILABILITY_SKIP_SETTLE_MS")
    page_settle_ms: int = Field(default=1_500, validation_alias="AVAILABILITY_PAGE_SETTLE_MS")
    empty_retry_settle_ms: int = Field(default=2_000, validation_alias="AVAILABILITY_EMPTY_RETRY_SETTLE_MS")

    cache_ttl_seconds: float = Field(default=900, validation_alias="AVAILABILITY_CACHE_TTL_SECONDS")
    coalesce_misses: bool = Field(
        default=True,
        validation_alias="AVAILABILITY_COALESCE_MISSES",
        description="Serialise concurrent cache misses for the same key so only one scrape runs.",
    )

    api_host: str = Field(default="0.0.0.0", validation_alias="AVAILABILITY_API_HOST")
    api_port: int = Field(default=3000, validation_alias="AVAILABILITY_API_PORT")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
