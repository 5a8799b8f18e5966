"""Configuration settings using Pydantic."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import Layout, RowOrder, StoreMode
from .volume import VolumePolicy

DEFAULT_RSS_URLS = (
    "https://trends.google.com/trending/rss?geo={geo},"
    "https://trends.google.com/trends/trendingsearches/daily/rss?geo={geo}"
)


def check_time_zone(value: str) -> str:
    """Reject names the zone database cannot resolve."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {value!r}") from e
    return value


class TrendConfig(BaseModel):
    """Explicit per-run configuration handed to each component."""

    region: str = "GR"
    result_limit: int = Field(default=10, ge=1)
    time_zone: str = "Europe/Athens"
    store_mode: StoreMode = StoreMode.ADDITIVE
    degrade_on_store_failure: bool = True
    diff_enabled: bool = True
    row_order: RowOrder = RowOrder.SOURCE
    layout: Layout = Layout.TABLE
    volume_policy: VolumePolicy = Field(default_factory=VolumePolicy)

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        return check_time_zone(v)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Slack
    slack_webhook_url: str = Field(..., description="Slack incoming webhook URL")

    # Enrichment
    serpapi_key: str = Field(default="", description="SerpApi key, enrichment is skipped when empty")
    hl: str = Field(default="el", description="SerpApi interface language")

    # Google Trends
    geo: str = Field(default="GR", description="Region code")
    max_items: int = Field(default=10, ge=1, description="Number of trends to report")
    rss_urls: str = Field(
        default=DEFAULT_RSS_URLS,
        description="Comma-separated RSS URL templates tried in order, {geo} is substituted",
    )
    http_timeout: float = Field(default=15.0, description="HTTP timeout in seconds")

    # Diffing
    diff_enabled: bool = Field(default=True, description="Only notify when something new shows up")
    store_mode: StoreMode = Field(default=StoreMode.ADDITIVE, description="additive or replace")
    degrade_on_store_failure: bool = Field(
        default=True, description="Keep sending the list when the seen-set store is down"
    )

    # Database
    database_path: str = Field(default="./data/seen.db", description="SQLite database path")
    seen_ttl_days: Optional[int] = Field(default=None, description="Prune seen keys older than this")

    # Formatting
    timezone: str = Field(default="Europe/Athens", description="Display timezone")
    row_order: RowOrder = Field(default=RowOrder.SOURCE, description="source or volume")
    layout: Layout = Field(default=Layout.TABLE, description="table or blocks")
    compact_thousands: bool = Field(
        default=True, description="Read small bare volumes (1-999) as thousands"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        return check_time_zone(v)

    @property
    def region(self) -> str:
        return self.geo.strip().upper()

    @property
    def rss_url_list(self) -> List[str]:
        """Expand the RSS templates for the configured region."""
        return [
            u.strip().format(geo=self.region)
            for u in self.rss_urls.split(",")
            if u.strip()
        ]

    def trend_config(self) -> TrendConfig:
        return TrendConfig(
            region=self.region,
            result_limit=self.max_items,
            time_zone=self.timezone,
            store_mode=self.store_mode,
            degrade_on_store_failure=self.degrade_on_store_failure,
            diff_enabled=self.diff_enabled,
            row_order=self.row_order,
            layout=self.layout,
            volume_policy=VolumePolicy(compact_thousands=self.compact_thousands),
        )
