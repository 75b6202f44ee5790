"""Configuration management using environment variables."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Third-party data sources
    pagespeed_api_key: Optional[str] = Field(
        default=None,
        alias="GOOGLE_API_KEY"
    )
    rapidapi_key: Optional[str] = Field(
        default=None,
        alias="RAPIDAPI_KEY"
    )
    similarweb_host: str = Field(
        default="similarweb-traffic.p.rapidapi.com",
        alias="SIMILARWEB_RAPIDAPI_HOST"
    )
    similarweb_api_key: Optional[str] = Field(
        default=None,
        alias="SIMILARWEB_API_KEY"
    )
    se_ranking_api_token: Optional[str] = Field(
        default=None,
        alias="SE_RANKING_API_TOKEN"
    )
    se_ranking_base_url: str = Field(
        default="https://api.seranking.com",
        alias="SE_RANKING_BASE_URL"
    )
    changedetection_url: str = Field(
        default="https://changedetection-competitor.onrender.com",
        alias="CHANGEDETECTION_URL"
    )
    changedetection_api_key: Optional[str] = Field(
        default=None,
        alias="CHANGEDETECTION_API_KEY"
    )

    # Google OAuth (first-party analytics)
    google_client_id: Optional[str] = Field(
        default=None,
        alias="GOOGLE_CLIENT_ID"
    )
    google_client_secret: Optional[str] = Field(
        default=None,
        alias="GOOGLE_CLIENT_SECRET"
    )
    google_redirect_uri: str = Field(
        default="http://localhost:3010/api/analytics/callback",
        alias="GOOGLE_REDIRECT_URI"
    )

    # Lighthouse
    lighthouse_path: str = Field(
        default="lighthouse",
        alias="LIGHTHOUSE_PATH"
    )
    lighthouse_timeout_seconds: float = Field(
        default=120.0,
        alias="LIGHTHOUSE_TIMEOUT_SECONDS"
    )
    lighthouse_attempts: int = Field(
        default=2,
        alias="LIGHTHOUSE_ATTEMPTS"
    )
    lighthouse_backoff_seconds: float = Field(
        default=1.5,
        alias="LIGHTHOUSE_BACKOFF_SECONDS"
    )

    # Sequencing
    browser_cooldown_seconds: float = Field(
        default=1.5,
        alias="BROWSER_COOLDOWN_SECONDS"
    )
    site_gap_seconds: float = Field(
        default=3.0,
        alias="SITE_GAP_SECONDS"
    )

    # Per-adapter timeouts
    page_render_timeout: float = Field(default=30.0, alias="PAGE_RENDER_TIMEOUT")
    pagespeed_timeout: float = Field(default=60.0, alias="PAGESPEED_TIMEOUT")
    technical_seo_timeout: float = Field(default=30.0, alias="TECHNICAL_SEO_TIMEOUT")
    traffic_timeout: float = Field(default=15.0, alias="TRAFFIC_TIMEOUT")
    backlinks_timeout: float = Field(default=30.0, alias="BACKLINKS_TIMEOUT")
    changedetection_timeout: float = Field(default=15.0, alias="CHANGEDETECTION_TIMEOUT")
    content_timeout: float = Field(default=10.0, alias="CONTENT_TIMEOUT")
    robots_timeout: float = Field(default=5.0, alias="ROBOTS_TIMEOUT")

    # Overall bound on one adapter call, across all of its requests
    page_render_call_timeout: float = Field(default=45.0, alias="PAGE_RENDER_CALL_TIMEOUT")
    pagespeed_call_timeout: float = Field(default=90.0, alias="PAGESPEED_CALL_TIMEOUT")
    technical_seo_call_timeout: float = Field(default=45.0, alias="TECHNICAL_SEO_CALL_TIMEOUT")
    traffic_call_timeout: float = Field(default=30.0, alias="TRAFFIC_CALL_TIMEOUT")
    backlinks_call_timeout: float = Field(default=45.0, alias="BACKLINKS_CALL_TIMEOUT")
    changedetection_call_timeout: float = Field(default=45.0, alias="CHANGEDETECTION_CALL_TIMEOUT")
    content_call_timeout: float = Field(default=60.0, alias="CONTENT_CALL_TIMEOUT")

    # Cache and OAuth state
    cache_ttl_hours: int = Field(
        default=168,
        alias="CACHE_TTL_HOURS"
    )
    oauth_state_ttl_seconds: int = Field(
        default=900,
        alias="OAUTH_STATE_TTL_SECONDS"
    )
    oauth_sweep_interval_seconds: int = Field(
        default=300,
        alias="OAUTH_SWEEP_INTERVAL_SECONDS"
    )

    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        alias="USER_AGENT"
    )
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
