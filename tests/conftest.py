"""Shared fixtures for the rivalbot test suite."""

import datetime

import pytest

from rivalbot.config import Settings
from rivalbot.core.result import AdapterResult, Signal, SiteAnalysis

FIXED_NOW = datetime.datetime(2024, 6, 15, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def settings():
    """Settings with every delay zeroed and no third-party credentials."""
    return Settings(
        _env_file=None,
        pagespeed_api_key=None,
        rapidapi_key=None,
        similarweb_api_key=None,
        se_ranking_api_token=None,
        changedetection_api_key=None,
        google_client_id=None,
        google_client_secret=None,
        browser_cooldown_seconds=0,
        site_gap_seconds=0,
        lighthouse_attempts=2,
        lighthouse_backoff_seconds=0,
        log_level="WARNING",
    )


@pytest.fixture
def fixed_now():
    """A fixed 'current' moment for date arithmetic."""
    return FIXED_NOW


@pytest.fixture
def make_analysis():
    """
    Build a SiteAnalysis from keyword payloads.

    Keywords are lowercase signal names (``page_render``, ``traffic`` ...).
    A dict becomes a successful result; a string becomes a failure reason;
    signals that are not given are recorded as failures.
    """
    def build(domain: str, **payloads) -> SiteAnalysis:
        analysis = SiteAnalysis(domain=domain)
        for signal in Signal:
            value = payloads.get(signal.name.lower())
            if isinstance(value, dict):
                analysis.signals[signal] = AdapterResult.success(value)
            else:
                analysis.signals[signal] = AdapterResult.failure(value or "not configured")
        return analysis

    return build
