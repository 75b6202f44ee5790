"""Tests for the two-site competitor service."""

from unittest.mock import AsyncMock, MagicMock, call

import pytest

from rivalbot.core.result import AdapterResult, Signal, SiteAnalysis
from rivalbot.core.service import CompetitorService


def site(domain: str, visits: int) -> SiteAnalysis:
    analysis = SiteAnalysis(domain=domain)
    analysis.signals[Signal.TRAFFIC] = AdapterResult.success(
        {"success": True, "source": "similarweb_rapidapi", "metrics": {"monthlyVisits": visits}}
    )
    return analysis


class TestCompetitorService:
    """Tests for CompetitorService.compare_websites."""

    @pytest.fixture
    def analyzer(self):
        mock = MagicMock()
        mock.analyze_single_site = AsyncMock(side_effect=[site("mine.com", 5000), site("rival.com", 1000)])
        return mock

    @pytest.mark.asyncio
    async def test_compares_both_sites(self, settings, analyzer):
        """Test the report holds both sites and the comparison."""
        service = CompetitorService(analyzer, settings)

        report = await service.compare_websites("mine.com", "rival.com", "me@mine.com")

        assert report["success"] is True
        assert report["yourSite"]["domain"] == "mine.com"
        assert report["competitorSite"]["domain"] == "rival.com"
        assert report["yourSite"]["traffic"]["metrics"]["monthlyVisits"] == 5000
        assert report["comparison"]["traffic"]["insights"]["trafficWinner"] == "yours"
        assert report["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_analyzes_user_site_first(self, settings, analyzer):
        """Test the user's site is analyzed first and only it receives the email."""
        await CompetitorService(analyzer, settings).compare_websites("mine.com", "rival.com", "me@mine.com")

        assert analyzer.analyze_single_site.await_args_list == [
            call("mine.com", email="me@mine.com", is_user_site=True),
            call("rival.com", email=None, is_user_site=False),
        ]

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, settings):
        """Test an analyzer crash becomes an unsuccessful report."""
        analyzer = MagicMock()
        analyzer.analyze_single_site = AsyncMock(side_effect=ValueError("domain is required"))

        report = await CompetitorService(analyzer, settings).compare_websites("", "rival.com")

        assert report["success"] is False
        assert report["error"] == "domain is required"
