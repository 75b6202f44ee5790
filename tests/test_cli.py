"""Tests for the command line interface."""

from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from rivalbot.cli import main
from rivalbot.engine.content_strategy import compare_content_updates
from rivalbot.web.content_updates import analyze_content_activity, empty_rss, empty_sitemap


def empty_snapshot(domain):
    return {
        "domain": domain,
        "timestamp": "2024-06-15T12:00:00Z",
        "rss": empty_rss(),
        "sitemap": empty_sitemap(),
        "contentActivity": analyze_content_activity(empty_rss(), empty_sitemap()),
    }


class TestCli:
    """Tests for the rivalbot CLI."""

    def test_content(self):
        """Test the content command prints the activity snapshot."""
        with patch("rivalbot.cli.ContentUpdatesService") as service_cls:
            service_cls.return_value.get_content_updates = AsyncMock(return_value=empty_snapshot("acme.com"))
            result = CliRunner().invoke(main, ["--log-level", "ERROR", "content", "acme.com"])

        assert result.exit_code == 0
        assert "Content activity for acme.com" in result.output
        assert "Frequency: unknown" in result.output

    def test_content_gap(self):
        """Test the content-gap command prints the comparison."""
        comparison = compare_content_updates(empty_snapshot("a.com"), empty_snapshot("b.com"))
        with patch("rivalbot.cli.ContentUpdatesService") as service_cls:
            service_cls.return_value.compare_content_updates = AsyncMock(return_value=comparison)
            result = CliRunner().invoke(main, ["--log-level", "ERROR", "content-gap", "a.com", "b.com"])

        assert result.exit_code == 0
        assert "More active: equal" in result.output
        service_cls.return_value.compare_content_updates.assert_awaited_once_with("a.com", "b.com")

    def test_compare_failure_exits(self):
        """Test a failed comparison exits non-zero."""
        with patch("rivalbot.cli.CompetitorService") as service_cls:
            service_cls.return_value.compare_websites = AsyncMock(return_value={"success": False, "error": "boom"})
            result = CliRunner().invoke(main, ["--log-level", "ERROR", "compare", "a.com", "b.com"])

        assert result.exit_code == 1
        assert "Comparison failed: boom" in result.output
