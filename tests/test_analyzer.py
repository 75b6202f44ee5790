"""Tests for the single-site analyzer."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rivalbot.core.analyzer import SiteAnalyzer, traffic_from_analytics
from rivalbot.core.comparator import generate_comparison
from rivalbot.core.result import AdapterResult, Signal
from rivalbot.web.content_updates import ContentUpdatesService
from rivalbot.web.lighthouse import LighthouseError

LIGHTHOUSE_REPORT = {
    "dataAvailable": True,
    "categories": {"performance": {"score": 88, "displayValue": 88}},
    "metrics": {},
}

GA_DATA = {
    "dataAvailable": True,
    "sessions": {"2024-06-01": 100, "2024-06-02": 200},
    "pageViews": 600,
    "bounceRate": 45.5,
    "avgSessionDuration": 120.0,
}


def adapter(result):
    """Mock adapter whose ``analyze`` resolves to *result*."""
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=result)
    return mock


class TestSiteAnalyzer:
    """Tests for SiteAnalyzer."""

    @pytest.fixture
    def adapters(self):
        """Successful mocks for every adapter."""
        lighthouse = MagicMock()
        lighthouse.audit = AsyncMock(return_value=LIGHTHOUSE_REPORT)
        return {
            "page_render": adapter(AdapterResult.success({"success": True, "seo": {"title": "Home"}})),
            "lighthouse": lighthouse,
            "pagespeed": adapter(AdapterResult.success({"dataAvailable": True})),
            "technical_seo": adapter(AdapterResult.success({"score": 80})),
            "similarweb": adapter(AdapterResult.success({"success": True, "source": "similarweb_rapidapi"})),
            "backlinks": adapter(AdapterResult.success({"available": True, "totalBacklinks": 10})),
            "change_detection": adapter(AdapterResult.failure("No API key configured")),
            "content_updates": adapter(AdapterResult.success({"contentActivity": {}})),
        }

    @pytest.fixture
    def analyzer(self, settings, adapters):
        return SiteAnalyzer(settings, **adapters)

    @pytest.mark.asyncio
    async def test_collects_every_signal(self, analyzer):
        """Test every signal is recorded with phase timings."""
        analysis = await analyzer.analyze_single_site("https://www.Example.com/path")

        assert analysis.domain == "example.com"
        assert set(analysis.signals) == set(Signal)
        assert analysis.is_ok(Signal.LIGHTHOUSE)
        assert analysis.payload(Signal.LIGHTHOUSE)["categories"]["performance"]["score"] == 88
        assert not analysis.is_ok(Signal.CONTENT_CHANGES)
        assert analysis.timings.total >= 0

    @pytest.mark.asyncio
    async def test_empty_domain_rejected(self, analyzer):
        """Test an empty domain is refused before any adapter runs."""
        with pytest.raises(ValueError):
            await analyzer.analyze_single_site("   ")

    @pytest.mark.asyncio
    async def test_page_render_timeout_is_isolated(self, settings, adapters):
        """Test a timed-out page render fails alone while other signals succeed."""
        adapters["page_render"].analyze = AsyncMock(side_effect=asyncio.TimeoutError())
        analyzer = SiteAnalyzer(settings, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert not analysis.is_ok(Signal.PAGE_RENDER)
        assert analysis.result(Signal.PAGE_RENDER).reason == "timeout"
        for signal in (Signal.LIGHTHOUSE, Signal.PAGESPEED, Signal.TECHNICAL_SEO, Signal.TRAFFIC,
                       Signal.BACKLINKS, Signal.CONTENT_UPDATES):
            assert analysis.is_ok(signal), signal
        assert analysis.payload(Signal.PAGE_RENDER) == {"success": False, "error": "timeout"}

        comparison = generate_comparison(analysis, analysis)
        assert comparison["seo"]["scores"] == {"your": 0, "competitor": 0}

    @pytest.mark.asyncio
    async def test_phase_two_exception_is_isolated(self, settings, adapters):
        """Test an adapter raising inside the concurrent phase becomes a failure."""
        adapters["backlinks"].analyze = AsyncMock(side_effect=RuntimeError("quota"))
        analyzer = SiteAnalyzer(settings, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert analysis.result(Signal.BACKLINKS).reason == "quota"
        assert analysis.is_ok(Signal.PAGESPEED)

    @pytest.mark.asyncio
    async def test_lighthouse_retried_once(self, settings, adapters):
        """Test a failed Lighthouse run is retried and the second result kept."""
        adapters["lighthouse"].audit = AsyncMock(side_effect=[LighthouseError("chrome crashed"), LIGHTHOUSE_REPORT])
        analyzer = SiteAnalyzer(settings, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert analysis.is_ok(Signal.LIGHTHOUSE)
        assert adapters["lighthouse"].audit.await_count == 2

    @pytest.mark.asyncio
    async def test_lighthouse_gives_up(self, settings, adapters):
        """Test Lighthouse failure after every attempt is recorded, not raised."""
        adapters["lighthouse"].audit = AsyncMock(side_effect=LighthouseError("no report"))
        analyzer = SiteAnalyzer(settings, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert analysis.result(Signal.LIGHTHOUSE).reason == "no report"
        assert adapters["lighthouse"].audit.await_count == settings.lighthouse_attempts
        assert analysis.payload(Signal.LIGHTHOUSE)["dataAvailable"] is False

    @pytest.mark.asyncio
    async def test_user_site_prefers_google_analytics(self, settings, adapters):
        """Test the user's own GA data replaces the SimilarWeb estimate."""
        analytics = MagicMock()
        analytics.get_user_analytics_data = AsyncMock(return_value=GA_DATA)
        analyzer = SiteAnalyzer(settings, analytics=analytics, **adapters)

        analysis = await analyzer.analyze_single_site("example.com", email="me@example.com", is_user_site=True)

        traffic = analysis.payload(Signal.TRAFFIC)
        assert traffic["source"] == "google_analytics"
        assert traffic["metrics"]["monthlyVisits"] == 300
        adapters["similarweb"].analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_competitor_uses_similarweb(self, settings, adapters):
        """Test competitor sites never consult Google Analytics."""
        analytics = MagicMock()
        analytics.get_user_analytics_data = AsyncMock(return_value=GA_DATA)
        analyzer = SiteAnalyzer(settings, analytics=analytics, **adapters)

        analysis = await analyzer.analyze_single_site("rival.com", email="me@example.com", is_user_site=False)

        assert analysis.payload(Signal.TRAFFIC)["source"] == "similarweb_rapidapi"
        analytics.get_user_analytics_data.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_without_sessions(self, settings, adapters):
        """Test an unconnected GA account falls back to SimilarWeb."""
        analytics = MagicMock()
        analytics.get_user_analytics_data = AsyncMock(return_value={"dataAvailable": False, "reason": "nope"})
        analyzer = SiteAnalyzer(settings, analytics=analytics, **adapters)

        analysis = await analyzer.analyze_single_site("example.com", email="me@example.com", is_user_site=True)

        assert analysis.payload(Signal.TRAFFIC)["source"] == "similarweb_rapidapi"
        adapters["similarweb"].analyze.assert_awaited_once_with("example.com")

    @pytest.mark.asyncio
    async def test_slow_content_discovery_times_out(self, settings, adapters):
        """Test content discovery that outlives its call deadline becomes a timeout failure."""
        async def slow_fetch(url, timeout):
            await asyncio.sleep(5)
            return None

        bounded = settings.model_copy(update={"content_call_timeout": 0.05})
        adapters["content_updates"] = ContentUpdatesService(bounded, fetcher=slow_fetch)
        analyzer = SiteAnalyzer(bounded, **adapters)

        started = time.perf_counter()
        analysis = await analyzer.analyze_single_site("example.com")

        assert time.perf_counter() - started < 2
        assert analysis.result(Signal.CONTENT_UPDATES).reason == "timeout"
        assert analysis.payload(Signal.CONTENT_UPDATES) == {"error": "timeout"}
        assert analysis.is_ok(Signal.PAGESPEED)

    @pytest.mark.asyncio
    async def test_slow_page_render_times_out(self, settings, adapters):
        """Test a hanging page render is cut off and Lighthouse still runs."""
        async def hang(domain):
            await asyncio.sleep(5)

        adapters["page_render"].analyze = AsyncMock(side_effect=hang)
        bounded = settings.model_copy(update={"page_render_call_timeout": 0.05})
        analyzer = SiteAnalyzer(bounded, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert analysis.result(Signal.PAGE_RENDER).reason == "timeout"
        assert analysis.is_ok(Signal.LIGHTHOUSE)


class TestBrowserSequencing:
    """Tests for Phase 1 sequencing and Phase 2 concurrency."""

    @pytest.fixture
    def tracker(self):
        """Records overlapping calls and the order they started in."""
        class Tracker:
            def __init__(self):
                self.active = 0
                self.peak = 0
                self.events = []

            def wrap(self, label, result, delay=0.01):
                async def run(domain):
                    self.active += 1
                    self.peak = max(self.peak, self.active)
                    self.events.append((label, domain))
                    await asyncio.sleep(delay)
                    self.active -= 1
                    return result
                return run

        return Tracker()

    @pytest.fixture
    def adapters(self):
        return {
            "page_render": adapter(AdapterResult.success({"success": True})),
            "lighthouse": MagicMock(audit=AsyncMock(return_value=LIGHTHOUSE_REPORT)),
            "pagespeed": adapter(AdapterResult.success({"dataAvailable": True})),
            "technical_seo": adapter(AdapterResult.success({"score": 80})),
            "similarweb": adapter(AdapterResult.success({"success": True})),
            "backlinks": adapter(AdapterResult.success({"available": True})),
            "change_detection": adapter(AdapterResult.success({"success": True})),
            "content_updates": adapter(AdapterResult.success({"contentActivity": {}})),
        }

    @pytest.mark.asyncio
    async def test_browser_work_never_overlaps(self, settings, adapters, tracker):
        """Test page render and Lighthouse stay serialized across concurrent analyses."""
        adapters["page_render"].analyze = AsyncMock(
            side_effect=tracker.wrap("render", AdapterResult.success({"success": True}))
        )
        adapters["lighthouse"].audit = AsyncMock(side_effect=tracker.wrap("lighthouse", LIGHTHOUSE_REPORT))
        analyzer = SiteAnalyzer(settings, **adapters)

        first, second = await asyncio.gather(
            analyzer.analyze_single_site("a.com"),
            analyzer.analyze_single_site("b.com"),
        )

        assert tracker.peak == 1
        assert first.is_ok(Signal.LIGHTHOUSE) and second.is_ok(Signal.LIGHTHOUSE)
        # each site's render and audit run back to back while holding the gate
        pairs = [tracker.events[0:2], tracker.events[2:4]]
        for (render, audit) in pairs:
            assert render[0] == "render" and audit[0] == "lighthouse"
            assert render[1] == audit[1]
        assert {pairs[0][0][1], pairs[1][0][1]} == {"a.com", "b.com"}

    @pytest.mark.asyncio
    async def test_shared_gate_serializes_analyzers(self, settings, adapters, tracker):
        """Test two analyzers sharing one browser gate never render at the same time."""
        adapters["page_render"].analyze = AsyncMock(
            side_effect=tracker.wrap("render", AdapterResult.success({"success": True}))
        )
        adapters["lighthouse"].audit = AsyncMock(side_effect=tracker.wrap("lighthouse", LIGHTHOUSE_REPORT))
        gate = asyncio.Lock()
        one = SiteAnalyzer(settings, browser_gate=gate, **adapters)
        two = SiteAnalyzer(settings, browser_gate=gate, **adapters)

        await asyncio.gather(one.analyze_single_site("a.com"), two.analyze_single_site("b.com"))

        assert tracker.peak == 1
        assert len(tracker.events) == 4

    @pytest.mark.asyncio
    async def test_api_phase_runs_concurrently(self, settings, adapters, tracker):
        """Test the four Phase 2 adapters are all in flight at once."""
        for name in ("pagespeed", "technical_seo", "similarweb", "backlinks"):
            adapters[name].analyze = AsyncMock(
                side_effect=tracker.wrap(name, AdapterResult.success({"ok": True}), delay=0.02)
            )
        analyzer = SiteAnalyzer(settings, **adapters)

        analysis = await analyzer.analyze_single_site("example.com")

        assert tracker.peak == 4
        for signal in (Signal.PAGESPEED, Signal.TECHNICAL_SEO, Signal.TRAFFIC, Signal.BACKLINKS):
            assert analysis.is_ok(signal), signal

    @pytest.mark.asyncio
    async def test_cooldown_between_render_and_lighthouse(self, settings, adapters):
        """Test the cooldown sleep sits between page render and Lighthouse, inside the gate."""
        calls = []
        analyzer = SiteAnalyzer(settings.model_copy(update={"browser_cooldown_seconds": 1.5}), **adapters)

        def record_render(domain):
            calls.append("render")
            return AdapterResult.success({"success": True})

        def record_sleep(seconds):
            calls.append(("sleep", seconds, analyzer.browser_gate.locked()))

        def record_audit(domain):
            calls.append("lighthouse")
            return LIGHTHOUSE_REPORT

        adapters["page_render"].analyze = AsyncMock(side_effect=record_render)
        adapters["lighthouse"].audit = AsyncMock(side_effect=record_audit)

        with patch("rivalbot.core.analyzer.asyncio.sleep", AsyncMock(side_effect=record_sleep)):
            await analyzer.analyze_single_site("example.com")

        assert calls == ["render", ("sleep", 1.5, True), "lighthouse"]


class TestTrafficFromAnalytics:
    """Tests for traffic_from_analytics."""

    def test_builds_metrics(self):
        """Test GA sessions are rolled into the traffic payload."""
        traffic = traffic_from_analytics("example.com", GA_DATA)
        metrics = traffic["metrics"]
        assert metrics["monthlyVisits"] == 300
        assert metrics["avgDailyVisits"] == 150
        assert metrics["pagesPerVisit"] == 2.0
        assert metrics["bounceRate"] == 45.5
        assert metrics["avgVisitDuration"] == 120.0

    def test_no_sessions(self):
        """Test missing sessions yield no payload."""
        assert traffic_from_analytics("example.com", {"dataAvailable": True, "sessions": {}}) is None
