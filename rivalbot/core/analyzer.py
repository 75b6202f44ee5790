"""
Single-Site Analyzer
====================

Runs every source adapter for one domain in three phases:

1. Browser-bound work, sequential and behind the shared browser gate:
   page render, cooldown, then Lighthouse (retried).
2. Independent API work, concurrent: PageSpeed, technical SEO, traffic,
   backlinks.
3. Content monitoring, concurrent: ChangeDetection.io and RSS/sitemap
   activity.

A failing adapter never aborts the analysis; its signal is recorded as a
failed :class:`AdapterResult` and the remaining phases continue.  Every
adapter other than Lighthouse runs under one overall deadline per call
(``*_call_timeout`` settings) and resolves to a ``"timeout"`` failure when
it is exceeded.
"""

import asyncio
import time
from typing import Optional

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import (
    AdapterResult,
    PhaseTimings,
    Signal,
    SiteAnalysis,
    capture,
    from_outcome,
)
from rivalbot.intel.analytics import AnalyticsClient
from rivalbot.intel.backlinks import BacklinksClient
from rivalbot.intel.traffic import SimilarWebClient
from rivalbot.utils.helpers import clean_domain, isoformat, utcnow
from rivalbot.web.change_detection import ChangeDetectionClient
from rivalbot.web.content_updates import ContentUpdatesService
from rivalbot.web.lighthouse import LighthouseAuditor, LighthouseError
from rivalbot.web.page_render import PageRenderAnalyzer
from rivalbot.web.pagespeed import PageSpeedClient
from rivalbot.web.technical_seo import TechnicalSEOChecker


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


def traffic_from_analytics(domain: str, analytics: dict) -> Optional[dict]:
    """Traffic payload built from the user's own GA4 data, or None without sessions."""
    sessions = analytics.get("sessions") or {}
    if not analytics.get("dataAvailable") or not sessions:
        return None

    total = sum(sessions.values())
    duration = analytics.get("avgSessionDuration") or 0
    pages_per_visit = round((analytics.get("pageViews") or 0) / total, 2) if total else 0
    return {
        "success": True,
        "domain": domain,
        "source": "google_analytics",
        "timestamp": isoformat(utcnow()),
        "metrics": {
            "monthlyVisits": total,
            "avgDailyVisits": round(total / len(sessions)),
            "bounceRate": analytics.get("bounceRate") or 0,
            "avgSessionDuration": duration,
            "avgVisitDuration": duration,
            "pagesPerVisit": pages_per_visit,
        },
    }


class SiteAnalyzer:
    """
    Collects every signal for a single site.

    Adapters are injectable so callers (and tests) can substitute any of
    them; defaults are built from ``settings``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        page_render: Optional[PageRenderAnalyzer] = None,
        lighthouse: Optional[LighthouseAuditor] = None,
        pagespeed: Optional[PageSpeedClient] = None,
        technical_seo: Optional[TechnicalSEOChecker] = None,
        similarweb: Optional[SimilarWebClient] = None,
        analytics: Optional[AnalyticsClient] = None,
        backlinks: Optional[BacklinksClient] = None,
        change_detection: Optional[ChangeDetectionClient] = None,
        content_updates: Optional[ContentUpdatesService] = None,
        browser_gate: Optional[asyncio.Lock] = None,
    ):
        self.settings = settings or get_settings()
        self.page_render = page_render or PageRenderAnalyzer(self.settings)
        self.lighthouse = lighthouse or LighthouseAuditor(self.settings)
        self.pagespeed = pagespeed or PageSpeedClient(self.settings)
        self.technical_seo = technical_seo or TechnicalSEOChecker(self.settings)
        self.similarweb = similarweb or SimilarWebClient(self.settings)
        self.analytics = analytics
        self.backlinks = backlinks or BacklinksClient(self.settings)
        self.change_detection = change_detection or ChangeDetectionClient(self.settings)
        self.content_updates = content_updates or ContentUpdatesService(self.settings)
        self.browser_gate = browser_gate or asyncio.Lock()

    async def analyze_single_site(
        self, domain: str, email: Optional[str] = None, is_user_site: bool = False
    ) -> SiteAnalysis:
        cleaned = clean_domain(domain)
        if not cleaned:
            raise ValueError("domain is required")

        logger.info("Analyzing {} ({})", cleaned, "user site" if is_user_site else "competitor")
        analysis = SiteAnalysis(domain=cleaned)
        started = time.perf_counter()

        phase_start = time.perf_counter()
        async with self.browser_gate:
            analysis.signals[Signal.PAGE_RENDER] = await capture(
                "Page render",
                lambda: self.page_render.analyze(cleaned),
                timeout=self.settings.page_render_call_timeout,
            )
            await asyncio.sleep(self.settings.browser_cooldown_seconds)
            analysis.signals[Signal.LIGHTHOUSE] = await capture(
                "Lighthouse", lambda: self._audit_with_retry(cleaned)
            )
        phase1 = _elapsed_ms(phase_start)
        logger.info("Phase 1 complete for {} ({} ms)", cleaned, phase1)

        settings = self.settings
        phase_start = time.perf_counter()
        outcomes = await asyncio.gather(
            capture("PageSpeed", lambda: self.pagespeed.analyze(cleaned),
                    timeout=settings.pagespeed_call_timeout),
            capture("Technical SEO", lambda: self.technical_seo.analyze(cleaned),
                    timeout=settings.technical_seo_call_timeout),
            capture("Traffic", lambda: self._traffic(cleaned, email, is_user_site),
                    timeout=settings.traffic_call_timeout),
            capture("Backlinks", lambda: self.backlinks.analyze(cleaned),
                    timeout=settings.backlinks_call_timeout),
            return_exceptions=True,
        )
        phase2_signals = (Signal.PAGESPEED, Signal.TECHNICAL_SEO, Signal.TRAFFIC, Signal.BACKLINKS)
        for signal, outcome in zip(phase2_signals, outcomes):
            analysis.signals[signal] = from_outcome(signal.value, outcome)
        phase2 = _elapsed_ms(phase_start)
        logger.info("Phase 2 complete for {} ({} ms)", cleaned, phase2)

        phase_start = time.perf_counter()
        changes, updates = await asyncio.gather(
            capture("ChangeDetection", lambda: self.change_detection.analyze(cleaned),
                    timeout=settings.changedetection_call_timeout),
            capture("Content updates", lambda: self.content_updates.analyze(cleaned),
                    timeout=settings.content_call_timeout),
            return_exceptions=True,
        )
        analysis.signals[Signal.CONTENT_CHANGES] = from_outcome(Signal.CONTENT_CHANGES.value, changes)
        analysis.signals[Signal.CONTENT_UPDATES] = from_outcome(Signal.CONTENT_UPDATES.value, updates)
        phase3 = _elapsed_ms(phase_start)
        logger.info("Phase 3 complete for {} ({} ms)", cleaned, phase3)

        analysis.timings = PhaseTimings(phase1=phase1, phase2=phase2, phase3=phase3, total=_elapsed_ms(started))
        failed = [signal.value for signal, result in analysis.signals.items() if not result.ok]
        if failed:
            logger.warning("{} finished with unavailable signals: {}", cleaned, ", ".join(failed))
        logger.info("Analysis of {} finished in {} ms", cleaned, analysis.timings.total)
        return analysis

    async def _audit_with_retry(self, domain: str) -> dict:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.lighthouse_attempts),
            wait=wait_fixed(self.settings.lighthouse_backoff_seconds),
            retry=retry_if_exception_type((LighthouseError, asyncio.TimeoutError, OSError)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("Retrying Lighthouse for {} (attempt {})", domain, attempt.retry_state.attempt_number)
                return await self.lighthouse.audit(domain)

    async def _traffic(self, domain: str, email: Optional[str], is_user_site: bool) -> AdapterResult:
        if is_user_site and email and self.analytics is not None:
            try:
                data = await self.analytics.get_user_analytics_data(email)
            except Exception as exc:
                logger.warning("Google Analytics lookup failed for {}: {}", email, exc)
            else:
                traffic = traffic_from_analytics(domain, data)
                if traffic is not None:
                    logger.info("Using Google Analytics traffic for {}", domain)
                    return AdapterResult.success(traffic)
                logger.info("No Google Analytics sessions for {}, falling back to SimilarWeb", domain)
        return await self.similarweb.analyze(domain)
