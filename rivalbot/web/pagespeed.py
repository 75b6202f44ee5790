"""
PageSpeed Insights client.

Queries the PageSpeed Insights v5 API for the mobile and desktop strategies
in parallel and extracts the performance score, field data and lab data.
"""

import asyncio
from typing import Any, Optional

import aiohttp
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult
from rivalbot.utils.helpers import clean_domain, ensure_https

PAGESPEED_API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

STRATEGIES = ("mobile", "desktop")


def speed_category(score: Optional[int]) -> str:
    if score is None:
        return "UNKNOWN"
    if score >= 90:
        return "FAST"
    if score >= 50:
        return "AVERAGE"
    return "SLOW"


def _percentile(metric: Optional[dict]) -> Optional[float]:
    if not metric or not metric.get("percentile"):
        return None
    return metric["percentile"]


def extract_metrics(data: dict[str, Any], strategy: str) -> dict[str, Any]:
    """Parse one PageSpeed Insights API response."""
    lighthouse = data.get("lighthouseResult") or {}
    audits = lighthouse.get("audits") or {}
    performance = (lighthouse.get("categories") or {}).get("performance")
    score = None
    if performance and performance.get("score") is not None:
        score = round(performance["score"] * 100)

    field_data = None
    loading = data.get("loadingExperience")
    if loading:
        metrics = loading.get("metrics") or {}
        field_data = {
            "lcp": _percentile(metrics.get("LARGEST_CONTENTFUL_PAINT_MS")),
            "fid": _percentile(metrics.get("FIRST_INPUT_DELAY_MS")),
            "cls": _percentile(metrics.get("CUMULATIVE_LAYOUT_SHIFT_SCORE")),
            "overall_category": loading.get("overall_category") or "UNKNOWN",
        }

    def lab(audit_id: str) -> Optional[float]:
        return (audits.get(audit_id) or {}).get("numericValue")

    return {
        "strategy": strategy,
        "performanceScore": score,
        "category": speed_category(score),
        "fieldData": field_data,
        "labData": {
            "lcp": lab("largest-contentful-paint"),
            "fid": lab("max-potential-fid"),
            "cls": lab("cumulative-layout-shift"),
            "fcp": lab("first-contentful-paint"),
            "tti": lab("interactive"),
            "tbt": lab("total-blocking-time"),
            "speedIndex": lab("speed-index"),
        },
    }


def _empty_strategy(strategy: str) -> dict:
    return {
        "strategy": strategy,
        "performanceScore": None,
        "category": "UNKNOWN",
        "fieldData": None,
        "labData": {},
    }


class PageSpeedClient:
    """Google PageSpeed Insights adapter."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def analyze(self, domain: str) -> AdapterResult:
        api_key = self.settings.pagespeed_api_key
        if not api_key:
            logger.warning("Google API key not configured, skipping PageSpeed")
            return AdapterResult.failure("No API key configured")

        url = ensure_https(clean_domain(domain))
        logger.info("Fetching PageSpeed data for {}", url)

        async with aiohttp.ClientSession(
            headers={"User-Agent": self.settings.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.settings.pagespeed_timeout)
        ) as session:
            responses = await asyncio.gather(
                *(self._fetch(session, url, strategy, api_key) for strategy in STRATEGIES),
                return_exceptions=True,
            )

        results = {}
        for strategy, response in zip(STRATEGIES, responses):
            if isinstance(response, BaseException):
                logger.warning("{} PageSpeed failed for {}: {}", strategy, url, response)
                results[strategy] = _empty_strategy(strategy)
            else:
                results[strategy] = extract_metrics(response, strategy)

        if all(isinstance(r, BaseException) for r in responses):
            return AdapterResult.failure("PageSpeed API request failed", str(responses[0]))

        return AdapterResult.success({
            "dataAvailable": True,
            "url": url,
            "desktop": results["desktop"],
            "mobile": results["mobile"],
        })

    async def _fetch(
        self, session: aiohttp.ClientSession, url: str, strategy: str, api_key: str
    ) -> dict[str, Any]:
        params = {"url": url, "key": api_key, "strategy": strategy, "category": "performance"}
        async with session.get(PAGESPEED_API_URL, params=params) as response:
            response.raise_for_status()
            return await response.json()
