"""
Traffic Intelligence
====================

Two traffic views:

- :class:`SimilarWebClient` - monthly competitor traffic estimates from the
  SimilarWeb RapidAPI endpoint (visits, engagement, sources, ranks, trends).
- :class:`TrafficService` - a daily series for the dashboard chart with the
  fallback chain Google Analytics -> SimilarWeb daily visits -> heuristic
  estimate.
"""

import asyncio
import datetime
import random
from typing import Any, Optional

import aiohttp
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult
from rivalbot.intel.analytics import AnalyticsClient
from rivalbot.utils.helpers import as_number, clean_domain, isoformat, utcnow

SIMILARWEB_DAILY_URL = "https://api.similarweb.com/v1/website/{domain}/total-traffic-and-engagement/visits"

TRAFFIC_SOURCE_KEYS = {
    "direct": "Direct",
    "search": "Search",
    "social": "Social",
    "referral": "Referrals",
    "mail": "Mail",
    "paid": "Paid Referrals",
}


def _percent(value: Any) -> str:
    if not value:
        return "0%"
    return f"{float(value) * 100:.1f}%"


def trends_from_monthly(estimated: dict[str, Any]) -> list[dict]:
    """Month-over-month series from SimilarWeb's ``EstimatedMonthlyVisits``."""
    trends = []
    previous = None
    for date_key in sorted(estimated):
        visits = estimated[date_key]
        change = 0.0
        if previous:
            change = round((visits - previous) / previous * 100, 1)
        trends.append({"month": date_key[:7], "visits": visits, "change": change})
        previous = visits
    return trends


def transform_traffic_data(payload: dict, domain: str) -> dict:
    """Normalize a SimilarWeb RapidAPI response.

    ``bounceRate`` is a percentage number (0-100) so it can be compared
    directly; traffic-source shares stay as display strings.
    """
    estimated = payload.get("EstimatedMonthlyVisits") or {}
    engagements = payload.get("Engagments") or {}
    sources = payload.get("TrafficSources") or {}

    monthly_visits = 0
    if estimated:
        monthly_visits = estimated[sorted(estimated)[-1]]
    if not monthly_visits:
        monthly_visits = int(as_number(engagements.get("Visits")))

    def rank(key: str) -> Optional[int]:
        return (payload.get(key) or {}).get("Rank")

    return {
        "success": True,
        "domain": domain,
        "source": "similarweb_rapidapi",
        "timestamp": isoformat(utcnow()),
        "metrics": {
            "monthlyVisits": monthly_visits,
            "avgVisitDuration": as_number(engagements.get("TimeOnSite")),
            "pagesPerVisit": as_number(engagements.get("PagePerVisit")),
            "bounceRate": round(as_number(engagements.get("BounceRate")) * 100, 1),
            "trafficSources": {key: _percent(sources.get(name)) for key, name in TRAFFIC_SOURCE_KEYS.items()},
            "topCountries": [
                {"code": c.get("CountryCode"), "name": c.get("CountryCode"), "share": _percent(c.get("Value"))}
                for c in (payload.get("TopCountryShares") or [])[:5]
            ],
            "globalRank": rank("GlobalRank"),
            "countryRank": rank("CountryRank"),
            "categoryRank": rank("CategoryRank"),
        },
        "trends": trends_from_monthly(estimated),
    }


class SimilarWebClient:
    """Competitor traffic estimates via the SimilarWeb RapidAPI wrapper."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def analyze(self, domain: str) -> AdapterResult:
        if not self.settings.rapidapi_key:
            logger.warning("RapidAPI key not configured, skipping SimilarWeb")
            return AdapterResult.failure("No API key configured")

        cleaned = clean_domain(domain)
        logger.info("Fetching SimilarWeb traffic for {}", cleaned)
        try:
            payload = await self._fetch(cleaned)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("SimilarWeb request failed for {}: {}", cleaned, exc)
            return AdapterResult.failure(str(exc) or "SimilarWeb request failed", exc.__class__.__name__)
        return AdapterResult.success(transform_traffic_data(payload, cleaned))

    async def _fetch(self, domain: str) -> dict:
        host = self.settings.similarweb_host
        headers = {"x-rapidapi-key": self.settings.rapidapi_key, "x-rapidapi-host": host}
        timeout = aiohttp.ClientTimeout(total=self.settings.traffic_timeout)
        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            async with session.get(f"https://{host}/traffic", params={"domain": domain}) as response:
                response.raise_for_status()
                return await response.json()


def calculate_summary(data: list[dict]) -> dict:
    """Totals and first-half vs second-half trend for a daily series."""
    if not data:
        return {"totalVisitors": 0, "avgDailyVisitors": 0, "trend": "stable", "changePercent": 0}

    total = sum(day["visitors"] for day in data)
    midpoint = len(data) // 2
    change = 0.0
    if midpoint:
        first = sum(day["visitors"] for day in data[:midpoint]) / midpoint
        second = sum(day["visitors"] for day in data[midpoint:]) / (len(data) - midpoint)
        if first:
            change = (second - first) / first * 100

    trend = "stable"
    if change > 5:
        trend = "up"
    elif change < -5:
        trend = "down"

    return {
        "totalVisitors": total,
        "avgDailyVisitors": total // len(data),
        "trend": trend,
        "changePercent": round(change, 1),
    }


class TrafficService:
    """Daily traffic series with a three-level fallback chain."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        analytics: Optional[AnalyticsClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self.analytics = analytics
        self.rng = rng or random.Random()

    async def get_traffic_data(self, email: Optional[str], domain: str, days: int = 14) -> dict:
        domain = clean_domain(domain)

        if email and self.analytics is not None:
            series = await self.google_analytics_series(email, days)
            if series:
                return {"source": "google_analytics", "data": series, "summary": calculate_summary(series)}

        series = await self.similarweb_series(domain, days)
        if series:
            return {"source": "similarweb_estimate", "data": series, "summary": calculate_summary(series)}

        series = await self.estimated_series(domain, days)
        return {"source": "estimated", "data": series, "summary": calculate_summary(series)}

    async def google_analytics_series(self, email: str, days: int) -> list[dict]:
        data = await self.analytics.get_user_analytics_data(email)
        sessions = data.get("sessions") or {}
        if not data.get("dataAvailable") or not sessions:
            return []

        total_sessions = sum(sessions.values()) or 1
        pages_per_session = (data.get("pageViews") or 0) / total_sessions
        today = utcnow().date()
        series = []
        for offset in range(days - 1, -1, -1):
            date = (today - datetime.timedelta(days=offset)).isoformat()
            count = sessions.get(date, 0)
            series.append({
                "date": date,
                "day": days - offset,
                "visitors": count,
                "sessions": count,
                "pageViews": round(count * pages_per_session),
            })
        return series

    async def similarweb_series(self, domain: str, days: int) -> list[dict]:
        api_key = self.settings.similarweb_api_key
        if not api_key:
            return []

        today = utcnow().date()
        params = {
            "api_key": api_key,
            "start_date": (today - datetime.timedelta(days=30)).isoformat(),
            "end_date": today.isoformat(),
            "country": "world",
            "granularity": "daily",
            "main_domain_only": "false",
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.traffic_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(SIMILARWEB_DAILY_URL.format(domain=domain), params=params) as response:
                    response.raise_for_status()
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("SimilarWeb daily visits failed for {}: {}", domain, exc)
            return []

        visits = payload.get("visits") or []
        return [
            {
                "date": entry.get("date"),
                "day": index + 1,
                "visitors": int(entry.get("visits") or 0),
                "sessions": int((entry.get("visits") or 0) * 1.2),
                "pageViews": int((entry.get("visits") or 0) * 2.5),
            }
            for index, entry in enumerate(visits[-days:])
        ]

    async def estimated_series(self, domain: str, days: int) -> list[dict]:
        """Synthetic series scaled by whether the homepage answers 200; weekends dip to 70%."""
        base = await self._estimate_base(domain)
        today = utcnow().date()
        series = []
        for index in range(days):
            date = today - datetime.timedelta(days=days - 1 - index)
            weekend_factor = 0.7 if date.weekday() >= 5 else 1.0
            visitors = int(base * weekend_factor * self.rng.uniform(0.85, 1.15))
            series.append({
                "date": date.isoformat(),
                "day": index + 1,
                "visitors": visitors,
                "sessions": int(visitors * 1.2),
                "pageViews": int(visitors * 2.5),
            })
        return series

    async def _estimate_base(self, domain: str) -> int:
        timeout = aiohttp.ClientTimeout(total=self.settings.robots_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(f"https://{domain}") as response:
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return 200 + self.rng.randint(0, 300)
        if status == 200:
            return 1000 + self.rng.randint(0, 2000)
        return 100 + self.rng.randint(0, 400)
