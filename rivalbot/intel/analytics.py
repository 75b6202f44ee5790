"""
Google Analytics 4 client for the user's own site.

Reads OAuth tokens from the injected :class:`TokenService`, picks the first
GA4 property the account can see and runs a 30-day daily report.
"""

import asyncio
from typing import Optional

import aiohttp
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.integrations.tokens import TokenService

ACCOUNT_SUMMARIES_URL = "https://analyticsadmin.googleapis.com/v1beta/accountSummaries"
RUN_REPORT_URL = "https://analyticsdata.googleapis.com/v1beta/properties/{property_id}:runReport"

REPORT_METRICS = ["activeUsers", "sessions", "bounceRate", "averageSessionDuration", "screenPageViews"]


class AnalyticsAuthError(RuntimeError):
    """The stored Google token was rejected."""


def process_report(report: dict) -> dict:
    """Collapse a runReport response keyed by ``date`` into per-day sessions and averages."""
    headers = [h.get("name") for h in report.get("metricHeaders") or []]
    sessions: dict[str, int] = {}
    totals = {name: 0.0 for name in REPORT_METRICS}
    rows = report.get("rows") or []

    for row in rows:
        raw_date = (row.get("dimensionValues") or [{}])[0].get("value", "")
        date = f"{raw_date[:4]}-{raw_date[4:6]}-{raw_date[6:8]}" if len(raw_date) == 8 else raw_date
        for name, metric in zip(headers, row.get("metricValues") or []):
            try:
                value = float(metric.get("value") or 0)
            except ValueError:
                value = 0.0
            totals[name] = totals.get(name, 0.0) + value
            if name == "sessions":
                sessions[date] = int(value)

    count = len(rows) or 1
    return {
        "sessions": dict(sorted(sessions.items())),
        "activeUsers": int(totals["activeUsers"]),
        "pageViews": int(totals["screenPageViews"]),
        "bounceRate": round(totals["bounceRate"] / count * 100, 1),
        "avgSessionDuration": round(totals["averageSessionDuration"] / count, 1),
    }


class AnalyticsClient:
    """GA4 Data API access on behalf of a connected user."""

    def __init__(self, token_service: TokenService, settings: Optional[Settings] = None):
        self.token_service = token_service
        self.settings = settings or get_settings()

    async def get_user_analytics_data(self, email: str, property_id: Optional[str] = None) -> dict:
        tokens = await self.token_service.get_tokens(email, "google")
        if not tokens or not tokens.get("access_token"):
            return {"dataAvailable": False, "connected": False, "reason": "Google account not connected"}

        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        timeout = aiohttp.ClientTimeout(total=self.settings.traffic_timeout)
        try:
            async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
                property_id = property_id or await self._first_property(session)
                if not property_id:
                    return {"dataAvailable": False, "connected": True, "reason": "No GA4 properties found"}
                report = await self._run_report(session, property_id)
        except AnalyticsAuthError:
            logger.warning("Google token rejected for {}", email)
            return {
                "dataAvailable": False,
                "connected": False,
                "needsReconnect": True,
                "reason": "Authentication token expired. Please reconnect.",
            }
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("GA4 request failed for {}: {}", email, exc)
            return {"dataAvailable": False, "connected": True, "reason": "API error", "error": str(exc)}

        return {"propertyId": property_id, "dataAvailable": True, "connected": True, **process_report(report)}

    async def _get_json(self, response: aiohttp.ClientResponse) -> dict:
        if response.status == 401:
            raise AnalyticsAuthError("unauthorized")
        response.raise_for_status()
        return await response.json()

    async def _first_property(self, session: aiohttp.ClientSession) -> Optional[str]:
        async with session.get(ACCOUNT_SUMMARIES_URL) as response:
            data = await self._get_json(response)
        for account in data.get("accountSummaries") or []:
            for prop in account.get("propertySummaries") or []:
                name = prop.get("property", "")
                if name:
                    return name.split("/")[-1]
        return None

    async def _run_report(self, session: aiohttp.ClientSession, property_id: str) -> dict:
        body = {
            "dateRanges": [{"startDate": "30daysAgo", "endDate": "today"}],
            "metrics": [{"name": name} for name in REPORT_METRICS],
            "dimensions": [{"name": "date"}],
        }
        async with session.post(RUN_REPORT_URL.format(property_id=property_id), json=body) as response:
            return await self._get_json(response)
