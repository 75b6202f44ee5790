"""
ChangeDetection.io client.

Keeps one watch per monitored URL on a ChangeDetection.io instance and
summarizes how often the page changes.
"""

import datetime
from typing import Any, Optional

import aiohttp
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult, capture
from rivalbot.utils.helpers import clean_url, ensure_https, isoformat, utcnow

DEFAULT_TRIGGER_TEXT = ["price", "pricing", "new", "feature", "launch", "update", "release"]


class ChangeDetectionError(RuntimeError):
    """Raised when the ChangeDetection.io API rejects a request."""


def change_frequency(changes: Optional[int], checks: Optional[int]) -> str:
    if not checks:
        return "unknown"
    ratio = (changes or 0) / checks
    if ratio >= 0.5:
        return "very high"
    if ratio >= 0.2:
        return "high"
    if ratio >= 0.05:
        return "moderate"
    if ratio > 0:
        return "low"
    return "no changes detected"


def activity_level(days_since_change: Optional[int], total_changes: Optional[int]) -> str:
    if days_since_change is None or not total_changes:
        return "inactive"
    if days_since_change <= 1:
        return "very active"
    if days_since_change <= 7:
        return "active"
    if days_since_change <= 30:
        return "moderate"
    return "low"


def _epoch_to_iso(value: Any) -> Optional[str]:
    if not value:
        return None
    return isoformat(datetime.datetime.fromtimestamp(float(value), tz=datetime.timezone.utc))


def summarize_activity(watch: dict, now: Optional[datetime.datetime] = None) -> dict:
    """Activity block for one watch; timestamps on the watch are epoch seconds."""
    now_ts = (now or utcnow()).timestamp()
    last_checked = watch.get("last_checked") or 0
    last_changed = watch.get("last_changed") or 0
    days_since_check = int((now_ts - last_checked) // 86400)
    days_since_change = int((now_ts - last_changed) // 86400) if last_changed > 0 else None

    return {
        "isActive": days_since_change is not None and days_since_change <= 30,
        "daysSinceLastCheck": days_since_check,
        "daysSinceLastChange": days_since_change,
        "totalChecks": watch.get("check_count") or 0,
        "totalChanges": watch.get("history_n") or 0,
        "changeFrequency": change_frequency(watch.get("history_n"), watch.get("check_count")),
        "activityLevel": activity_level(days_since_change, watch.get("history_n")),
    }


class ChangeDetectionClient:
    """Thin async wrapper over the ChangeDetection.io v1 API."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.changedetection_url.rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.settings.changedetection_api_key)

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        headers = {
            "x-api-key": self.settings.changedetection_api_key or "",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.changedetection_timeout)
        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            async with session.request(method, f"{self.base_url}{path}", json=payload) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ChangeDetectionError(f"{method} {path} returned {response.status}: {body[:200]}")
                if response.content_type == "application/json":
                    return await response.json()
                return await response.text()

    async def add_watch(
        self,
        url: str,
        tag: str = "competitor",
        title: Optional[str] = None,
        trigger_text: Optional[list[str]] = None,
        fetch_backend: str = "html_requests",
        check_interval: Optional[dict] = None,
    ) -> str:
        """Create a watch and return its UUID."""
        payload = {
            "url": url,
            "tag": tag,
            "fetch_backend": fetch_backend,
            "trigger_text": trigger_text or DEFAULT_TRIGGER_TEXT,
        }
        if title:
            payload["title"] = title
        if check_interval:
            payload["time_between_check"] = check_interval

        data = await self._request("POST", "/api/v1/watch", payload)
        logger.info("Added watch for {}", url)
        return data["uuid"]

    async def list_all_watches(self) -> dict[str, dict]:
        return await self._request("GET", "/api/v1/watch") or {}

    async def get_watch_details(self, uuid: str) -> dict:
        return await self._request("GET", f"/api/v1/watch/{uuid}")

    async def get_watch_history(self, uuid: str) -> Any:
        return await self._request("GET", f"/api/v1/watch/{uuid}/history") or []

    async def update_watch(self, uuid: str, updates: dict) -> None:
        await self._request("PUT", f"/api/v1/watch/{uuid}", updates)

    async def delete_watch(self, uuid: str) -> None:
        await self._request("DELETE", f"/api/v1/watch/{uuid}")
        logger.info("Deleted watch {}", uuid)

    async def find_watch_by_url(self, url: str) -> Optional[dict]:
        """Existing watch whose normalized URL matches *url*, with its ``uuid``."""
        target = clean_url(url)
        watches = await self.list_all_watches()
        for uuid, watch in watches.items():
            if clean_url(watch.get("url", "")) == target:
                return {"uuid": uuid, **watch}
        return None

    async def get_or_create_watch(self, url: str, **options) -> dict:
        existing = await self.find_watch_by_url(url)
        if existing:
            return {"uuid": existing["uuid"], "url": existing.get("url", url), "existing": True, "watch": existing}
        uuid = await self.add_watch(url, **options)
        return {"uuid": uuid, "url": url, "existing": False}

    async def analyze_content_changes(self, domain: str, now: Optional[datetime.datetime] = None) -> dict:
        url = ensure_https(domain)
        watch_ref = await self.get_or_create_watch(url, title=f"Monitor: {domain}", tag="competitor-analysis")
        watch = await self.get_watch_details(watch_ref["uuid"])

        try:
            history = await self.get_watch_history(watch_ref["uuid"])
        except (ChangeDetectionError, aiohttp.ClientError) as exc:
            logger.debug("No history for {}: {}", url, exc)
            history = []

        return {
            "success": True,
            "domain": domain,
            "uuid": watch_ref["uuid"],
            "url": watch.get("url", url),
            "monitoring": {
                "lastChecked": _epoch_to_iso(watch.get("last_checked")),
                "lastChanged": _epoch_to_iso(watch.get("last_changed")),
                "checkCount": watch.get("check_count") or 0,
                "changeCount": watch.get("history_n") or 0,
                "status": watch.get("last_check_status"),
                "paused": bool(watch.get("paused")),
            },
            "triggers": watch.get("trigger_text") or [],
            "history": history,
            "activity": summarize_activity(watch, now),
            "comparison": "active" if (watch.get("last_changed") or 0) > 0 else "dormant",
        }

    async def analyze(self, domain: str) -> AdapterResult:
        if not self.configured:
            return AdapterResult.failure("No API key configured")
        logger.info("Checking content changes for {}", domain)
        return await capture("ChangeDetection", lambda: self.analyze_content_changes(domain))
