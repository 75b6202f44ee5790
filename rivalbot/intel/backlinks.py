"""
Backlink summaries from the SE Ranking API.
"""

import asyncio
from typing import Optional
from urllib.parse import urlparse

import aiohttp
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult
from rivalbot.utils.helpers import clean_domain, isoformat, utcnow

STATUS_REASONS = {
    401: "Invalid API token",
    429: "API rate limit exceeded. Please try again later.",
}


def link_domain(url: str) -> str:
    host = urlparse(url if "://" in url else f"http://{url}").hostname or url
    return host[4:] if host.startswith("www.") else host


def top_linking_sites(pages: list[dict], limit: int = 10) -> list[dict]:
    """Aggregate linking pages by domain, ranked by referring domains."""
    sites: dict[str, dict] = {}
    for page in pages:
        domain = link_domain(page.get("url") or "")
        if not domain:
            continue
        if domain in sites:
            sites[domain]["refdomains"] += page.get("refdomains") or 0
            sites[domain]["links"] += 1
        else:
            sites[domain] = {"domain": domain, "refdomains": page.get("refdomains") or 0, "links": 1}
    return sorted(sites.values(), key=lambda site: site["refdomains"], reverse=True)[:limit]


def unavailable(reason: str) -> dict:
    return {
        "available": False,
        "reason": reason,
        "totalBacklinks": 0,
        "totalRefDomains": 0,
        "topLinkingSites": [],
        "topLinkingPages": [],
    }


def parse_summary(payload: dict) -> dict:
    summaries = payload.get("summary") or []
    if not summaries:
        return unavailable("No backlinks data available for this domain")
    summary = summaries[0]

    return {
        "available": True,
        "totalBacklinks": summary.get("backlinks") or 0,
        "totalRefDomains": summary.get("refdomains") or 0,
        "metrics": {
            "dofollowBacklinks": summary.get("dofollow_backlinks") or 0,
            "nofollowBacklinks": summary.get("nofollow_backlinks") or 0,
            "eduBacklinks": summary.get("edu_backlinks") or 0,
            "govBacklinks": summary.get("gov_backlinks") or 0,
            "textBacklinks": summary.get("text_backlinks") or 0,
            "fromHomePageBacklinks": summary.get("from_home_page_backlinks") or 0,
            "subnets": summary.get("subnets") or 0,
            "ips": summary.get("ips") or 0,
        },
        "domainMetrics": {
            "inlinkRank": summary.get("inlink_rank") or 0,
            "domainInlinkRank": summary.get("domain_inlink_rank") or 0,
            "dofollowRefDomains": summary.get("dofollow_refdomains") or 0,
            "anchors": summary.get("anchors") or 0,
            "pagesWithBacklinks": summary.get("pages_with_backlinks") or 0,
        },
        "topLinkingSites": top_linking_sites(summary.get("top_pages_by_refdomains") or []),
        "topLinkingPages": [
            {"url": page.get("url"), "backlinks": page.get("backlinks"), "domain": link_domain(page.get("url") or "")}
            for page in (summary.get("top_pages_by_backlinks") or [])[:10]
        ],
        "topAnchors": [
            {"anchor": anchor.get("anchor") or "Unknown", "refdomains": anchor.get("refdomains") or 0}
            for anchor in (summary.get("top_anchors_by_refdomains") or [])[:10]
        ],
        "lastUpdated": isoformat(utcnow()),
        "source": "SE Ranking",
    }


class BacklinksClient:
    """SE Ranking ``/v1/backlinks/summary`` adapter."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def analyze(self, domain: str) -> AdapterResult:
        token = self.settings.se_ranking_api_token
        if not token:
            logger.warning("SE Ranking API token not configured")
            return AdapterResult.failure("No API key configured")

        target = clean_domain(domain)
        url = f"{self.settings.se_ranking_base_url.rstrip('/')}/v1/backlinks/summary"
        params = {"target": target, "mode": "host", "output": "json"}
        logger.info("Fetching backlinks for {}", target)

        try:
            async with aiohttp.ClientSession(
                headers={"Authorization": f"Token {token}"},
                timeout=aiohttp.ClientTimeout(total=self.settings.backlinks_timeout)
            ) as session:
                async with session.get(url, params=params) as response:
                    if response.status == 400:
                        body = await response.text()
                        return AdapterResult.success(unavailable(f"Bad Request: {body[:200] or 'Invalid parameters'}"))
                    if response.status in STATUS_REASONS:
                        return AdapterResult.success(unavailable(STATUS_REASONS[response.status]))
                    response.raise_for_status()
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("SE Ranking backlinks fetch failed for {}: {}", target, exc)
            return AdapterResult.failure(f"API error: {exc}", exc.__class__.__name__)

        return AdapterResult.success(parse_summary(payload))
