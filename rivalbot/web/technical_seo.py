"""
Technical SEO Checker
=====================

Five independent technical checks (robots.txt, sitemap, SSL, meta tags,
structured data), run concurrently and rolled up into a weighted score.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult
from rivalbot.utils.helpers import clean_domain, ensure_https, isoformat, utcnow

CHECK_WEIGHTS = {
    "robotsTxt": 20,
    "sitemap": 25,
    "ssl": 25,
    "metaTags": 20,
    "structuredData": 10,
}

SITEMAP_CANDIDATES = ["/sitemap.xml", "/sitemap_index.xml", "/sitemap1.xml"]


@dataclass
class FetchedPage:
    """Minimal view of an HTTP response."""
    status: int
    text: str
    content_type: str = ""


def score_robots_txt(page: FetchedPage) -> dict:
    if page.status == 404:
        return {"exists": False, "score": 0, "issue": "No robots.txt found (404)"}
    content = page.text
    has_user_agent = "User-agent" in content
    return {
        "exists": True,
        "content": content[:500],
        "hasUserAgent": has_user_agent,
        "hasSitemap": "sitemap" in content.lower(),
        "score": 100 if has_user_agent else 50,
    }


def score_meta_tags(page: FetchedPage) -> dict:
    """Score title (40), description (40) and viewport (20)."""
    if page.status != 200:
        return {"exists": False, "score": 0, "issue": f"Page returned status {page.status}"}

    soup = BeautifulSoup(page.text, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    description_tag = soup.find("meta", attrs={"name": "description"})
    description = (description_tag.get("content") or "").strip() if description_tag else ""
    has_viewport = soup.find("meta", attrs={"name": "viewport"}) is not None

    title_optimal = 30 <= len(title) <= 60
    description_optimal = 120 <= len(description) <= 160

    score = 0
    if title:
        score += 40 if title_optimal else 20
    if description:
        score += 40 if description_optimal else 20
    if has_viewport:
        score += 20

    return {
        "title": {"exists": bool(title), "content": title, "length": len(title), "optimal": title_optimal},
        "metaDescription": {
            "exists": bool(description),
            "content": description,
            "length": len(description),
            "optimal": description_optimal,
        },
        "viewport": has_viewport,
        "score": score,
    }


def score_structured_data(page: FetchedPage) -> dict:
    """JSON-LD is worth 60, microdata 40."""
    if page.status != 200:
        return {
            "hasJsonLd": False,
            "hasMicrodata": False,
            "score": 0,
            "issue": f"Page returned status {page.status}",
        }
    soup = BeautifulSoup(page.text, "html.parser")
    json_ld = soup.find_all("script", attrs={"type": "application/ld+json"})
    microdata = soup.find_all(attrs={"itemtype": True})

    score = 0
    if json_ld:
        score += 60
    if microdata:
        score += 40
    return {
        "hasJsonLd": bool(json_ld),
        "hasMicrodata": bool(microdata),
        "jsonLdCount": len(json_ld),
        "microdataCount": len(microdata),
        "score": min(score, 100),
    }


def calculate_technical_score(checks: dict[str, Optional[dict]]) -> int:
    """Weighted average over the checks that completed."""
    total_score = 0.0
    total_weight = 0
    for name, weight in CHECK_WEIGHTS.items():
        check = checks.get(name)
        if check is None:
            continue
        total_score += (check.get("score") or 0) * weight
        total_weight += weight
    return round(total_score / total_weight) if total_weight else 0


class TechnicalSEOChecker:
    """
    Technical SEO checks for a single domain.

    Checks:
    - robots.txt presence and User-agent directives
    - Sitemap at common locations
    - HTTPS reachability
    - Title, meta description and viewport tags
    - JSON-LD and microdata structured data
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.headers = {"User-Agent": self.settings.user_agent}

    async def analyze(self, domain: str) -> AdapterResult:
        url = ensure_https(clean_domain(domain))
        logger.info("Running technical SEO checks for {}", url)

        try:
            async with aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.settings.technical_seo_timeout)
            ) as session:
                outcomes = await asyncio.gather(
                    self.check_robots_txt(session, url),
                    self.check_sitemap(session, url),
                    self.check_ssl(session, url),
                    self.check_meta_tags(session, url),
                    self.check_structured_data(session, url),
                    return_exceptions=True,
                )
        except Exception as exc:
            logger.warning("Technical SEO analysis failed for {}: {}", url, exc)
            return AdapterResult.failure(str(exc) or "Technical SEO failed", exc.__class__.__name__)

        checks: dict[str, Optional[dict]] = {}
        for name, outcome in zip(CHECK_WEIGHTS, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug("{} check failed for {}: {}", name, url, outcome)
                checks[name] = None
            else:
                checks[name] = outcome

        overall = calculate_technical_score(checks)
        successful = sum(1 for check in checks.values() if check is not None)
        logger.info("Technical SEO for {}: {}/100 ({}/{} checks)", url, overall, successful, len(checks))

        return AdapterResult.success({
            **checks,
            "overallScore": overall,
            "score": overall,
            "checkCount": len(checks),
            "successfulChecks": successful,
            "dataAvailable": True,
            "timestamp": isoformat(utcnow()),
        })

    async def _get(self, session: aiohttp.ClientSession, url: str) -> FetchedPage:
        async with session.get(url, allow_redirects=True) as response:
            text = await response.text(errors="replace")
            return FetchedPage(response.status, text, response.headers.get("Content-Type", ""))

    async def check_robots_txt(self, session: aiohttp.ClientSession, url: str) -> dict:
        try:
            page = await self._get(session, f"{url}/robots.txt")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return {"exists": False, "score": 0, "issue": f"Unable to check robots.txt: {exc}"}
        return score_robots_txt(page)

    async def check_sitemap(self, session: aiohttp.ClientSession, url: str) -> dict:
        for path in SITEMAP_CANDIDATES:
            try:
                page = await self._get(session, f"{url}{path}")
            except (aiohttp.ClientError, asyncio.TimeoutError):
                continue
            if page.status == 200:
                return {"exists": True, "url": f"{url}{path}", "isXML": "xml" in page.content_type, "score": 100}
        return {"exists": False, "score": 0, "issue": "No sitemap found at common locations"}

    async def check_ssl(self, session: aiohttp.ClientSession, url: str) -> dict:
        if not url.startswith("https://"):
            return {"hasSSL": False, "score": 0, "issue": "Site not using HTTPS"}
        try:
            async with session.get(url, allow_redirects=True):
                pass
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return {"hasSSL": False, "score": 0, "issue": f"SSL/Connection issue: {exc}"}
        return {"hasSSL": True, "score": 100, "status": "SSL certificate valid"}

    async def check_meta_tags(self, session: aiohttp.ClientSession, url: str) -> dict:
        try:
            page = await self._get(session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return {"exists": False, "score": 0, "issue": f"Unable to fetch page: {exc}"}
        return score_meta_tags(page)

    async def check_structured_data(self, session: aiohttp.ClientSession, url: str) -> dict:
        try:
            page = await self._get(session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return {"hasJsonLd": False, "hasMicrodata": False, "score": 0, "issue": f"Unable to check: {exc}"}
        return score_structured_data(page)
