"""
Content Updates Analyzer
========================

Discovers a site's RSS/Atom feed and XML sitemap and derives a publishing
cadence signal from them: update frequency, posts per month, whether the
site is active, and a coarse content velocity.

Discovery order:

RSS
    1. ``<link type="application/rss+xml">`` / ``atom+xml`` in the homepage
    2. Common feed paths (``/feed``, ``/rss``, ...)

Sitemap
    1. Every ``Sitemap:`` line in robots.txt
    2. Common sitemap paths (``/sitemap.xml``, ...)
    3. Sitemap indexes are expanded across all child sitemaps
"""

import asyncio
import datetime
import re
import xml.etree.ElementTree as ET
from functools import partial
from typing import Awaitable, Callable, Optional
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult, capture
from rivalbot.engine.content_strategy import compare_content_updates
from rivalbot.utils.helpers import clean_domain, days_since, isoformat, parse_date, utcnow

RSS_FEED_PATHS = [
    "/feed",
    "/rss",
    "/feed.xml",
    "/rss.xml",
    "/atom.xml",
    "/blog/feed",
    "/blog/rss",
    "/feeds/posts/default",
]

SITEMAP_PATHS = [
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemap1.xml",
]

FEED_LINK_TYPES = ["application/rss+xml", "application/atom+xml"]

MAX_FEED_ITEMS = 10
MAX_RECENT_URLS = 20
RECENT_WINDOW_DAYS = 30
MAX_SITEMAP_DEPTH = 3

FEED_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; ContentAnalyzer/1.0)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, text/html",
}

# (url, timeout seconds) -> body text, or None when the resource is unavailable
Fetcher = Callable[[str, float], Awaitable[Optional[str]]]


def classify_frequency(days_since_update: int) -> str:
    if days_since_update <= 7:
        return "weekly"
    if days_since_update <= 30:
        return "monthly"
    if days_since_update <= 90:
        return "quarterly"
    return "inactive"


def classify_velocity(posts_per_month: float) -> str:
    if posts_per_month >= 10:
        return "high"
    if posts_per_month >= 4:
        return "medium"
    if posts_per_month >= 1:
        return "low"
    return "minimal"


def empty_rss() -> dict:
    return {
        "found": False,
        "url": None,
        "format": None,
        "recentPosts": [],
        "totalPosts": 0,
        "lastUpdated": None,
    }


def empty_sitemap() -> dict:
    return {
        "found": False,
        "url": None,
        "totalUrls": 0,
        "recentlyModified": [],
        "lastModified": None,
    }


def analyze_content_activity(
    rss: dict, sitemap: dict, now: Optional[datetime.datetime] = None
) -> dict:
    """Derive the publishing cadence from RSS and sitemap snapshots."""
    now = now or utcnow()
    activity = {
        "updateFrequency": "unknown",
        "lastContentDate": None,
        "averagePostsPerMonth": 0,
        "isActive": False,
        "recentActivityCount": 0,
        "contentVelocity": "minimal",
    }

    dates = []
    if rss.get("found") and rss.get("lastUpdated"):
        dates.append(parse_date(rss["lastUpdated"]))
    if sitemap.get("found") and sitemap.get("lastModified"):
        dates.append(parse_date(sitemap["lastModified"]))
    dates = [d for d in dates if d is not None]

    if dates:
        latest = max(dates)
        days = days_since(latest, now)
        activity["lastContentDate"] = isoformat(latest)
        activity["isActive"] = days <= RECENT_WINDOW_DAYS
        activity["updateFrequency"] = classify_frequency(days)

    posts = (rss.get("recentPosts") or []) if rss.get("found") else []
    post_dates = [d for d in (parse_date(p.get("parsedDate")) for p in posts) if d is not None]
    posts_per_month = 0.0
    if len(post_dates) >= 2:
        span_days = (max(post_dates) - min(post_dates)).total_seconds() / 86400
        if span_days > 0:
            posts_per_month = len(post_dates) / span_days * 30
    activity["averagePostsPerMonth"] = round(posts_per_month, 2)
    activity["contentVelocity"] = classify_velocity(posts_per_month)

    recent = sum(
        1 for p in posts
        if p.get("daysAgo") is not None and p["daysAgo"] <= RECENT_WINDOW_DAYS
    )
    if sitemap.get("found"):
        recent += len(sitemap.get("recentlyModified") or [])
    activity["recentActivityCount"] = recent

    return activity


def _local(tag: str) -> str:
    """Strip an XML namespace: ``{ns}entry`` -> ``entry``."""
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(element: ET.Element, *names: str) -> Optional[ET.Element]:
    for name in names:
        for child in element:
            if _local(child.tag) == name:
                return child
    return None


def _child_text(element: ET.Element, *names: str) -> Optional[str]:
    node = _child(element, *names)
    if node is None:
        return None
    text = "".join(node.itertext()).strip()
    return text or None


XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)


def _parse_xml(text: str) -> Optional[ET.Element]:
    """
    Parse an already-decoded XML document.

    The declaration is dropped first: its ``encoding`` describes the original
    bytes, not the UTF-8 handed to the parser here.
    """
    body = XML_DECLARATION.sub("", text.lstrip("\ufeff"), count=1).strip()
    try:
        return ET.fromstring(body.encode("utf-8"))
    except ET.ParseError:
        return None


class ContentUpdatesService:
    """Track content publishing activity through feeds and sitemaps."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self._fetcher = fetcher
        self._clock = clock or utcnow

    async def analyze(self, domain: str) -> AdapterResult:
        return await capture("Content updates", lambda: self.get_content_updates(domain))

    async def get_content_updates(self, domain: str) -> dict:
        """Snapshot of feed, sitemap and derived activity for *domain*. Never raises."""
        cleaned = clean_domain(domain)
        base_url = f"https://{cleaned}"
        logger.info("Analyzing content updates for {}", cleaned)

        result = {
            "domain": cleaned,
            "timestamp": isoformat(self._clock()),
            "rss": empty_rss(),
            "sitemap": empty_sitemap(),
            "contentActivity": analyze_content_activity(empty_rss(), empty_sitemap(), self._clock()),
        }

        try:
            if self._fetcher is not None:
                await self._discover(base_url, self._fetcher, result)
            else:
                async with aiohttp.ClientSession(
                    headers=FEED_HEADERS,
                    connector=aiohttp.TCPConnector(ssl=False),
                ) as session:
                    await self._discover(base_url, partial(self._http_get, session), result)
        except Exception as exc:
            logger.warning("Error analyzing content updates for {}: {}", cleaned, exc)
            result["error"] = str(exc) or exc.__class__.__name__

        return result

    async def compare_content_updates(self, user_domain: str, competitor_domain: str) -> dict:
        """Snapshot both sites and compare their publishing activity."""
        user, competitor = await asyncio.gather(
            self.get_content_updates(user_domain),
            self.get_content_updates(competitor_domain),
        )
        return compare_content_updates(user, competitor)

    async def _discover(self, base_url: str, fetch: Fetcher, result: dict) -> None:
        rss = await self.find_rss_feed(base_url, fetch)
        if rss["found"]:
            result["rss"] = rss
        sitemap = await self.find_sitemap(base_url, fetch)
        if sitemap["found"]:
            result["sitemap"] = sitemap
        result["contentActivity"] = analyze_content_activity(result["rss"], result["sitemap"], self._clock())

    @staticmethod
    async def _http_get(session: aiohttp.ClientSession, url: str, timeout: float) -> Optional[str]:
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                if response.status != 200:
                    return None
                return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Fetch failed for {}: {}", url, exc)
            return None

    # ------------------------------------------------------------------
    # RSS / Atom
    # ------------------------------------------------------------------

    async def find_rss_feed(self, base_url: str, fetch: Fetcher) -> dict:
        timeout = self.settings.content_timeout

        html = await fetch(base_url, timeout)
        if html:
            soup = BeautifulSoup(html, "html.parser")
            link = None
            for link_type in FEED_LINK_TYPES:
                link = soup.find("link", attrs={"type": link_type, "href": True})
                if link:
                    break
            if link:
                feed = await self.parse_feed(urljoin(base_url + "/", link["href"]), fetch)
                if feed["found"]:
                    return feed

        for path in RSS_FEED_PATHS:
            feed = await self.parse_feed(f"{base_url}{path}", fetch)
            if feed["found"]:
                return feed

        return empty_rss()

    async def parse_feed(self, feed_url: str, fetch: Fetcher) -> dict:
        """Parse an RSS or Atom document; ``found`` is False for anything else."""
        result = empty_rss()
        result["url"] = feed_url

        text = await fetch(feed_url, self.settings.content_timeout)
        if not text:
            return result
        root = _parse_xml(text)
        if root is None:
            return result

        root_name = _local(root.tag)
        is_rss = root_name in ("rss", "RDF", "channel") or _child(root, "channel") is not None
        is_atom = root_name == "feed"
        if not is_rss and not is_atom:
            return result

        item_name = "item" if is_rss else "entry"
        items = [el for el in root.iter() if _local(el.tag) == item_name]

        result["found"] = True
        result["format"] = "RSS" if is_rss else "Atom"
        result["totalPosts"] = len(items)

        now = self._clock()
        parsed = [self._parse_item(item, is_rss, now) for item in items]
        # newest first, undated items last; feeds may list oldest first
        newest = sorted(
            (p for p in parsed if p.get("parsedDate")),
            key=lambda p: parse_date(p["parsedDate"]),
            reverse=True,
        )
        undated = [p for p in parsed if not p.get("parsedDate")]
        posts = (newest + undated)[:MAX_FEED_ITEMS]
        result["recentPosts"] = posts

        dated = [parse_date(p["parsedDate"]) for p in posts if p.get("parsedDate")]
        if dated:
            result["lastUpdated"] = isoformat(max(dated))

        logger.debug("Found {} feed at {} with {} items", result["format"], feed_url, len(items))
        return result

    @staticmethod
    def _parse_item(item: ET.Element, is_rss: bool, now: datetime.datetime) -> dict:
        link = None
        link_node = _child(item, "link")
        if link_node is not None:
            link = (link_node.text or "").strip() or link_node.get("href")

        author = _child_text(item, "author", "creator")
        if not is_rss:
            author_node = _child(item, "author")
            if author_node is not None:
                author = _child_text(author_node, "name") or author

        pub_date = (
            _child_text(item, "pubDate", "published", "date")
            or _child_text(item, "updated")
        )
        post = {
            "title": _child_text(item, "title"),
            "link": link,
            "pubDate": pub_date,
            "description": _child_text(item, "description", "summary", "content"),
            "author": author,
        }

        parsed = parse_date(pub_date)
        if parsed is not None:
            post["parsedDate"] = isoformat(parsed)
            post["daysAgo"] = days_since(parsed, now)
        return post

    # ------------------------------------------------------------------
    # Sitemaps
    # ------------------------------------------------------------------

    async def find_sitemap(self, base_url: str, fetch: Fetcher) -> dict:
        robots = await fetch(f"{base_url}/robots.txt", self.settings.robots_timeout)
        if robots:
            for sitemap_url in re.findall(r"^\s*Sitemap:\s*(\S+)", robots, re.IGNORECASE | re.MULTILINE):
                sitemap = await self.parse_sitemap(sitemap_url.strip(), fetch)
                if sitemap["found"]:
                    return sitemap

        for path in SITEMAP_PATHS:
            sitemap = await self.parse_sitemap(f"{base_url}{path}", fetch)
            if sitemap["found"]:
                return sitemap

        return empty_sitemap()

    async def parse_sitemap(self, sitemap_url: str, fetch: Fetcher) -> dict:
        """Parse a sitemap or sitemap index into totals and recent entries."""
        result = empty_sitemap()
        result["url"] = sitemap_url

        entries = await self._collect_entries(sitemap_url, fetch, depth=0, seen=set())
        if not entries:
            return result

        now = self._clock()
        dated = []
        for entry in entries:
            parsed = parse_date(entry.get("lastmod"))
            if parsed is not None:
                entry["daysAgo"] = days_since(parsed, now)
                dated.append((parsed, entry))
        dated.sort(key=lambda pair: pair[0], reverse=True)

        cutoff = now - datetime.timedelta(days=RECENT_WINDOW_DAYS)
        result["found"] = True
        result["totalUrls"] = len(entries)
        result["recentlyModified"] = [entry for parsed, entry in dated if parsed >= cutoff][:MAX_RECENT_URLS]
        if dated:
            result["lastModified"] = isoformat(dated[0][0])
        return result

    async def _collect_entries(self, sitemap_url: str, fetch: Fetcher, depth: int, seen: set) -> list[dict]:
        if sitemap_url in seen or depth > MAX_SITEMAP_DEPTH:
            return []
        seen.add(sitemap_url)

        text = await fetch(sitemap_url, self.settings.content_timeout)
        if not text:
            return []
        root = _parse_xml(text)
        if root is None:
            return []

        if _local(root.tag) == "sitemapindex":
            entries: list[dict] = []
            for child in root:
                if _local(child.tag) != "sitemap":
                    continue
                loc = _child_text(child, "loc")
                if loc:
                    entries.extend(await self._collect_entries(loc, fetch, depth + 1, seen))
            return entries

        entries = []
        for node in root:
            if _local(node.tag) != "url":
                continue
            loc = _child_text(node, "loc")
            if not loc:
                continue
            entries.append({
                "loc": loc,
                "lastmod": _child_text(node, "lastmod"),
                "changefreq": _child_text(node, "changefreq"),
                "priority": _child_text(node, "priority"),
            })
        return entries
