"""
Page Render Analyzer
====================

Fetches a site's homepage and extracts on-page SEO elements, content
statistics, technology fingerprints and security signals, together with
robots.txt and sitemap presence.
"""

import asyncio
import json
import re
from enum import Enum
from typing import Optional
from urllib.parse import urljoin, urlparse

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.result import AdapterResult
from rivalbot.utils.helpers import clean_domain, ensure_https, isoformat, utcnow


class ErrorCategory(Enum):
    """Coarse classes of page fetch failure."""
    TIMEOUT = "TIMEOUT"
    DNS_ERROR = "DNS_ERROR"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    SSL_ERROR = "SSL_ERROR"
    NAVIGATION_ERROR = "NAVIGATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


SITEMAP_PATHS = ["/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml"]

BROKEN_HREFS = {"", "#", "javascript:void(0)"}

# (name, marker regexes searched in the raw HTML)
CMS_SIGNATURES = [
    ("WordPress", [r'<meta[^>]+name=["\']generator["\'][^>]+content=["\'][^"\']*WordPress',
                   r"/wp-content/", r"/wp-includes/", r"\bwp-admin\b"]),
    ("Shopify", [r'name=["\']shopify-digital-wallet["\']', r"cdn\.shopify\.com", r"\bShopify\.theme\b"]),
    ("Wix", [r'<meta[^>]+name=["\']generator["\'][^>]+content=["\'][^"\']*Wix', r"wixBiSession"]),
    ("Webflow", [r"data-wf-page", r"\bWebflow\b"]),
]

FRAMEWORK_SIGNATURES = [
    ("React", [r"data-reactroot", r"data-reactid", r"react(?:\.production)?(?:\.min)?\.js"]),
    ("Vue.js", [r"\sdata-v-[0-9a-f]{6,}", r"vue(?:\.runtime)?(?:\.global)?(?:\.prod)?(?:\.min)?\.js"]),
    ("Angular", [r"ng-version=", r"\bng-app\b"]),
    ("Next.js", [r'id=["\']__next["\']', r"/_next/static/"]),
    ("Nuxt.js", [r"data-nuxt", r"window\.__NUXT__", r"/_nuxt/"]),
]

ANALYTICS_SIGNATURES = [
    ("Google Analytics", [r"google-analytics\.com", r"\bgtag\(", r"\bga\(\s*['\"]create"]),
    ("Facebook Pixel", [r"connect\.facebook\.net", r"\bfbq\("]),
    ("Hotjar", [r"hotjar"]),
    ("Mixpanel", [r"mixpanel"]),
    ("Google Tag Manager", [r"googletagmanager\.com", r"\bgtag\("]),
]


def categorize_error(error: BaseException) -> ErrorCategory:
    """Map a fetch exception onto an :class:`ErrorCategory`."""
    if isinstance(error, asyncio.TimeoutError):
        return ErrorCategory.TIMEOUT
    if isinstance(error, aiohttp.ClientConnectorCertificateError) or isinstance(error, aiohttp.ClientSSLError):
        return ErrorCategory.SSL_ERROR
    if isinstance(error, ConnectionRefusedError):
        return ErrorCategory.CONNECTION_REFUSED

    message = str(error).lower()
    if "timeout" in message or "timed out" in message:
        return ErrorCategory.TIMEOUT
    if "enotfound" in message or "dns" in message or "name or service not known" in message:
        return ErrorCategory.DNS_ERROR
    if "econnrefused" in message or "connection refused" in message:
        return ErrorCategory.CONNECTION_REFUSED
    if "certificate" in message or "ssl" in message:
        return ErrorCategory.SSL_ERROR
    if "navigation" in message or "redirect" in message:
        return ErrorCategory.NAVIGATION_ERROR
    return ErrorCategory.UNKNOWN_ERROR


def detect_cdn(headers: dict) -> Optional[str]:
    """Identify a CDN from response headers."""
    lowered = {k.lower(): str(v) for k, v in headers.items()}
    if "cf-ray" in lowered:
        return "Cloudflare"
    if "x-amz-cf-id" in lowered:
        return "CloudFront (AWS)"
    if "cloudfront" in lowered.get("x-cache", "").lower():
        return "CloudFront (AWS)"
    if "cloudflare" in lowered.get("server", "").lower():
        return "Cloudflare"
    if "x-fastly-request-id" in lowered:
        return "Fastly"
    if "x-akamai-request-id" in lowered:
        return "Akamai"
    return None


def _matches(html: str, patterns: list[str]) -> bool:
    return any(re.search(pattern, html, re.IGNORECASE) for pattern in patterns)


def _meta(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return tag["content"]
    return None


class PageRenderAnalyzer:
    """
    Homepage analyzer for competitor comparison.

    Collects:
    - Title, meta description, canonical, robots meta
    - Heading outline and counts
    - Open Graph, Twitter Card and JSON-LD schema markup
    - Word, paragraph, image and link statistics
    - CMS, framework and analytics fingerprints
    - HTTPS, CDN and mixed content
    - robots.txt and sitemap presence
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def analyze(self, domain: str) -> AdapterResult:
        """Analyze a domain, resolving to a tagged result."""
        try:
            return AdapterResult.success(await self.analyze_website(domain))
        except Exception as exc:
            category = categorize_error(exc)
            logger.warning("Page analysis failed for {} ({}): {}", domain, category.value, exc)
            return AdapterResult.failure(str(exc) or category.value, category.value)

    async def analyze_website(self, domain: str) -> dict:
        """Fetch and analyze the homepage of *domain*. Raises on fetch failure."""
        url = ensure_https(clean_domain(domain))
        logger.info("Analyzing page for {}", url)

        async with aiohttp.ClientSession(
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.settings.page_render_timeout)
        ) as session:
            status, headers, html, final_url = await self._fetch_page(session, url)
            robots_txt = await self._check_robots_txt(session, final_url)
            sitemap = await self._check_sitemap(session, final_url)

        page = self.parse_page(html, final_url)
        is_https = urlparse(final_url).scheme == "https"

        return {
            "success": True,
            "url": final_url,
            "domain": clean_domain(domain),
            "timestamp": isoformat(utcnow()),
            "statusCode": status,
            "security": {
                "isHTTPS": is_https,
                "server": headers.get("Server") or headers.get("server"),
                "cdn": detect_cdn(headers),
                "mixedContent": bool(page["mixedContent"]),
                "mixedContentCount": len(page["mixedContent"]),
            },
            "robotsTxt": robots_txt,
            "sitemap": sitemap,
            "seo": page["seo"],
            "content": page["content"],
            "technology": page["technology"],
        }

    async def _fetch_page(self, session: aiohttp.ClientSession, url: str) -> tuple[int, dict, str, str]:
        async with session.get(url, allow_redirects=True) as response:
            html = await response.text(errors="replace")
            return response.status, dict(response.headers), html, str(response.url)

    async def _check_robots_txt(self, session: aiohttp.ClientSession, url: str) -> dict:
        """Check robots.txt availability."""
        robots_url = urljoin(url, "/robots.txt")
        try:
            async with session.get(robots_url) as response:
                if response.status != 200:
                    return {"exists": False, "accessible": False, "error": f"HTTP {response.status}"}
                text = await response.text(errors="replace")
                return {"exists": True, "accessible": True, "content": text[:1000]}
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return {"exists": False, "accessible": False, "error": str(exc)}

    async def _check_sitemap(self, session: aiohttp.ClientSession, url: str) -> dict:
        """Check common sitemap locations and count <loc> entries in the first found."""
        for path in SITEMAP_PATHS:
            sitemap_url = urljoin(url, path)
            try:
                async with session.get(sitemap_url) as response:
                    if response.status != 200:
                        continue
                    text = await response.text(errors="replace")
            except (aiohttp.ClientError, asyncio.TimeoutError):
                continue
            return {
                "exists": True,
                "accessible": True,
                "url": sitemap_url,
                "urlCount": text.count("<loc>"),
            }
        return {"exists": False, "accessible": False, "error": "No sitemap found"}

    def parse_page(self, html: str, url: str) -> dict:
        """Extract SEO, content, technology and mixed-content data from HTML."""
        soup = BeautifulSoup(html, "html.parser")
        seo = self._extract_seo(soup, url)
        technology = self._detect_technology(soup, html, url)
        mixed_content = self._find_mixed_content(soup, url)
        # Content extraction strips script/style nodes, so it runs last.
        content = self._extract_content(soup, url)
        return {
            "seo": seo,
            "content": content,
            "technology": technology,
            "mixedContent": mixed_content,
        }

    def _extract_seo(self, soup: BeautifulSoup, url: str) -> dict:
        title = soup.title.get_text(strip=True) if soup.title else None
        canonical_tag = soup.find("link", rel="canonical")
        canonical = urljoin(url, canonical_tag["href"]) if canonical_tag and canonical_tag.get("href") else None

        headings: dict = {}
        for level in ("h1", "h2", "h3"):
            texts = [h.get_text(strip=True) for h in soup.find_all(level)]
            headings[level] = texts
            headings[f"{level}Count"] = len(texts)

        schema_markup = []
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                data = json.loads(script.string or "")
            except (json.JSONDecodeError, TypeError) as exc:
                schema_markup.append({"type": "Invalid JSON", "error": str(exc)})
                continue
            if isinstance(data, dict):
                schema_type = data.get("@type") or ("Graph" if "@graph" in data else "Unknown")
            else:
                schema_type = "Unknown"
            schema_markup.append({"type": schema_type})

        return {
            "title": title or None,
            "metaDescription": _meta(soup, name="description"),
            "canonical": canonical,
            "robotsMeta": _meta(soup, name="robots"),
            "headings": headings,
            "openGraph": {
                key: _meta(soup, property=f"og:{key}")
                for key in ("title", "description", "image", "type", "url")
            },
            "twitterCard": {
                key: _meta(soup, name=f"twitter:{key}")
                for key in ("card", "title", "description", "image", "site")
            },
            "schemaMarkup": schema_markup,
        }

    def _extract_content(self, soup: BeautifulSoup, url: str) -> dict:
        host = urlparse(url).netloc.lower()

        images = soup.find_all("img")
        with_alt = [img for img in images if (img.get("alt") or "").strip()]

        anchors = soup.find_all("a", href=True)
        internal = external = broken = 0
        for anchor in anchors:
            href = anchor["href"].strip()
            if href in BROKEN_HREFS:
                broken += 1
            if href.startswith("#") or href.lower().startswith(("javascript:", "mailto:", "tel:")):
                continue
            link_host = urlparse(urljoin(url, href)).netloc.lower()
            if link_host == host:
                internal += 1
            else:
                external += 1

        paragraph_count = len(soup.find_all("p"))

        body = soup.body or soup
        for element in body(["script", "style", "noscript", "template"]):
            element.decompose()
        words = body.get_text(separator=" ").split()

        return {
            "wordCount": len(words),
            "paragraphCount": paragraph_count,
            "images": {
                "total": len(images),
                "withAlt": len(with_alt),
                "altCoverage": round(len(with_alt) / len(images) * 100) if images else 0,
            },
            "links": {
                "total": len(anchors),
                "internal": internal,
                "external": external,
                "broken": broken,
            },
        }

    def _detect_technology(self, soup: BeautifulSoup, html: str, url: str) -> dict:
        cms = next((name for name, patterns in CMS_SIGNATURES if _matches(html, patterns)), None)
        frameworks = [name for name, patterns in FRAMEWORK_SIGNATURES if _matches(html, patterns)]
        analytics = [name for name, patterns in ANALYTICS_SIGNATURES if _matches(html, patterns)]

        host = urlparse(url).netloc.lower()
        third_party: list[str] = []
        for script in soup.find_all("script", src=True):
            script_host = urlparse(urljoin(url, script["src"])).netloc.lower()
            if script_host and script_host != host and script_host not in third_party:
                third_party.append(script_host)

        return {
            "cms": cms,
            "frameworks": frameworks,
            "analytics": analytics,
            "thirdPartyScripts": third_party,
        }

    def _find_mixed_content(self, soup: BeautifulSoup, url: str) -> list[str]:
        if urlparse(url).scheme != "https":
            return []
        insecure = []
        for element in soup.find_all(["img", "script", "iframe", "link", "source", "video", "audio"]):
            ref = element.get("src") or element.get("href")
            if ref and ref.startswith("http://"):
                insecure.append(ref)
        return insecure[:10]
