"""
Utility helpers shared by the analysis adapters.
"""

import re
import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from dateutil import parser as date_parser


def clean_domain(domain: str) -> str:
    """Reduce a URL or host to a bare, lowercase domain."""
    value = (domain or "").strip().lower()
    value = re.sub(r"^https?://", "", value)
    value = re.sub(r"^www\.", "", value)
    value = value.split("/")[0]
    return value.rstrip("/")


def clean_url(url: str) -> str:
    """Normalize a URL for equality checks (no scheme, no www, no trailing slash)."""
    value = re.sub(r"^https?://", "", url or "")
    value = re.sub(r"^www\.", "", value)
    return value.rstrip("/").lower()


def ensure_https(domain: str) -> str:
    """Return *domain* as an absolute URL, defaulting to https."""
    if domain.startswith("http://") or domain.startswith("https://"):
        return domain
    return f"https://{domain}"


def extract_host(url: str) -> str:
    """Extract the network location from a URL, lowercased."""
    return urlparse(url).netloc.lower()


def utcnow() -> datetime.datetime:
    """Timezone-aware current time."""
    return datetime.datetime.now(datetime.timezone.utc)


def parse_date(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an RFC 822 / ISO 8601 date string into an aware datetime.

    Naive values are assumed to be UTC.  Returns *None* for empty or
    unparseable input.
    """
    if not value:
        return None
    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def days_since(moment: datetime.datetime, now: Optional[datetime.datetime] = None) -> int:
    """Whole days elapsed between *moment* and *now*."""
    now = now or utcnow()
    return int((now - moment).total_seconds() // 86400)


def isoformat(moment: Optional[datetime.datetime]) -> Optional[str]:
    if moment is None:
        return None
    return moment.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def as_number(value: Any, default: float = 0.0) -> float:
    """Coerce *value* to a float, falling back to *default* for 'N/A' and friends."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except (TypeError, ValueError):
        return default
