"""Shared helpers for domain handling, dates and number coercion."""

from rivalbot.utils.helpers import (
    as_number,
    clean_domain,
    clean_url,
    days_since,
    ensure_https,
    extract_host,
    isoformat,
    parse_date,
    utcnow,
)

__all__ = [
    "as_number",
    "clean_domain",
    "clean_url",
    "days_since",
    "ensure_https",
    "extract_host",
    "isoformat",
    "parse_date",
    "utcnow",
]
