"""Comparison report cache."""

import datetime
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from rivalbot.utils.helpers import clean_domain, utcnow


@dataclass(frozen=True)
class CacheKey:
    email: str
    your_site: str
    competitor_site: str
    your_instagram: Optional[str] = None
    competitor_instagram: Optional[str] = None
    your_facebook: Optional[str] = None
    competitor_facebook: Optional[str] = None

    @classmethod
    def build(cls, email: str, your_site: str, competitor_site: str, **handles: Optional[str]) -> "CacheKey":
        return cls(email, clean_domain(your_site), clean_domain(competitor_site), **handles)


@dataclass
class CacheEntry:
    result: dict[str, Any]
    created_at: datetime.datetime

    def age_hours(self, now: Optional[datetime.datetime] = None) -> float:
        return ((now or utcnow()) - self.created_at).total_seconds() / 3600


class AnalysisCache(Protocol):
    async def get(self, key: CacheKey) -> Optional[CacheEntry]:
        ...

    async def set(self, key: CacheKey, result: dict[str, Any]) -> None:
        ...


class InMemoryAnalysisCache:
    """Dictionary-backed cache; entries older than the TTL are misses."""

    def __init__(self, ttl_hours: float = 168, clock: Callable[[], datetime.datetime] = utcnow):
        self.ttl = datetime.timedelta(hours=ttl_hours)
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}

    async def get(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self.ttl:
            del self._entries[key]
            return None
        return entry

    async def set(self, key: CacheKey, result: dict[str, Any]) -> None:
        self._entries[key] = CacheEntry(result=result, created_at=self._clock())
