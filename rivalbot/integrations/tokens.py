"""
Collaborator interfaces consumed by the pipeline.

Token storage and social metric fetchers live outside this package; they
are injected wherever they are needed.
"""

from typing import Any, Optional, Protocol


class TokenService(Protocol):
    """Per-user OAuth token storage."""

    async def get_tokens(self, email: str, provider: str = "google") -> Optional[dict]:
        ...

    async def store_tokens(self, email: str, tokens: dict, provider: str = "google") -> None:
        ...

    async def delete_tokens(self, email: str, provider: str = "google") -> None:
        ...


class SocialMetricsProvider(Protocol):
    """Fetches engagement metrics for a social handle on one platform."""

    async def get_comprehensive_metrics(self, handle: str, period: str = "month") -> dict[str, Any]:
        ...


class InMemoryTokenService:
    """Process-local token store, used by the CLI server and in tests."""

    def __init__(self):
        self._tokens: dict[tuple[str, str], dict] = {}

    async def get_tokens(self, email: str, provider: str = "google") -> Optional[dict]:
        return self._tokens.get((email, provider))

    async def store_tokens(self, email: str, tokens: dict, provider: str = "google") -> None:
        self._tokens[(email, provider)] = dict(tokens)

    async def delete_tokens(self, email: str, provider: str = "google") -> None:
        self._tokens.pop((email, provider), None)
