"""Injected collaborators: token storage, social metrics, analysis cache and OAuth state."""

from rivalbot.integrations.cache import AnalysisCache, CacheKey, InMemoryAnalysisCache
from rivalbot.integrations.oauth_state import PendingStateStore
from rivalbot.integrations.tokens import InMemoryTokenService, SocialMetricsProvider, TokenService

__all__ = [
    "AnalysisCache",
    "CacheKey",
    "InMemoryAnalysisCache",
    "PendingStateStore",
    "InMemoryTokenService",
    "SocialMetricsProvider",
    "TokenService",
]
