"""
HTTP API
========

FastAPI application exposing the competitor comparison, the daily traffic
series and the Google Analytics connection flow.  Collaborators are passed
to :func:`create_app` so each deployment (and each test) wires its own.
"""

from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlencode

import aiohttp
from fastapi import APIRouter, FastAPI, Query
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from rivalbot import configure_logging
from rivalbot.config import Settings, get_settings
from rivalbot.core.analyzer import SiteAnalyzer
from rivalbot.core.service import CompetitorService
from rivalbot.integrations.cache import AnalysisCache, CacheKey, InMemoryAnalysisCache
from rivalbot.integrations.oauth_state import PendingStateStore
from rivalbot.integrations.tokens import InMemoryTokenService, SocialMetricsProvider, TokenService
from rivalbot.intel.analytics import AnalyticsClient
from rivalbot.intel.traffic import TrafficService
from rivalbot.utils.helpers import clean_domain, isoformat, utcnow

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
ANALYTICS_SCOPE = "https://www.googleapis.com/auth/analytics.readonly"


class AnalyzeRequest(BaseModel):
    email: Optional[str] = None
    yourSite: Optional[str] = None
    competitorSite: Optional[str] = None
    yourInstagram: Optional[str] = None
    competitorInstagram: Optional[str] = None
    yourFacebook: Optional[str] = None
    competitorFacebook: Optional[str] = None
    forceRefresh: bool = False


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def exchange_code(code: str, settings: Settings) -> dict:
    """Trade an authorization code for Google OAuth tokens."""
    form = {
        "code": code,
        "client_id": settings.google_client_id or "",
        "client_secret": settings.google_client_secret or "",
        "redirect_uri": settings.google_redirect_uri,
        "grant_type": "authorization_code",
    }
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=settings.traffic_timeout)) as session:
        async with session.post(GOOGLE_TOKEN_URL, data=form) as response:
            response.raise_for_status()
            return await response.json()


async def overlay_social(
    site: dict, providers: dict[str, SocialMetricsProvider], handles: dict[str, Optional[str]]
) -> None:
    """Attach social metrics to *site* in place; provider failures are logged and skipped."""
    for platform, handle in handles.items():
        provider = providers.get(platform)
        if not handle or provider is None:
            continue
        try:
            site[platform] = await provider.get_comprehensive_metrics(handle, "month")
        except Exception as exc:
            logger.warning("{} metrics failed for {}: {}", platform, handle, exc)


def create_app(
    service: Optional[CompetitorService] = None,
    cache: Optional[AnalysisCache] = None,
    traffic_service: Optional[TrafficService] = None,
    state_store: Optional[PendingStateStore] = None,
    token_service: Optional[TokenService] = None,
    social_providers: Optional[dict[str, SocialMetricsProvider]] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # an empty injected store is falsy; compare with None
    if token_service is None:
        token_service = InMemoryTokenService()
    analytics = AnalyticsClient(token_service, settings)
    if service is None:
        service = CompetitorService(SiteAnalyzer(settings, analytics=analytics), settings)
    if cache is None:
        cache = InMemoryAnalysisCache(ttl_hours=settings.cache_ttl_hours)
    if traffic_service is None:
        traffic_service = TrafficService(settings, analytics=analytics)
    if state_store is None:
        state_store = PendingStateStore(
            ttl_seconds=settings.oauth_state_ttl_seconds,
            sweep_interval_seconds=settings.oauth_sweep_interval_seconds,
        )
    if social_providers is None:
        social_providers = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state_store.start()
        yield
        await state_store.stop()

    app = FastAPI(title="rivalbot", lifespan=lifespan)
    competitor = APIRouter(prefix="/api/competitor", tags=["Competitor"])
    traffic = APIRouter(prefix="/api/traffic", tags=["Traffic"])
    oauth = APIRouter(prefix="/api/analytics", tags=["Analytics"])

    @competitor.post("/analyze")
    async def analyze(request: AnalyzeRequest):
        """Compare the user's site with a competitor, serving from cache when fresh."""
        your_site = clean_domain(request.yourSite or "")
        competitor_site = clean_domain(request.competitorSite or "")
        if not request.email or not your_site or not competitor_site:
            return error_response(400, "email, yourSite and competitorSite are required")

        key = CacheKey.build(
            request.email,
            your_site,
            competitor_site,
            your_instagram=request.yourInstagram,
            competitor_instagram=request.competitorInstagram,
            your_facebook=request.yourFacebook,
            competitor_facebook=request.competitorFacebook,
        )

        if not request.forceRefresh:
            entry = await cache.get(key)
            if entry is not None:
                logger.info("Serving cached comparison for {} vs {}", key.your_site, key.competitor_site)
                return {
                    "success": True,
                    "cached": True,
                    "data": entry.result,
                    "cachedAt": isoformat(entry.created_at),
                    "cacheAge": round(entry.age_hours(), 1),
                }

        try:
            report = await service.compare_websites(your_site, competitor_site, request.email)
        except Exception:
            logger.exception("Competitor analysis crashed")
            return error_response(500, "Failed to analyze competitor")
        if not report.get("success"):
            return error_response(500, report.get("error") or "Failed to analyze competitor")

        await overlay_social(report["yourSite"], social_providers, {
            "instagram": request.yourInstagram,
            "facebook": request.yourFacebook,
        })
        await overlay_social(report["competitorSite"], social_providers, {
            "instagram": request.competitorInstagram,
            "facebook": request.competitorFacebook,
        })

        data = {
            "yourSite": report["yourSite"],
            "competitorSite": report["competitorSite"],
            "comparison": report["comparison"],
            "timestamp": report["timestamp"],
        }
        await cache.set(key, data)
        return {"success": True, "cached": False, "data": data}

    @traffic.get("/data")
    async def traffic_data(
        domain: Optional[str] = Query(None),
        email: Optional[str] = Query(None),
        days: int = Query(14, ge=1, le=90),
    ):
        if not domain:
            return error_response(400, "domain is required")
        try:
            result = await traffic_service.get_traffic_data(email, domain, days)
        except Exception:
            logger.exception("Traffic lookup failed for {}", domain)
            return error_response(500, "Failed to fetch traffic data")
        return {"success": True, "domain": domain, **result}

    @oauth.get("/connect")
    async def connect(email: Optional[str] = Query(None)):
        if not email:
            return error_response(400, "email is required")
        if not settings.google_client_id:
            return error_response(503, "Google OAuth is not configured")

        state = state_store.create({"email": email})
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": settings.google_redirect_uri,
            "response_type": "code",
            "scope": ANALYTICS_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return {"authUrl": f"{GOOGLE_AUTH_URL}?{urlencode(params)}", "state": state}

    @oauth.get("/callback")
    async def callback(state: Optional[str] = Query(None), code: Optional[str] = Query(None)):
        pending = state_store.pop(state) if state else None
        if pending is None:
            return error_response(400, "Invalid or expired state")
        if not code:
            return error_response(400, "Missing authorization code")

        try:
            tokens = await exchange_code(code, settings)
        except Exception:
            logger.exception("Token exchange failed for {}", pending["email"])
            return error_response(500, "Token exchange failed")

        await token_service.store_tokens(pending["email"], tokens, "google")
        logger.info("Connected Google Analytics for {}", pending["email"])
        return {"success": True, "email": pending["email"], "connectedAt": isoformat(utcnow())}

    @oauth.delete("/connection")
    async def disconnect(email: Optional[str] = Query(None)):
        if not email:
            return error_response(400, "email is required")
        await token_service.delete_tokens(email, "google")
        return {"success": True}

    app.include_router(competitor)
    app.include_router(traffic)
    app.include_router(oauth)
    app.state.state_store = state_store
    app.state.cache = cache
    return app
