"""Two-site competitor comparison."""

import asyncio
from typing import Optional

from loguru import logger

from rivalbot.config import Settings, get_settings
from rivalbot.core.analyzer import SiteAnalyzer
from rivalbot.core.comparator import generate_comparison
from rivalbot.utils.helpers import isoformat, utcnow


class CompetitorService:
    """Analyzes the user's site and a competitor, then compares them."""

    def __init__(self, analyzer: Optional[SiteAnalyzer] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.analyzer = analyzer or SiteAnalyzer(self.settings)

    async def compare_websites(self, your_site: str, competitor_site: str, email: Optional[str] = None) -> dict:
        logger.info("Comparing {} against {}", your_site, competitor_site)
        try:
            yours = await self.analyzer.analyze_single_site(your_site, email=email, is_user_site=True)
            await asyncio.sleep(self.settings.site_gap_seconds)
            theirs = await self.analyzer.analyze_single_site(competitor_site, email=None, is_user_site=False)
            comparison = generate_comparison(yours, theirs)
        except Exception as exc:
            logger.exception("Comparison of {} vs {} failed", your_site, competitor_site)
            return {"success": False, "error": str(exc), "timestamp": isoformat(utcnow())}

        return {
            "success": True,
            "timestamp": isoformat(utcnow()),
            "yourSite": {"domain": yours.domain, **yours.to_dict()},
            "competitorSite": {"domain": theirs.domain, **theirs.to_dict()},
            "comparison": comparison,
        }
