"""
rivalbot
========

Competitor analysis pipeline: collects page, performance, SEO, traffic,
backlink and content-activity signals for two websites and compares them.
"""

import sys

from loguru import logger

__version__ = "1.0.0"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr at *level*."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


from rivalbot.core.analyzer import SiteAnalyzer  # noqa: E402
from rivalbot.core.service import CompetitorService  # noqa: E402
from rivalbot.web.content_updates import ContentUpdatesService  # noqa: E402

__all__ = [
    "configure_logging",
    "SiteAnalyzer",
    "CompetitorService",
    "ContentUpdatesService",
]
