"""Site-facing adapters: page render, Lighthouse, PageSpeed, technical SEO and content monitoring."""

from rivalbot.web.page_render import PageRenderAnalyzer
from rivalbot.web.lighthouse import LighthouseAuditor
from rivalbot.web.pagespeed import PageSpeedClient
from rivalbot.web.technical_seo import TechnicalSEOChecker
from rivalbot.web.change_detection import ChangeDetectionClient
from rivalbot.web.content_updates import ContentUpdatesService

__all__ = [
    "PageRenderAnalyzer",
    "LighthouseAuditor",
    "PageSpeedClient",
    "TechnicalSEOChecker",
    "ChangeDetectionClient",
    "ContentUpdatesService",
]
