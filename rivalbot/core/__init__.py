"""Single-site analysis, comparison and result types."""

from rivalbot.core.result import AdapterResult, PhaseTimings, Signal, SiteAnalysis
from rivalbot.core.analyzer import SiteAnalyzer
from rivalbot.core.comparator import generate_comparison
from rivalbot.core.service import CompetitorService

__all__ = [
    "AdapterResult",
    "PhaseTimings",
    "Signal",
    "SiteAnalysis",
    "SiteAnalyzer",
    "generate_comparison",
    "CompetitorService",
]
