"""Third-party data APIs: traffic estimates, backlinks and Google Analytics."""

from rivalbot.intel.analytics import AnalyticsClient
from rivalbot.intel.backlinks import BacklinksClient
from rivalbot.intel.traffic import SimilarWebClient, TrafficService

__all__ = ["AnalyticsClient", "BacklinksClient", "SimilarWebClient", "TrafficService"]
