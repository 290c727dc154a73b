"""
External Data Clients Module.

Provides async clients for the raw signals behind each estimator:
- TomTomTrafficClient: traffic flow (current / free-flow speed, confidence)
- DenueClient: INEGI DENUE businesses within 500 m

Both raise SignalUnavailable when the provider fails or has no usable data.
"""

from .tomtom_client import TomTomTrafficClient
from .denue_client import DenueClient, BUSINESS_SEARCH_RADIUS_M

__all__ = ["TomTomTrafficClient", "DenueClient", "BUSINESS_SEARCH_RADIUS_M"]
