"""
Business Logic Services Module.

Core services for the Billboard Location Signal API:
- TrafficImpressionEstimator: Daily impressions from traffic-flow samples
- SocioeconomicClassifier: Sector mix and socioeconomic tier from nearby businesses
- SignalCacheStore: Disk-based store with one entry per (location, kind)
- SignalCacheGateway: Get-or-compute with a staleness window

The estimators are pure; only the gateway touches providers and the store.
"""

from .traffic import TrafficImpressionEstimator
from .demographics import SocioeconomicClassifier
from .cache import SignalCacheStore
from .gateway import SignalCacheGateway, SignalResult

__all__ = [
    "TrafficImpressionEstimator",
    "SocioeconomicClassifier",
    "SignalCacheStore",
    "SignalCacheGateway",
    "SignalResult",
]
