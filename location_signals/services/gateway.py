"""
Signal Cache Gateway.

Get-or-compute for location signals: serve the cached entry while it is
younger than the staleness window, otherwise fetch raw signals, run the
matching estimator and write the result through to the store.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Protocol

from ..exceptions import InvalidInput, PersistenceFailure, SignalUnavailable
from ..models import (
    BusinessRecord,
    CachedSignal,
    SignalKind,
    SignalPayload,
    SignalSource,
    TrafficSample,
)
from ..utils import normalize_location_key, validate_coordinates
from .cache import SignalCacheStore
from .demographics import SocioeconomicClassifier
from .traffic import TrafficImpressionEstimator

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_WINDOW = timedelta(days=7)


class TrafficFlowProvider(Protocol):
    async def fetch_flow(self, latitude: float, longitude: float) -> TrafficSample:
        ...


class BusinessRegistryProvider(Protocol):
    async def fetch_businesses(self, latitude: float, longitude: float) -> List[BusinessRecord]:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SignalResult:
    """
    A signal returned by the gateway.

    Attributes:
        payload: TrafficEstimate or DemographicProfile
        source: "cache" or "fresh"
        computed_at: When the payload was computed
        persisted: False if a fresh payload could not be written to the store
    """
    payload: SignalPayload
    source: SignalSource
    computed_at: datetime
    persisted: bool = True


class SignalCacheGateway:
    """
    Orchestrates cached computation of location signals.

    Collaborators are injected: the store, one provider per signal kind and
    a clock. The estimators are pure, so two concurrent misses for the same
    key only duplicate work; the store's atomic upsert keeps one entry.
    """

    def __init__(
        self,
        store: SignalCacheStore,
        traffic_provider: TrafficFlowProvider,
        business_provider: BusinessRegistryProvider,
        staleness_window: timedelta = DEFAULT_STALENESS_WINDOW,
        traffic_estimator: Optional[TrafficImpressionEstimator] = None,
        classifier: Optional[SocioeconomicClassifier] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._store = store
        self._traffic_provider = traffic_provider
        self._business_provider = business_provider
        self._staleness_window = staleness_window
        self._traffic_estimator = traffic_estimator or TrafficImpressionEstimator()
        self._classifier = classifier or SocioeconomicClassifier()
        self._clock = clock

    @property
    def staleness_window(self) -> timedelta:
        return self._staleness_window

    def _is_fresh(self, entry: CachedSignal, now: datetime) -> bool:
        computed_at = entry.computed_at
        if computed_at.tzinfo is None:
            computed_at = computed_at.replace(tzinfo=timezone.utc)
        return now - computed_at < self._staleness_window

    async def _compute(
        self,
        kind: SignalKind,
        latitude: float,
        longitude: float,
        now: datetime,
    ) -> SignalPayload:
        """Fetch raw signals for ``kind`` and run the matching estimator."""
        if kind == SignalKind.TRAFFIC:
            sample = await self._traffic_provider.fetch_flow(latitude, longitude)
            if sample is None:
                raise SignalUnavailable(kind.value, "no road segment found")
            return self._traffic_estimator.estimate_sample(sample, computed_at=now)

        businesses = await self._business_provider.fetch_businesses(latitude, longitude)
        if businesses is None:
            raise SignalUnavailable(kind.value, "business registry returned no data")
        return self._classifier.classify(businesses, computed_at=now)

    async def get_or_compute(
        self,
        location_key: str,
        kind: SignalKind,
        *,
        latitude: float,
        longitude: float,
        force_refresh: bool = False,
    ) -> SignalResult:
        """
        Return the signal for a location, computing it if needed.

        Args:
            location_key: Stable location identity (listing id)
            kind: Which signal to return
            latitude: Location latitude, used only when fetching
            longitude: Location longitude, used only when fetching
            force_refresh: Skip the cache even if the entry is fresh

        Returns:
            SignalResult tagged "cache" or "fresh"

        Raises:
            InvalidInput: Malformed key, unknown kind or bad coordinates
            SignalUnavailable: The provider failed; nothing was written
        """
        location_key = normalize_location_key(location_key)
        try:
            kind = SignalKind(kind)
        except ValueError:
            raise InvalidInput(f"Unknown signal kind: {kind!r}", field="kind") from None
        latitude, longitude = validate_coordinates(latitude, longitude)

        now = self._clock()

        if not force_refresh:
            cached = self._store.get(location_key, kind)
            if cached is not None and self._is_fresh(cached, now):
                logger.info(f"Returning cached {kind.value} signal for: {location_key}")
                return SignalResult(
                    payload=cached.payload,
                    source=SignalSource.CACHE,
                    computed_at=cached.computed_at,
                )
            if cached is not None:
                logger.info(f"Cached {kind.value} signal for {location_key} is stale")

        logger.info(
            f"Computing {kind.value} signal for {location_key} "
            f"at {latitude}, {longitude} (force_refresh={force_refresh})"
        )

        try:
            payload = await self._compute(kind, latitude, longitude, now)
        except SignalUnavailable as e:
            logger.warning(f"Signal unavailable for {location_key}: {e}")
            raise

        persisted = True
        try:
            self._store.upsert(location_key, kind, payload, now)
        except PersistenceFailure as e:
            # The computed payload is still valid; only the write-through failed
            logger.error(f"Persistence failure for {location_key} ({kind.value}): {e}")
            persisted = False

        return SignalResult(
            payload=payload,
            source=SignalSource.FRESH,
            computed_at=now,
            persisted=persisted,
        )
