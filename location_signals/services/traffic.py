"""
Traffic Impression Estimation.

Converts a traffic-flow sample (current speed, free-flow speed, provider
confidence) into an estimate of daily billboard impressions.

The ratio current/free-flow speed is the congestion proxy: slower traffic
means more dwell time in front of the billboard, so more impressions.
This is a bounded heuristic for advertising planning, not a vehicle count.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..models import RoadClass, TrafficEstimate, TrafficSample
from ..utils import finite_or

logger = logging.getLogger(__name__)


CONFIDENCE_FLOOR = 0.4
ACTIVE_HOURS_PER_DAY = 16

# Free-flow speed thresholds (km/h)
HIGHWAY_MIN_SPEED = 80  # strictly greater than
AVENUE_MIN_SPEED = 50
URBAN_MIN_SPEED = 30

# Vehicles per hour by road class
BASE_HOURLY_VOLUME = {
    RoadClass.HIGHWAY: 2000,
    RoadClass.AVENUE: 1500,
    RoadClass.URBAN: 1000,
    RoadClass.LOCAL: 1000,
}

PEAK_HOURS = {
    RoadClass.HIGHWAY: "7:00-9:00, 18:00-20:00",
    RoadClass.AVENUE: "7:30-9:30, 17:30-19:30",
    RoadClass.URBAN: "12:00-14:00, 18:00-20:00",
    RoadClass.LOCAL: "10:00-14:00",
}


def classify_road(free_flow_speed_kmh: float) -> RoadClass:
    """
    Bucket a road by its free-flow speed.

    >80: highway, 50-80: avenue, 30-50: urban, <30: local.
    """
    if free_flow_speed_kmh > HIGHWAY_MIN_SPEED:
        return RoadClass.HIGHWAY
    elif free_flow_speed_kmh >= AVENUE_MIN_SPEED:
        return RoadClass.AVENUE
    elif free_flow_speed_kmh >= URBAN_MIN_SPEED:
        return RoadClass.URBAN
    return RoadClass.LOCAL


def congestion_ratio(current_speed_kmh: float, free_flow_speed_kmh: float) -> float:
    """Current over free-flow speed, clamped to [0, 1]. Never divides by zero."""
    ratio = current_speed_kmh / max(free_flow_speed_kmh, 1.0)
    return min(max(ratio, 0.0), 1.0)


def congestion_multiplier(ratio: float) -> float:
    """
    Impression boost from the congestion ratio.

    Linear and strictly decreasing: ratio 0 (gridlock) gives 3x,
    ratio 1 (free flow) gives 1x.
    """
    return 1.0 + 2.0 * (1.0 - ratio)


def confidence_label(confidence: float) -> str:
    """Qualitative label for the raw provider confidence."""
    if confidence >= 0.8:
        return "alta"
    elif confidence >= 0.5:
        return "media"
    return "baja"


class TrafficImpressionEstimator:
    """
    Estimates daily impressions from a traffic-flow sample.

    Estimation:
    - Base volume: 2000 (highway) / 1500 (avenue) / 1000 (urban, local) vehicles/hour
    - x 16 active hours per day
    - x congestion multiplier in [1, 3]
    - x provider confidence, floored at 0.4

    The base volume steps at the road-class thresholds (30, 50 and 80 km/h
    free-flow speed). That is the only discontinuity; the multiplier is smooth
    so speed noise of a few km/h moves the estimate by a few percent.

    Stateless; safe to share across threads and requests.
    """

    def estimate(
        self,
        current_speed_kmh: float,
        free_flow_speed_kmh: float,
        confidence: float,
    ) -> TrafficEstimate:
        """
        Estimate daily impressions.

        Never raises: negative or non-finite speeds count as 0 and a
        non-finite confidence counts as 0 (then floored).

        Args:
            current_speed_kmh: Observed speed on the nearest segment
            free_flow_speed_kmh: Uncongested speed on the same segment
            confidence: Provider confidence, nominally 0-1

        Returns:
            TrafficEstimate for the location
        """
        current = max(finite_or(current_speed_kmh), 0.0)
        free_flow = max(finite_or(free_flow_speed_kmh), 0.0)
        raw_confidence = finite_or(confidence)
        effective_confidence = min(max(raw_confidence, CONFIDENCE_FLOOR), 1.0)

        road_class = classify_road(free_flow)
        ratio = congestion_ratio(current, free_flow)
        multiplier = congestion_multiplier(ratio)

        daily = (
            BASE_HOURLY_VOLUME[road_class]
            * ACTIVE_HOURS_PER_DAY
            * multiplier
            * effective_confidence
        )
        estimated = max(0, int(round(daily)))

        logger.debug(
            f"Traffic estimate: cur={current}, ff={free_flow}, ratio={ratio:.3f}, "
            f"multiplier={multiplier:.3f}, road={road_class.value}, impressions={estimated}"
        )

        return TrafficEstimate(
            estimated_daily_traffic=estimated,
            road_class=road_class,
            congestion_ratio=ratio,
            congestion_multiplier=multiplier,
            confidence_level=effective_confidence,
            confidence_label=confidence_label(raw_confidence),
            peak_hours=PEAK_HOURS[road_class],
            current_speed_kmh=current,
            free_flow_speed_kmh=free_flow,
            computed_at=datetime.now(timezone.utc),
        )

    def estimate_sample(
        self,
        sample: TrafficSample,
        computed_at: Optional[datetime] = None,
    ) -> TrafficEstimate:
        """Estimate from a provider sample, optionally stamping ``computed_at``."""
        result = self.estimate(
            sample.current_speed_kmh,
            sample.free_flow_speed_kmh,
            sample.confidence,
        )
        if computed_at is not None:
            result = result.model_copy(update={"computed_at": computed_at})
        return result
