"""
TomTom Traffic Flow Client.

Fetches the flow segment nearest a coordinate from the TomTom Traffic
Flow Segment Data API and returns it as a TrafficSample.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, get_settings
from ..exceptions import SignalUnavailable
from ..models import SignalKind, TrafficSample

logger = logging.getLogger(__name__)

# Tried in order; the absolute style is a fallback for segments where the
# relative style returns nothing
FLOW_STYLES = ("relative0", "absolute")
FLOW_ZOOM = 10

DEFAULT_CONFIDENCE = 0.5


class TomTomTrafficClient:
    """Client for fetching traffic flow samples from TomTom."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.tomtom_api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._settings.provider_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    def _parse_flow(self, data: Dict[str, Any]) -> Optional[TrafficSample]:
        """
        Extract a sample from a flowSegmentData payload.

        Returns None when there is no segment, the segment is malformed, or
        both speeds are zero (TomTom returns 0/0 for points off the road network).
        """
        segment = data.get("flowSegmentData") if isinstance(data, dict) else None
        if not segment or not isinstance(segment, dict):
            logger.warning("No usable flowSegmentData in TomTom response")
            return None

        current_speed = segment.get("currentSpeed") or 0
        free_flow_speed = segment.get("freeFlowSpeed") or 0
        confidence = segment.get("confidence")
        if confidence is None:
            confidence = DEFAULT_CONFIDENCE

        if current_speed == 0 and free_flow_speed == 0:
            logger.warning("TomTom returned 0/0 speeds, treating as incomplete")
            return None

        try:
            return TrafficSample(
                current_speed_kmh=float(current_speed),
                free_flow_speed_kmh=float(free_flow_speed),
                confidence=float(confidence),
            )
        except (TypeError, ValueError):
            logger.warning(f"Malformed TomTom segment: {segment}")
            return None

    async def fetch_flow(self, latitude: float, longitude: float) -> TrafficSample:
        """
        Fetch the traffic sample for the segment nearest a point.

        Args:
            latitude: Point latitude
            longitude: Point longitude

        Returns:
            TrafficSample for the nearest segment

        Raises:
            SignalUnavailable: No API key, HTTP failure on every endpoint,
                or no usable segment
        """
        if not self.is_configured:
            raise SignalUnavailable(SignalKind.TRAFFIC.value, "TomTom API key not configured")

        client = await self._get_client()
        last_error = "no road segment found"

        for style in FLOW_STYLES:
            url = f"{self._settings.tomtom_base_url}/{style}/{FLOW_ZOOM}/json"
            try:
                logger.info(f"Fetching TomTom flow ({style}) for {latitude}, {longitude}")
                response = await client.get(
                    url,
                    params={
                        "point": f"{latitude},{longitude}",
                        "key": self._settings.tomtom_api_key,
                    },
                )
                response.raise_for_status()
                sample = self._parse_flow(response.json())
            except httpx.HTTPStatusError as e:
                last_error = f"TomTom HTTP {e.response.status_code}"
                logger.error(f"{last_error}: {e.response.text[:200]}")
                continue
            except (httpx.HTTPError, ValueError) as e:
                last_error = f"TomTom request failed: {e}"
                logger.error(last_error)
                continue

            if sample is None:
                last_error = "no road segment found"
                continue

            logger.info(
                f"TomTom OK: cur={sample.current_speed_kmh}, "
                f"ff={sample.free_flow_speed_kmh}, conf={sample.confidence}"
            )
            return sample

        raise SignalUnavailable(SignalKind.TRAFFIC.value, last_error)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
