"""
INEGI DENUE Business Registry Client.

Fetches the businesses registered within a fixed radius of a point from the
DENUE (Directorio Estadístico Nacional de Unidades Económicas) API.

The radius is part of the classifier's contract: a different radius changes
every socioeconomic tier, so it is a constant rather than a setting.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings, get_settings
from ..exceptions import InvalidInput, SignalUnavailable
from ..models import BusinessRecord, SignalKind

logger = logging.getLogger(__name__)

BUSINESS_SEARCH_RADIUS_M = 500
MAX_SEARCH_RADIUS_M = 5000


def _parse_record(raw: Dict[str, Any]) -> BusinessRecord:
    """Map a DENUE record onto a BusinessRecord."""
    return BusinessRecord(
        name=str(raw.get("Nombre") or "").strip(),
        sector_code=str(raw.get("Codigo_act") or "").strip(),
        employee_range_label=str(raw.get("Estrato") or "").strip(),
    )


class DenueClient:
    """Client for the INEGI DENUE "Buscar" endpoint."""

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
        return bool(self._settings.denue_token)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._settings.provider_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def fetch_businesses(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int = BUSINESS_SEARCH_RADIUS_M,
    ) -> List[BusinessRecord]:
        """
        Fetch businesses within ``radius_meters`` of a point.

        Args:
            latitude: Point latitude
            longitude: Point longitude
            radius_meters: Search radius (default 500 m)

        Returns:
            List of BusinessRecord (possibly empty)

        Raises:
            InvalidInput: Radius outside 1..5000 m
            SignalUnavailable: No token, HTTP/transport failure or malformed payload
        """
        if not 0 < radius_meters <= MAX_SEARCH_RADIUS_M:
            raise InvalidInput(
                f"Search radius must be between 1 and {MAX_SEARCH_RADIUS_M} meters",
                field="radius_meters",
            )

        if not self.is_configured:
            raise SignalUnavailable(SignalKind.DEMOGRAPHICS.value, "DENUE token not configured")

        client = await self._get_client()
        url = (
            f"{self._settings.denue_base_url}/"
            f"{latitude},{longitude}/{radius_meters}/{self._settings.denue_token}"
        )

        try:
            logger.info(f"Fetching DENUE businesses for {latitude}, {longitude} (r={radius_meters}m)")
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"DENUE API error: {e.response.status_code} {e.response.text[:200]}")
            raise SignalUnavailable(
                SignalKind.DEMOGRAPHICS.value,
                f"DENUE HTTP {e.response.status_code}",
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"DENUE request failed: {e}")
            raise SignalUnavailable(SignalKind.DEMOGRAPHICS.value, f"DENUE request failed: {e}") from e

        if not isinstance(data, list):
            logger.error(f"Unexpected DENUE payload type: {type(data).__name__}")
            raise SignalUnavailable(SignalKind.DEMOGRAPHICS.value, "malformed DENUE response")

        businesses = [_parse_record(raw) for raw in data if isinstance(raw, dict)]
        logger.info(f"Found {len(businesses)} businesses from DENUE")
        return businesses

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
