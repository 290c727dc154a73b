"""
API v1 Routes.

Location signal endpoints for billboard detail views, search-result
enrichment and batch jobs.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..models import (
    DemographicSignalResponse,
    ErrorResponse,
    SignalKind,
    SignalRequest,
    TrafficSignalResponse,
)
from ..services.cache import SignalCacheStore
from ..services.gateway import SignalCacheGateway, SignalResult
from ..utils import normalize_location_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1"])

SIGNAL_RESPONSES = {
    200: {"description": "Signal returned from cache or freshly computed"},
    400: {"model": ErrorResponse, "description": "Invalid location key or coordinates"},
    422: {"model": ErrorResponse, "description": "Request validation failed"},
    503: {"model": ErrorResponse, "description": "Upstream signal provider unavailable"},
}


def get_gateway(request: Request) -> SignalCacheGateway:
    """Gateway built in the application lifespan."""
    return request.app.state.gateway


def get_cache_store(request: Request) -> SignalCacheStore:
    """Cache store built in the application lifespan."""
    return request.app.state.cache_store


async def _lookup(
    request: Request,
    gateway: SignalCacheGateway,
    kind: SignalKind,
    body: SignalRequest,
    response: Response,
) -> SignalResult:
    request.state.location_key = body.location_key
    result = await gateway.get_or_compute(
        body.location_key,
        kind,
        latitude=body.latitude,
        longitude=body.longitude,
        force_refresh=body.force_refresh,
    )
    response.headers["X-Signal-Source"] = result.source.value
    if not result.persisted:
        logger.warning(f"Returning unpersisted {kind.value} signal for {body.location_key}")
    return result


@router.post(
    "/signals/traffic",
    response_model=TrafficSignalResponse,
    responses=SIGNAL_RESPONSES,
    summary="Estimated Daily Impressions",
    description="""
    Estimate daily billboard impressions from live traffic flow near the location.

    Results are cached per location for 7 days; pass `force_refresh` to recompute.

    **Example Request:**
    ```json
    {
        "location_key": "bb-7f3a9c",
        "latitude": 32.6245,
        "longitude": -115.4523
    }
    ```
    """,
)
async def traffic_signal(
    request: Request,
    body: SignalRequest,
    response: Response,
    gateway: SignalCacheGateway = Depends(get_gateway),
) -> TrafficSignalResponse:
    """Return the traffic estimate for a location."""
    result = await _lookup(request, gateway, SignalKind.TRAFFIC, body, response)
    return TrafficSignalResponse(
        location_key=body.location_key,
        source=result.source,
        computed_at=result.computed_at,
        persisted=result.persisted,
        data=result.payload,
    )


@router.post(
    "/signals/demographics",
    response_model=DemographicSignalResponse,
    responses=SIGNAL_RESPONSES,
    summary="Commercial Environment and Socioeconomic Tier",
    description="""
    Classify the commercial environment within 500 m of the location.

    Returns sector counts, the dominant sector and a socioeconomic tier
    (bajo / medio / medio-alto / alto). Cached per location for 7 days.
    """,
)
async def demographic_signal(
    request: Request,
    body: SignalRequest,
    response: Response,
    gateway: SignalCacheGateway = Depends(get_gateway),
) -> DemographicSignalResponse:
    """Return the demographic profile for a location."""
    result = await _lookup(request, gateway, SignalKind.DEMOGRAPHICS, body, response)
    return DemographicSignalResponse(
        location_key=body.location_key,
        source=result.source,
        computed_at=result.computed_at,
        persisted=result.persisted,
        data=result.payload,
    )


@router.delete(
    "/signals/{kind}/{location_key}",
    responses={
        200: {"description": "Cache entry deleted"},
        404: {"description": "Cache entry not found"},
    },
    summary="Delete Cached Signal",
    description="Delete the cached signal for a location, e.g. when its listing is removed.",
)
async def delete_signal(
    kind: SignalKind,
    location_key: str,
    request: Request,
    store: SignalCacheStore = Depends(get_cache_store),
) -> dict:
    """Delete the cached signal of one kind for a location."""
    location_key = normalize_location_key(location_key)
    request.state.location_key = location_key

    if store.delete(location_key, kind):
        return {"message": "Cache entry deleted", "location_key": location_key, "kind": kind.value}

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="No cache entry found for this location",
    )
