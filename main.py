"""
Billboard Location Signal API - Main Application Entry Point.

Estimates location signals for billboard listings: daily impressions from
live traffic flow (TomTom) and the commercial / socioeconomic profile of the
surroundings from the INEGI business registry (DENUE). Results are cached
per listing for 7 days.

Run with: uvicorn main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from location_signals import __version__
from location_signals.clients import DenueClient, TomTomTrafficClient
from location_signals.config import get_settings
from location_signals.exceptions import SignalError
from location_signals.middleware import (
    ErrorHandlerMiddleware,
    RequestLoggingMiddleware,
    create_http_exception_handler,
    create_signal_error_handler,
    create_validation_error_handler,
)
from location_signals.routes import v1_router
from location_signals.services import SignalCacheGateway, SignalCacheStore

_settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Open the signal cache, create provider clients and the gateway
    - Shutdown: Close HTTP clients and the cache
    """
    # === STARTUP ===
    logger.info("Starting Billboard Location Signal API...")
    app.state.start_time = time.time()

    cache_store = SignalCacheStore(
        _settings.cache_directory,
        size_limit=_settings.cache_size_limit,
    )
    cache_store.initialize()
    logger.info("Signal cache initialized")

    traffic_client = TomTomTrafficClient(_settings)
    denue_client = DenueClient(_settings)
    if not traffic_client.is_configured:
        logger.warning("TOMTOM_API_KEY not set; traffic signals will be unavailable")
    if not denue_client.is_configured:
        logger.warning("DENUE_TOKEN not set; demographic signals will be unavailable")

    app.state.cache_store = cache_store
    app.state.traffic_client = traffic_client
    app.state.denue_client = denue_client
    app.state.gateway = SignalCacheGateway(
        store=cache_store,
        traffic_provider=traffic_client,
        business_provider=denue_client,
        staleness_window=timedelta(days=_settings.cache_staleness_days),
    )

    logger.info(f"API v{__version__} ready")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down...")

    await traffic_client.close()
    await denue_client.close()
    logger.info("Provider clients closed")

    cache_store.close()
    logger.info("Signal cache closed")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Billboard Location Signal API",
    description="""
## Location Signals for Billboard Listings

Derived decision metrics for a billboard location, computed from third-party
signals and cached per listing for 7 days.

### Signals
- **Traffic**: estimated daily impressions, road class and congestion ratio
  from TomTom Traffic Flow
- **Demographics**: sector counts, dominant sector and socioeconomic tier
  (bajo / medio / medio-alto / alto) from INEGI DENUE businesses within 500 m

### Impressions Estimate
- **Base volume**: 2000 / 1500 / 1000 vehicles per hour (highway / avenue / urban, local)
- **x 16** active hours per day
- **x 1-3** congestion multiplier (slower traffic, longer exposure)
- **x confidence**, floored at 0.4
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Order matters - first added = outermost
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ErrorHandlerMiddleware)

# Exception handlers for consistent error format
app.add_exception_handler(SignalError, create_signal_error_handler())
app.add_exception_handler(RequestValidationError, create_validation_error_handler())
app.add_exception_handler(HTTPException, create_http_exception_handler())

app.include_router(v1_router)


def _cache_store(request: Request):
    return getattr(request.app.state, "cache_store", None)


@app.get(
    "/",
    tags=["root"],
    summary="API Root",
    description="Welcome message and API information.",
)
async def root():
    """API root endpoint."""
    return {
        "name": "Billboard Location Signal API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "traffic": "POST /v1/signals/traffic",
            "demographics": "POST /v1/signals/demographics",
            "delete": "DELETE /v1/signals/{kind}/{location_key}",
            "health": "GET /health",
        },
    }


@app.get(
    "/health",
    tags=["health"],
    summary="Health Check",
    description="Detailed health check with component status.",
)
async def health_check(request: Request):
    """
    Health check endpoint with detailed component status.

    Returns:
    - healthy: All systems operational
    - degraded: Cache ready but a provider is not configured
    - unhealthy: Cache unavailable
    """
    state = request.app.state
    cache_store = _cache_store(request)
    traffic_client = getattr(state, "traffic_client", None)
    denue_client = getattr(state, "denue_client", None)

    checks = {
        "cache": "ok" if (cache_store and cache_store.is_ready) else "unavailable",
        "traffic_provider": "ok" if (traffic_client and traffic_client.is_configured) else "unconfigured",
        "business_registry": "ok" if (denue_client and denue_client.is_configured) else "unconfigured",
    }

    critical_ok = checks["cache"] == "ok"
    all_ok = all(v == "ok" for v in checks.values())

    if all_ok:
        status = "healthy"
    elif critical_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    start_time = getattr(state, "start_time", None)
    uptime_seconds = int(time.time() - start_time) if start_time else 0

    return {
        "status": status,
        "version": __version__,
        "checks": checks,
        "uptime_seconds": uptime_seconds,
    }


@app.get(
    "/ready",
    tags=["health"],
    summary="Readiness Check",
    description="Kubernetes-style readiness probe.",
)
async def readiness_check(request: Request):
    """
    Readiness check for load balancers and orchestrators.

    Returns 200 if ready to accept traffic, 503 otherwise.
    """
    cache_store = _cache_store(request)

    if not (cache_store and cache_store.is_ready):
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Cache not available"},
        )

    return {"ready": True}


@app.get(
    "/cache/stats",
    tags=["admin"],
    summary="Cache Statistics",
    description="Get current cache statistics.",
)
async def cache_stats(request: Request):
    """Get cache statistics."""
    cache_store = _cache_store(request)
    if cache_store is None:
        return {"status": "not initialized"}
    stats = cache_store.stats()
    stats["staleness_days"] = _settings.cache_staleness_days
    return stats


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
    )
