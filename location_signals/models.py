"""Pydantic models for the Billboard Location Signal API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .utils import normalize_location_key


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class SignalKind(str, Enum):
    """Kinds of location signal the gateway computes and caches."""
    TRAFFIC = "traffic"
    DEMOGRAPHICS = "demographics"


class SignalSource(str, Enum):
    """Where a returned signal came from."""
    CACHE = "cache"
    FRESH = "fresh"


# ============== Traffic Models ==============


class RoadClass(str, Enum):
    """Road class derived from free-flow speed."""
    HIGHWAY = "highway"
    AVENUE = "avenue"
    URBAN = "urban"
    LOCAL = "local"


class TrafficSample(BaseModel):
    """A single traffic-flow reading for the road segment nearest a location."""

    current_speed_kmh: float = Field(default=0.0, description="Observed speed on the segment")
    free_flow_speed_kmh: float = Field(default=0.0, description="Speed with no congestion")
    confidence: float = Field(default=0.5, description="Provider confidence (0-1)")


class TrafficEstimate(BaseModel):
    """Estimated daily impressions for a billboard location."""

    estimated_daily_traffic: int = Field(ge=0)
    road_class: RoadClass
    congestion_ratio: float = Field(ge=0.0, le=1.0)
    congestion_multiplier: float = Field(ge=1.0, le=3.0)
    confidence_level: float = Field(ge=0.4, le=1.0, description="Floored provider confidence")
    confidence_label: str = Field(description="alta / media / baja from raw confidence")
    peak_hours: str
    current_speed_kmh: float = Field(ge=0.0)
    free_flow_speed_kmh: float = Field(ge=0.0)
    computed_at: datetime = Field(default_factory=_utc_now)


# ============== Demographic Models ==============


class SectorName(str, Enum):
    """
    Closed vocabulary of commercial sectors.

    Declaration order is the tie-break order for the dominant sector.
    """
    COMMERCE_WHOLESALE = "commerce-wholesale"
    COMMERCE_RETAIL = "commerce-retail"
    HOSPITALITY_FOOD = "hospitality-food"
    FINANCIAL_SERVICES = "financial-services"
    HEALTH = "health"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    MANUFACTURING = "manufacturing"
    TRANSPORT = "transport"
    INFORMATION_MEDIA = "information-media"
    REAL_ESTATE = "real-estate"
    PROFESSIONAL_SERVICES = "professional-services"
    CORPORATE = "corporate"
    SUPPORT_SERVICES = "support-services"
    OTHER = "other"


NO_DOMINANT_SECTOR = "none"


class SocioeconomicTier(str, Enum):
    """Four-level socioeconomic label."""
    BAJO = "bajo"
    MEDIO = "medio"
    MEDIO_ALTO = "medio-alto"
    ALTO = "alto"


class BusinessRecord(BaseModel):
    """A business from the registry within the search radius of a location."""

    name: str = Field(default="")
    sector_code: str = Field(default="", description="SCIAN activity code")
    employee_range_label: str = Field(default="", description="Employee range, e.g. '51 a 100 personas'")


class DemographicProfile(BaseModel):
    """Commercial environment and socioeconomic tier around a location."""

    nearby_business_count: int = Field(default=0, ge=0)
    sector_counts: Dict[str, int] = Field(default_factory=dict)
    business_examples: Dict[str, List[str]] = Field(default_factory=dict)
    dominant_sector: str = Field(default=NO_DOMINANT_SECTOR)
    score: int = Field(default=0, ge=0)
    socioeconomic_tier: SocioeconomicTier = SocioeconomicTier.BAJO
    audience_profile_text: str = ""
    commercial_environment_text: str = ""
    density_label: str = ""
    summary: str = ""
    business_snapshot: List[BusinessRecord] = Field(
        default_factory=list,
        description="First registry records as returned, kept for reference",
    )
    computed_at: datetime = Field(default_factory=_utc_now)


SignalPayload = Union[TrafficEstimate, DemographicProfile]

PAYLOAD_MODELS = {
    SignalKind.TRAFFIC: TrafficEstimate,
    SignalKind.DEMOGRAPHICS: DemographicProfile,
}


class CachedSignal(BaseModel):
    """The single live cache entry for a (location_key, kind) pair."""

    location_key: str
    kind: SignalKind
    payload: SignalPayload
    computed_at: datetime


# ============== API Models ==============


class SignalRequest(BaseModel):
    """Input schema for a location signal lookup."""

    location_key: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Stable identity of the location (billboard listing id)",
        examples=["bb-7f3a9c", "3f2b1c8e-1d2a-4b7e-9f00-2b8c1e6d0a11"],
    )
    latitude: float = Field(..., ge=-90, le=90, examples=[32.6245])
    longitude: float = Field(..., ge=-180, le=180, examples=[-115.4523])
    force_refresh: bool = Field(default=False, description="Ignore a fresh cache entry")

    @field_validator("location_key")
    @classmethod
    def validate_location_key(cls, v: str) -> str:
        """Validate and normalize the location key."""
        return normalize_location_key(v)


class TrafficSignalResponse(BaseModel):
    """Response for /v1/signals/traffic."""

    location_key: str
    source: SignalSource
    computed_at: datetime
    persisted: bool = True
    data: TrafficEstimate


class DemographicSignalResponse(BaseModel):
    """Response for /v1/signals/demographics."""

    location_key: str
    source: SignalSource
    computed_at: datetime
    persisted: bool = True
    data: DemographicProfile


class ErrorResponse(BaseModel):
    """Error response model."""

    error: bool = True
    code: str
    message: str
    request_id: Optional[str] = None
    details: Optional[dict] = None
