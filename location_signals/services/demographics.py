"""
Socioeconomic Classification.

Turns the businesses registered within the search radius of a location into
sector counts, a dominant sector and a four-level socioeconomic tier.

The tier comes from integer points earned by sector composition plus a
bonus per large employer. All thresholds are fixed.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..models import (
    NO_DOMINANT_SECTOR,
    BusinessRecord,
    DemographicProfile,
    SectorName,
    SocioeconomicTier,
)

logger = logging.getLogger(__name__)


# SCIAN 2-digit prefixes. Codes not listed here (including 81,
# "other services") land in SectorName.OTHER.
SECTOR_BY_CODE: Dict[str, SectorName] = {
    "43": SectorName.COMMERCE_WHOLESALE,
    "46": SectorName.COMMERCE_RETAIL,
    "72": SectorName.HOSPITALITY_FOOD,
    "52": SectorName.FINANCIAL_SERVICES,
    "62": SectorName.HEALTH,
    "61": SectorName.EDUCATION,
    "71": SectorName.ENTERTAINMENT,
    "31": SectorName.MANUFACTURING,
    "32": SectorName.MANUFACTURING,
    "33": SectorName.MANUFACTURING,
    "48": SectorName.TRANSPORT,
    "49": SectorName.TRANSPORT,
    "51": SectorName.INFORMATION_MEDIA,
    "53": SectorName.REAL_ESTATE,
    "54": SectorName.PROFESSIONAL_SERVICES,
    "55": SectorName.CORPORATE,
    "56": SectorName.SUPPORT_SERVICES,
}

MAX_EXAMPLES_PER_SECTOR = 5
MAX_SNAPSHOT_RECORDS = 50

# Substrings of DENUE "Estrato" labels ("31 a 50 personas", "51 a 100 personas",
# "101 a 250 personas", "251 y más personas"). Crude on purpose; changing it
# moves tiers.
LARGE_EMPLOYER_MARKERS = ("101", "251", "51 a", "31 a")
LARGE_EMPLOYER_POINTS = 2

# Tier thresholds (minimum score)
TIER_ALTO_MIN = 15
TIER_MEDIO_ALTO_MIN = 8
TIER_MEDIO_MIN = 3

HIGH_DENSITY_MIN = 51
ACTIVE_DENSITY_MIN = 20

TIER_NARRATIVES = {
    SocioeconomicTier.ALTO: {
        "audience": "Ejecutivos, profesionistas y consumidores de alto poder adquisitivo",
        "environment": "Corredor corporativo y financiero con servicios premium",
    },
    SocioeconomicTier.MEDIO_ALTO: {
        "audience": "Profesionistas y familias con ingreso medio-alto",
        "environment": "Zona de servicios profesionales con oferta comercial y gastronómica",
    },
    SocioeconomicTier.MEDIO: {
        "audience": "Consumidores y familias de ingreso medio",
        "environment": "Zona comercial de barrio con comercio al por menor",
    },
    SocioeconomicTier.BAJO: {
        "audience": "Público general con alta movilidad local",
        "environment": "Zona con actividad comercial básica",
    },
}


def sector_for_code(sector_code: Optional[str]) -> SectorName:
    """Map an activity code to its sector bucket by its 2-digit prefix."""
    prefix = (sector_code or "").strip()[:2]
    return SECTOR_BY_CODE.get(prefix, SectorName.OTHER)


def is_large_employer(employee_range_label: Optional[str]) -> bool:
    """True if the employee range label contains any large-employer marker."""
    label = employee_range_label or ""
    return any(marker in label for marker in LARGE_EMPLOYER_MARKERS)


def dominant_sector(sector_counts: Dict[SectorName, int]) -> str:
    """
    Pick the sector with the highest count.

    Ties go to the sector declared first in SectorName, so the result never
    depends on the order businesses arrived in.
    """
    best = NO_DOMINANT_SECTOR
    best_count = 0
    for sector in SectorName:
        count = sector_counts.get(sector, 0)
        if count > best_count:
            best = sector.value
            best_count = count
    return best


def tier_for_score(score: int) -> SocioeconomicTier:
    """
    Map total points to a tier.

    >=15: alto, >=8: medio-alto, >=3: medio, else bajo.
    """
    if score >= TIER_ALTO_MIN:
        return SocioeconomicTier.ALTO
    elif score >= TIER_MEDIO_ALTO_MIN:
        return SocioeconomicTier.MEDIO_ALTO
    elif score >= TIER_MEDIO_MIN:
        return SocioeconomicTier.MEDIO
    return SocioeconomicTier.BAJO


def density_label(business_count: int) -> str:
    if business_count >= HIGH_DENSITY_MIN:
        return "high density"
    elif business_count >= ACTIVE_DENSITY_MIN:
        return "active"
    return "moderate"


class SocioeconomicClassifier:
    """
    Classifies a location from nearby business records.

    Scoring Algorithm:
    - +3 points: per 5 financial + professional + corporate businesses
    - +2 points: per 5 entertainment + hospitality businesses
    - +1 point: per 10 retail businesses
    - +1 point: per 3 health + education businesses
    - +2 points: each large employer (employee range label heuristic)

    Stateless; safe to share across threads and requests.
    """

    def _calculate_score(
        self,
        counts: Dict[SectorName, int],
        large_employers: int,
    ) -> int:
        """Calculate the raw socioeconomic score."""
        score = 0

        white_collar = (
            counts[SectorName.FINANCIAL_SERVICES]
            + counts[SectorName.PROFESSIONAL_SERVICES]
            + counts[SectorName.CORPORATE]
        )
        white_collar_score = (white_collar // 5) * 3
        score += white_collar_score
        if white_collar_score > 0:
            logger.debug(f"Added {white_collar_score} for {white_collar} financial/professional/corporate")

        leisure = counts[SectorName.ENTERTAINMENT] + counts[SectorName.HOSPITALITY_FOOD]
        leisure_score = (leisure // 5) * 2
        score += leisure_score
        if leisure_score > 0:
            logger.debug(f"Added {leisure_score} for {leisure} entertainment/hospitality")

        retail_score = counts[SectorName.COMMERCE_RETAIL] // 10
        score += retail_score
        if retail_score > 0:
            logger.debug(f"Added {retail_score} for {counts[SectorName.COMMERCE_RETAIL]} retail")

        care = counts[SectorName.HEALTH] + counts[SectorName.EDUCATION]
        care_score = care // 3
        score += care_score
        if care_score > 0:
            logger.debug(f"Added {care_score} for {care} health/education")

        employer_score = large_employers * LARGE_EMPLOYER_POINTS
        score += employer_score
        if employer_score > 0:
            logger.debug(f"Added {employer_score} for {large_employers} large employers")

        return score

    def _generate_summary(self, business_count: int, dominant: str, density: str) -> str:
        """One-line summary of the commercial surroundings."""
        return (
            f"{business_count} businesses nearby; dominant sector: {dominant}; "
            f"{density} commercial zone."
        )

    def classify(
        self,
        businesses: Iterable[BusinessRecord],
        computed_at: Optional[datetime] = None,
    ) -> DemographicProfile:
        """
        Classify a location from the businesses around it.

        Args:
            businesses: Business records within the search radius
            computed_at: Timestamp to stamp on the profile (defaults to now)

        Returns:
            DemographicProfile with counts, dominant sector, tier and narrative
        """
        records: List[BusinessRecord] = list(businesses or [])

        counts: Counter = Counter()
        examples: Dict[SectorName, List[str]] = {sector: [] for sector in SectorName}
        large_employers = 0

        for record in records:
            sector = sector_for_code(record.sector_code)
            counts[sector] += 1
            if record.name and len(examples[sector]) < MAX_EXAMPLES_PER_SECTOR:
                examples[sector].append(record.name)
            if is_large_employer(record.employee_range_label):
                large_employers += 1

        sector_counts = {sector: counts.get(sector, 0) for sector in SectorName}
        dominant = dominant_sector(sector_counts)
        score = self._calculate_score(sector_counts, large_employers)
        tier = tier_for_score(score)
        density = density_label(len(records))
        narrative = TIER_NARRATIVES[tier]

        logger.info(
            f"Classified {len(records)} businesses: dominant={dominant}, "
            f"score={score}, tier={tier.value}"
        )

        return DemographicProfile(
            nearby_business_count=len(records),
            sector_counts={sector.value: count for sector, count in sector_counts.items()},
            business_examples={
                sector.value: names for sector, names in examples.items() if names
            },
            dominant_sector=dominant,
            score=score,
            socioeconomic_tier=tier,
            audience_profile_text=narrative["audience"],
            commercial_environment_text=narrative["environment"],
            density_label=density,
            summary=self._generate_summary(len(records), dominant, density),
            business_snapshot=records[:MAX_SNAPSHOT_RECORDS],
            computed_at=computed_at or datetime.now(timezone.utc),
        )
