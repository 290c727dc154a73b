"""
Common utilities shared across clients, services and routes.

Provides centralized implementations for:
- Location key normalization (the cache identity of a billboard)
- Coordinate range validation
- Non-finite number sanitizing
"""

import math
import re
from typing import Any, Tuple

from ..exceptions import InvalidInput


# Listing ids are UUIDs or slugs; allow the separators those use
LOCATION_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-:.]{0,127}$")


def normalize_location_key(value: Any) -> str:
    """
    Validate and normalize a location key.

    Args:
        value: Raw key, usually a billboard listing id

    Returns:
        The stripped key

    Raises:
        InvalidInput: If the key is empty, too long or has unexpected characters

    Example:
        >>> normalize_location_key("  bb-1234 ")
        "bb-1234"
    """
    if not isinstance(value, str):
        raise InvalidInput("Location key must be a string", field="location_key")

    key = value.strip()
    if not key:
        raise InvalidInput("Location key cannot be empty", field="location_key")

    if not LOCATION_KEY_PATTERN.match(key):
        raise InvalidInput(
            "Location key can only contain letters, numbers, '-', '_', ':' and '.' "
            "(max 128 characters)",
            field="location_key",
        )

    return key


def validate_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    """
    Check that a latitude/longitude pair is finite and in range.

    Raises:
        InvalidInput: If either value is missing, non-numeric or out of range
    """
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise InvalidInput("Latitude and longitude must be numbers", field="coordinates")

    if not (math.isfinite(lat) and -90.0 <= lat <= 90.0):
        raise InvalidInput(f"Latitude out of range: {latitude}", field="latitude")
    if not (math.isfinite(lon) and -180.0 <= lon <= 180.0):
        raise InvalidInput(f"Longitude out of range: {longitude}", field="longitude")

    return lat, lon


def finite_or(value: Any, default: float = 0.0) -> float:
    """Coerce a value to a finite float, falling back to ``default``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default
