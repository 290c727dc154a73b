"""
Shared utilities for the Billboard Location Signal API.

This module provides common functions used across multiple clients and services
to keep input validation consistent.
"""

from .common import (
    normalize_location_key,
    validate_coordinates,
    finite_or,
    LOCATION_KEY_PATTERN,
)

__all__ = [
    "normalize_location_key",
    "validate_coordinates",
    "finite_or",
    "LOCATION_KEY_PATTERN",
]
