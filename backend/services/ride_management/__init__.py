"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Requesting rides
    - Accepting rides
    - Completing rides
    - Listing a passenger's or driver's rides
"""

from .ride_lifecycle import FareCalculator, RideLifecycleService

from .exceptions import (
    RideServiceError,
    NotFoundError,
    AuthorizationError,
    InvalidStateError,
    ValidationError,
)

__all__ = [
    # Lifecycle
    "FareCalculator",
    "RideLifecycleService",
    # Exceptions
    "RideServiceError",
    "NotFoundError",
    "AuthorizationError",
    "InvalidStateError",
    "ValidationError",
]
