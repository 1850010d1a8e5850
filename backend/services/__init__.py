"""
Services package - Business logic layer.

This package contains the business logic that operates on the document store
but is decoupled from the HTTP layer.

Modules:
    - ride_management: Ride lifecycle operations and the error taxonomy
    - ride_queries: Search, filter, sort and pagination over rides
    - analytics: Aggregations over rides
    - registry: Process-wide construction of stores and services
"""

from .ride_management import (
    RideLifecycleService,
    RideServiceError,
    NotFoundError,
    AuthorizationError,
    InvalidStateError,
    ValidationError,
)
from .ride_queries import RideQueryService
from .analytics import RideAnalyticsService
from .registry import ServiceRegistry, get_services, reset_services

__all__ = [
    # Services
    "RideLifecycleService",
    "RideQueryService",
    "RideAnalyticsService",
    # Wiring
    "ServiceRegistry",
    "get_services",
    "reset_services",
    # Exceptions
    "RideServiceError",
    "NotFoundError",
    "AuthorizationError",
    "InvalidStateError",
    "ValidationError",
]
