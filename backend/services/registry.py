"""
Service registry.

Stores and services are built once per process from Django settings and
shared by every request.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from storage import build_stores
from storage.base import RideStore, UserStore
from .analytics import RideAnalyticsService
from .ride_management import FareCalculator, RideLifecycleService
from .ride_queries import RideQueryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceRegistry:
    users: UserStore
    rides: RideStore
    lifecycle: RideLifecycleService
    queries: RideQueryService
    analytics: RideAnalyticsService


_registry: Optional[ServiceRegistry] = None
_registry_lock = threading.Lock()


def _build_registry() -> ServiceRegistry:
    config = settings.RIDE_STORE
    users, rides = build_stores(config, time_zone=settings.TIME_ZONE)
    logger.info("Ride store backend: %s", config.get('BACKEND', 'mongo'))

    fares = FareCalculator(
        base=settings.RIDE_FARE['BASE'],
        per_km=settings.RIDE_FARE['PER_KM'],
    )

    return ServiceRegistry(
        users=users,
        rides=rides,
        lifecycle=RideLifecycleService(rides, users, fares),
        queries=RideQueryService(rides),
        analytics=RideAnalyticsService(rides),
    )


def get_services() -> ServiceRegistry:
    """Return the process-wide registry, building it on first use."""
    global _registry

    registry = _registry
    if registry is None:
        with _registry_lock:
            # Concurrent first callers wait here and reuse one registry
            if _registry is None:
                _registry = _build_registry()
            registry = _registry
    return registry


def reset_services() -> None:
    """Drop the registry so the next call rebuilds it from current settings."""
    global _registry

    with _registry_lock:
        _registry = None
