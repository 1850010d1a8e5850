"""
Storage package - document store access.

Modules:
    - query: store-agnostic query and aggregation specifications
    - base: store interfaces for users and rides
    - mongo: MongoDB adapter (production)
    - memory: in-process adapter (tests, local development)
"""

from typing import Any, Dict, Tuple

from django.core.exceptions import ImproperlyConfigured

from .base import DuplicateUsernameError, RideStore, UserStore

__all__ = [
    "build_stores",
    "DuplicateUsernameError",
    "RideStore",
    "UserStore",
]


def build_stores(config: Dict[str, Any], time_zone: str = 'UTC') -> Tuple[UserStore, RideStore]:
    """Create the user and ride stores selected by ``config['BACKEND']``."""
    backend = config.get('BACKEND', 'mongo')

    if backend == 'mongo':
        from .mongo import MongoRideStore, MongoUserStore, connect

        database = connect(
            config['MONGODB_URI'],
            config['DATABASE'],
            timeout_ms=config.get('SERVER_SELECTION_TIMEOUT_MS', 5000),
        )
        return MongoUserStore(database), MongoRideStore(database, time_zone=time_zone)

    if backend == 'memory':
        from .memory import MemoryRideStore, MemoryUserStore

        return MemoryUserStore(), MemoryRideStore(time_zone=time_zone)

    raise ImproperlyConfigured(f"Unknown RIDE_STORE backend: {backend!r}")
