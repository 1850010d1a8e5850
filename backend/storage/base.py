"""Store-access interfaces for the ``users`` and ``rides`` collections."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from rides.models import Ride, User
from .query import GroupSpec, QuerySpec


USERS_COLLECTION = 'users'
RIDES_COLLECTION = 'rides'


class DuplicateUsernameError(Exception):
    """Raised when a user is created with a username that is already taken."""
    pass


class UserStore(ABC):

    @abstractmethod
    def create(self, user: User) -> User:
        """Insert ``user`` and return it with its id set."""

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    def ensure_indexes(self) -> List[str]:
        return []


class RideStore(ABC):

    @abstractmethod
    def insert(self, ride: Ride) -> Ride:
        """Insert ``ride`` and return it with its id set."""

    @abstractmethod
    def get(self, ride_id: str) -> Optional[Ride]:
        ...

    @abstractmethod
    def replace_if_status(self, ride: Ride, expected_status: str) -> Optional[Ride]:
        """
        Atomically replace the stored record of ``ride`` with ``ride``, but only
        while its stored status equals ``expected_status``.

        Returns the stored ride after the replace, or None when the ride is
        missing or its status no longer matches.
        """

    @abstractmethod
    def find(self, spec: QuerySpec) -> List[Ride]:
        ...

    @abstractmethod
    def aggregate(self, spec: GroupSpec) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def ping(self) -> str:
        """Check connectivity; returns the database name."""

    def ensure_indexes(self) -> List[str]:
        return []
