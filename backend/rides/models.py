"""
Ride and user records.

Rides and users live in the document store (see ``storage``), not in the
Django ORM. These are plain records with helpers to move between the record
and its stored document.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


class Role:
    USER = 'ROLE_USER'
    DRIVER = 'ROLE_DRIVER'

    CHOICES = [
        (USER, 'Passenger'),
        (DRIVER, 'Driver'),
    ]


class RideStatus:
    REQUESTED = 'REQUESTED'
    ACCEPTED = 'ACCEPTED'
    COMPLETED = 'COMPLETED'

    # Lifecycle order
    ALL = (REQUESTED, ACCEPTED, COMPLETED)

    CHOICES = [
        (REQUESTED, 'Requested'),
        (ACCEPTED, 'Accepted'),
        (COMPLETED, 'Completed'),
    ]

    @classmethod
    def parse(cls, value: str) -> Optional[str]:
        """Return the canonical status for ``value`` (case-insensitive), or None."""
        if value is None:
            return None
        candidate = str(value).strip().upper()
        return candidate if candidate in cls.ALL else None


@dataclass
class User:
    """A registered passenger or driver."""
    id: Optional[str]
    username: str
    role: str
    password: str = field(default='', repr=False)

    # DRF / simplejwt treat this object as request.user
    is_active = True
    is_anonymous = False

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_driver(self) -> bool:
        return self.role == Role.DRIVER

    @property
    def is_passenger(self) -> bool:
        return self.role == Role.USER

    def to_document(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'password': self.password,
            'role': self.role,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'User':
        return cls(
            id=str(doc['_id']),
            username=doc['username'],
            role=doc.get('role', ''),
            password=doc.get('password', ''),
        )

    def __str__(self):
        return f"{self.username} ({self.role})"


@dataclass
class Ride:
    """A single trip from pickup to drop location."""
    id: Optional[str]
    user_id: str
    pickup_location: str
    drop_location: str
    status: str
    created_at: datetime
    driver_id: Optional[str] = None
    distance_km: Optional[float] = None
    fare: Optional[float] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'driver_id': self.driver_id,
            'pickup_location': self.pickup_location,
            'drop_location': self.drop_location,
            'distance_km': self.distance_km,
            'fare': self.fare,
            'status': self.status,
            'created_at': self.created_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'Ride':
        return cls(
            id=str(doc['_id']),
            user_id=doc['user_id'],
            driver_id=doc.get('driver_id'),
            pickup_location=doc.get('pickup_location', ''),
            drop_location=doc.get('drop_location', ''),
            distance_km=doc.get('distance_km'),
            fare=doc.get('fare'),
            status=doc['status'],
            created_at=doc['created_at'],
        )

    def __str__(self):
        return f"Ride #{self.id} - {self.user_id} - {self.status}"
