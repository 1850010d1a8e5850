"""
Core ride lifecycle operations.

This module contains the business logic for moving a ride through
REQUESTED -> ACCEPTED -> COMPLETED, including the role and ownership checks.
The caller is always passed in explicitly by username and resolved against
the user store.
"""

import logging
from typing import List, Optional

from django.utils import timezone

from rides.models import Ride, RideStatus, User
from storage.base import RideStore, UserStore
from storage.query import Equals, QuerySpec
from .exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class FareCalculator:
    """Straight-line fare estimate: base fare plus a per-kilometre rate."""

    def __init__(self, base: float = 2.5, per_km: float = 1.2):
        self.base = base
        self.per_km = per_km

    def estimate(self, distance_km: float) -> float:
        return round(self.base + self.per_km * distance_km, 2)


class RideLifecycleService:

    def __init__(self, rides: RideStore, users: UserStore, fares: Optional[FareCalculator] = None):
        self.rides = rides
        self.users = users
        self.fares = fares or FareCalculator()

    # ===================== Helpers =====================

    def _resolve_user(self, username: str, label: str = "User") -> User:
        user = self.users.find_by_username(username)
        if user is None:
            raise NotFoundError(f"{label} not found")
        return user

    def _get_ride(self, ride_id: str) -> Ride:
        ride = self.rides.get(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found")
        return ride

    def _transition(self, ride: Ride, expected_status: str) -> Ride:
        """Persist ``ride`` only if the stored copy is still in ``expected_status``."""
        saved = self.rides.replace_if_status(ride, expected_status)
        if saved is None:
            logger.warning(
                "Ride %s left %s before it could move to %s",
                ride.id, expected_status, ride.status,
            )
            raise InvalidStateError(f"Ride is no longer in {expected_status} status")
        return saved

    # ===================== Passenger Operations =====================

    def request_ride(
        self,
        username: str,
        pickup_location: str,
        drop_location: str,
        distance_km: Optional[float] = None,
        fare: Optional[float] = None,
    ) -> Ride:
        """
        Create a new ride request for a passenger.

        Args:
            username: Caller's username
            pickup_location: Pickup location text
            drop_location: Drop location text
            distance_km: Trip distance in kilometres, if known
            fare: Trip fare; estimated from the distance when omitted

        Returns:
            The stored ride, status REQUESTED and no driver

        Raises:
            NotFoundError: If the caller does not exist
            AuthorizationError: If the caller is not a passenger
            ValidationError: If distance or fare is negative
        """
        user = self._resolve_user(username)

        if not user.is_passenger:
            raise AuthorizationError("Only passengers (ROLE_USER) can request rides")

        if distance_km is not None and distance_km < 0:
            raise ValidationError("distance_km must not be negative")
        if fare is not None and fare < 0:
            raise ValidationError("fare must not be negative")

        if fare is None and distance_km is not None:
            fare = self.fares.estimate(distance_km)

        ride = self.rides.insert(Ride(
            id=None,
            user_id=user.id,
            driver_id=None,
            pickup_location=pickup_location,
            drop_location=drop_location,
            distance_km=distance_km,
            fare=fare,
            status=RideStatus.REQUESTED,
            created_at=timezone.now(),
        ))

        logger.info("Ride %s requested by %s", ride.id, user.username)
        return ride

    def rides_for_passenger(self, username: str) -> List[Ride]:
        user = self._resolve_user(username)
        return self.rides.find(QuerySpec().where(Equals('user_id', user.id)))

    # ===================== Driver Operations =====================

    def pending_rides(self, username: str) -> List[Ride]:
        """Open ride requests a driver can pick up."""
        driver = self._resolve_user(username, "Driver")
        if not driver.is_driver:
            raise AuthorizationError("Only drivers (ROLE_DRIVER) can view pending rides")
        return self.rides.find(QuerySpec().where(Equals('status', RideStatus.REQUESTED)))

    def accept_ride(self, ride_id: str, username: str) -> Ride:
        """
        Assign the calling driver to a REQUESTED ride.

        Raises:
            NotFoundError: If the driver or the ride does not exist
            AuthorizationError: If the caller is not a driver
            InvalidStateError: If the ride is not REQUESTED, including when
                another driver accepted it first
        """
        driver = self._resolve_user(username, "Driver")

        if not driver.is_driver:
            raise AuthorizationError("Only drivers (ROLE_DRIVER) can accept rides")

        ride = self._get_ride(ride_id)

        if ride.status != RideStatus.REQUESTED:
            raise InvalidStateError("Ride is not in REQUESTED status")

        ride.driver_id = driver.id
        ride.status = RideStatus.ACCEPTED
        ride = self._transition(ride, RideStatus.REQUESTED)

        logger.info("Ride %s accepted by driver %s", ride.id, driver.username)
        return ride

    def rides_for_driver(self, username: str) -> List[Ride]:
        driver = self._resolve_user(username, "Driver")
        return self.rides.find(QuerySpec().where(Equals('driver_id', driver.id)))

    # ===================== Shared Operations =====================

    def complete_ride(self, ride_id: str, username: str) -> Ride:
        """
        Complete an ACCEPTED ride. Either the passenger or the assigned driver
        may complete it.

        Raises:
            NotFoundError: If the caller or the ride does not exist
            InvalidStateError: If the ride is not ACCEPTED
            AuthorizationError: If the caller is not on this ride
        """
        user = self._resolve_user(username)
        ride = self._get_ride(ride_id)

        if ride.status != RideStatus.ACCEPTED:
            raise InvalidStateError("Ride must be in ACCEPTED status to complete")

        is_passenger = user.id == ride.user_id
        is_driver = user.id == ride.driver_id

        if not is_passenger and not is_driver:
            raise AuthorizationError("You are not authorized to complete this ride")

        ride.status = RideStatus.COMPLETED
        ride = self._transition(ride, RideStatus.ACCEPTED)

        logger.info(
            "Ride %s completed by %s (%s)",
            ride.id, user.username, "passenger" if is_passenger else "driver",
        )
        return ride
