"""
Read-only ride queries.

Each method builds one ``QuerySpec`` and issues a single read against the
ride store.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from django.utils import timezone

from rides.models import Ride, RideStatus
from services.ride_management.exceptions import ValidationError
from storage.base import RideStore
from storage.query import (
    ASCENDING,
    DESCENDING,
    Between,
    ContainsText,
    Equals,
    QuerySpec,
)

LOCATION_FIELDS = ('pickup_location', 'drop_location')

SORTABLE_FIELDS = {
    'fare': 'fare',
    'distance_km': 'distance_km',
    'distanceKm': 'distance_km',
    'created_at': 'created_at',
    'createdAt': 'created_at',
    'status': 'status',
    'pickup_location': 'pickup_location',
    'pickupLocation': 'pickup_location',
    'drop_location': 'drop_location',
    'dropLocation': 'drop_location',
}

MAX_PAGE_SIZE = 100


def sort_direction(order: Optional[str]) -> str:
    """'asc' (any case) sorts ascending; anything else sorts descending."""
    return ASCENDING if (order or '').lower() == 'asc' else DESCENDING


def start_of_day(day: date) -> datetime:
    """Midnight at the start of ``day`` in the current time zone."""
    return timezone.make_aware(datetime.combine(day, time.min))


def _keyword(text: str) -> ContainsText:
    return ContainsText(LOCATION_FIELDS, text)


def _status(value: str) -> str:
    status = RideStatus.parse(value)
    if status is None:
        raise ValidationError(
            f"Unknown ride status '{value}'. Expected one of: {', '.join(RideStatus.ALL)}"
        )
    return status


class RideQueryService:

    def __init__(self, rides: RideStore):
        self.rides = rides

    def search(self, text: str) -> List[Ride]:
        """Rides whose pickup or drop location contains ``text``."""
        return self.rides.find(QuerySpec().where(_keyword(text)))

    def filter_by_distance(self, min_km: float, max_km: float) -> List[Ride]:
        if min_km > max_km:
            raise ValidationError("min must not be greater than max")
        return self.rides.find(QuerySpec().where(Between('distance_km', min_km, max_km)))

    def filter_by_date_range(self, start: date, end: date) -> List[Ride]:
        """
        Rides created from the start of ``start`` up to the end of ``end``.

        The end date is inclusive at day granularity: the upper bound is the
        start of the following day, exclusive.
        """
        if start > end:
            raise ValidationError("start must not be after end")
        spec = QuerySpec().where(Between(
            'created_at',
            lower=start_of_day(start),
            upper=start_of_day(end + timedelta(days=1)),
            upper_inclusive=False,
        ))
        return self.rides.find(spec)

    def rides_on_date(self, day: date) -> List[Ride]:
        return self.filter_by_date_range(day, day)

    def sort_by_fare(self, order: str) -> List[Ride]:
        return self.rides.find(QuerySpec().order_by('fare', sort_direction(order)))

    def rides_by_user(self, user_id: str) -> List[Ride]:
        return self.rides.find(QuerySpec().where(Equals('user_id', user_id)))

    def rides_by_user_and_status(self, user_id: str, status: str) -> List[Ride]:
        return self.rides.find(QuerySpec().where(
            Equals('user_id', user_id),
            Equals('status', _status(status)),
        ))

    def driver_active_rides(self, driver_id: str) -> List[Ride]:
        return self.rides.find(QuerySpec().where(
            Equals('driver_id', driver_id),
            Equals('status', RideStatus.ACCEPTED),
        ))

    def filter_by_status_and_keyword(self, status: str, text: str) -> List[Ride]:
        return self.rides.find(QuerySpec().where(
            Equals('status', _status(status)),
            _keyword(text),
        ))

    def advanced_search(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = 'asc',
        page: int = 0,
        size: int = 10,
    ) -> List[Ride]:
        """
        Combine an optional keyword clause and an optional status clause,
        then sort and paginate.

        Clauses that are not given are left out entirely, so with neither
        ``search`` nor ``status`` this pages through every ride.
        """
        if page < 0:
            raise ValidationError("page must not be negative")
        if not 1 <= size <= MAX_PAGE_SIZE:
            raise ValidationError(f"size must be between 1 and {MAX_PAGE_SIZE}")

        spec = QuerySpec()
        if search:
            spec = spec.where(_keyword(search))
        if status:
            spec = spec.where(Equals('status', _status(status)))

        if sort:
            field = SORTABLE_FIELDS.get(sort)
            if field is None:
                raise ValidationError(
                    f"Cannot sort by '{sort}'. Sortable fields: {', '.join(sorted(set(SORTABLE_FIELDS.values())))}"
                )
            spec = spec.order_by(field, sort_direction(order))

        return self.rides.find(spec.paginate(page, size))
