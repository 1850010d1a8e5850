"""
Ride analytics.

Every operation is a single grouping pass over the ride store and is
recomputed on each call.
"""

from typing import Any, Dict, List

from rides.models import RideStatus
from storage.base import RideStore
from storage.query import AVG, COUNT, SUM, Accumulator, Equals, GroupSpec


class RideAnalyticsService:

    def __init__(self, rides: RideStore):
        self.rides = rides

    def _single(self, spec: GroupSpec) -> Dict[str, Any]:
        rows = self.rides.aggregate(spec)
        return rows[0] if rows else {}

    def total_earnings(self, driver_id: str) -> float:
        """Sum of fares over the driver's completed rides; 0.0 when there are none."""
        row = self._single(GroupSpec(
            predicates=(
                Equals('driver_id', driver_id),
                Equals('status', RideStatus.COMPLETED),
            ),
            accumulators=(Accumulator('total', SUM, 'fare'),),
        ))
        return float(row.get('total') or 0)

    def rides_per_day(self) -> List[Dict[str, Any]]:
        rows = self.rides.aggregate(GroupSpec(
            key='created_at',
            by_day=True,
            accumulators=(Accumulator('count', COUNT),),
            sort_by_key=True,
        ))
        return [{'date': row['key'], 'count': row['count']} for row in rows]

    def driver_summary(self, driver_id: str) -> Dict[str, Any]:
        row = self._single(GroupSpec(
            predicates=(
                Equals('driver_id', driver_id),
                Equals('status', RideStatus.COMPLETED),
            ),
            key='driver_id',
            accumulators=(
                Accumulator('completed_rides', COUNT),
                Accumulator('total_earnings', SUM, 'fare'),
                Accumulator('avg_distance', AVG, 'distance_km'),
            ),
        ))
        return {
            'driver_id': driver_id,
            'completed_rides': row.get('completed_rides', 0),
            'total_earnings': float(row.get('total_earnings') or 0),
            'avg_distance': row.get('avg_distance'),
        }

    def user_spending(self, user_id: str) -> Dict[str, Any]:
        row = self._single(GroupSpec(
            predicates=(
                Equals('user_id', user_id),
                Equals('status', RideStatus.COMPLETED),
            ),
            key='user_id',
            accumulators=(
                Accumulator('total_rides', COUNT),
                Accumulator('total_spent', SUM, 'fare'),
            ),
        ))
        return {
            'user_id': user_id,
            'total_rides': row.get('total_rides', 0),
            'total_spent': float(row.get('total_spent') or 0),
        }

    def status_summary(self) -> List[Dict[str, Any]]:
        """Ride count per status, every status listed in lifecycle order."""
        counts = {
            row['key']: row['count']
            for row in self.rides.aggregate(GroupSpec(
                key='status',
                accumulators=(Accumulator('count', COUNT),),
            ))
        }
        return [{'status': status, 'count': counts.get(status, 0)} for status in RideStatus.ALL]
