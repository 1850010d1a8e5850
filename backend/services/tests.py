import threading
import time
from datetime import date
from unittest.mock import patch

from django.test import override_settings

from common.testing import StoreTestCase, utc
from rides.models import RideStatus, Role
from services import get_services, reset_services
from services import registry as registry_module
from services.ride_management import (
    AuthorizationError,
    FareCalculator,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class RideLifecycleTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.lifecycle = self.services.lifecycle
        self.passenger = self.make_user('passenger')
        self.other_passenger = self.make_user('other_passenger')
        self.driver = self.make_user('driver_one', role=Role.DRIVER)
        self.other_driver = self.make_user('driver_two', role=Role.DRIVER)

    def assertDriverInvariant(self, ride):
        self.assertEqual(ride.driver_id is None, ride.status == RideStatus.REQUESTED)

    def test_full_ride_flow(self):
        ride = self.lifecycle.request_ride('passenger', 'A', 'B')
        self.assertEqual(ride.status, RideStatus.REQUESTED)
        self.assertIsNone(ride.driver_id)
        self.assertEqual(ride.user_id, self.passenger.id)
        self.assertIsNotNone(ride.created_at)
        self.assertDriverInvariant(ride)

        ride = self.lifecycle.accept_ride(ride.id, 'driver_one')
        self.assertEqual(ride.status, RideStatus.ACCEPTED)
        self.assertEqual(ride.driver_id, self.driver.id)
        self.assertDriverInvariant(ride)

        ride = self.lifecycle.complete_ride(ride.id, 'passenger')
        self.assertEqual(ride.status, RideStatus.COMPLETED)
        self.assertDriverInvariant(ride)

        with self.assertRaises(InvalidStateError):
            self.lifecycle.accept_ride(ride.id, 'driver_two')
        with self.assertRaises(InvalidStateError):
            self.lifecycle.complete_ride(ride.id, 'passenger')
        with self.assertRaises(InvalidStateError):
            self.lifecycle.complete_ride(ride.id, 'driver_one')

        stored = self.services.rides.get(ride.id)
        self.assertEqual(stored.status, RideStatus.COMPLETED)
        self.assertEqual(stored.driver_id, self.driver.id)

    def test_driver_can_complete(self):
        ride = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)
        ride = self.lifecycle.complete_ride(ride.id, 'driver_one')
        self.assertEqual(ride.status, RideStatus.COMPLETED)

    # ---------- request ----------

    def test_driver_cannot_request_ride(self):
        with self.assertRaises(AuthorizationError):
            self.lifecycle.request_ride('driver_one', 'A', 'B')

    def test_unknown_user_cannot_request_ride(self):
        with self.assertRaises(NotFoundError):
            self.lifecycle.request_ride('ghost', 'A', 'B')

    def test_request_estimates_fare_from_distance(self):
        ride = self.lifecycle.request_ride('passenger', 'A', 'B', distance_km=10)
        self.assertEqual(ride.distance_km, 10)
        self.assertEqual(ride.fare, 14.5)

    def test_request_keeps_explicit_fare(self):
        ride = self.lifecycle.request_ride('passenger', 'A', 'B', distance_km=10, fare=20.0)
        self.assertEqual(ride.fare, 20.0)

    def test_request_rejects_negative_distance(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.request_ride('passenger', 'A', 'B', distance_km=-1)

    # ---------- accept ----------

    def test_passenger_cannot_accept(self):
        ride = self.make_ride(self.passenger)
        with self.assertRaises(AuthorizationError):
            self.lifecycle.accept_ride(ride.id, 'passenger')

    def test_accept_unknown_ride(self):
        with self.assertRaises(NotFoundError):
            self.lifecycle.accept_ride('missing', 'driver_one')

    def test_accept_by_unknown_driver(self):
        ride = self.make_ride(self.passenger)
        with self.assertRaises(NotFoundError):
            self.lifecycle.accept_ride(ride.id, 'ghost')

    def test_accept_requires_requested_status(self):
        for status in (RideStatus.ACCEPTED, RideStatus.COMPLETED):
            with self.subTest(status=status):
                ride = self.make_ride(self.passenger, status=status, driver=self.driver)
                with self.assertRaises(InvalidStateError):
                    self.lifecycle.accept_ride(ride.id, 'driver_two')
                self.assertEqual(self.services.rides.get(ride.id).driver_id, self.driver.id)

    def test_double_accept_is_rejected(self):
        ride = self.make_ride(self.passenger)
        self.lifecycle.accept_ride(ride.id, 'driver_one')
        with self.assertRaises(InvalidStateError):
            self.lifecycle.accept_ride(ride.id, 'driver_one')

    def test_concurrent_accepts_assign_exactly_one_driver(self):
        ride = self.make_ride(self.passenger)
        barrier = threading.Barrier(2)
        outcomes = {}

        real_replace = self.services.rides.replace_if_status

        def synchronized_replace(candidate, expected_status):
            # Both drivers have passed the status check before either writes
            barrier.wait()
            return real_replace(candidate, expected_status)

        def attempt(username):
            try:
                outcomes[username] = self.lifecycle.accept_ride(ride.id, username)
            except InvalidStateError as exc:
                outcomes[username] = exc

        with patch.object(self.services.rides, 'replace_if_status', side_effect=synchronized_replace):
            threads = [
                threading.Thread(target=attempt, args=(name,))
                for name in ('driver_one', 'driver_two')
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        winners = [name for name, result in outcomes.items() if not isinstance(result, Exception)]
        losers = [name for name, result in outcomes.items() if isinstance(result, InvalidStateError)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)

        winner = self.services.users.find_by_username(winners[0])
        self.assertEqual(self.services.rides.get(ride.id).driver_id, winner.id)

    # ---------- complete ----------

    def test_complete_requires_accepted_status(self):
        for status in (RideStatus.REQUESTED, RideStatus.COMPLETED):
            with self.subTest(status=status):
                driver = self.driver if status != RideStatus.REQUESTED else None
                ride = self.make_ride(self.passenger, status=status, driver=driver)
                with self.assertRaises(InvalidStateError):
                    self.lifecycle.complete_ride(ride.id, 'passenger')

    def test_third_party_cannot_complete(self):
        ride = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)
        for username in ('other_passenger', 'driver_two'):
            with self.subTest(username=username):
                with self.assertRaises(AuthorizationError):
                    self.lifecycle.complete_ride(ride.id, username)
        self.assertEqual(self.services.rides.get(ride.id).status, RideStatus.ACCEPTED)

    def test_complete_unknown_ride_or_user(self):
        ride = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)
        with self.assertRaises(NotFoundError):
            self.lifecycle.complete_ride('missing', 'passenger')
        with self.assertRaises(NotFoundError):
            self.lifecycle.complete_ride(ride.id, 'ghost')

    # ---------- listings ----------

    def test_rides_for_passenger_and_driver(self):
        mine = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)
        self.make_ride(self.other_passenger, status=RideStatus.ACCEPTED, driver=self.other_driver)

        self.assertEqual([r.id for r in self.lifecycle.rides_for_passenger('passenger')], [mine.id])
        self.assertEqual([r.id for r in self.lifecycle.rides_for_driver('driver_one')], [mine.id])

        with self.assertRaises(NotFoundError):
            self.lifecycle.rides_for_driver('ghost')

    def test_pending_rides_for_drivers_only(self):
        open_ride = self.make_ride(self.passenger)
        self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)

        self.assertEqual([r.id for r in self.lifecycle.pending_rides('driver_two')], [open_ride.id])
        with self.assertRaises(AuthorizationError):
            self.lifecycle.pending_rides('passenger')


class FareCalculatorTests(StoreTestCase):

    def test_estimate_rounds_to_cents(self):
        self.assertEqual(FareCalculator(base=2.5, per_km=1.2).estimate(3.333), 6.5)

    @override_settings(RIDE_FARE={'BASE': 5.0, 'PER_KM': 2.0})
    def test_registry_reads_fare_settings(self):
        reset_services()
        fares = get_services().lifecycle.fares
        self.assertEqual((fares.base, fares.per_km), (5.0, 2.0))


class ServiceRegistryTests(StoreTestCase):

    def test_concurrent_first_calls_share_one_registry(self):
        reset_services()
        real_build = registry_module.build_stores
        calls = []

        def slow_build(config, time_zone):
            calls.append(time_zone)
            time.sleep(0.05)
            return real_build(config, time_zone=time_zone)

        start = threading.Barrier(8)
        results = []

        def fetch():
            start.wait()
            results.append(get_services())

        with patch.object(registry_module, 'build_stores', side_effect=slow_build):
            threads = [threading.Thread(target=fetch) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        self.assertEqual(len(calls), 1)
        self.assertEqual(len(results), 8)
        self.assertTrue(all(r is results[0] for r in results))

    def test_reset_rebuilds(self):
        first = get_services()
        reset_services()
        self.assertIsNot(get_services(), first)
        self.assertIs(get_services(), get_services())


class RideQueryTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.queries = self.services.queries
        self.passenger = self.make_user('passenger')
        self.driver = self.make_user('driver', role=Role.DRIVER)

    def test_search_matches_pickup_or_drop_case_insensitively(self):
        pickup = self.make_ride(self.passenger, pickup='Central Station', drop='Zoo')
        drop = self.make_ride(self.passenger, pickup='Zoo', drop='central park')
        self.make_ride(self.passenger, pickup='Zoo', drop='Museum')

        self.assertEqual({r.id for r in self.queries.search('CENTRAL')}, {pickup.id, drop.id})

    def test_filter_by_distance_is_inclusive(self):
        low = self.make_ride(self.passenger, distance_km=5)
        high = self.make_ride(self.passenger, distance_km=10)
        self.make_ride(self.passenger, distance_km=10.5)

        self.assertEqual({r.id for r in self.queries.filter_by_distance(5, 10)}, {low.id, high.id})

        with self.assertRaises(ValidationError):
            self.queries.filter_by_distance(10, 5)

    def test_single_day_range_boundaries(self):
        self.make_ride(self.passenger, created_at=utc(2024, 5, 9, 23, 59, 59))
        first = self.make_ride(self.passenger, created_at=utc(2024, 5, 10, 0, 0, 0))
        last = self.make_ride(self.passenger, created_at=utc(2024, 5, 10, 23, 59, 59))
        self.make_ride(self.passenger, created_at=utc(2024, 5, 11, 0, 0, 0))

        day = date(2024, 5, 10)
        self.assertEqual({r.id for r in self.queries.filter_by_date_range(day, day)}, {first.id, last.id})
        self.assertEqual({r.id for r in self.queries.rides_on_date(day)}, {first.id, last.id})

    def test_date_range_end_is_inclusive(self):
        inside = self.make_ride(self.passenger, created_at=utc(2024, 5, 12, 18, 0))
        self.make_ride(self.passenger, created_at=utc(2024, 5, 13, 0, 0))

        rides = self.queries.filter_by_date_range(date(2024, 5, 10), date(2024, 5, 12))
        self.assertEqual([r.id for r in rides], [inside.id])

        with self.assertRaises(ValidationError):
            self.queries.filter_by_date_range(date(2024, 5, 12), date(2024, 5, 10))

    @override_settings(TIME_ZONE='Asia/Kolkata')
    def test_day_boundaries_follow_configured_time_zone(self):
        # 19:00 UTC on the 9th is 00:30 on the 10th in Kolkata
        late = self.make_ride(self.passenger, created_at=utc(2024, 5, 9, 19, 0))
        self.make_ride(self.passenger, created_at=utc(2024, 5, 9, 18, 0))

        rides = self.queries.rides_on_date(date(2024, 5, 10))
        self.assertEqual([r.id for r in rides], [late.id])

    def test_sort_by_fare(self):
        for fare in (12.0, 3.0, 40.0):
            self.make_ride(self.passenger, fare=fare)

        self.assertEqual([r.fare for r in self.queries.sort_by_fare('ASC')], [3.0, 12.0, 40.0])
        self.assertEqual([r.fare for r in self.queries.sort_by_fare('desc')], [40.0, 12.0, 3.0])
        self.assertEqual([r.fare for r in self.queries.sort_by_fare('anything')], [40.0, 12.0, 3.0])

    def test_rides_by_user_and_status(self):
        done = self.make_ride(self.passenger, status=RideStatus.COMPLETED, driver=self.driver)
        waiting = self.make_ride(self.passenger)

        self.assertEqual({r.id for r in self.queries.rides_by_user(self.passenger.id)}, {done.id, waiting.id})
        self.assertEqual(
            [r.id for r in self.queries.rides_by_user_and_status(self.passenger.id, 'completed')],
            [done.id],
        )
        with self.assertRaises(ValidationError):
            self.queries.rides_by_user_and_status(self.passenger.id, 'CANCELLED')

    def test_driver_active_rides(self):
        active = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver)
        self.make_ride(self.passenger, status=RideStatus.COMPLETED, driver=self.driver)

        self.assertEqual([r.id for r in self.queries.driver_active_rides(self.driver.id)], [active.id])

    def test_filter_by_status_and_keyword(self):
        match = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver, drop='Airport')
        self.make_ride(self.passenger, drop='Airport')
        self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver, drop='Harbour')

        rides = self.queries.filter_by_status_and_keyword(RideStatus.ACCEPTED, 'airport')
        self.assertEqual([r.id for r in rides], [match.id])


class AdvancedSearchTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.queries = self.services.queries
        passenger = self.make_user('passenger')
        driver = self.make_user('driver', role=Role.DRIVER)
        self.rides = [
            self.make_ride(passenger, pickup='Airport', fare=30.0),
            self.make_ride(passenger, pickup='Airport', fare=10.0, status=RideStatus.ACCEPTED, driver=driver),
            self.make_ride(passenger, pickup='Station', fare=20.0, status=RideStatus.ACCEPTED, driver=driver),
            self.make_ride(passenger, pickup='Station', fare=5.0),
        ]

    def test_no_clauses_pages_through_everything(self):
        self.assertEqual(len(self.queries.advanced_search()), 4)
        self.assertEqual(len(self.queries.advanced_search(page=1, size=3)), 1)

    def test_keyword_only(self):
        rides = self.queries.advanced_search(search='airport')
        self.assertEqual({r.id for r in rides}, {self.rides[0].id, self.rides[1].id})

    def test_status_only(self):
        rides = self.queries.advanced_search(status=RideStatus.ACCEPTED)
        self.assertEqual({r.id for r in rides}, {self.rides[1].id, self.rides[2].id})

    def test_keyword_and_status(self):
        rides = self.queries.advanced_search(search='airport', status=RideStatus.ACCEPTED)
        self.assertEqual([r.id for r in rides], [self.rides[1].id])

    def test_sort_then_paginate(self):
        rides = self.queries.advanced_search(sort='fare', order='desc', page=0, size=2)
        self.assertEqual([r.fare for r in rides], [30.0, 20.0])

        rides = self.queries.advanced_search(sort='fare', order='asc', page=1, size=2)
        self.assertEqual([r.fare for r in rides], [20.0, 30.0])

    def test_camel_case_sort_alias(self):
        rides = self.queries.advanced_search(sort='createdAt', order='asc')
        self.assertEqual(len(rides), 4)

    def test_invalid_arguments(self):
        for kwargs in ({'sort': 'password'}, {'page': -1}, {'size': 0}, {'size': 101}, {'status': 'LOST'}):
            with self.subTest(**kwargs):
                with self.assertRaises(ValidationError):
                    self.queries.advanced_search(**kwargs)


class RideAnalyticsTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.analytics = self.services.analytics
        self.passenger = self.make_user('passenger')
        self.driver = self.make_user('driver', role=Role.DRIVER)
        self.idle_driver = self.make_user('idle', role=Role.DRIVER)

        self.make_ride(self.passenger, status=RideStatus.COMPLETED, driver=self.driver,
                       fare=10.0, distance_km=4.0, created_at=utc(2024, 1, 2, 9, 0))
        self.make_ride(self.passenger, status=RideStatus.COMPLETED, driver=self.driver,
                       fare=15.5, distance_km=8.0, created_at=utc(2024, 1, 1, 9, 0))
        self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver,
                       fare=99.0, distance_km=50.0, created_at=utc(2024, 1, 2, 10, 0))
        self.make_ride(self.passenger, created_at=utc(2024, 1, 2, 23, 59, 59))

    def test_total_earnings_counts_completed_rides_only(self):
        self.assertEqual(self.analytics.total_earnings(self.driver.id), 25.5)

    def test_total_earnings_without_completed_rides_is_zero(self):
        self.assertEqual(self.analytics.total_earnings(self.idle_driver.id), 0.0)
        self.assertEqual(self.analytics.total_earnings('unknown'), 0.0)

    def test_rides_per_day_sorted_by_date(self):
        self.assertEqual(self.analytics.rides_per_day(), [
            {'date': '2024-01-01', 'count': 1},
            {'date': '2024-01-02', 'count': 3},
        ])

    def test_driver_summary(self):
        self.assertEqual(self.analytics.driver_summary(self.driver.id), {
            'driver_id': self.driver.id,
            'completed_rides': 2,
            'total_earnings': 25.5,
            'avg_distance': 6.0,
        })

    def test_driver_summary_without_rides(self):
        self.assertEqual(self.analytics.driver_summary(self.idle_driver.id), {
            'driver_id': self.idle_driver.id,
            'completed_rides': 0,
            'total_earnings': 0.0,
            'avg_distance': None,
        })

    def test_user_spending(self):
        self.assertEqual(self.analytics.user_spending(self.passenger.id), {
            'user_id': self.passenger.id,
            'total_rides': 2,
            'total_spent': 25.5,
        })

    def test_status_summary_lists_every_status(self):
        self.assertEqual(self.analytics.status_summary(), [
            {'status': RideStatus.REQUESTED, 'count': 1},
            {'status': RideStatus.ACCEPTED, 'count': 1},
            {'status': RideStatus.COMPLETED, 'count': 2},
        ])
