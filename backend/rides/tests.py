from io import StringIO

from django.core.management import call_command
from rest_framework.test import APIClient

from common.testing import StoreTestCase, utc
from rides.models import RideStatus, Role


class RideApiTestCase(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.passenger = self.make_user('passenger')
        self.other_passenger = self.make_user('other_passenger')
        self.driver_one = self.make_user('driver_one', role=Role.DRIVER)
        self.driver_two = self.make_user('driver_two', role=Role.DRIVER)

    def login_as(self, user):
        self.client.force_authenticate(user=user)


class RideLifecycleApiTests(RideApiTestCase):

    def test_passenger_requests_driver_accepts_passenger_completes(self):
        self.login_as(self.passenger)
        response = self.client.post('/api/rides', {
            'pickupLocation': 'Connaught Place',
            'dropLocation': 'India Gate',
            'distanceKm': 5,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], RideStatus.REQUESTED)
        self.assertIsNone(response.data['driverId'])
        self.assertEqual(response.data['userId'], self.passenger.id)
        self.assertEqual(response.data['fare'], 8.5)
        ride_id = response.data['id']

        self.login_as(self.driver_one)
        response = self.client.post(f'/api/rides/accept/{ride_id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], RideStatus.ACCEPTED)
        self.assertEqual(response.data['driverId'], self.driver_one.id)

        self.login_as(self.passenger)
        response = self.client.post(f'/api/rides/complete/{ride_id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], RideStatus.COMPLETED)

    def test_ride_wire_format_uses_camel_case_keys(self):
        self.login_as(self.passenger)
        response = self.client.post('/api/rides', {
            'pickupLocation': 'Connaught Place',
            'dropLocation': 'India Gate',
            'distanceKm': 2,
            'fare': 9.0,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(set(response.data), {
            'id', 'userId', 'driverId', 'pickupLocation', 'dropLocation',
            'distanceKm', 'fare', 'status', 'createdAt',
        })
        self.assertEqual(response.data['pickupLocation'], 'Connaught Place')
        self.assertEqual(response.data['dropLocation'], 'India Gate')
        self.assertEqual(response.data['distanceKm'], 2.0)
        self.assertEqual(response.data['fare'], 9.0)

        stored = self.services.rides.get(response.data['id'])
        self.assertEqual(stored.pickup_location, 'Connaught Place')
        self.assertEqual(stored.distance_km, 2.0)

    def test_snake_case_body_is_rejected(self):
        self.login_as(self.passenger)
        response = self.client.post('/api/rides', {
            'pickup_location': 'A',
            'drop_location': 'B',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('pickupLocation', response.data)

    def test_create_ride_validates_body(self):
        self.login_as(self.passenger)
        response = self.client.post('/api/rides', {'pickupLocation': 'A'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('dropLocation', response.data)

    def test_driver_cannot_create_ride(self):
        self.login_as(self.driver_one)
        response = self.client.post('/api/rides', {
            'pickupLocation': 'A',
            'dropLocation': 'B',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error'], 'forbidden')
        self.assertIn('ROLE_USER', response.data['message'])

    def test_passenger_cannot_accept(self):
        ride = self.make_ride(self.passenger)
        self.login_as(self.passenger)
        response = self.client.post(f'/api/rides/accept/{ride.id}')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error'], 'forbidden')

    def test_accept_missing_ride(self):
        self.login_as(self.driver_one)
        response = self.client.post('/api/rides/accept/does-not-exist')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'error': 'not_found', 'message': 'Ride not found'})

    def test_accept_already_accepted_ride(self):
        ride = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver_one)
        self.login_as(self.driver_two)
        response = self.client.post(f'/api/rides/accept/{ride.id}')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'invalid_state')
        self.assertEqual(self.services.rides.get(ride.id).driver_id, self.driver_one.id)

    def test_complete_requested_ride(self):
        ride = self.make_ride(self.passenger)
        self.login_as(self.passenger)
        response = self.client.post(f'/api/rides/complete/{ride.id}')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'invalid_state')

    def test_third_party_cannot_complete(self):
        ride = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver_one)
        self.login_as(self.other_passenger)
        response = self.client.post(f'/api/rides/complete/{ride.id}')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.services.rides.get(ride.id).status, RideStatus.ACCEPTED)

    def test_my_rides_as_passenger_and_driver(self):
        mine = self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver_one)
        self.make_ride(self.other_passenger)

        self.login_as(self.passenger)
        response = self.client.get('/api/rides/user/me')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [mine.id])

        self.login_as(self.driver_one)
        response = self.client.get('/api/rides/driver/me')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [mine.id])

    def test_pending_rides(self):
        open_ride = self.make_ride(self.other_passenger)
        self.make_ride(self.passenger, status=RideStatus.COMPLETED, driver=self.driver_one)

        self.login_as(self.driver_two)
        response = self.client.get('/api/rides/pending')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [open_ride.id])

        self.login_as(self.passenger)
        self.assertEqual(self.client.get('/api/rides/pending').status_code, 403)

    def test_requires_authentication(self):
        for method, url in (
            ('post', '/api/rides'),
            ('get', '/api/rides/user/me'),
            ('get', '/api/v1/rides/search?text=a'),
            ('get', '/api/v1/analytics/status-summary'),
        ):
            with self.subTest(url=url):
                response = getattr(self.client, method)(url)
                self.assertEqual(response.status_code, 401)


class RideQueryApiTests(RideApiTestCase):

    def setUp(self):
        super().setUp()
        self.login_as(self.passenger)
        self.airport = self.make_ride(
            self.passenger, pickup='Airport T3', drop='Hotel', distance_km=12.0, fare=20.0,
            status=RideStatus.ACCEPTED, driver=self.driver_one, created_at=utc(2024, 3, 1, 8, 0),
        )
        self.market = self.make_ride(
            self.passenger, pickup='Home', drop='Market', distance_km=3.0, fare=6.0,
            status=RideStatus.COMPLETED, driver=self.driver_one, created_at=utc(2024, 3, 2, 23, 59, 59),
        )
        self.station = self.make_ride(
            self.other_passenger, pickup='Station', drop='airport', distance_km=20.0, fare=30.0,
            created_at=utc(2024, 3, 3, 0, 0),
        )

    def ids(self, response):
        self.assertEqual(response.status_code, 200, response.data)
        return [r['id'] for r in response.data]

    def test_search(self):
        response = self.client.get('/api/v1/rides/search', {'text': 'AIRPORT'})
        self.assertEqual(set(self.ids(response)), {self.airport.id, self.station.id})

    def test_search_requires_text(self):
        self.assertEqual(self.client.get('/api/v1/rides/search').status_code, 400)

    def test_filter_distance(self):
        response = self.client.get('/api/v1/rides/filter-distance', {'min': 3, 'max': 12})
        self.assertEqual(set(self.ids(response)), {self.airport.id, self.market.id})

    def test_filter_distance_rejects_inverted_range(self):
        response = self.client.get('/api/v1/rides/filter-distance', {'min': 12, 'max': 3})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'validation_error')

    def test_filter_date_range(self):
        response = self.client.get('/api/v1/rides/filter-date-range', {'start': '2024-03-01', 'end': '2024-03-02'})
        self.assertEqual(set(self.ids(response)), {self.airport.id, self.market.id})

    def test_filter_date_range_rejects_bad_dates(self):
        response = self.client.get('/api/v1/rides/filter-date-range', {'start': '03/01/2024', 'end': '2024-03-02'})
        self.assertEqual(response.status_code, 400)

    def test_rides_on_date(self):
        self.assertEqual(self.ids(self.client.get('/api/v1/rides/date/2024-03-02')), [self.market.id])
        self.assertEqual(self.client.get('/api/v1/rides/date/2024-02-30').status_code, 400)

    def test_sort_by_fare(self):
        response = self.client.get('/api/v1/rides/sort', {'order': 'asc'})
        self.assertEqual(self.ids(response), [self.market.id, self.airport.id, self.station.id])

        response = self.client.get('/api/v1/rides/sort', {'order': 'desc'})
        self.assertEqual(self.ids(response), [self.station.id, self.airport.id, self.market.id])

    def test_sort_by_fare_treats_any_other_order_as_descending(self):
        descending = [self.station.id, self.airport.id, self.market.id]
        for order in ('', ' asc ', 'ascending', 'DESC'):
            with self.subTest(order=order):
                response = self.client.get('/api/v1/rides/sort', {'order': order})
                self.assertEqual(self.ids(response), descending)

        response = self.client.get('/api/v1/rides/sort', {'order': 'ASC'})
        self.assertEqual(self.ids(response), list(reversed(descending)))

    def test_user_rides(self):
        response = self.client.get(f'/api/v1/rides/user/{self.passenger.id}')
        self.assertEqual(set(self.ids(response)), {self.airport.id, self.market.id})

    def test_user_rides_by_status(self):
        response = self.client.get(f'/api/v1/rides/user/{self.passenger.id}/status/completed')
        self.assertEqual(self.ids(response), [self.market.id])

        response = self.client.get(f'/api/v1/rides/user/{self.passenger.id}/status/CANCELLED')
        self.assertEqual(response.status_code, 400)

    def test_driver_active_rides_on_both_routes(self):
        for url in (
            f'/api/v1/rides/driver/{self.driver_one.id}/active-rides',
            f'/api/v1/driver/{self.driver_one.id}/active-rides',
        ):
            with self.subTest(url=url):
                self.assertEqual(self.ids(self.client.get(url)), [self.airport.id])

    def test_filter_status(self):
        response = self.client.get('/api/v1/rides/filter-status', {'status': 'REQUESTED', 'search': 'airport'})
        self.assertEqual(self.ids(response), [self.station.id])

    def test_advanced_search(self):
        response = self.client.get('/api/v1/rides/advanced-search', {
            'search': 'airport', 'sort': 'fare', 'order': 'desc', 'page': 0, 'size': 1,
        })
        self.assertEqual(self.ids(response), [self.station.id])

        response = self.client.get('/api/v1/rides/advanced-search', {'status': 'accepted'})
        self.assertEqual(self.ids(response), [self.airport.id])

        response = self.client.get('/api/v1/rides/advanced-search')
        self.assertEqual(len(self.ids(response)), 3)

    def test_advanced_search_validation(self):
        for params in ({'size': 0}, {'size': 101}, {'page': -1}, {'status': 'LOST'}):
            with self.subTest(**params):
                response = self.client.get('/api/v1/rides/advanced-search', params)
                self.assertEqual(response.status_code, 400)

        response = self.client.get('/api/v1/rides/advanced-search', {'sort': 'user_password'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'validation_error')


class EnsureIndexesCommandTests(StoreTestCase):

    def test_reports_index_counts(self):
        out = StringIO()
        call_command('ensure_indexes', stdout=out)
        self.assertIn('Ensured 0 user index(es) and 0 ride index(es).', out.getvalue())


class HealthCheckTests(StoreTestCase):

    def test_healthy(self):
        response = APIClient().get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['services']['database'], 'healthy (memory)')
