from rest_framework.test import APIClient

from common.testing import StoreTestCase, utc
from rides.models import RideStatus, Role


class AnalyticsApiTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.passenger = self.make_user('passenger')
        self.driver = self.make_user('driver', role=Role.DRIVER)
        self.client = APIClient()
        self.client.force_authenticate(user=self.passenger)

    def complete(self, fare, distance_km, created_at):
        return self.make_ride(
            self.passenger, status=RideStatus.COMPLETED, driver=self.driver,
            fare=fare, distance_km=distance_km, created_at=created_at,
        )

    def test_driver_earnings_is_a_bare_number(self):
        response = self.client.get(f'/api/analytics/driver/{self.driver.id}/earnings')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, 0.0)

        self.complete(12.5, 5.0, utc(2024, 6, 1, 10, 0))
        self.complete(7.5, 2.0, utc(2024, 6, 1, 11, 0))
        self.make_ride(self.passenger, status=RideStatus.ACCEPTED, driver=self.driver, fare=100.0)

        response = self.client.get(f'/api/analytics/driver/{self.driver.id}/earnings')
        self.assertEqual(response.data, 20.0)
        self.assertEqual(response.content, b'20.0')

    def test_rides_per_day(self):
        self.complete(10.0, 1.0, utc(2024, 6, 2, 9, 0))
        self.make_ride(self.passenger, created_at=utc(2024, 6, 1, 23, 30))
        self.make_ride(self.passenger, created_at=utc(2024, 6, 2, 0, 15))

        response = self.client.get('/api/v1/analytics/rides-per-day')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, [
            {'_id': '2024-06-01', 'count': 1},
            {'_id': '2024-06-02', 'count': 2},
        ])

    def test_driver_summary(self):
        self.complete(10.0, 4.0, utc(2024, 6, 1, 10, 0))
        self.complete(20.0, 6.0, utc(2024, 6, 2, 10, 0))

        response = self.client.get(f'/api/v1/analytics/driver/{self.driver.id}/summary')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {
            '_id': self.driver.id,
            'completedRides': 2,
            'totalEarnings': 30.0,
            'avgDistance': 5.0,
        })

    def test_driver_summary_for_unknown_driver(self):
        response = self.client.get('/api/v1/analytics/driver/nobody/summary')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['completedRides'], 0)
        self.assertEqual(response.data['totalEarnings'], 0.0)
        self.assertIsNone(response.data['avgDistance'])

    def test_user_spending(self):
        self.complete(9.0, 3.0, utc(2024, 6, 1, 10, 0))
        self.make_ride(self.passenger, fare=50.0)

        response = self.client.get(f'/api/v1/analytics/user/{self.passenger.id}/spending')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {
            '_id': self.passenger.id,
            'totalRides': 1,
            'totalSpent': 9.0,
        })

    def test_status_summary(self):
        self.make_ride(self.passenger)
        self.make_ride(self.passenger)
        self.complete(5.0, 1.0, utc(2024, 6, 1, 10, 0))

        response = self.client.get('/api/v1/analytics/status-summary')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, [
            {'_id': RideStatus.REQUESTED, 'count': 2},
            {'_id': RideStatus.ACCEPTED, 'count': 0},
            {'_id': RideStatus.COMPLETED, 'count': 1},
        ])
