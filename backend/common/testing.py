"""Shared fixtures for tests that run against the in-memory ride store."""

from datetime import datetime, timezone as dt_timezone

from django.contrib.auth.hashers import make_password
from django.test import SimpleTestCase
from django.utils import timezone

from rides.models import Ride, RideStatus, Role, User
from services import get_services, reset_services


class StoreTestCase(SimpleTestCase):
    """Gives every test a fresh service registry with empty stores."""

    def setUp(self):
        reset_services()
        self.services = get_services()

    def tearDown(self):
        reset_services()

    def make_user(self, username, role=Role.USER, password='pass1234'):
        return self.services.users.create(User(
            id=None,
            username=username,
            role=role,
            password=make_password(password),
        ))

    def make_ride(
        self,
        passenger,
        status=RideStatus.REQUESTED,
        driver=None,
        pickup='Connaught Place',
        drop='India Gate',
        distance_km=None,
        fare=None,
        created_at=None,
    ):
        return self.services.rides.insert(Ride(
            id=None,
            user_id=passenger.id,
            driver_id=driver.id if driver else None,
            pickup_location=pickup,
            drop_location=drop,
            distance_km=distance_km,
            fare=fare,
            status=status,
            created_at=created_at or timezone.now(),
        ))


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)
