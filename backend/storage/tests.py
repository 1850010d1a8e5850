import re
import threading
from unittest.mock import MagicMock

from bson import ObjectId
from django.test import SimpleTestCase
from pymongo import ReturnDocument

from rides.models import Ride, RideStatus, User
from .base import DuplicateUsernameError
from .memory import MemoryRideStore, MemoryUserStore
from .mongo import (
    MongoRideStore,
    MongoUserStore,
    to_mongo_filter,
    to_mongo_pipeline,
)
from .query import (
    AVG,
    COUNT,
    SUM,
    Accumulator,
    Between,
    ContainsText,
    Equals,
    GroupSpec,
    QuerySpec,
)
from common.testing import utc


def _ride(**overrides):
    values = dict(
        id=None,
        user_id='u1',
        driver_id=None,
        pickup_location='Airport',
        drop_location='Old Town',
        distance_km=10.0,
        fare=14.5,
        status=RideStatus.REQUESTED,
        created_at=utc(2024, 3, 1, 12, 0),
    )
    values.update(overrides)
    return Ride(**values)


class MemoryRideStoreQueryTests(SimpleTestCase):

    def setUp(self):
        self.store = MemoryRideStore()
        self.cheap = self.store.insert(_ride(fare=5.0, distance_km=2.0, pickup_location='Market Street'))
        self.mid = self.store.insert(_ride(fare=12.0, distance_km=8.0, drop_location='Harbour'))
        self.pricey = self.store.insert(_ride(fare=30.0, distance_km=25.0, user_id='u2'))

    def test_insert_assigns_id_and_get_returns_copy(self):
        self.assertIsNotNone(self.cheap.id)
        fetched = self.store.get(self.cheap.id)
        self.assertEqual(fetched, self.cheap)
        self.assertIsNone(self.store.get('missing'))

    def test_contains_text_is_case_insensitive_and_literal(self):
        spec = QuerySpec().where(ContainsText(('pickup_location', 'drop_location'), 'HARB'))
        self.assertEqual([r.id for r in self.store.find(spec)], [self.mid.id])

        spec = QuerySpec().where(ContainsText(('pickup_location', 'drop_location'), '.*'))
        self.assertEqual(self.store.find(spec), [])

    def test_between_is_inclusive_by_default(self):
        spec = QuerySpec().where(Between('distance_km', 2.0, 8.0))
        self.assertEqual({r.id for r in self.store.find(spec)}, {self.cheap.id, self.mid.id})

    def test_between_with_exclusive_upper_bound(self):
        spec = QuerySpec().where(Between('distance_km', 2.0, 8.0, upper_inclusive=False))
        self.assertEqual([r.id for r in self.store.find(spec)], [self.cheap.id])

    def test_sort_and_paginate(self):
        spec = QuerySpec().order_by('fare', 'desc').paginate(0, 2)
        self.assertEqual([r.fare for r in self.store.find(spec)], [30.0, 12.0])

        spec = QuerySpec().order_by('fare', 'desc').paginate(1, 2)
        self.assertEqual([r.fare for r in self.store.find(spec)], [5.0])

    def test_sort_puts_missing_values_first_ascending(self):
        unpriced = self.store.insert(_ride(fare=None))
        rides = self.store.find(QuerySpec().order_by('fare', 'asc'))
        self.assertEqual(rides[0].id, unpriced.id)

    def test_predicates_combine_with_and(self):
        spec = QuerySpec().where(Equals('user_id', 'u1'), Between('fare', 10.0, None))
        self.assertEqual([r.id for r in self.store.find(spec)], [self.mid.id])


class MemoryRideStoreTransitionTests(SimpleTestCase):

    def setUp(self):
        self.store = MemoryRideStore()
        self.ride = self.store.insert(_ride())

    def test_replace_if_status_applies_when_status_matches(self):
        self.ride.status = RideStatus.ACCEPTED
        self.ride.driver_id = 'd1'
        saved = self.store.replace_if_status(self.ride, RideStatus.REQUESTED)

        self.assertEqual(saved.status, RideStatus.ACCEPTED)
        self.assertEqual(self.store.get(self.ride.id).driver_id, 'd1')

    def test_replace_if_status_refuses_stale_status(self):
        self.ride.status = RideStatus.COMPLETED
        self.assertIsNone(self.store.replace_if_status(self.ride, RideStatus.ACCEPTED))
        self.assertEqual(self.store.get(self.ride.id).status, RideStatus.REQUESTED)

    def test_only_one_concurrent_replace_wins(self):
        barrier = threading.Barrier(8)
        results = []

        def attempt(driver_id):
            candidate = self.store.get(self.ride.id)
            candidate.status = RideStatus.ACCEPTED
            candidate.driver_id = driver_id
            barrier.wait()
            results.append(self.store.replace_if_status(candidate, RideStatus.REQUESTED))

        threads = [threading.Thread(target=attempt, args=(f'd{i}',)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [r for r in results if r is not None]
        self.assertEqual(len(winners), 1)
        self.assertEqual(self.store.get(self.ride.id).driver_id, winners[0].driver_id)


class MemoryRideStoreAggregationTests(SimpleTestCase):

    def setUp(self):
        self.store = MemoryRideStore(time_zone='Asia/Kolkata')
        self.store.insert(_ride(driver_id='d1', status=RideStatus.COMPLETED, fare=10.0, distance_km=4.0))
        self.store.insert(_ride(driver_id='d1', status=RideStatus.COMPLETED, fare=20.0, distance_km=None))
        self.store.insert(_ride(driver_id='d1', status=RideStatus.ACCEPTED, fare=99.0))
        # 20:00 UTC is already the next day in Asia/Kolkata
        self.store.insert(_ride(created_at=utc(2024, 3, 1, 20, 0)))

    def test_group_without_key_sums_and_averages(self):
        rows = self.store.aggregate(GroupSpec(
            predicates=(Equals('driver_id', 'd1'), Equals('status', RideStatus.COMPLETED)),
            accumulators=(
                Accumulator('rides', COUNT),
                Accumulator('total', SUM, 'fare'),
                Accumulator('avg_distance', AVG, 'distance_km'),
            ),
        ))
        self.assertEqual(rows, [{'key': None, 'rides': 2, 'total': 30.0, 'avg_distance': 4.0}])

    def test_group_with_no_matches_returns_no_rows(self):
        rows = self.store.aggregate(GroupSpec(
            predicates=(Equals('driver_id', 'nobody'),),
            accumulators=(Accumulator('total', SUM, 'fare'),),
        ))
        self.assertEqual(rows, [])

    def test_group_by_day_uses_store_time_zone(self):
        rows = self.store.aggregate(GroupSpec(
            key='created_at',
            by_day=True,
            accumulators=(Accumulator('count', COUNT),),
            sort_by_key=True,
        ))
        self.assertEqual(rows, [
            {'key': '2024-03-01', 'count': 3},
            {'key': '2024-03-02', 'count': 1},
        ])


class MemoryUserStoreTests(SimpleTestCase):

    def test_usernames_are_unique(self):
        store = MemoryUserStore()
        user = store.create(User(id=None, username='asha', role='ROLE_USER'))

        self.assertEqual(store.find_by_username('asha'), user)
        self.assertEqual(store.find_by_id(user.id), user)
        with self.assertRaises(DuplicateUsernameError):
            store.create(User(id=None, username='asha', role='ROLE_DRIVER'))


class MongoTranslationTests(SimpleTestCase):

    def test_empty_filter_matches_everything(self):
        self.assertEqual(to_mongo_filter(()), {})

    def test_single_predicate_is_not_wrapped(self):
        self.assertEqual(to_mongo_filter((Equals('status', 'ACCEPTED'),)), {'status': 'ACCEPTED'})

    def test_keyword_is_escaped_case_insensitive_regex(self):
        query = to_mongo_filter((ContainsText(('pickup_location', 'drop_location'), 'St. (North)'),))
        pattern = re.escape('St. (North)')
        self.assertEqual(query, {'$or': [
            {'pickup_location': {'$regex': pattern, '$options': 'i'}},
            {'drop_location': {'$regex': pattern, '$options': 'i'}},
        ]})

    def test_range_and_equality_combine_with_and(self):
        start, end = utc(2024, 3, 1), utc(2024, 3, 2)
        query = to_mongo_filter((
            Equals('user_id', 'u1'),
            Between('created_at', start, end, upper_inclusive=False),
        ))
        self.assertEqual(query, {'$and': [
            {'user_id': 'u1'},
            {'created_at': {'$gte': start, '$lt': end}},
        ]})

    def test_pipeline_by_day(self):
        pipeline = to_mongo_pipeline(GroupSpec(
            key='created_at',
            by_day=True,
            accumulators=(Accumulator('count', COUNT),),
            sort_by_key=True,
        ), time_zone='Europe/Berlin')

        self.assertEqual(pipeline, [
            {'$group': {
                '_id': {'$dateToString': {
                    'format': '%Y-%m-%d',
                    'date': '$created_at',
                    'timezone': 'Europe/Berlin',
                }},
                'count': {'$sum': 1},
            }},
            {'$sort': {'_id': 1}},
        ])

    def test_pipeline_with_match_and_accumulators(self):
        pipeline = to_mongo_pipeline(GroupSpec(
            predicates=(Equals('driver_id', 'd1'), Equals('status', RideStatus.COMPLETED)),
            key='driver_id',
            accumulators=(
                Accumulator('completed_rides', COUNT),
                Accumulator('total_earnings', SUM, 'fare'),
                Accumulator('avg_distance', AVG, 'distance_km'),
            ),
        ))
        self.assertEqual(pipeline, [
            {'$match': {'$and': [{'driver_id': 'd1'}, {'status': 'COMPLETED'}]}},
            {'$group': {
                '_id': '$driver_id',
                'completed_rides': {'$sum': 1},
                'total_earnings': {'$sum': '$fare'},
                'avg_distance': {'$avg': '$distance_km'},
            }},
        ])


class MongoRideStoreTests(SimpleTestCase):

    def setUp(self):
        self.collection = MagicMock()
        self.database = MagicMock()
        self.database.__getitem__.return_value = self.collection
        self.store = MongoRideStore(self.database)

    def test_replace_if_status_is_conditional_on_status(self):
        oid = ObjectId()
        ride = _ride(id=str(oid), status=RideStatus.ACCEPTED, driver_id='d1')
        stored = dict(ride.to_document(), _id=oid)
        self.collection.find_one_and_replace.return_value = stored

        saved = self.store.replace_if_status(ride, RideStatus.REQUESTED)

        self.collection.find_one_and_replace.assert_called_once_with(
            {'_id': oid, 'status': RideStatus.REQUESTED},
            ride.to_document(),
            return_document=ReturnDocument.AFTER,
        )
        self.assertEqual(saved.id, str(oid))
        self.assertEqual(saved.driver_id, 'd1')

    def test_replace_if_status_returns_none_when_precondition_fails(self):
        self.collection.find_one_and_replace.return_value = None
        ride = _ride(id=str(ObjectId()), status=RideStatus.ACCEPTED)
        self.assertIsNone(self.store.replace_if_status(ride, RideStatus.REQUESTED))

    def test_malformed_id_is_a_missing_ride(self):
        self.assertIsNone(self.store.get('not-an-object-id'))
        self.collection.find_one.assert_not_called()

    def test_find_applies_sort_skip_and_limit(self):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([dict(_ride().to_document(), _id=ObjectId())])
        self.collection.find.return_value = cursor

        spec = QuerySpec().where(Equals('status', 'REQUESTED')).order_by('fare', 'desc').paginate(2, 5)
        rides = self.store.find(spec)

        self.collection.find.assert_called_once_with({'status': 'REQUESTED'})
        cursor.sort.assert_called_once_with('fare', -1)
        cursor.skip.assert_called_once_with(10)
        cursor.limit.assert_called_once_with(5)
        self.assertEqual(len(rides), 1)

    def test_aggregate_renames_group_id_to_key(self):
        self.collection.aggregate.return_value = iter([{'_id': 'ACCEPTED', 'count': 2}])
        rows = self.store.aggregate(GroupSpec(key='status', accumulators=(Accumulator('count', COUNT),)))
        self.assertEqual(rows, [{'key': 'ACCEPTED', 'count': 2}])


class MongoUserStoreTests(SimpleTestCase):

    def test_duplicate_key_becomes_duplicate_username(self):
        from pymongo.errors import DuplicateKeyError

        collection = MagicMock()
        collection.insert_one.side_effect = DuplicateKeyError('E11000 duplicate key')
        database = MagicMock()
        database.__getitem__.return_value = collection

        store = MongoUserStore(database)
        with self.assertRaises(DuplicateUsernameError):
            store.create(User(id=None, username='asha', role='ROLE_USER'))
