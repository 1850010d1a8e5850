"""
MongoDB adapter.

Translates ``storage.query`` specifications into MongoDB filters and
aggregation pipelines. This is the only module that knows about MongoDB.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from rides.models import Ride, User
from .base import (
    RIDES_COLLECTION,
    USERS_COLLECTION,
    DuplicateUsernameError,
    RideStore,
    UserStore,
)
from .query import (
    AVG,
    COUNT,
    SUM,
    Between,
    ContainsText,
    Equals,
    GroupSpec,
    QuerySpec,
)

logger = logging.getLogger(__name__)

DAY_FORMAT = '%Y-%m-%d'


# ===================== Translation =====================

def to_mongo_predicate(predicate) -> Dict[str, Any]:
    if isinstance(predicate, Equals):
        return {predicate.field: predicate.value}

    if isinstance(predicate, Between):
        bounds = {}
        if predicate.lower is not None:
            bounds['$gte'] = predicate.lower
        if predicate.upper is not None:
            bounds['$lte' if predicate.upper_inclusive else '$lt'] = predicate.upper
        return {predicate.field: bounds}

    if isinstance(predicate, ContainsText):
        pattern = re.escape(predicate.text)
        return {'$or': [
            {name: {'$regex': pattern, '$options': 'i'}}
            for name in predicate.fields
        ]}

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def to_mongo_filter(predicates) -> Dict[str, Any]:
    """AND the predicates together; no predicates matches everything."""
    clauses = [to_mongo_predicate(p) for p in predicates]
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {'$and': clauses}


def to_mongo_pipeline(spec: GroupSpec, time_zone: str = 'UTC') -> List[Dict[str, Any]]:
    pipeline = []

    match = to_mongo_filter(spec.predicates)
    if match:
        pipeline.append({'$match': match})

    if spec.key is None:
        group_id = None
    elif spec.by_day:
        group_id = {'$dateToString': {
            'format': DAY_FORMAT,
            'date': f'${spec.key}',
            'timezone': time_zone,
        }}
    else:
        group_id = f'${spec.key}'

    group = {'_id': group_id}
    for acc in spec.accumulators:
        if acc.op == COUNT:
            group[acc.name] = {'$sum': 1}
        elif acc.op == SUM:
            group[acc.name] = {'$sum': f'${acc.field}'}
        elif acc.op == AVG:
            group[acc.name] = {'$avg': f'${acc.field}'}
        else:
            raise ValueError(f"Unsupported accumulator: {acc.op}")
    pipeline.append({'$group': group})

    if spec.sort_by_key:
        pipeline.append({'$sort': {'_id': ASCENDING}})

    return pipeline


def _object_id(value: str) -> Optional[ObjectId]:
    """Parse a document id; malformed ids are treated as missing documents."""
    if isinstance(value, ObjectId):
        return value
    if value and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


# ===================== Stores =====================

class MongoUserStore(UserStore):

    def __init__(self, database):
        self.collection = database[USERS_COLLECTION]

    def create(self, user: User) -> User:
        doc = user.to_document()
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateUsernameError(f"Username '{user.username}' already exists")
        doc['_id'] = result.inserted_id
        return User.from_document(doc)

    def find_by_username(self, username: str) -> Optional[User]:
        doc = self.collection.find_one({'username': username})
        return User.from_document(doc) if doc else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = self.collection.find_one({'_id': oid})
        return User.from_document(doc) if doc else None

    def ensure_indexes(self) -> List[str]:
        return [self.collection.create_index([('username', ASCENDING)], unique=True)]


class MongoRideStore(RideStore):

    def __init__(self, database, time_zone: str = 'UTC'):
        self.database = database
        self.collection = database[RIDES_COLLECTION]
        self.time_zone = time_zone

    def insert(self, ride: Ride) -> Ride:
        doc = ride.to_document()
        result = self.collection.insert_one(doc)
        doc['_id'] = result.inserted_id
        return Ride.from_document(doc)

    def get(self, ride_id: str) -> Optional[Ride]:
        oid = _object_id(ride_id)
        if oid is None:
            return None
        doc = self.collection.find_one({'_id': oid})
        return Ride.from_document(doc) if doc else None

    def replace_if_status(self, ride: Ride, expected_status: str) -> Optional[Ride]:
        oid = _object_id(ride.id)
        if oid is None:
            return None
        doc = self.collection.find_one_and_replace(
            {'_id': oid, 'status': expected_status},
            ride.to_document(),
            return_document=ReturnDocument.AFTER,
        )
        return Ride.from_document(doc) if doc else None

    def find(self, spec: QuerySpec) -> List[Ride]:
        cursor = self.collection.find(to_mongo_filter(spec.predicates))

        if spec.sort is not None:
            cursor = cursor.sort(spec.sort.field, DESCENDING if spec.sort.descending else ASCENDING)

        if spec.page is not None:
            cursor = cursor.skip(spec.page.offset).limit(spec.page.size)

        return [Ride.from_document(doc) for doc in cursor]

    def aggregate(self, spec: GroupSpec) -> List[Dict[str, Any]]:
        pipeline = to_mongo_pipeline(spec, self.time_zone)
        logger.debug("Running pipeline on %s: %s", RIDES_COLLECTION, pipeline)

        rows = []
        for doc in self.collection.aggregate(pipeline):
            doc['key'] = doc.pop('_id')
            rows.append(doc)
        return rows

    def ping(self) -> str:
        self.database.command('ping')
        return self.database.name

    def ensure_indexes(self) -> List[str]:
        return [
            self.collection.create_index([('user_id', ASCENDING)]),
            self.collection.create_index([('driver_id', ASCENDING), ('status', ASCENDING)]),
            self.collection.create_index([('status', ASCENDING)]),
            self.collection.create_index([('created_at', ASCENDING)]),
            self.collection.create_index([('fare', ASCENDING)]),
        ]


def connect(uri: str, database: str, timeout_ms: int = 5000):
    """Open a client and return the named database handle."""
    client = MongoClient(
        uri,
        tz_aware=True,
        serverSelectionTimeoutMS=timeout_ms,
    )
    return client[database]
