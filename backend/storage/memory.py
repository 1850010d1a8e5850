"""
In-process document store.

Evaluates ``storage.query`` specifications over dicts kept in memory. Backs
the test settings and local development without a database.
"""

import copy
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from rides.models import Ride, User
from .base import DuplicateUsernameError, RideStore, UserStore
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


def _matches(doc: Dict[str, Any], predicate) -> bool:
    if isinstance(predicate, Equals):
        return doc.get(predicate.field) == predicate.value

    if isinstance(predicate, Between):
        value = doc.get(predicate.field)
        if value is None:
            return False
        if predicate.lower is not None and value < predicate.lower:
            return False
        if predicate.upper is not None:
            if predicate.upper_inclusive and value > predicate.upper:
                return False
            if not predicate.upper_inclusive and value >= predicate.upper:
                return False
        return True

    if isinstance(predicate, ContainsText):
        needle = predicate.text.lower()
        return any(
            needle in str(doc.get(name) or '').lower()
            for name in predicate.fields
        )

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _sort_key(field):
    # None sorts before any value, as in MongoDB
    def key(doc):
        value = doc.get(field)
        return (value is not None, value)
    return key


class MemoryUserStore(UserStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._docs: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    def create(self, user: User) -> User:
        with self._lock:
            if any(d['username'] == user.username for d in self._docs.values()):
                raise DuplicateUsernameError(f"Username '{user.username}' already exists")
            doc = user.to_document()
            doc['_id'] = uuid.uuid4().hex
            self._docs[doc['_id']] = doc
        return User.from_document(doc)

    def find_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for doc in self._docs.values():
                if doc['username'] == username:
                    return User.from_document(doc)
        return None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            doc = self._docs.get(user_id)
        return User.from_document(doc) if doc else None


class MemoryRideStore(RideStore):

    def __init__(self, time_zone: str = 'UTC'):
        self._lock = threading.Lock()
        self._docs: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._zone = ZoneInfo(time_zone)

    def insert(self, ride: Ride) -> Ride:
        doc = ride.to_document()
        doc['_id'] = uuid.uuid4().hex
        with self._lock:
            self._docs[doc['_id']] = doc
        return Ride.from_document(doc)

    def get(self, ride_id: str) -> Optional[Ride]:
        with self._lock:
            doc = self._docs.get(ride_id)
            return Ride.from_document(doc) if doc else None

    def replace_if_status(self, ride: Ride, expected_status: str) -> Optional[Ride]:
        with self._lock:
            current = self._docs.get(ride.id)
            if current is None or current['status'] != expected_status:
                return None
            doc = ride.to_document()
            doc['_id'] = ride.id
            self._docs[ride.id] = doc
            return Ride.from_document(doc)

    def _select(self, predicates) -> List[Dict[str, Any]]:
        with self._lock:
            docs = [copy.copy(d) for d in self._docs.values()]
        return [d for d in docs if all(_matches(d, p) for p in predicates)]

    def find(self, spec: QuerySpec) -> List[Ride]:
        docs = self._select(spec.predicates)

        if spec.sort is not None:
            docs.sort(key=_sort_key(spec.sort.field), reverse=spec.sort.descending)

        if spec.page is not None:
            docs = docs[spec.page.offset:spec.page.offset + spec.page.size]

        return [Ride.from_document(d) for d in docs]

    def aggregate(self, spec: GroupSpec) -> List[Dict[str, Any]]:
        groups: "OrderedDict[Any, List[Dict[str, Any]]]" = OrderedDict()
        for doc in self._select(spec.predicates):
            if spec.key is None:
                key = None
            elif spec.by_day:
                key = doc[spec.key].astimezone(self._zone).date().isoformat()
            else:
                key = doc.get(spec.key)
            groups.setdefault(key, []).append(doc)

        rows = []
        for key, docs in groups.items():
            row = {'key': key}
            for acc in spec.accumulators:
                values = [d.get(acc.field) for d in docs if d.get(acc.field) is not None]
                if acc.op == COUNT:
                    row[acc.name] = len(docs)
                elif acc.op == SUM:
                    row[acc.name] = sum(values)
                elif acc.op == AVG:
                    row[acc.name] = sum(values) / len(values) if values else None
                else:
                    raise ValueError(f"Unsupported accumulator: {acc.op}")
            rows.append(row)

        if spec.sort_by_key:
            rows.sort(key=lambda r: (r['key'] is not None, r['key']))
        return rows

    def ping(self) -> str:
        return 'memory'
