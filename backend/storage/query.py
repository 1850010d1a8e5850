"""
Store-agnostic query specifications.

A ``QuerySpec`` is a set of predicates (combined with AND), an optional sort
and an optional page. A ``GroupSpec`` describes a single grouping pass with
count/sum/average accumulators. Store adapters translate both into their
native query language; nothing in this module knows about a particular store.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional, Tuple, Union


# ===================== Predicates =====================

@dataclass(frozen=True)
class Equals:
    """Field equals value."""
    field: str
    value: Any


@dataclass(frozen=True)
class Between:
    """Field within bounds. ``upper_inclusive`` picks <= or < for the upper bound."""
    field: str
    lower: Optional[Union[float, datetime]] = None
    upper: Optional[Union[float, datetime]] = None
    upper_inclusive: bool = True


@dataclass(frozen=True)
class ContainsText:
    """Case-insensitive literal substring match against any of ``fields``."""
    fields: Tuple[str, ...]
    text: str


Predicate = Union[Equals, Between, ContainsText]


# ===================== Query =====================

ASCENDING = 'asc'
DESCENDING = 'desc'


@dataclass(frozen=True)
class Sort:
    field: str
    direction: str = ASCENDING

    @property
    def descending(self) -> bool:
        return self.direction == DESCENDING


@dataclass(frozen=True)
class Page:
    """Zero-based page number and page size."""
    number: int
    size: int

    @property
    def offset(self) -> int:
        return self.number * self.size


@dataclass(frozen=True)
class QuerySpec:
    predicates: Tuple[Predicate, ...] = ()
    sort: Optional[Sort] = None
    page: Optional[Page] = None

    def where(self, *predicates: Predicate) -> 'QuerySpec':
        return replace(self, predicates=self.predicates + tuple(predicates))

    def order_by(self, field: str, direction: str = ASCENDING) -> 'QuerySpec':
        return replace(self, sort=Sort(field, direction))

    def paginate(self, number: int, size: int) -> 'QuerySpec':
        return replace(self, page=Page(number, size))


# ===================== Aggregation =====================

COUNT = 'count'
SUM = 'sum'
AVG = 'avg'


@dataclass(frozen=True)
class Accumulator:
    """Named output column. ``field`` is ignored for COUNT."""
    name: str
    op: str
    field: Optional[str] = None


@dataclass(frozen=True)
class GroupSpec:
    """
    One grouping pass.

    ``key`` is the field to bucket by (None groups the whole match into a
    single row). With ``by_day`` the key field must hold timestamps and is
    bucketed by calendar day, formatted ``YYYY-MM-DD``. Result rows are dicts
    holding ``key`` plus one entry per accumulator.
    """
    predicates: Tuple[Predicate, ...] = ()
    key: Optional[str] = None
    by_day: bool = False
    accumulators: Tuple[Accumulator, ...] = ()
    sort_by_key: bool = False
