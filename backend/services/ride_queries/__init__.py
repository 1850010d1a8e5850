"""Ride search, filter, sort and pagination queries."""

from .ride_queries import MAX_PAGE_SIZE, RideQueryService

__all__ = ["MAX_PAGE_SIZE", "RideQueryService"]
