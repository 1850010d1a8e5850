"""Ride aggregations: earnings, spending, per-day and per-status counts."""

from .aggregations import RideAnalyticsService

__all__ = ["RideAnalyticsService"]
