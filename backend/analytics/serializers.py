"""
Wire shapes for the analytics endpoints.

Rows are keyed by ``_id`` (the grouping key) with camelCase totals, matching
the aggregation output clients already consume.
"""

from rest_framework import serializers


class DailyRideCountSerializer(serializers.Serializer):
    _id = serializers.CharField(source='date')
    count = serializers.IntegerField()


class StatusCountSerializer(serializers.Serializer):
    _id = serializers.CharField(source='status')
    count = serializers.IntegerField()


class DriverSummarySerializer(serializers.Serializer):
    _id = serializers.CharField(source='driver_id')
    completedRides = serializers.IntegerField(source='completed_rides')
    totalEarnings = serializers.FloatField(source='total_earnings')
    avgDistance = serializers.FloatField(source='avg_distance', allow_null=True)


class UserSpendingSerializer(serializers.Serializer):
    _id = serializers.CharField(source='user_id')
    totalRides = serializers.IntegerField(source='total_rides')
    totalSpent = serializers.FloatField(source='total_spent')
