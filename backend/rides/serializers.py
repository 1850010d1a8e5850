from rest_framework import serializers

from rides.models import RideStatus
from services.ride_queries import MAX_PAGE_SIZE


class RideSerializer(serializers.Serializer):
    """
    Read-only representation of a ride record.

    Clients see camelCase keys; documents keep snake_case.
    """
    id = serializers.CharField(read_only=True)
    userId = serializers.CharField(source='user_id', read_only=True)
    driverId = serializers.CharField(source='driver_id', read_only=True, allow_null=True)
    pickupLocation = serializers.CharField(source='pickup_location', read_only=True)
    dropLocation = serializers.CharField(source='drop_location', read_only=True)
    distanceKm = serializers.FloatField(source='distance_km', read_only=True, allow_null=True)
    fare = serializers.FloatField(read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)


class RideCreateSerializer(serializers.Serializer):
    """Serializer for creating ride requests"""
    pickupLocation = serializers.CharField(source='pickup_location', max_length=255)
    dropLocation = serializers.CharField(source='drop_location', max_length=255)
    distanceKm = serializers.FloatField(source='distance_km', required=False, allow_null=True, min_value=0)
    fare = serializers.FloatField(required=False, allow_null=True, min_value=0)


class RideStatusField(serializers.ChoiceField):
    """Ride status, accepted in any letter case."""

    def __init__(self, **kwargs):
        super().__init__(choices=RideStatus.CHOICES, **kwargs)

    def to_internal_value(self, data):
        return super().to_internal_value(RideStatus.parse(data) or data)


# ===================== Query parameters =====================

class KeywordSearchSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True, trim_whitespace=False)


class DistanceRangeSerializer(serializers.Serializer):
    min = serializers.FloatField()
    max = serializers.FloatField()


class DateRangeSerializer(serializers.Serializer):
    start = serializers.DateField(input_formats=['iso-8601'])
    end = serializers.DateField(input_formats=['iso-8601'])


class FareSortSerializer(serializers.Serializer):
    order = serializers.CharField(allow_blank=True, trim_whitespace=False)


class StatusKeywordSerializer(serializers.Serializer):
    status = RideStatusField()
    search = serializers.CharField(allow_blank=True, trim_whitespace=False)


class AdvancedSearchSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    status = RideStatusField(required=False)
    sort = serializers.CharField(required=False, allow_blank=True)
    order = serializers.CharField(required=False, default='asc', allow_blank=True, trim_whitespace=False)
    page = serializers.IntegerField(required=False, default=0, min_value=0)
    size = serializers.IntegerField(required=False, default=10, min_value=1, max_value=MAX_PAGE_SIZE)
