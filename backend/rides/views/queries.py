# rides/views/queries.py

from rest_framework import serializers
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from rides.serializers import (
    RideSerializer,
    RideStatusField,
    KeywordSearchSerializer,
    DistanceRangeSerializer,
    DateRangeSerializer,
    FareSortSerializer,
    StatusKeywordSerializer,
    AdvancedSearchSerializer,
)
from services import get_services


def _params(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _rides(rides):
    return Response(RideSerializer(rides, many=True).data)


class RideSearchView(APIView):
    """
    GET ?text=: rides whose pickup or drop location contains the text.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(KeywordSearchSerializer, request)
        return _rides(get_services().queries.search(params["text"]))


class RideDistanceFilterView(APIView):
    """
    GET ?min=&max=: rides with distance_km in [min, max].
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(DistanceRangeSerializer, request)
        return _rides(get_services().queries.filter_by_distance(params["min"], params["max"]))


class RideDateRangeFilterView(APIView):
    """
    GET ?start=&end=: rides created between two ISO dates, both inclusive.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(DateRangeSerializer, request)
        return _rides(get_services().queries.filter_by_date_range(params["start"], params["end"]))


class RideFareSortView(APIView):
    """
    GET ?order=asc|desc: every ride sorted by fare.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(FareSortSerializer, request)
        return _rides(get_services().queries.sort_by_fare(params["order"]))


class UserRidesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id: str):
        return _rides(get_services().queries.rides_by_user(user_id))


class UserRidesByStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id: str, ride_status: str):
        status = RideStatusField().run_validation(ride_status)
        return _rides(get_services().queries.rides_by_user_and_status(user_id, status))


class DriverActiveRidesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, driver_id: str):
        return _rides(get_services().queries.driver_active_rides(driver_id))


class RideStatusFilterView(APIView):
    """
    GET ?status=&search=: rides in a status whose pickup or drop contains the text.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(StatusKeywordSerializer, request)
        return _rides(get_services().queries.filter_by_status_and_keyword(
            params["status"], params["search"]
        ))


class RideAdvancedSearchView(APIView):
    """
    GET ?search=&status=&sort=&order=&page=&size=

    Every parameter is optional; page is zero-based.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = _params(AdvancedSearchSerializer, request)
        return _rides(get_services().queries.advanced_search(
            search=params.get("search") or None,
            status=params.get("status"),
            sort=params.get("sort") or None,
            order=params["order"],
            page=params["page"],
            size=params["size"],
        ))


class RidesOnDateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, date: str):
        day = serializers.DateField(input_formats=['iso-8601']).run_validation(date)
        return _rides(get_services().queries.rides_on_date(day))
