from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import get_services

from .serializers import (
    DailyRideCountSerializer,
    DriverSummarySerializer,
    StatusCountSerializer,
    UserSpendingSerializer,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def driver_earnings(request, driver_id):
    """Total fare over the driver's completed rides, as a bare number"""
    return Response(get_services().analytics.total_earnings(driver_id))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def rides_per_day(request):
    rows = get_services().analytics.rides_per_day()
    return Response(DailyRideCountSerializer(rows, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def driver_summary(request, driver_id):
    """Completed rides, total earnings and average distance for a driver"""
    summary = get_services().analytics.driver_summary(driver_id)
    return Response(DriverSummarySerializer(summary).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_spending(request, user_id):
    """Completed rides and total spent for a passenger"""
    spending = get_services().analytics.user_spending(user_id)
    return Response(UserSpendingSerializer(spending).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def status_summary(request):
    rows = get_services().analytics.status_summary()
    return Response(StatusCountSerializer(rows, many=True).data)
