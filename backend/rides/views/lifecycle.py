from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from rides.serializers import RideSerializer, RideCreateSerializer
from services import get_services


# ==================== Passenger Ride APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_ride(request):
    """Create a new ride request (passengers only)"""
    serializer = RideCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    ride = get_services().lifecycle.request_ride(
        request.user.username,
        **serializer.validated_data,
    )
    return Response(RideSerializer(ride).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_passenger_rides(request):
    """All rides the caller requested"""
    rides = get_services().lifecycle.rides_for_passenger(request.user.username)
    return Response(RideSerializer(rides, many=True).data)


# ==================== Driver Ride APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pending_rides(request):
    """Open ride requests waiting for a driver"""
    rides = get_services().lifecycle.pending_rides(request.user.username)
    return Response(RideSerializer(rides, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_ride(request, ride_id):
    """Driver accepts a REQUESTED ride"""
    ride = get_services().lifecycle.accept_ride(ride_id, request.user.username)
    return Response(RideSerializer(ride).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_driver_rides(request):
    """All rides assigned to the calling driver"""
    rides = get_services().lifecycle.rides_for_driver(request.user.username)
    return Response(RideSerializer(rides, many=True).data)


# ==================== Shared ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_ride(request, ride_id):
    """
    Complete an ACCEPTED ride.

    Either the passenger or the assigned driver can complete it.
    """
    ride = get_services().lifecycle.complete_ride(ride_id, request.user.username)
    return Response(RideSerializer(ride).data)
