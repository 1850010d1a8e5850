from django.urls import path
from .views import lifecycle

app_name = 'rides'

# Mounted at /api/rides/; ride creation itself is POST /api/rides
urlpatterns = [
    # Passenger
    path('user/me', lifecycle.my_passenger_rides, name='my-passenger-rides'),

    # Driver
    path('pending', lifecycle.pending_rides, name='pending-rides'),
    path('accept/<str:ride_id>', lifecycle.accept_ride, name='accept-ride'),
    path('driver/me', lifecycle.my_driver_rides, name='my-driver-rides'),

    # Passenger or driver
    path('complete/<str:ride_id>', lifecycle.complete_ride, name='complete-ride'),
]
