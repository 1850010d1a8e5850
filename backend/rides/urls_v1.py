from django.urls import path

from .views.queries import (
    RideSearchView,
    RideDistanceFilterView,
    RideDateRangeFilterView,
    RideFareSortView,
    UserRidesView,
    UserRidesByStatusView,
    DriverActiveRidesView,
    RideStatusFilterView,
    RideAdvancedSearchView,
    RidesOnDateView,
)

app_name = 'rides_v1'

# Mounted at /api/v1/
urlpatterns = [
    path('rides/search', RideSearchView.as_view(), name='search'),
    path('rides/filter-distance', RideDistanceFilterView.as_view(), name='filter-distance'),
    path('rides/filter-date-range', RideDateRangeFilterView.as_view(), name='filter-date-range'),
    path('rides/sort', RideFareSortView.as_view(), name='sort'),
    path('rides/user/<str:user_id>', UserRidesView.as_view(), name='user-rides'),
    path('rides/user/<str:user_id>/status/<str:ride_status>', UserRidesByStatusView.as_view(), name='user-rides-status'),
    path('rides/driver/<str:driver_id>/active-rides', DriverActiveRidesView.as_view(), name='driver-active-rides'),
    path('driver/<str:driver_id>/active-rides', DriverActiveRidesView.as_view(), name='driver-active-rides-legacy'),
    path('rides/filter-status', RideStatusFilterView.as_view(), name='filter-status'),
    path('rides/advanced-search', RideAdvancedSearchView.as_view(), name='advanced-search'),
    path('rides/date/<str:date>', RidesOnDateView.as_view(), name='rides-on-date'),
]
