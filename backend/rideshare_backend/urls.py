from django.urls import path, include

from rides.views import lifecycle
from .views import health_check

urlpatterns = [
    path("health/", health_check),  # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh

    # Ride lifecycle endpoints (at /api/rides/)
    path('api/rides', lifecycle.create_ride, name='create-ride'),
    path('api/rides/', include('rides.urls')),

    # Ride queries (at /api/v1/)
    path('api/v1/', include('rides.urls_v1')),

    # Analytics (at /api/analytics/ and /api/v1/analytics/)
    path('api/', include('analytics.urls')),
]
