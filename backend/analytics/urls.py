from django.urls import path
from . import views

app_name = 'analytics'

# Mounted at /api/
urlpatterns = [
    path('analytics/driver/<str:driver_id>/earnings', views.driver_earnings, name='driver-earnings'),

    path('v1/analytics/rides-per-day', views.rides_per_day, name='rides-per-day'),
    path('v1/analytics/driver/<str:driver_id>/summary', views.driver_summary, name='driver-summary'),
    path('v1/analytics/user/<str:user_id>/spending', views.user_spending, name='user-spending'),
    path('v1/analytics/status-summary', views.status_summary, name='status-summary'),
]
