"""
URL configuration for core_backend project.

HTTP views for menus, checkout forms and dashboards live outside this
backend; only the health check is served here. Real-time order feeds are
websocket routes (see ``orders.routing``).
"""

from django.http import JsonResponse
from django.urls import path


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
]
