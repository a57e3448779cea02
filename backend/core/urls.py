"""
Core app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/', include('core.urls'))

Endpoint summary
----------------
GET  /api/notifications/               — Inbox of the authenticated user.
PUT  /api/notifications/{id}/read/     — Mark a single notification as read.
PUT  /api/notifications/read-all/      — Mark every notification as read.
POST /api/notifications/test/          — Send a test notification to yourself.
POST /api/activity/                    — Record a client-reported activity.
GET  /api/health/                      — Public health check.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

# ── Router for ViewSet-based endpoints ───────────────────────────────
router = DefaultRouter()
router.include_root_view = False
router.register(
    prefix=r"notifications",
    viewset=views.NotificationViewSet,
    basename="notification",
)

urlpatterns = [
    # ── Activity log ─────────────────────────────────────────────────
    path("activity/", views.ActivityLogView.as_view(), name="activity-create"),

    # ── Health ───────────────────────────────────────────────────────
    path("health/", views.HealthView.as_view(), name="health"),

    # ── Notifications (router-generated URLs) ────────────────────────
    path("", include(router.urls)),
]
