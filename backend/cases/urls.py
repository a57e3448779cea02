"""
Cases app URL configuration.

All routes are registered under the ``/api/`` prefix.

Route Hierarchy
---------------
  GET  /api/case-statuses/                     → active statuses

  GET  /api/cases/                             → timeline list
  POST /api/cases/                             → create
  GET  /api/cases/enhanced/                    → filtered, paginated list
  GET  /api/cases/statistics/                  → breakdown by status / priority
  GET  /api/cases/export/                      → CSV export

  ── Resource-level @actions ─────────────────────────────────────
  GET  /api/cases/{id}/details/                → case + history + assignments
  POST /api/cases/{id}/status/                 → role-gated status change
  GET  /api/cases/{id}/available-transitions/  → transitions for caller's role
  POST /api/cases/{id}/assign/                 → assign personnel
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import CaseStatusListView, CaseViewSet

router = DefaultRouter(trailing_slash=True)
router.include_root_view = False
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

urlpatterns = [
    path("case-statuses/", CaseStatusListView.as_view(), name="case-status-list"),
] + router.urls
