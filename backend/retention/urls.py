"""
Retention app URL configuration.

  GET  /api/retention-policies/               → active policies
  POST /api/retention-policies/               → create
  GET  /api/evidence/expiry/?filter=          → evidence by expiry
  PUT  /api/evidence/{id}/legal-hold/         → legal hold on/off
  POST /api/evidence/bulk-retention/          → apply a policy
  POST /api/evidence/check-expiry/            → expiry notifications
  POST /api/timeline/export-pdf/              → PDF timeline
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.include_root_view = False
router.register(
    prefix=r"retention-policies",
    viewset=views.RetentionPolicyViewSet,
    basename="retention-policy",
)

urlpatterns = [
    path("evidence/expiry/", views.EvidenceExpiryView.as_view(), name="evidence-expiry"),
    path("evidence/bulk-retention/", views.BulkRetentionView.as_view(), name="evidence-bulk-retention"),
    path("evidence/check-expiry/", views.CheckExpiryView.as_view(), name="evidence-check-expiry"),
    path("evidence/<int:evidence_id>/legal-hold/", views.LegalHoldView.as_view(), name="evidence-legal-hold"),
    path("timeline/export-pdf/", views.TimelineExportView.as_view(), name="timeline-export-pdf"),
    path("", include(router.urls)),
]
