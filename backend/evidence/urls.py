"""
Evidence app URL configuration.

All routes are registered under the ``/api/`` prefix.

Route Hierarchy
---------------
  GET  /api/evidence/                              → list
  GET  /api/evidence/{id}/                         → retrieve
  GET  /api/evidence/case/{case_id}/               → evidence of a case
  POST /api/evidence/upload/                       → upload pipeline
  POST /api/evidence/bulk-export/                  → ZIP export
  POST /api/evidence/verify-integrity/             → public hash check
  POST /api/evidence/verification-certificate/     → certificate download
  GET  /api/evidence/verification-history/         → audit trail of checks
  GET  /api/evidence/compare/?ids=                 → side-by-side comparison
  POST /api/evidence/comparison-report/            → persist a report

  ── Resource-level @actions ─────────────────────────────────────
  POST /api/evidence/{id}/download/                → watermarked copy
  GET  /api/evidence/{id}/download-history/        → download audit trail
  GET  /api/evidence/{id}/verify/                  → blockchain + IPFS check
  GET  /api/evidence/{id}/blockchain-proof/        → on-chain record

  GET  /api/verify/{hash}/                         → public lookup
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import EvidenceViewSet, PublicVerifyView

router = DefaultRouter(trailing_slash=True)
router.include_root_view = False
router.register(
    prefix=r"evidence",
    viewset=EvidenceViewSet,
    basename="evidence",
)

urlpatterns = [
    path("verify/<str:file_hash>/", PublicVerifyView.as_view(), name="public-verify"),
] + router.urls
