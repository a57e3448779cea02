"""
Tags app URL configuration.

  GET    /api/tags/                              → list
  POST   /api/tags/                              → create
  GET    /api/tags/suggest/?q=                   → suggestions
  POST   /api/evidence/{id}/tags/                → attach tags
  DELETE /api/evidence/{id}/tags/{tag_id}/       → detach a tag
  POST   /api/evidence/batch-tag/                → cross-product tagging
  GET    /api/evidence/filter-by-tags/           → AND / OR filter
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.include_root_view = False
router.register(prefix=r"tags", viewset=views.TagViewSet, basename="tag")

urlpatterns = [
    path("evidence/batch-tag/", views.BatchTagView.as_view(), name="evidence-batch-tag"),
    path("evidence/filter-by-tags/", views.FilterByTagsView.as_view(), name="evidence-filter-by-tags"),
    path("evidence/<int:evidence_id>/tags/", views.EvidenceTagsView.as_view(), name="evidence-tags"),
    path(
        "evidence/<int:evidence_id>/tags/<int:tag_id>/",
        views.EvidenceTagDetailView.as_view(),
        name="evidence-tag-detail",
    ),
    path("", include(router.urls)),
]
