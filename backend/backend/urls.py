"""
URL configuration for backend project.

Every app mounts its routes under ``/api/``.  The evidence, tags and
retention apps share the ``/api/evidence/`` prefix; their patterns do not
overlap.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),

    # ── App routes ───────────────────────────────────────────────────
    path('api/', include('accounts.urls')),
    path('api/', include('cases.urls')),
    path('api/', include('tags.urls')),
    path('api/', include('retention.urls')),
    path('api/', include('evidence.urls')),
    path('api/', include('ledger.urls')),
    path('api/', include('core.urls')),

    # ── Swagger / OpenAPI schema ─────────────────────────────────────
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]

# ── Serve media files in local development ───────────────────────────
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
