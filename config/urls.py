from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.contrib.staticfiles.urls import staticfiles_urlpatterns
from django.views.generic import RedirectView

urlpatterns = [
    # Redirect root to /api/health/
    path("", RedirectView.as_view(url="/api/health/", permanent=False)),

    path("admin/", admin.site.urls),
    path("api/", include("frontdesk.urls")),
]

urlpatterns += staticfiles_urlpatterns()
if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
