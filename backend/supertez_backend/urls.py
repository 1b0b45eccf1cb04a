from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check),

    path('api/auth/', include('accounts.urls')),
    path('api/settings/', include('pricing.urls')),
    path('api/geo/', include('common.urls')),

    path('api/driver/', include('drivers.urls')),
    path('api/client/', include('clients.urls')),
    path('api/rides/', include('rides.urls')),

    path('api/subscriptions/', include('subscriptions.urls')),
    path('api/support/', include('support.urls')),
    path('api/affiliate/', include('affiliates.urls')),
    path('api/backoffice/', include('backoffice.urls')),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
