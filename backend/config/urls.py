# config/urls.py
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from apps.core.views import api_root, health_check
from apps.orders.urls import store_urlpatterns, driver_urlpatterns

urlpatterns = [
    path('', api_root),

    # Monitoring
    path('', include('django_prometheus.urls')),
    path('health/', health_check),

    # Admin
    path('admin/', admin.site.urls),

    # Auth
    path('auth/', include('apps.accounts.urls')),

    # Orders (exact paths, no trailing slash)
    path('store/orders', include(store_urlpatterns)),
    path('driver/orders', include(driver_urlpatterns)),

    path('notifications/', include('apps.notifications.urls')),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
