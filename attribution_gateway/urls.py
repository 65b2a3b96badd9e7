"""
URL configuration for attribution_gateway project.
"""
from django.contrib import admin
from django.urls import path, include

from attribution.urls import api_urlpatterns, webhook_urlpatterns
from attribution.views import HealthView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', HealthView.as_view(), name='health'),
    path('webhooks/', include(webhook_urlpatterns)),
    path('api/', include(api_urlpatterns)),
]
