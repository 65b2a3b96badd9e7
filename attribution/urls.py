"""
URL configuration for attribution app.
"""
from django.urls import path
from attribution.views import (
    LeadEmailWebhookView,
    StatsView,
    VisitorAttributionDetailView,
    VisitorAttributionView,
)

webhook_urlpatterns = [
    path('lead-email/', LeadEmailWebhookView.as_view(), name='lead-email-webhook'),
]

api_urlpatterns = [
    path('attribution/', VisitorAttributionView.as_view(), name='visitor-attribution'),
    path(
        'attribution/<str:widget_visitor_id>/',
        VisitorAttributionDetailView.as_view(),
        name='visitor-attribution-detail',
    ),
    path('stats/', StatsView.as_view(), name='lead-stats'),
]
