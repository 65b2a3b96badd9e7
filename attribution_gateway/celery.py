"""
Celery configuration for Lead Attribution Gateway.

Runs the out-of-band forwarding retry; the inbound pipeline itself is
synchronous.
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'attribution_gateway.settings')

app = Celery('attribution_gateway')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'forward-unsent-leads': {
        'task': 'attribution.tasks.forward_unsent_leads',
        'schedule': float(os.getenv('FORWARD_RETRY_INTERVAL_SECONDS', '900')),
    },
}
