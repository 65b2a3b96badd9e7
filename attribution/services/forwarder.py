"""
Event forwarder for sending finalized leads to the analytics event sink.
"""
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import httpx
from django.conf import settings

from attribution.models import FinalizedLead

logger = logging.getLogger(__name__)

EVENT_PROPERTIES = (
    'lead_id',
    'lead_type',
    'lead_source',
    'widget_visitor_id',
    'session_key',
    'first_name',
    'last_name',
    'email',
    'phone',
    'city',
    'state',
    'zip_code',
    'vehicle_year',
    'vehicle_make',
    'vehicle_model',
    'vehicle_trim',
    'vehicle_vin',
    'vehicle_stock',
    'vehicle_status',
    'monthly_payment',
    'down_payment',
    'total_amount',
    'trade_in_year',
    'trade_in_make',
    'trade_in_model',
    'trade_in_vin',
    'trade_in_value',
    'trade_in_mileage',
    'utm_source',
    'utm_medium',
    'utm_campaign',
    'utm_term',
    'utm_content',
    'gclid',
    'fbclid',
    'referrer',
    'landing_page',
    'request_date',
)


class ForwardingFailure(Exception):
    """Raised when the event sink rejects or cannot receive an event."""
    pass


def _format_response(response: httpx.Response) -> str:
    """Return a readable response string (pretty JSON if possible)."""
    try:
        data = response.json()
        return json.dumps(data, indent=2, ensure_ascii=False)
    except (ValueError, TypeError):
        return response.text


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def build_event(lead: FinalizedLead, event_name: Optional[str] = None) -> dict:
    """
    Build a flat track event for a finalized lead, keyed by its anonymous id.
    """
    timestamp = lead.processed_at or lead.request_date
    return {
        'anonymousId': lead.anonymous_id,
        'event': event_name or settings.ANALYTICS_EVENT_NAME,
        'timestamp': _json_value(timestamp),
        'properties': {name: _json_value(getattr(lead, name)) for name in EVENT_PROPERTIES},
    }


class SegmentEventSink:
    """
    Sends events to a Segment-compatible HTTP tracking API using the write
    key as the basic-auth username.
    """

    def __init__(self, write_key: str, url: Optional[str] = None, timeout: Optional[float] = None):
        self.write_key = write_key
        self.url = url or settings.SEGMENT_API_URL
        self.timeout = timeout if timeout is not None else settings.ANALYTICS_TIMEOUT_SECONDS

    def send(self, event: dict) -> httpx.Response:
        """
        Post one event.

        Raises:
            httpx.HTTPError: On network/timeout errors
        """
        logger.info(f"Sending '{event.get('event')}' event to {self.url}")
        logger.debug(f"Event: {event}")

        response = httpx.post(
            self.url,
            json=event,
            auth=(self.write_key, ''),
            headers={'Content-Type': 'application/json'},
            timeout=self.timeout,
        )

        logger.info(f"Event sink response: {response.status_code}")
        logger.debug("Event sink response body:\n%s", _format_response(response))
        return response


class EventForwarder:
    """
    Forwards finalized leads to an optional event sink.

    Without a sink forwarding is disabled and forward() succeeds without
    doing anything.
    """

    def __init__(self, sink: Optional[SegmentEventSink] = None, event_name: Optional[str] = None):
        self.sink = sink
        self.event_name = event_name

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    def forward(self, lead: FinalizedLead) -> bool:
        """
        Send the lead's event to the sink.

        Returns:
            True if an event was sent, False if forwarding is disabled

        Raises:
            ForwardingFailure: On transport errors or a non-2xx response
        """
        if not self.enabled:
            logger.debug(f"Forwarding disabled, lead {lead.lead_id} not sent")
            return False

        event = build_event(lead, self.event_name)
        try:
            response = self.sink.send(event)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout forwarding lead {lead.lead_id}: {e}")
            raise ForwardingFailure(f"Timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error forwarding lead {lead.lead_id}: {e}")
            raise ForwardingFailure(f"HTTP error: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Event sink rejected lead {lead.lead_id}: {response.status_code}")
            raise ForwardingFailure(f"Event sink responded {response.status_code}")

        logger.info(f"Lead {lead.lead_id} forwarded as '{event['event']}'")
        return True


def build_forwarder() -> EventForwarder:
    """Build the forwarder from settings; disabled when no write key is configured."""
    if not settings.ANALYTICS_FORWARDING_ENABLED or not settings.SEGMENT_WRITE_KEY:
        logger.debug("Analytics forwarding disabled")
        return EventForwarder()
    return EventForwarder(SegmentEventSink(settings.SEGMENT_WRITE_KEY))
