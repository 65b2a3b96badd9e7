"""
API views for the lead attribution gateway.
"""
import logging
import uuid
from django.utils import timezone
from rest_framework.exceptions import ParseError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from attribution.services.normalization import normalize_attribution
from attribution.services.pipeline import FINALIZED, PENDING, process_lead_email
from attribution.services.store import AttributionStore, StoreFailure
from attribution.services.validation import validate_attribution

logger = logging.getLogger(__name__)

EMAIL_BODY_FIELDS = ('body', 'email', 'text', 'html')

DISPOSITION_STATUS = {
    FINALIZED: status.HTTP_200_OK,
    PENDING: status.HTTP_202_ACCEPTED,
}


def client_ip(request) -> str:
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')


def attribution_to_dict(attribution) -> dict:
    return {
        'anonymous_id': attribution.anonymous_id,
        'widget_visitor_id': attribution.widget_visitor_id,
        'session_key': attribution.session_key,
        'widget_user_id': attribution.widget_user_id,
        'widget_session_id': attribution.widget_session_id,
        'utm_source': attribution.utm_source,
        'utm_medium': attribution.utm_medium,
        'utm_campaign': attribution.utm_campaign,
        'utm_term': attribution.utm_term,
        'utm_content': attribution.utm_content,
        'gclid': attribution.gclid,
        'fbclid': attribution.fbclid,
        'referrer': attribution.referrer,
        'landing_page': attribution.landing_page,
        'page_url': attribution.page_url,
        'user_agent': attribution.user_agent,
        'ip_address': attribution.ip_address,
        'created_at': attribution.created_at,
        'updated_at': attribution.updated_at,
    }


@method_decorator(csrf_exempt, name='dispatch')
class LeadEmailWebhookView(APIView):
    """
    Webhook endpoint for inbound lead emails.

    POST /webhooks/lead-email/
    - Accepts JSON or form data with the email body under body/email/text/html
    - Parses the ADF document and joins it to the visitor attribution
    - Returns the disposition with a correlation_id
    """

    def post(self, request):
        """
        Handle an inbound lead email.

        Returns:
            200 OK: Lead finalized
            202 Accepted: Lead stored as pending for manual review
            400 Bad Request: Empty or malformed payload, or no ADF document
            503 Service Unavailable: Store failure, safe to retry
            500 Internal Server Error: Unexpected error
        """
        # Generate correlation ID for request tracing
        correlation_id = str(uuid.uuid4())

        try:
            payload = request.data
            body = None
            for field in EMAIL_BODY_FIELDS:
                value = payload.get(field) if hasattr(payload, 'get') else None
                if isinstance(value, str) and value.strip():
                    body = value
                    break

            if body is None:
                logger.warning(f"Empty email body received, correlation_id={correlation_id}")
                return Response(
                    {
                        'status': 'rejected',
                        'error': 'Empty email body',
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_400_BAD_REQUEST
                )

            subject = payload.get('subject')
            sender = payload.get('from')

            disposition = process_lead_email(body, subject=subject, sender=sender)

            logger.info(
                f"Lead email disposition {disposition.status} "
                f"lead_id={disposition.lead_id}, correlation_id={correlation_id}"
            )

            response_status = DISPOSITION_STATUS.get(disposition.status, status.HTTP_400_BAD_REQUEST)
            return Response(
                {**disposition.to_dict(), 'correlation_id': correlation_id},
                status=response_status
            )

        except ParseError as e:
            logger.warning(
                f"Malformed payload: {e}, "
                f"correlation_id={correlation_id}"
            )
            return Response(
                {
                    'status': 'rejected',
                    'error': 'Malformed payload',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_400_BAD_REQUEST
            )
        except StoreFailure as e:
            logger.error(
                f"Store failure processing lead email: {e}, "
                f"correlation_id={correlation_id}"
            )
            return Response(
                {
                    'error': 'Store unavailable',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        except Exception as e:
            logger.error(
                f"Error processing lead email: {e}, "
                f"correlation_id={correlation_id}",
                exc_info=True
            )
            return Response(
                {
                    'error': 'Internal server error',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )


@method_decorator(csrf_exempt, name='dispatch')
class VisitorAttributionView(APIView):
    """
    Endpoint for visitor attribution submissions from the browser collector.

    POST /api/attribution/
    - Accepts canonical or collector (alias) field names
    - Rejects submissions without anonymous_id or widget_visitor_id
    - Upserts the attribution keyed on widget_visitor_id
    """

    def post(self, request):
        correlation_id = str(uuid.uuid4())

        try:
            submission = normalize_attribution(request.data if hasattr(request.data, 'items') else {})
            request_metadata = {
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                'ip_address': client_ip(request),
            }
            for field, value in request_metadata.items():
                if value:
                    submission.setdefault(field, value)

            is_valid, rejection_reason = validate_attribution(submission)
            if not is_valid:
                logger.warning(
                    f"Attribution submission REJECTED: {rejection_reason}, "
                    f"correlation_id={correlation_id}"
                )
                return Response(
                    {
                        'error': 'Missing required fields: anonymous_id and widget_visitor_id',
                        'reason': rejection_reason,
                        'correlation_id': correlation_id
                    },
                    status=status.HTTP_400_BAD_REQUEST
                )

            attribution, created = AttributionStore().upsert_attribution(submission)
            logger.info(
                f"Attribution saved for visitor {attribution.widget_visitor_id}, "
                f"session_key={submission.get('session_key')}, correlation_id={correlation_id}"
            )

            return Response(
                {
                    'success': True,
                    'widget_visitor_id': attribution.widget_visitor_id,
                    'created': created,
                    'correlation_id': correlation_id
                },
                status=status.HTTP_200_OK
            )

        except ParseError as e:
            logger.warning(f"Malformed JSON payload: {e}, correlation_id={correlation_id}")
            return Response(
                {'error': 'Malformed JSON', 'correlation_id': correlation_id},
                status=status.HTTP_400_BAD_REQUEST
            )
        except StoreFailure as e:
            logger.error(f"Store failure saving attribution: {e}, correlation_id={correlation_id}")
            return Response(
                {'error': 'Store unavailable', 'correlation_id': correlation_id},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )


class VisitorAttributionDetailView(APIView):
    """
    GET /api/attribution/<widget_visitor_id>/
    """

    def get(self, request, widget_visitor_id):
        try:
            attribution = AttributionStore().find_by_visitor_id(widget_visitor_id)
        except StoreFailure:
            return Response({'error': 'Store unavailable'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        if attribution is None:
            return Response({'error': 'Mapping not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(attribution_to_dict(attribution))


class StatsView(APIView):
    """GET /api/stats/ - lead totals and attribution rate."""

    def get(self, request):
        try:
            stats = AttributionStore().lead_stats()
        except StoreFailure:
            return Response({'error': 'Store unavailable'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({**stats, 'timestamp': timezone.now().isoformat()})


class HealthView(APIView):

    def get(self, request):
        return Response({'status': 'OK', 'timestamp': timezone.now().isoformat()})
