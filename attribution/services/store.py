"""
Visitor attribution store backed by the Django ORM.

The pipeline only talks to the store through this class so that database
errors surface uniformly as StoreFailure and every write is atomic.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, IntegrityError, connection, transaction
from django.db.models import F
from django.utils import timezone

from attribution.models import FinalizedLead, PendingLead, VisitorAttribution

logger = logging.getLogger(__name__)

ATTRIBUTION_FIELDS = (
    'anonymous_id',
    'session_key',
    'widget_user_id',
    'widget_session_id',
    'utm_source',
    'utm_medium',
    'utm_campaign',
    'utm_term',
    'utm_content',
    'gclid',
    'fbclid',
    'referrer',
    'landing_page',
    'page_url',
    'user_agent',
    'ip_address',
)


class StoreFailure(Exception):
    """Raised when the backing database fails or times out."""
    pass


class AttributionStore:
    """
    Keyed store for visitor attributions, finalized leads and pending leads.

    Args:
        timeout: Per-operation statement timeout in seconds (PostgreSQL only);
            defaults to settings.STORE_TIMEOUT_SECONDS
    """

    def __init__(self, timeout: Optional[float] = None):
        if timeout is None:
            timeout = getattr(settings, 'STORE_TIMEOUT_SECONDS', None)
        self.timeout = timeout

    def _apply_timeout(self) -> None:
        if not self.timeout or connection.vendor != 'postgresql':
            return
        with connection.cursor() as cursor:
            cursor.execute('SET LOCAL statement_timeout = %s', [int(self.timeout * 1000)])

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            with transaction.atomic():
                self._apply_timeout()
                yield
        except DatabaseError as e:
            logger.error(f"Store operation {name} failed: {e}", exc_info=True)
            raise StoreFailure(f"{name} failed: {e}") from e

    def upsert_attribution(self, record: dict) -> Tuple[VisitorAttribution, bool]:
        """
        Insert or replace the attribution row for ``record['widget_visitor_id']``.

        Only the fields present in ``record`` are written; fields it omits
        keep their stored values.

        Returns:
            Tuple of (attribution, created)
        """
        defaults = {key: record[key] for key in ATTRIBUTION_FIELDS if key in record}
        with self._operation('upsert_attribution'):
            attribution, created = VisitorAttribution.objects.update_or_create(
                widget_visitor_id=record['widget_visitor_id'],
                defaults=defaults,
            )
        logger.info(
            f"Attribution for visitor {attribution.widget_visitor_id} "
            f"{'created' if created else 'updated'}"
        )
        return attribution, created

    def find_by_visitor_id(self, widget_visitor_id: str) -> Optional[VisitorAttribution]:
        with self._operation('find_by_visitor_id'):
            return VisitorAttribution.objects.filter(widget_visitor_id=widget_visitor_id).first()

    def find_by_session_key(self, session_key: str) -> Optional[VisitorAttribution]:
        """Most recently updated attribution carrying ``session_key``, or None."""
        if not session_key:
            return None
        with self._operation('find_by_session_key'):
            return (
                VisitorAttribution.objects
                .filter(session_key=session_key)
                .order_by('-updated_at', '-id')
                .first()
            )

    def insert_finalized_lead(self, fields: dict) -> Tuple[FinalizedLead, bool]:
        """
        Insert a finalized lead unless one with the same lead_id exists.

        Returns:
            Tuple of (lead, created); created is False for a re-delivered lead
        """
        lead_id = fields['lead_id']
        with self._operation('insert_finalized_lead'):
            existing = FinalizedLead.objects.filter(lead_id=lead_id).first()
            if existing is not None:
                logger.info(f"Finalized lead {lead_id} already stored, skipping insert")
                return existing, False
            try:
                with transaction.atomic():
                    return FinalizedLead.objects.create(**fields), True
            except IntegrityError:
                existing = FinalizedLead.objects.filter(lead_id=lead_id).first()
                if existing is None:
                    raise
                logger.info(f"Finalized lead {lead_id} inserted concurrently, skipping insert")
                return existing, False

    def insert_pending_lead(self, fields: dict) -> Tuple[PendingLead, bool]:
        """
        Record an unresolved lead for manual review.

        A re-delivery of an unresolved lead with the same reason bumps
        retry_count on the existing row instead of adding another one.

        Returns:
            Tuple of (pending_lead, created)
        """
        with self._operation('insert_pending_lead'):
            existing = (
                PendingLead.objects.select_for_update()
                .filter(
                    lead_id=fields['lead_id'],
                    failure_reason=fields['failure_reason'],
                    resolved_at__isnull=True,
                )
                .first()
            )
            if existing is not None:
                PendingLead.objects.filter(pk=existing.pk).update(retry_count=F('retry_count') + 1)
                existing.refresh_from_db()
                return existing, False
            return PendingLead.objects.create(**fields), True

    def mark_forwarded(self, lead: FinalizedLead) -> FinalizedLead:
        now = timezone.now()
        with self._operation('mark_forwarded'):
            FinalizedLead.objects.filter(pk=lead.pk).update(forwarded=True, forwarded_at=now)
        lead.forwarded = True
        lead.forwarded_at = now
        return lead

    def get_finalized_lead(self, pk: int) -> Optional[FinalizedLead]:
        with self._operation('get_finalized_lead'):
            return FinalizedLead.objects.filter(pk=pk).first()

    def unforwarded_lead_ids(self) -> List[int]:
        with self._operation('unforwarded_lead_ids'):
            return list(
                FinalizedLead.objects.filter(forwarded=False)
                .order_by('processed_at')
                .values_list('id', flat=True)
            )

    def unresolved_pending_leads(self, limit: Optional[int] = None) -> List[PendingLead]:
        with self._operation('unresolved_pending_leads'):
            queryset = PendingLead.objects.filter(resolved_at__isnull=True).order_by('created_at')
            if limit:
                queryset = queryset[:limit]
            return list(queryset)

    def mark_pending_resolved(self, pending: PendingLead) -> None:
        now = timezone.now()
        with self._operation('mark_pending_resolved'):
            PendingLead.objects.filter(pk=pending.pk).update(resolved_at=now)
        pending.resolved_at = now

    def bump_pending_retry(self, pending: PendingLead) -> None:
        with self._operation('bump_pending_retry'):
            PendingLead.objects.filter(pk=pending.pk).update(retry_count=F('retry_count') + 1)
        pending.refresh_from_db()

    def lead_stats(self) -> dict:
        """Totals and attribution rate across stored leads."""
        with self._operation('lead_stats'):
            total = FinalizedLead.objects.count()
            attributed = FinalizedLead.objects.filter(utm_source__isnull=False).count()
            pending = PendingLead.objects.filter(resolved_at__isnull=True).count()
        return {
            'total_leads': total,
            'leads_with_attribution': attributed,
            'pending_leads': pending,
            'attribution_rate': int(attributed * 100 / total + 0.5) if total else 0,
        }

    def recent_leads(self, limit: int = 10) -> List[dict]:
        with self._operation('recent_leads'):
            return list(
                FinalizedLead.objects.order_by('-processed_at').values(
                    'lead_id', 'first_name', 'last_name', 'email', 'widget_visitor_id',
                    'vehicle_year', 'vehicle_make', 'vehicle_model', 'monthly_payment',
                    'utm_source', 'utm_medium', 'utm_campaign', 'processed_at',
                )[:limit]
            )
