"""
Manually re-run attribution for pending leads.
"""
import logging

from django.core.management.base import BaseCommand, CommandError

from attribution.models import PendingLead
from attribution.services.forwarder import build_forwarder
from attribution.services.pipeline import FINALIZED, reprocess_pending
from attribution.services.store import AttributionStore, StoreFailure

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Re-run session-key resolution for unresolved pending leads."

    def add_arguments(self, parser):
        parser.add_argument('--lead-id', help="Only reprocess pending rows for this lead id")
        parser.add_argument('--limit', type=int, default=None, help="Maximum rows to reprocess")

    def handle(self, *args, **options):
        store = AttributionStore()
        forwarder = build_forwarder()

        try:
            if options['lead_id']:
                pending_leads = list(
                    PendingLead.objects.filter(lead_id=options['lead_id'], resolved_at__isnull=True)
                )
            else:
                pending_leads = store.unresolved_pending_leads(limit=options['limit'])

            resolved = 0
            for pending in pending_leads:
                disposition = reprocess_pending(pending, store, forwarder)
                if disposition.status == FINALIZED:
                    resolved += 1
                self.stdout.write(
                    f"{pending.lead_id}: {disposition.status}"
                    + (f" ({disposition.reason})" if disposition.reason else "")
                )
        except StoreFailure as e:
            raise CommandError(f"Store failure: {e}") from e

        self.stdout.write(self.style.SUCCESS(
            f"Reprocessed {len(pending_leads)} pending leads, {resolved} resolved"
        ))
