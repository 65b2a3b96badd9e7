"""
Print lead totals, attribution rate and optionally the most recent leads.
"""
from django.core.management.base import BaseCommand

from attribution.services.store import AttributionStore


class Command(BaseCommand):
    help = "Show lead attribution statistics."

    def add_arguments(self, parser):
        parser.add_argument('--recent', type=int, default=0, help="Also list the N most recent leads")

    def handle(self, *args, **options):
        store = AttributionStore()
        stats = store.lead_stats()

        self.stdout.write(f"Total leads:            {stats['total_leads']}")
        self.stdout.write(f"Leads with attribution: {stats['leads_with_attribution']}")
        self.stdout.write(f"Pending leads:          {stats['pending_leads']}")
        self.stdout.write(f"Attribution rate:       {stats['attribution_rate']}%")

        if options['recent']:
            self.stdout.write("")
            for lead in store.recent_leads(options['recent']):
                vehicle = ' '.join(
                    str(part) for part in (lead['vehicle_year'], lead['vehicle_make'], lead['vehicle_model'])
                    if part
                )
                self.stdout.write(
                    f"{lead['lead_id']}  {lead['first_name'] or ''} {lead['last_name'] or ''}  "
                    f"{vehicle}  source={lead['utm_source'] or '-'}  campaign={lead['utm_campaign'] or '-'}"
                )
