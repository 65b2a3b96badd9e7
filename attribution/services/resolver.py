"""
Attribution resolver: joins a parsed lead to the visitor attribution that
produced it via the shared session key.
"""
import logging
from typing import NamedTuple, Optional

from django.conf import settings

from attribution.models import PendingLead, VisitorAttribution
from attribution.services.adf_parser import ParsedLead
from attribution.services.store import AttributionStore

logger = logging.getLogger(__name__)

# Taken only from the matched VisitorAttribution, never from the document.
CAMPAIGN_FIELDS = (
    'utm_source',
    'utm_medium',
    'utm_campaign',
    'utm_term',
    'utm_content',
    'gclid',
    'fbclid',
    'referrer',
    'landing_page',
)

# Taken only from the ParsedLead.
LEAD_FIELDS = (
    'lead_id',
    'session_key',
    'request_date',
    'first_name',
    'last_name',
    'email',
    'phone',
    'street',
    'city',
    'state',
    'zip_code',
    'comments',
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
    'raw_document',
)


class Resolution(NamedTuple):
    """Outcome of resolving one lead: either a match or a failure reason."""
    lead: ParsedLead
    attribution: Optional[VisitorAttribution] = None
    failure_reason: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.attribution is not None


def resolve(lead: ParsedLead, store: AttributionStore) -> Resolution:
    """
    Look up the visitor attribution for ``lead``.

    Returns:
        Resolution with the matched attribution, or with failure_reason
        NoSessionKey / NoMatchingAttribution

    Raises:
        StoreFailure: If the lookup itself fails
    """
    if not lead.session_key:
        logger.info(f"Lead {lead.lead_id} has no session key")
        return Resolution(lead, failure_reason=PendingLead.FailureReason.NO_SESSION_KEY)

    attribution = store.find_by_session_key(lead.session_key)
    if attribution is None:
        logger.info(f"Lead {lead.lead_id}: no attribution for session key {lead.session_key}")
        return Resolution(lead, failure_reason=PendingLead.FailureReason.NO_MATCHING_ATTRIBUTION)

    logger.info(
        f"Lead {lead.lead_id} matched visitor {attribution.widget_visitor_id} "
        f"via session key {lead.session_key}"
    )
    return Resolution(lead, attribution=attribution)


def merge(lead: ParsedLead, attribution: VisitorAttribution) -> dict:
    """
    Build FinalizedLead field values from a lead and its matched attribution.

    The two sources are disjoint: customer, vehicle and financial fields come
    from the lead, identity and campaign fields from the attribution.
    """
    fields = {name: getattr(lead, name) for name in LEAD_FIELDS}
    fields.update({name: getattr(attribution, name) for name in CAMPAIGN_FIELDS})
    fields['anonymous_id'] = attribution.anonymous_id
    fields['widget_visitor_id'] = attribution.widget_visitor_id
    fields['lead_type'] = lead.form_type or settings.DEFAULT_LEAD_TYPE
    fields['lead_source'] = settings.LEAD_SOURCE
    return fields
