"""
Lead attribution pipeline.

email body -> ADF parser -> resolver -> finalized lead (+ event) or pending lead.
Every submission ends in a definite disposition; only store failures escape
as exceptions.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.conf import settings

from attribution.models import FinalizedLead, PendingLead
from attribution.services.adf_parser import ParsedLead, clip, parse_adf
from attribution.services.forwarder import EventForwarder, ForwardingFailure, build_forwarder
from attribution.services.resolver import Resolution, merge, resolve
from attribution.services.store import AttributionStore, StoreFailure

logger = logging.getLogger(__name__)

FINALIZED = 'finalized'
PENDING = 'pending'
REJECTED = 'rejected'

MALFORMED_DOCUMENT = 'MalformedDocument'


@dataclass
class Disposition:
    """Result of processing one inbound lead submission."""
    status: str
    lead_id: Optional[str] = None
    reason: Optional[str] = None
    forwarded: bool = False
    duplicate: bool = False
    forwarding_error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'status': self.status, 'lead_id': self.lead_id}
        if self.reason:
            data['reason'] = self.reason
        if self.status == FINALIZED:
            data['forwarded'] = self.forwarded
            data['duplicate'] = self.duplicate
            if self.forwarding_error:
                data['forwarding_error'] = self.forwarding_error
        return data


def truncate_body(body: Optional[str]) -> Optional[str]:
    if body is None:
        return None
    limit = settings.PENDING_EMAIL_BODY_MAX_LENGTH
    return body if len(body) <= limit else body[:limit]


def pending_error_message(resolution: Resolution) -> str:
    if resolution.failure_reason == PendingLead.FailureReason.NO_SESSION_KEY:
        return 'No session key found in lead document'
    return f"No visitor attribution found for session key {resolution.lead.session_key}"


def forward_finalized(lead: FinalizedLead, store: AttributionStore, forwarder: EventForwarder) -> bool:
    """
    Forward a stored lead and record that it was sent.

    Returns:
        True if an event was sent

    Raises:
        ForwardingFailure: If the event sink call failed
        StoreFailure: If recording the forward failed
    """
    if not forwarder.forward(lead):
        return False
    store.mark_forwarded(lead)
    return True


def finalize(resolution: Resolution, store: AttributionStore,
             forwarder: EventForwarder) -> Tuple[FinalizedLead, Disposition]:
    """
    Persist a resolved lead and hand it to the forwarder.

    A forwarding failure is reported on the disposition and leaves the stored
    lead in place with forwarded=False. Once the event is sent the lead counts
    as forwarded even if recording that fails.
    """
    lead = resolution.lead
    finalized, created = store.insert_finalized_lead(merge(lead, resolution.attribution))
    if not created:
        return finalized, Disposition(
            FINALIZED, lead.lead_id, forwarded=finalized.forwarded, duplicate=True,
        )

    logger.info(f"Lead {lead.lead_id} FINALIZED for visitor {finalized.widget_visitor_id}")
    disposition = Disposition(FINALIZED, lead.lead_id)
    try:
        if forwarder.forward(finalized):
            disposition.forwarded = True
            store.mark_forwarded(finalized)
    except ForwardingFailure as e:
        logger.error(f"Lead {lead.lead_id} stored but forwarding failed: {e}")
        disposition.forwarding_error = str(e)
    except StoreFailure as e:
        logger.error(f"Lead {lead.lead_id} forwarded but not marked as forwarded: {e}")
    return finalized, disposition


def process_parsed_lead(lead: ParsedLead, store: AttributionStore, forwarder: EventForwarder,
                        subject: Optional[str] = None, sender: Optional[str] = None,
                        body: Optional[str] = None) -> Disposition:
    """Resolve a parsed lead and write it as finalized or pending."""
    resolution = resolve(lead, store)

    if resolution.resolved:
        _finalized, disposition = finalize(resolution, store, forwarder)
        return disposition

    pending, created = store.insert_pending_lead({
        'lead_id': lead.lead_id,
        'session_key': lead.session_key,
        'failure_reason': resolution.failure_reason,
        'email_subject': subject,
        'email_from': clip('email_from', sender),
        'email_body': truncate_body(body),
        'lead_data': lead.to_dict(),
        'error_message': pending_error_message(resolution),
    })
    logger.warning(
        f"Lead {lead.lead_id} PENDING ({resolution.failure_reason}), "
        f"{'new' if created else f'seen {pending.retry_count + 1} times'}"
    )
    return Disposition(PENDING, lead.lead_id, reason=resolution.failure_reason)


def process_lead_email(body: Optional[str], subject: Optional[str] = None, sender: Optional[str] = None,
                       store: Optional[AttributionStore] = None,
                       forwarder: Optional[EventForwarder] = None) -> Disposition:
    """
    Process one inbound lead email.

    Args:
        body: Email body (plain/escaped ADF XML or multipart MIME)
        subject: Email subject, kept for triage and logging
        sender: Email sender, kept for triage and logging
        store: Attribution store (defaults to the ORM-backed store)
        forwarder: Event forwarder (defaults to one built from settings)

    Returns:
        Disposition (finalized, pending or rejected)

    Raises:
        StoreFailure: On database failure; nothing is partially written
    """
    logger.info(f"Processing lead email subject={subject!r} from={sender!r}")

    lead = parse_adf(body)
    if lead is None:
        logger.warning(f"Lead email subject={subject!r} REJECTED: {MALFORMED_DOCUMENT}")
        return Disposition(REJECTED, reason=MALFORMED_DOCUMENT)

    store = store or AttributionStore()
    forwarder = forwarder or build_forwarder()
    return process_parsed_lead(lead, store, forwarder, subject, sender, body)


def reprocess_pending(pending: PendingLead, store: AttributionStore,
                      forwarder: EventForwarder) -> Disposition:
    """
    Re-run resolution for a pending lead (manual reconciliation).

    A match promotes it to a finalized lead and marks the pending row
    resolved; otherwise its retry_count is incremented.
    """
    lead = parse_adf((pending.lead_data or {}).get('raw_document'))
    if lead is None:
        logger.warning(f"Pending lead {pending.lead_id} has no parsable document")
        return Disposition(REJECTED, pending.lead_id, reason=MALFORMED_DOCUMENT)

    resolution = resolve(lead, store)
    if not resolution.resolved:
        store.bump_pending_retry(pending)
        return Disposition(PENDING, lead.lead_id, reason=resolution.failure_reason)

    _finalized, disposition = finalize(resolution, store, forwarder)
    store.mark_pending_resolved(pending)
    logger.info(f"Pending lead {pending.lead_id} resolved")
    return disposition
