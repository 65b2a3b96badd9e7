"""
Celery tasks for out-of-band event forwarding.
"""
import logging
from celery import shared_task

from attribution.services.forwarder import ForwardingFailure, build_forwarder
from attribution.services.pipeline import forward_finalized
from attribution.services.store import AttributionStore, StoreFailure

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(ForwardingFailure, StoreFailure),
    retry_backoff=30,  # Exponential backoff starting at 30s
    retry_backoff_max=480,  # Max backoff of 480s (8 minutes)
    max_retries=5,
    retry_jitter=False  # Disable jitter for predictable backoff
)
def forward_lead(self, lead_pk: int):
    """
    Forward a stored finalized lead to the event sink.

    Workflow:
    1. Load lead from database
    2. Skip if already forwarded or forwarding is disabled
    3. Send event, mark lead forwarded
    4. On failure: raise to let Celery retry with backoff

    Args:
        lead_pk: Primary key of the FinalizedLead to forward

    Returns:
        True if an event was sent
    """
    store = AttributionStore()
    lead = store.get_finalized_lead(lead_pk)
    if lead is None:
        logger.error(f"Finalized lead {lead_pk} not found in database")
        return False

    if lead.forwarded:
        logger.info(f"Lead {lead.lead_id} already forwarded, skipping")
        return False

    forwarder = build_forwarder()
    if not forwarder.enabled:
        logger.info(f"Forwarding disabled, lead {lead.lead_id} left unsent")
        return False

    try:
        return forward_finalized(lead, store, forwarder)
    except (ForwardingFailure, StoreFailure) as e:
        logger.warning(
            f"Lead {lead.lead_id} forwarding failed: {e}, "
            f"will retry (attempt {self.request.retries + 1}/{self.max_retries + 1})"
        )
        raise


@shared_task
def forward_unsent_leads():
    """
    Enqueue forward_lead for every finalized lead not yet forwarded.

    Returns:
        Number of leads enqueued
    """
    if not build_forwarder().enabled:
        logger.debug("Forwarding disabled, nothing enqueued")
        return 0

    lead_pks = AttributionStore().unforwarded_lead_ids()
    for lead_pk in lead_pks:
        forward_lead.delay(lead_pk)

    logger.info(f"Enqueued {len(lead_pks)} unsent leads for forwarding")
    return len(lead_pks)
