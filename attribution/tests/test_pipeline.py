"""
Tests for the lead attribution pipeline.
"""
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest

from attribution.models import FinalizedLead, PendingLead
from attribution.services.forwarder import EventForwarder, ForwardingFailure
from attribution.services.pipeline import (
    FINALIZED,
    MALFORMED_DOCUMENT,
    PENDING,
    REJECTED,
    Disposition,
    process_lead_email,
    reprocess_pending,
    truncate_body,
)
from attribution.services.store import AttributionStore, StoreFailure


@pytest.mark.django_db
class TestProcessLeadEmailFinalized:
    """Tests for leads that resolve to a visitor attribution."""

    def test_finalized_and_forwarded(self, adf_document, attribution_record, recording_sink):
        """Test a matched lead is stored, forwarded and marked forwarded."""
        store = AttributionStore()
        store.upsert_attribution(attribution_record)

        disposition = process_lead_email(
            adf_document, subject='New Lead', sender='leads@widget.example.com',
            store=store, forwarder=EventForwarder(recording_sink),
        )

        assert disposition.status == FINALIZED
        assert disposition.lead_id == 'L100'
        assert disposition.forwarded is True
        assert disposition.duplicate is False

        lead = FinalizedLead.objects.get(lead_id='L100')
        assert lead.forwarded is True
        assert lead.anonymous_id == 'anon-123'
        assert lead.widget_visitor_id == 'visitor-abc'
        assert lead.utm_campaign == 'spring-outback'
        assert lead.last_name == "O'Neil"
        assert lead.monthly_payment == Decimal('512.34')
        assert lead.trade_in_value == Decimal('9500.00')
        assert lead.lead_type == 'Buy Online'
        assert PendingLead.objects.count() == 0

        assert len(recording_sink.events) == 1
        event = recording_sink.events[0]
        assert event['anonymousId'] == 'anon-123'
        assert event['properties']['lead_id'] == 'L100'
        assert event['properties']['utm_source'] == 'google'

    def test_forwarding_disabled(self, adf_document, attribution_record):
        """Test a lead is finalized without an event when there is no sink."""
        store = AttributionStore()
        store.upsert_attribution(attribution_record)

        disposition = process_lead_email(adf_document, store=store, forwarder=EventForwarder())

        assert disposition.status == FINALIZED
        assert disposition.forwarded is False
        assert FinalizedLead.objects.get(lead_id='L100').forwarded is False

    def test_forwarding_failure_does_not_roll_back(self, adf_document, attribution_record):
        """Test the stored lead survives a failing event sink."""
        store = AttributionStore()
        store.upsert_attribution(attribution_record)
        forwarder = Mock(spec=EventForwarder)
        forwarder.forward.side_effect = ForwardingFailure('Event sink responded 503')

        disposition = process_lead_email(adf_document, store=store, forwarder=forwarder)

        assert disposition.status == FINALIZED
        assert disposition.forwarded is False
        assert disposition.forwarding_error == 'Event sink responded 503'
        assert disposition.to_dict()['forwarding_error'] == 'Event sink responded 503'

        lead = FinalizedLead.objects.get(lead_id='L100')
        assert lead.forwarded is False

    def test_sent_event_counts_when_marking_fails(self, adf_document, attribution_record, recording_sink):
        """Test a sent event is reported as forwarded even if recording it fails."""
        store = AttributionStore()
        store.upsert_attribution(attribution_record)

        with patch.object(store, 'mark_forwarded', side_effect=StoreFailure('mark_forwarded failed: timeout')):
            disposition = process_lead_email(
                adf_document, store=store, forwarder=EventForwarder(recording_sink),
            )

        assert disposition.status == FINALIZED
        assert disposition.forwarded is True
        assert disposition.forwarding_error is None
        assert FinalizedLead.objects.filter(lead_id='L100').count() == 1
        assert len(recording_sink.events) == 1

    def test_oversized_values_still_finalize(self, adf_document, attribution_record):
        """Test values too large for their columns are dropped or clipped, not fatal."""
        document = (
            adf_document
            .replace('<year>2024</year>', '<year>99999999999999999999</year>')
            .replace('$36,210.50', '$123,456,789,012.00')
            .replace('84,250', '99999999999')
            .replace('08002', '0' * 40)
            .replace('(555) 010-2233', '5' * 100)
        )
        store = AttributionStore()
        store.upsert_attribution(attribution_record)

        disposition = process_lead_email(document, store=store, forwarder=EventForwarder())

        assert disposition.status == FINALIZED
        lead = FinalizedLead.objects.get(lead_id='L100')
        assert lead.vehicle_year is None
        assert lead.total_amount is None
        assert lead.trade_in_mileage is None
        assert lead.monthly_payment == Decimal('512.34')
        assert lead.zip_code == '0' * 32
        assert lead.phone == '5' * 64

    def test_duplicate_delivery(self, adf_document, attribution_record, recording_sink):
        """Test a re-delivered lead is reported as a duplicate and not re-sent."""
        store = AttributionStore()
        store.upsert_attribution(attribution_record)
        forwarder = EventForwarder(recording_sink)
        process_lead_email(adf_document, store=store, forwarder=forwarder)

        disposition = process_lead_email(adf_document, store=store, forwarder=forwarder)

        assert disposition.status == FINALIZED
        assert disposition.duplicate is True
        assert disposition.forwarded is True
        assert FinalizedLead.objects.count() == 1
        assert len(recording_sink.events) == 1

    def test_default_store_and_forwarder(self, adf_document, attribution_record, settings):
        """Test the pipeline builds its own store and forwarder when none are given."""
        settings.SEGMENT_WRITE_KEY = ''
        AttributionStore().upsert_attribution(attribution_record)

        disposition = process_lead_email(adf_document)

        assert disposition.status == FINALIZED
        assert disposition.forwarded is False


@pytest.mark.django_db
class TestProcessLeadEmailPending:
    """Tests for leads that cannot be resolved."""

    def test_no_matching_attribution(self, adf_document):
        """Test L100 with session key S9 and no attribution becomes pending."""
        disposition = process_lead_email(
            adf_document, subject='New Lead', sender='leads@widget.example.com',
            forwarder=EventForwarder(),
        )

        assert disposition.status == PENDING
        assert disposition.lead_id == 'L100'
        assert disposition.reason == 'NoMatchingAttribution'
        assert FinalizedLead.objects.count() == 0

        pending = PendingLead.objects.get(lead_id='L100')
        assert pending.session_key == 'S9'
        assert pending.failure_reason == PendingLead.FailureReason.NO_MATCHING_ATTRIBUTION
        assert pending.email_subject == 'New Lead'
        assert pending.email_from == 'leads@widget.example.com'
        assert pending.email_body == adf_document
        assert pending.lead_data['lead_id'] == 'L100'
        assert pending.lead_data['monthly_payment'] == '512.34'
        assert 'S9' in pending.error_message

    def test_no_session_key(self, adf_builder):
        """Test a document without sdSessionId becomes pending with NoSessionKey."""
        disposition = process_lead_email(adf_builder(session_key=None), forwarder=EventForwarder())

        assert disposition.status == PENDING
        assert disposition.reason == 'NoSessionKey'
        assert PendingLead.objects.get(lead_id='L100').session_key is None

    def test_session_key_from_other_visitor_does_not_match(self, adf_document, attribution_record):
        """Test only an exact session key match resolves the lead."""
        attribution_record['session_key'] = 'S99'
        AttributionStore().upsert_attribution(attribution_record)

        disposition = process_lead_email(adf_document, forwarder=EventForwarder())

        assert disposition.status == PENDING

    def test_redelivery_bumps_retry_count(self, adf_document):
        """Test the same unresolved lead delivered twice keeps one pending row."""
        process_lead_email(adf_document, forwarder=EventForwarder())
        process_lead_email(adf_document, forwarder=EventForwarder())

        pending = PendingLead.objects.get(lead_id='L100')
        assert pending.retry_count == 1

    def test_email_body_truncated(self, adf_document, settings):
        """Test oversized bodies are truncated before they are stored."""
        settings.PENDING_EMAIL_BODY_MAX_LENGTH = 50

        process_lead_email(adf_document, forwarder=EventForwarder())

        assert len(PendingLead.objects.get(lead_id='L100').email_body) == 50


class TestProcessLeadEmailRejected:
    """Tests for unusable documents."""

    @patch('attribution.services.pipeline.AttributionStore')
    def test_missing_adf_writes_nothing(self, mock_store_class):
        """Test a body without an ADF block is rejected before any store access."""
        disposition = process_lead_email('Please call me about the Outback.', subject='Question')

        assert disposition.status == REJECTED
        assert disposition.reason == MALFORMED_DOCUMENT
        assert disposition.lead_id is None
        mock_store_class.assert_not_called()

    def test_missing_lead_id_rejected(self, adf_builder):
        """Test an ADF block without a LeadId is rejected without a store call."""
        store = Mock(spec=AttributionStore)

        disposition = process_lead_email(adf_builder(lead_id=None), store=store)

        assert disposition.status == REJECTED
        assert store.method_calls == []

    def test_store_failure_propagates(self, adf_document):
        """Test a failing store raises instead of producing a disposition."""
        store = Mock(spec=AttributionStore)
        store.find_by_session_key.side_effect = StoreFailure('find_by_session_key failed: timeout')

        with pytest.raises(StoreFailure):
            process_lead_email(adf_document, store=store, forwarder=EventForwarder())

        store.insert_pending_lead.assert_not_called()
        store.insert_finalized_lead.assert_not_called()


@pytest.mark.django_db
class TestReprocessPending:
    """Tests for manual reconciliation of pending leads."""

    def test_pending_lead_promoted_once_attribution_arrives(self, adf_document, attribution_record,
                                                            recording_sink):
        """Test a pending lead is finalized after its attribution shows up."""
        store = AttributionStore()
        process_lead_email(adf_document, store=store, forwarder=EventForwarder())
        pending = PendingLead.objects.get(lead_id='L100')

        store.upsert_attribution(attribution_record)
        disposition = reprocess_pending(pending, store, EventForwarder(recording_sink))

        assert disposition.status == FINALIZED
        assert disposition.forwarded is True
        assert FinalizedLead.objects.get(lead_id='L100').utm_source == 'google'
        pending.refresh_from_db()
        assert pending.resolved_at is not None

    def test_still_unmatched_bumps_retry(self, adf_document):
        """Test a pending lead still without attribution is retried, not resolved."""
        store = AttributionStore()
        process_lead_email(adf_document, store=store, forwarder=EventForwarder())
        pending = PendingLead.objects.get(lead_id='L100')

        disposition = reprocess_pending(pending, store, EventForwarder())

        assert disposition.status == PENDING
        assert pending.retry_count == 1
        assert pending.resolved_at is None

    def test_unparsable_pending_lead(self):
        """Test a pending lead without a stored document is reported as malformed."""
        pending = PendingLead.objects.create(
            lead_id='L5', failure_reason=PendingLead.FailureReason.NO_SESSION_KEY, lead_data={},
        )

        disposition = reprocess_pending(pending, AttributionStore(), EventForwarder())

        assert disposition.status == REJECTED
        assert disposition.reason == MALFORMED_DOCUMENT


class TestDisposition:
    """Tests for disposition serialization."""

    def test_pending_to_dict(self):
        assert Disposition(PENDING, 'L100', reason='NoSessionKey').to_dict() == {
            'status': 'pending',
            'lead_id': 'L100',
            'reason': 'NoSessionKey',
        }

    def test_finalized_to_dict(self):
        assert Disposition(FINALIZED, 'L100', forwarded=True).to_dict() == {
            'status': 'finalized',
            'lead_id': 'L100',
            'forwarded': True,
            'duplicate': False,
        }

    def test_truncate_body(self, settings):
        settings.PENDING_EMAIL_BODY_MAX_LENGTH = 5
        assert truncate_body('abcdefgh') == 'abcde'
        assert truncate_body('abc') == 'abc'
        assert truncate_body(None) is None
