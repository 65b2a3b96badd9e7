"""
Data models for the lead attribution gateway.
"""
from django.db import models


class VisitorAttribution(models.Model):
    """
    Campaign attribution captured for one browsing session of a widget visitor.
    At most one row per widget visitor id; later submissions replace it.
    """

    anonymous_id = models.CharField(max_length=255, db_index=True)
    widget_visitor_id = models.CharField(max_length=255, unique=True)
    session_key = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    widget_user_id = models.CharField(max_length=255, null=True, blank=True)
    widget_session_id = models.CharField(max_length=255, null=True, blank=True)

    utm_source = models.CharField(max_length=255, null=True, blank=True)
    utm_medium = models.CharField(max_length=255, null=True, blank=True)
    utm_campaign = models.CharField(max_length=255, null=True, blank=True)
    utm_term = models.CharField(max_length=255, null=True, blank=True)
    utm_content = models.CharField(max_length=255, null=True, blank=True)
    gclid = models.CharField(max_length=255, null=True, blank=True)
    fbclid = models.CharField(max_length=255, null=True, blank=True)
    referrer = models.TextField(null=True, blank=True)
    landing_page = models.TextField(null=True, blank=True)
    page_url = models.TextField(null=True, blank=True)

    user_agent = models.TextField(null=True, blank=True)
    ip_address = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"Visitor {self.widget_visitor_id} ({self.anonymous_id})"


class FinalizedLead(models.Model):
    """
    A lead joined to its visitor attribution.
    Customer, vehicle and financial fields come from the ADF document;
    campaign fields come from the matched VisitorAttribution only.
    """

    lead_id = models.CharField(max_length=255, unique=True)
    anonymous_id = models.CharField(max_length=255, db_index=True)
    widget_visitor_id = models.CharField(max_length=255, db_index=True)
    session_key = models.CharField(max_length=255, null=True, blank=True)

    first_name = models.CharField(max_length=255, null=True, blank=True)
    last_name = models.CharField(max_length=255, null=True, blank=True)
    email = models.CharField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=64, null=True, blank=True)
    street = models.CharField(max_length=255, null=True, blank=True)
    city = models.CharField(max_length=255, null=True, blank=True)
    state = models.CharField(max_length=64, null=True, blank=True)
    zip_code = models.CharField(max_length=32, null=True, blank=True)

    vehicle_year = models.IntegerField(null=True, blank=True)
    vehicle_make = models.CharField(max_length=255, null=True, blank=True)
    vehicle_model = models.CharField(max_length=255, null=True, blank=True)
    vehicle_trim = models.CharField(max_length=255, null=True, blank=True)
    vehicle_vin = models.CharField(max_length=64, null=True, blank=True)
    vehicle_stock = models.CharField(max_length=64, null=True, blank=True)
    vehicle_status = models.CharField(max_length=32, null=True, blank=True)

    monthly_payment = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    down_payment = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    trade_in_year = models.IntegerField(null=True, blank=True)
    trade_in_make = models.CharField(max_length=255, null=True, blank=True)
    trade_in_model = models.CharField(max_length=255, null=True, blank=True)
    trade_in_vin = models.CharField(max_length=64, null=True, blank=True)
    trade_in_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    trade_in_mileage = models.IntegerField(null=True, blank=True)

    utm_source = models.CharField(max_length=255, null=True, blank=True)
    utm_medium = models.CharField(max_length=255, null=True, blank=True)
    utm_campaign = models.CharField(max_length=255, null=True, blank=True)
    utm_term = models.CharField(max_length=255, null=True, blank=True)
    utm_content = models.CharField(max_length=255, null=True, blank=True)
    gclid = models.CharField(max_length=255, null=True, blank=True)
    fbclid = models.CharField(max_length=255, null=True, blank=True)
    referrer = models.TextField(null=True, blank=True)
    landing_page = models.TextField(null=True, blank=True)

    lead_type = models.CharField(max_length=255, null=True, blank=True)
    lead_source = models.CharField(max_length=255, null=True, blank=True)
    request_date = models.DateTimeField(null=True, blank=True)
    comments = models.TextField(null=True, blank=True)
    raw_document = models.TextField(null=True, blank=True)

    forwarded = models.BooleanField(default=False, db_index=True)
    forwarded_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(auto_now_add=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-processed_at']

    def __str__(self):
        return f"Lead {self.lead_id} - {'forwarded' if self.forwarded else 'not forwarded'}"


class PendingLead(models.Model):
    """
    A parsed lead that could not be joined to a visitor attribution.
    Held for manual reconciliation; never retried automatically.
    """

    class FailureReason(models.TextChoices):
        NO_SESSION_KEY = 'NoSessionKey', 'No session key'
        NO_MATCHING_ATTRIBUTION = 'NoMatchingAttribution', 'No matching attribution'

    lead_id = models.CharField(max_length=255, db_index=True)
    session_key = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    failure_reason = models.CharField(max_length=32, choices=FailureReason.choices, db_index=True)
    email_subject = models.TextField(null=True, blank=True)
    email_from = models.CharField(max_length=255, null=True, blank=True)
    email_body = models.TextField(null=True, blank=True)
    lead_data = models.JSONField()
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveIntegerField(default=0)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Pending lead {self.lead_id} - {self.failure_reason}"
