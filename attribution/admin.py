"""
Django admin configuration for attribution app.
"""
from django.contrib import admin
from attribution.models import FinalizedLead, PendingLead, VisitorAttribution


@admin.register(VisitorAttribution)
class VisitorAttributionAdmin(admin.ModelAdmin):
    """Admin interface for VisitorAttribution model."""

    list_display = ('widget_visitor_id', 'anonymous_id', 'session_key', 'utm_source',
                    'utm_campaign', 'updated_at')
    list_filter = ('utm_source', 'utm_medium', 'updated_at')
    search_fields = ('widget_visitor_id', 'anonymous_id', 'session_key')
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        ('Identifiers', {
            'fields': ('widget_visitor_id', 'anonymous_id', 'session_key',
                       'widget_user_id', 'widget_session_id')
        }),
        ('Campaign', {
            'fields': ('utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
                       'gclid', 'fbclid', 'referrer', 'landing_page', 'page_url')
        }),
        ('Request', {
            'fields': ('user_agent', 'ip_address', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(FinalizedLead)
class FinalizedLeadAdmin(admin.ModelAdmin):
    """Admin interface for FinalizedLead model."""

    list_display = ('lead_id', 'first_name', 'last_name', 'vehicle_make', 'vehicle_model',
                    'utm_source', 'forwarded', 'processed_at')
    list_filter = ('forwarded', 'utm_source', 'processed_at')
    search_fields = ('lead_id', 'email', 'widget_visitor_id', 'session_key')
    readonly_fields = [field.name for field in FinalizedLead._meta.fields]

    def has_add_permission(self, request):
        """Disable manual lead creation through admin."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Disable lead deletion through admin."""
        return False


@admin.register(PendingLead)
class PendingLeadAdmin(admin.ModelAdmin):
    """Admin interface for manual review of unresolved leads."""

    list_display = ('lead_id', 'failure_reason', 'session_key', 'retry_count', 'resolved_at',
                    'created_at')
    list_filter = ('failure_reason', 'resolved_at', 'created_at')
    search_fields = ('lead_id', 'session_key', 'email_subject', 'email_from')
    readonly_fields = ('lead_id', 'session_key', 'failure_reason', 'email_subject', 'email_from',
                       'email_body', 'lead_data', 'error_message', 'retry_count', 'resolved_at',
                       'created_at', 'updated_at')

    fieldsets = (
        ('Status', {
            'fields': ('lead_id', 'failure_reason', 'error_message', 'retry_count', 'resolved_at')
        }),
        ('Email', {
            'fields': ('email_subject', 'email_from', 'email_body'),
            'classes': ('collapse',)
        }),
        ('Lead', {
            'fields': ('session_key', 'lead_data', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        """Disable manual pending lead creation through admin."""
        return False
