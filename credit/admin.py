"""
Django Admin configuration for Credit app.
"""
from django.contrib import admin, messages
from django.utils.html import format_html

from core.exceptions import WorkflowError
from .models import CreditRequest, CreditTransaction
from . import services


@admin.register(CreditRequest)
class CreditRequestAdmin(admin.ModelAdmin):
    """Review queue for driver top-up requests."""

    list_display = ['id', 'driver', 'amount', 'status_badge', 'proof_link', 'decided_by', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['driver__name', 'driver__phone_number']
    readonly_fields = [
        'driver', 'amount', 'proof_image', 'status', 'rejection_reason',
        'decided_by', 'decided_at', 'created_at', 'updated_at'
    ]

    def status_badge(self, obj):
        colors = {
            'pending': 'orange',
            'approved': 'green',
            'rejected': 'red',
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, 'black'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def proof_link(self, obj):
        if obj.proof_image:
            return format_html('<a href="{}" target="_blank">View</a>', obj.proof_image.url)
        return '-'
    proof_link.short_description = 'Proof'

    def has_add_permission(self, request):
        return False

    actions = ['approve_requests']

    def approve_requests(self, request, queryset):
        """Approve selected pending requests through the credit workflow."""
        approved = 0
        for credit_request in queryset.filter(status='pending'):
            try:
                services.approve_credit_request(credit_request.id, admin=request.user)
                approved += 1
            except WorkflowError as e:
                self.message_user(request, f'Request {credit_request.id}: {e.message}', level=messages.WARNING)
        self.message_user(request, f'{approved} credit requests approved.')
    approve_requests.short_description = 'Approve selected credit requests'


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    """Read-only view of the balance audit trail."""

    list_display = ['driver', 'kind', 'amount', 'balance_after', 'order', 'actor', 'created_at']
    list_filter = ['kind', 'created_at']
    search_fields = ['driver__name', 'driver__phone_number', 'order__order_number']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
