"""
Django Admin configuration for Delivery app.
"""
from django.contrib import admin
from django.utils.html import format_html
from .models import Driver


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    """Admin for Driver model. Balance changes go through the credit app."""

    list_display = [
        'name', 'phone_number', 'vehicle_type', 'approval_badge',
        'is_online', 'is_available', 'credit_balance', 'last_online'
    ]
    list_filter = ['is_approved', 'is_blocked', 'is_online', 'is_available', 'vehicle_type']
    search_fields = ['name', 'phone_number', 'user__username', 'license_number']
    readonly_fields = [
        'credit_balance', 'approved_at', 'last_online', 'last_location_update',
        'total_deliveries', 'created_at', 'updated_at'
    ]

    fieldsets = (
        ('Driver', {
            'fields': ('user', 'name', 'phone_number')
        }),
        ('Vehicle & Documents', {
            'fields': (
                'license_number', 'vehicle_type', 'vehicle_plate',
                'license_image', 'id_card_image'
            )
        }),
        ('Approval', {
            'fields': ('is_approved', 'is_blocked', 'rejection_reason', 'approved_at')
        }),
        ('Availability', {
            'fields': ('is_online', 'is_available', 'last_online')
        }),
        ('Location', {
            'fields': ('current_latitude', 'current_longitude', 'last_location_update'),
            'classes': ('collapse',)
        }),
        ('Credit & Statistics', {
            'fields': ('credit_balance', 'total_deliveries')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def approval_badge(self, obj):
        colors = {
            'approved': 'green',
            'pending': 'orange',
            'rejected': 'red',
            'blocked': 'gray',
        }
        status = obj.approval_status
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors[status], status.title()
        )
    approval_badge.short_description = 'Approval'

    actions = ['set_offline']

    def set_offline(self, request, queryset):
        """Take selected drivers offline."""
        updated = queryset.update(is_online=False, is_available=False)
        self.message_user(request, f'{updated} drivers set offline.')
    set_offline.short_description = 'Set selected drivers offline'
