"""
Django Admin configuration for Orders app.
"""
from django.contrib import admin
from django.utils.html import format_html
from .models import Order, OrderItem, OrderStatusChange


class OrderItemInline(admin.TabularInline):
    """Inline for order items."""
    model = OrderItem
    extra = 0
    readonly_fields = ['menu_item', 'name', 'unit_price', 'quantity', 'customizations', 'line_total']
    can_delete = False


class OrderStatusChangeInline(admin.TabularInline):
    model = OrderStatusChange
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'actor', 'note', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin for Order model. Status is read-only here; it changes through
    the order status API so the lifecycle rules and side effects apply.
    """

    list_display = [
        'order_number', 'customer', 'restaurant', 'driver',
        'status_badge', 'payment_method', 'total',
        'settlement_badge', 'needs_manual_assignment', 'created_at'
    ]
    list_filter = [
        'status', 'payment_method', 'credit_settlement_status',
        'needs_manual_assignment', 'created_at'
    ]
    search_fields = [
        'order_number', 'customer__username', 'restaurant__name',
        'driver__name', 'contact_phone'
    ]
    readonly_fields = [
        'order_number', 'status', 'driver', 'subtotal', 'total',
        'credit_settlement_status', 'settlement_note',
        'created_at', 'updated_at', 'confirmed_at', 'assigned_at',
        'picked_up_at', 'delivered_at', 'cancelled_at'
    ]
    inlines = [OrderItemInline, OrderStatusChangeInline]

    fieldsets = (
        ('Order Information', {
            'fields': ('order_number', 'customer', 'restaurant', 'driver')
        }),
        ('Status', {
            'fields': ('status', 'needs_manual_assignment', 'cancellation_reason')
        }),
        ('Delivery Information', {
            'fields': (
                'delivery_address', 'delivery_latitude', 'delivery_longitude',
                'contact_phone', 'special_instructions'
            )
        }),
        ('Pricing & Settlement', {
            'fields': (
                'payment_method', 'subtotal', 'delivery_fee', 'tax', 'total',
                'credit_settlement_status', 'settlement_note'
            )
        }),
        ('Timing', {
            'fields': (
                'confirmed_at', 'assigned_at', 'picked_up_at',
                'delivered_at', 'cancelled_at'
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        """Display status with color."""
        colors = {
            'pending': 'orange',
            'confirmed': 'blue',
            'preparing': 'purple',
            'ready_for_pickup': 'teal',
            'driver_assigned': 'navy',
            'picked_up': 'darkgreen',
            'delivered': 'green',
            'cancelled': 'red',
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, 'black'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def settlement_badge(self, obj):
        if obj.credit_settlement_status == 'needs_reconciliation':
            return format_html('<span style="color: red;">{}</span>', '⚠ Reconcile')
        return obj.get_credit_settlement_status_display()
    settlement_badge.short_description = 'Settlement'
