"""
DRF Serializers for Order models.
"""
from rest_framework import serializers
from .models import Order, OrderItem, OrderStatusChange


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'menu_item', 'name', 'unit_price', 'quantity', 'customizations', 'line_total']
        read_only_fields = fields


class OrderStatusChangeSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = OrderStatusChange
        fields = ['from_status', 'to_status', 'actor_username', 'note', 'created_at']
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order listing."""
    restaurant_name = serializers.CharField(source='restaurant.name', read_only=True)
    driver_name = serializers.CharField(source='driver.name', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'restaurant', 'restaurant_name', 'driver',
            'driver_name', 'status', 'payment_method', 'total',
            'credit_settlement_status', 'needs_manual_assignment', 'created_at'
        ]
        read_only_fields = fields


class OrderDetailSerializer(serializers.ModelSerializer):
    """Detailed serializer for a single order."""
    items = OrderItemSerializer(many=True, read_only=True)
    status_changes = OrderStatusChangeSerializer(many=True, read_only=True)
    restaurant_name = serializers.CharField(source='restaurant.name', read_only=True)
    driver_name = serializers.CharField(source='driver.name', read_only=True, default=None)
    driver_phone = serializers.CharField(source='driver.phone_number', read_only=True, default=None)
    customer_username = serializers.CharField(source='customer.username', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'customer_username',
            'restaurant', 'restaurant_name', 'driver', 'driver_name', 'driver_phone',
            'status', 'payment_method', 'items', 'subtotal', 'delivery_fee', 'tax', 'total',
            'delivery_address', 'delivery_latitude', 'delivery_longitude', 'delivery_distance_km',
            'contact_phone', 'special_instructions',
            'credit_settlement_status', 'settlement_note', 'needs_manual_assignment',
            'cancellation_reason', 'status_changes',
            'created_at', 'confirmed_at', 'assigned_at', 'picked_up_at',
            'delivered_at', 'cancelled_at'
        ]
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    # Name and price come from the menu
    menu_item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    customizations = serializers.JSONField(required=False, default=dict)


class OrderCreateSerializer(serializers.Serializer):
    restaurant_id = serializers.IntegerField()
    items = OrderItemInputSerializer(many=True)
    delivery_address = serializers.CharField(max_length=255)
    payment_method = serializers.CharField(max_length=20, default='cash')
    tax = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    delivery_latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    delivery_longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    contact_phone = serializers.CharField(max_length=17, required=False, allow_blank=True, default='')
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=30)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class DeliveryFeeQuoteSerializer(serializers.Serializer):
    restaurant_id = serializers.IntegerField()
    delivery_latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    delivery_longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
