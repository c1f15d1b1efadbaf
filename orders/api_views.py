"""
API views for orders: fee quotes, placement, role-scoped listing and status updates.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework import status

from core.exceptions import InvalidState, OrderNotFound
from credit.ledger import currency
from delivery.fees import quote_delivery
from orders import services
from restaurants.services import get_restaurant
from orders.state_machine import normalize_status
from orders.serializers import (
    OrderListSerializer, OrderDetailSerializer,
    OrderCreateSerializer, OrderStatusUpdateSerializer, DeliveryFeeQuoteSerializer,
)

# Statuses each role may move an order into (superadmins: any)
RESTAURANT_TARGETS = frozenset({'confirmed', 'preparing', 'ready_for_pickup', 'cancelled'})
DRIVER_TARGETS = frozenset({'driver_assigned', 'picked_up', 'delivered'})


def _get_visible_order(user, order_id):
    order = services.orders_visible_to(user).filter(pk=order_id).first()
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list(request):
    """
    GET: orders visible to the caller, optional ?status= filter.
    POST: a customer places an order.
    """
    if request.method == 'POST':
        if not request.user.is_customer:
            return Response({'error': 'Only customers can place orders'}, status=status.HTTP_403_FORBIDDEN)

        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = services.create_order(
            request.user,
            data.pop('restaurant_id'),
            [dict(item) for item in data.pop('items')],
            **data
        )
        return Response(OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)

    orders = services.orders_visible_to(request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status=normalize_status(status_filter))

    return Response({'orders': OrderListSerializer(orders[:100], many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    order = _get_visible_order(request.user, order_id)
    return Response(OrderDetailSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_order_status(request, order_id):
    """Move the order to a new status, subject to the caller's role."""
    serializer = OrderStatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = request.user
    order = _get_visible_order(user, order_id)
    target = normalize_status(serializer.validated_data['status'])

    if not user.is_superadmin:
        if user.is_restaurant_staff:
            allowed = target in RESTAURANT_TARGETS
        elif user.is_driver:
            allowed = target in DRIVER_TARGETS
        else:
            # Customers can only cancel before the restaurant confirms
            allowed = target == 'cancelled' and order.status == 'pending'
        if not allowed:
            return Response(
                {'error': f'You are not allowed to set this order to {target}'},
                status=status.HTTP_403_FORBIDDEN
            )

    order = services.transition_order(
        order.id, target, actor=user, note=serializer.validated_data['note']
    )
    return Response({
        'message': f'Order {order.order_number} is now {order.get_status_display()}',
        'order': OrderDetailSerializer(order).data
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def delivery_fee_quote(request):
    """Delivery fee the customer would pay, shown before checkout."""
    serializer = DeliveryFeeQuoteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    restaurant = get_restaurant(data['restaurant_id'])
    if not restaurant.is_accepting_orders:
        raise InvalidState(f"{restaurant.name} is not accepting orders")

    quote = quote_delivery(restaurant, data['delivery_latitude'], data['delivery_longitude'])
    return Response({
        'restaurant_id': restaurant.id,
        'distance_km': quote['distance_km'],
        'delivery_fee': quote['delivery_fee'],
        'estimated_minutes': quote['estimated_minutes'],
        'currency': currency(),
    })
