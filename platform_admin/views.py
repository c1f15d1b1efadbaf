"""
Platform Admin Views - superadmin analytics and order monitoring.
"""
from datetime import timedelta
from decimal import Decimal
from django.db.models import Count, Sum, Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import InvalidInput
from users.decorators import superadmin_required
from users.models import User
from restaurants.models import Restaurant
from orders.models import Order
from orders.serializers import OrderListSerializer
from orders.state_machine import normalize_status
from delivery.models import Driver
from credit.models import CreditRequest
from credit.ledger import currency


def _money(value):
    return value if value is not None else Decimal('0.00')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@superadmin_required
def dashboard_overview(request):
    """
    Main superadmin dashboard stats.
    """
    # Date ranges
    now = timezone.now()
    last_30_days = now - timedelta(days=30)

    delivered = Order.objects.filter(status='delivered')

    order_stats = {
        'total_orders': Order.objects.count(),
        'orders_last_30_days': Order.objects.filter(created_at__gte=last_30_days).count(),
        'delivered_revenue': _money(delivered.aggregate(total=Sum('total'))['total']),
        'delivered_revenue_last_30_days': _money(
            delivered.filter(delivered_at__gte=last_30_days).aggregate(total=Sum('total'))['total']
        ),
        'needs_reconciliation': Order.objects.filter(credit_settlement_status='needs_reconciliation').count(),
        'needs_manual_assignment': Order.objects.filter(
            needs_manual_assignment=True, driver__isnull=True
        ).exclude(status__in=['delivered', 'cancelled']).count(),
    }

    # Orders by status
    orders_by_status = {row['status']: row['count'] for row in Order.objects.values('status').annotate(
        count=Count('id')
    ).order_by('status')}

    driver_stats = Driver.objects.aggregate(
        total=Count('id'),
        approved=Count('id', filter=Q(is_approved=True)),
        pending=Count('id', filter=Q(is_approved=False, rejection_reason='')),
        online=Count('id', filter=Q(is_online=True)),
        available=Count('id', filter=Q(is_approved=True, is_online=True, is_available=True)),
        outstanding_credit=Sum('credit_balance'),
    )
    driver_stats['outstanding_credit'] = _money(driver_stats['outstanding_credit'])

    restaurant_stats = Restaurant.objects.aggregate(
        total=Count('id'),
        approved=Count('id', filter=Q(is_approved=True)),
        pending=Count('id', filter=Q(is_approved=False, rejection_reason='')),
        active=Count('id', filter=Q(is_active=True, is_approved=True)),
    )

    pending_credit = CreditRequest.objects.filter(status='pending').aggregate(
        count=Count('id'),
        amount=Sum('amount'),
    )

    # Top restaurants by orders
    top_restaurants = [
        {
            'restaurant_id': restaurant.id,
            'name': restaurant.name,
            'order_count': restaurant.order_count,
            'delivered_revenue': _money(restaurant.delivered_revenue),
        }
        for restaurant in Restaurant.objects.filter(is_approved=True).annotate(
            order_count=Count('orders'),
            delivered_revenue=Sum('orders__total', filter=Q(orders__status='delivered')),
        ).order_by('-order_count', 'name')[:5]
    ]

    return Response({
        'currency': currency(),
        'orders': order_stats,
        'orders_by_status': orders_by_status,
        'drivers': driver_stats,
        'restaurants': restaurant_stats,
        'credit_requests': {
            'pending_count': pending_credit['count'],
            'pending_amount': _money(pending_credit['amount']),
        },
        'customers': User.objects.filter(user_type='customer', is_active=True).count(),
        'top_restaurants': top_restaurants,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@superadmin_required
def monitor_orders(request):
    """
    Order monitoring with filters: ?status=, ?restaurant=,
    ?flag=manual_assignment|reconciliation.
    """
    orders = Order.objects.select_related('restaurant', 'driver')

    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status=normalize_status(status_filter))

    restaurant_filter = request.query_params.get('restaurant')
    if restaurant_filter:
        try:
            restaurant_id = int(restaurant_filter)
        except ValueError:
            raise InvalidInput(f"Invalid restaurant id: {restaurant_filter}")
        orders = orders.filter(restaurant_id=restaurant_id)

    flag = request.query_params.get('flag')
    if flag == 'manual_assignment':
        orders = orders.filter(needs_manual_assignment=True, driver__isnull=True)
    elif flag == 'reconciliation':
        orders = orders.filter(credit_settlement_status='needs_reconciliation')
    elif flag:
        raise InvalidInput(f"Unknown flag: {flag}. Use manual_assignment or reconciliation")

    return Response({
        'count': orders.count(),
        'orders': OrderListSerializer(orders.order_by('-created_at')[:100], many=True).data
    })
